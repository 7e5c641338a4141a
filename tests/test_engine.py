import pytest

from acuagenius.assistant.actions import DeleteTank
from acuagenius.assistant.dispatcher import ActionDispatcher
from acuagenius.assistant.engine import (
    CANCELLED_MESSAGE,
    HELP_MESSAGE,
    TECHNICAL_ERROR_MESSAGE,
    UNCLEAR_MESSAGE,
    ConversationEngine,
    TurnKind,
)
from acuagenius.assistant.intent import IntentClassifier, IntentRule
from acuagenius.assistant.results import FailureKind
from acuagenius.infrastructure import CollaboratorError, InfrastructureSnapshot, TankCreate, TankInfo
from acuagenius.session import ConversationState, InMemoryConversationStore
from acuagenius.settings import AcuaSettings


@pytest.fixture
def store(clock) -> InMemoryConversationStore:
    return InMemoryConversationStore(clock=clock)


@pytest.fixture
def engine(store, infrastructure, tanks, sensors, reports, clock) -> ConversationEngine:
    return ConversationEngine(
        store=store,
        infrastructure=infrastructure,
        dispatcher=ActionDispatcher(tanks, sensors, reports, clock=clock),
    )


@pytest.mark.asyncio
async def test_delete_tank_round_trip(engine, store, infrastructure, tanks) -> None:
    infrastructure.snapshot = InfrastructureSnapshot(tanks=(TankInfo(id="t4", name="Tanque 004"),))

    prompt = await engine.respond("u1", "eliminar tanque 004")

    assert prompt.kind is TurnKind.CONFIRMATION_REQUESTED
    assert '"Tanque 004"' in prompt.text
    ctx = await store.get("u1")
    assert ctx.pending_action == DeleteTank(tank_name="Tanque 004", tank_id="t4")

    done = await engine.respond("u1", "sí")

    assert done.kind is TurnKind.EXECUTED
    assert done.text.startswith('✅ Tanque "Tanque 004" eliminado')
    tanks.delete_tank.assert_awaited_once_with("t4")
    assert (await store.get("u1")).state is ConversationState.IDLE


@pytest.mark.asyncio
async def test_repeated_confirmation_does_not_execute_twice(engine, tanks) -> None:
    await engine.respond("u1", "eliminar tanque 002")
    await engine.respond("u1", "sí")

    again = await engine.respond("u1", "sí")

    assert again.kind is TurnKind.HELP
    tanks.delete_tank.assert_awaited_once_with("t2")


@pytest.mark.asyncio
async def test_rejected_action_never_awaits_confirmation(engine, store, tanks) -> None:
    reply = await engine.respond("u1", "eliminar tanque 001")

    assert reply.kind is TurnKind.REJECTED
    assert reply.failure is FailureKind.PRECONDITION
    assert not (await store.get("u1")).awaiting_confirmation

    await engine.respond("u1", "sí")
    tanks.delete_tank.assert_not_awaited()


@pytest.mark.asyncio
async def test_negative_reply_cancels(engine, store, tanks) -> None:
    await engine.respond("u1", "eliminar tanque 002")

    reply = await engine.respond("u1", "no")

    assert reply.kind is TurnKind.CANCELLED
    assert reply.text == CANCELLED_MESSAGE
    tanks.delete_tank.assert_not_awaited()
    assert (await store.get("u1")).state is ConversationState.IDLE


@pytest.mark.asyncio
async def test_unclear_reply_discards_pending_action(engine, store, tanks) -> None:
    await engine.respond("u1", "eliminar tanque 002")

    reply = await engine.respond("u1", "tal vez mañana")

    assert reply.kind is TurnKind.UNCLEAR
    assert reply.text == UNCLEAR_MESSAGE
    assert not (await store.get("u1")).awaiting_confirmation
    await engine.respond("u1", "sí")
    tanks.delete_tank.assert_not_awaited()


@pytest.mark.asyncio
async def test_snapshot_failure_leaves_pending_action_untouched(engine, store, infrastructure, tanks) -> None:
    await engine.respond("u1", "eliminar tanque 002")
    infrastructure.error = CollaboratorError("base de datos no disponible")

    reply = await engine.respond("u1", "sí")

    assert reply.kind is TurnKind.TECHNICAL_ERROR
    assert reply.text == TECHNICAL_ERROR_MESSAGE
    tanks.delete_tank.assert_not_awaited()
    assert (await store.get("u1")).awaiting_confirmation

    infrastructure.error = None
    assert (await engine.respond("u1", "sí")).kind is TurnKind.EXECUTED
    tanks.delete_tank.assert_awaited_once_with("t2")


@pytest.mark.asyncio
async def test_execution_failure_is_reported_and_state_cleared(engine, store, tanks) -> None:
    tanks.delete_tank.side_effect = CollaboratorError("tanque ocupado")
    await engine.respond("u1", "eliminar tanque 002")

    reply = await engine.respond("u1", "dale")

    assert reply.kind is TurnKind.EXECUTION_FAILED
    assert reply.failure is FailureKind.EXECUTION
    assert reply.text == "❌ Error: tanque ocupado"
    assert not (await store.get("u1")).awaiting_confirmation


@pytest.mark.asyncio
async def test_create_tank_executes_confirmed_proposal(engine, tanks) -> None:
    prompt = await engine.respond("u1", "crear tanque")
    assert '"Tanque 005"' in prompt.text

    reply = await engine.respond("u1", "ok")

    tanks.create_tank.assert_awaited_once_with(
        TankCreate(name="Tanque 005", location="Barranquilla, Atlántico", user_id="u1")
    )
    assert reply.kind is TurnKind.EXECUTED


@pytest.mark.asyncio
async def test_pending_action_expires_after_ttl(engine, clock, tanks) -> None:
    await engine.respond("u1", "eliminar tanque 002")
    clock.advance(16 * 60)

    reply = await engine.respond("u1", "sí")

    assert reply.kind is TurnKind.HELP
    tanks.delete_tank.assert_not_awaited()


@pytest.mark.asyncio
async def test_conversations_are_per_user(engine, store, tanks) -> None:
    await engine.respond("u1", "eliminar tanque 002")

    other = await engine.respond("u2", "sí")

    assert other.kind is TurnKind.HELP
    tanks.delete_tank.assert_not_awaited()
    assert (await store.get("u1")).awaiting_confirmation


@pytest.mark.asyncio
async def test_status_and_already_complete_sensors_are_answered_directly(engine, store) -> None:
    status = await engine.respond("u1", "estado")
    complete = await engine.respond("u1", "crear todos los sensores en tanque 001")

    assert status.kind is TurnKind.STATUS
    assert "📦 Tanques: 4" in status.text
    assert complete.kind is TurnKind.COMPLETED
    assert not (await store.get("u1")).awaiting_confirmation


@pytest.mark.asyncio
async def test_unrecognised_text_returns_help(engine) -> None:
    reply = await engine.respond("u1", "hola")

    assert reply.kind is TurnKind.HELP
    assert reply.text == HELP_MESSAGE


@pytest.mark.asyncio
async def test_quick_options(engine) -> None:
    status = await engine.respond("u1", "8")
    hint = await engine.respond("u1", " 5 ")

    assert status.kind is TurnKind.STATUS
    assert status.text.startswith("📊 **Estado del Sistema**")
    assert hint.kind is TurnKind.QUICK_OPTION
    assert hint.text.startswith("Para crear sensor, especifica los detalles.")
    assert '• "crear todos los sensores en tanque 004"' in hint.text


@pytest.mark.asyncio
async def test_quick_options_can_be_disabled(store, infrastructure, tanks, sensors, reports) -> None:
    engine = ConversationEngine(
        store=store,
        infrastructure=infrastructure,
        dispatcher=ActionDispatcher(tanks, sensors, reports),
        quick_options=False,
    )

    assert (await engine.respond("u1", "8")).kind is TurnKind.HELP


@pytest.mark.asyncio
async def test_unexpected_error_becomes_technical_error(store, infrastructure, tanks, sensors, reports) -> None:
    def boom(msg: str, raw: str):
        raise RuntimeError("boom")

    engine = ConversationEngine(
        store=store,
        infrastructure=infrastructure,
        dispatcher=ActionDispatcher(tanks, sensors, reports),
        classifier=IntentClassifier([IntentRule("boom", lambda msg: True, boom)]),
    )

    assert await engine.handle_message("u1", "crear tanque") == TECHNICAL_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_role_reaches_sensor_deletion(engine, sensors) -> None:
    await engine.respond("u1", "eliminar sensor de ph del tanque 004")

    await engine.handle_message("u1", "sí", role="ADMIN")

    sensors.delete_sensor.assert_awaited_once_with("s4", "u1", "ADMIN")


@pytest.mark.asyncio
async def test_from_settings_wires_location_and_store(infrastructure, tanks, sensors, reports) -> None:
    settings = AcuaSettings(default_location_name="Cartagena, Bolívar", context_ttl_seconds=60)
    engine = ConversationEngine.from_settings(infrastructure, tanks, sensors, reports, settings=settings)

    await engine.start()
    try:
        reply = await engine.handle_message("u1", "crear tanque")
    finally:
        await engine.stop()

    assert "Cartagena, Bolívar" in reply
    assert isinstance(engine.store, InMemoryConversationStore)
    assert engine.store.ttl.total_seconds() == 60
