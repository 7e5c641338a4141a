"""Conversation engine: one user message in, one displayable reply out.

Per turn:
  1. load (or lazily create) the user's conversation context
  2. fetch the user's infrastructure snapshot
  3. awaiting confirmation → yes runs the pending action, no / anything else
     drops it
  4. otherwise quick menu option → classify → build confirmation; a
     non-terminal outcome parks the action in the store until the next turn

The turn never raises: every path, including collaborator failures, ends in
a reply string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from acuagenius.assistant.actions import Requester, ShowStatus
from acuagenius.assistant.confirmation import ConfirmationBuilder, render_status
from acuagenius.assistant.dispatcher import ActionDispatcher
from acuagenius.assistant.intent import IntentClassifier
from acuagenius.assistant.replies import ReplyKind, classify_reply
from acuagenius.assistant.results import Err, FailureKind, format_result
from acuagenius.infrastructure.contracts import (
    InfrastructureProvider,
    InfrastructureSnapshot,
    ReportService,
    SensorService,
    TankService,
)
from acuagenius.session import create_conversation_store
from acuagenius.session.store import ConversationState, ConversationStore, UserConversationContext
from acuagenius.settings import AcuaSettings, get_settings

HELP_MESSAGE = """🤔 No entendí tu solicitud. Aquí tienes opciones:

1️⃣ Crear tanque
2️⃣ Editar nombre de tanque
3️⃣ Editar ubicación de tanque
4️⃣ Eliminar tanque
5️⃣ Crear sensor (especifica tanque y tipo)
6️⃣ Eliminar sensor
7️⃣ Generar reporte
8️⃣ Ver estado del sistema

💡 Ejemplos:
• "crear tanque"
• "cambiar nombre tanque 00X a tanque 00Y"
• "crear sensor ph y temperatura en tanque 00X"
• "crear todos los sensores en tanque 00X"
• "eliminar tanque 00X"

Escribe el número o el comando completo."""

CANCELLED_MESSAGE = "❌ Operación cancelada. ¿En qué más puedo ayudarte?"
UNCLEAR_MESSAGE = (
    '⚠️ No entendí tu respuesta, así que cancelé la operación. '
    'Vuelve a pedirla y responde "sí" para confirmar o "no" para cancelar.'
)
TECHNICAL_ERROR_MESSAGE = "❌ Error técnico. Por favor intenta nuevamente."

# Menu shortcut → (command, example phrasings).  Option 8 answers directly.
QUICK_OPTIONS: dict[str, tuple[str, tuple[str, ...]]] = {
    "1": ("crear tanque", ('"crear tanque"',)),
    "2": ("cambiar nombre tanque", ('"cambiar nombre tanque 003 a Principal"',)),
    "3": ("cambiar ubicación tanque", ('"cambiar ubicación tanque 005 a Cartagena, Bolívar"',)),
    "4": ("eliminar tanque", ('"eliminar tanque 005"',)),
    "5": ("crear sensor", ('"crear sensor ph en tanque 004"', '"crear todos los sensores en tanque 004"')),
    "6": ("eliminar sensor", ('"eliminar sensor de ph del tanque 004"',)),
    "7": ("generar reporte", ('"generar reporte de la semana"', '"generar reporte del mes"')),
    "8": ("estado del sistema", ()),
}


class TurnKind(str, Enum):
    HELP = "help"
    QUICK_OPTION = "quick_option"
    STATUS = "status"
    COMPLETED = "completed"  # nothing to do, e.g. sensors already present
    REJECTED = "rejected"
    CONFIRMATION_REQUESTED = "confirmation_requested"
    EXECUTED = "executed"
    EXECUTION_FAILED = "execution_failed"
    CANCELLED = "cancelled"
    UNCLEAR = "unclear"
    TECHNICAL_ERROR = "technical_error"


@dataclass(frozen=True, slots=True)
class Reply:
    text: str
    kind: TurnKind
    failure: FailureKind | None = None


class ConversationEngine:
    """Per-user command state machine on top of the assistant components."""

    def __init__(
        self,
        store: ConversationStore,
        infrastructure: InfrastructureProvider,
        dispatcher: ActionDispatcher,
        classifier: IntentClassifier | None = None,
        builder: ConfirmationBuilder | None = None,
        quick_options: bool = True,
    ) -> None:
        self.store = store
        self._infrastructure = infrastructure
        self._dispatcher = dispatcher
        self._classifier = classifier or IntentClassifier()
        self._builder = builder or ConfirmationBuilder()
        self._quick_options = quick_options

    @classmethod
    def from_settings(
        cls,
        infrastructure: InfrastructureProvider,
        tanks: TankService,
        sensors: SensorService,
        reports: ReportService,
        settings: AcuaSettings | None = None,
        store: ConversationStore | None = None,
    ) -> ConversationEngine:
        s = settings or get_settings()
        return cls(
            store=store or create_conversation_store(s),
            infrastructure=infrastructure,
            dispatcher=ActionDispatcher(tanks, sensors, reports),
            builder=ConfirmationBuilder(default_location=s.default_location_name),
            quick_options=s.quick_options_enabled,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.store.start()

    async def stop(self) -> None:
        await self.store.stop()

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    async def handle_message(self, user_id: str, text: str, role: str = "USER") -> str:
        return (await self.respond(user_id, text, role)).text

    async def respond(self, user_id: str, text: str, role: str = "USER") -> Reply:
        requester = Requester(user_id=user_id, role=role)
        try:
            return await self._turn(requester, text)
        except Exception:
            logger.exception(f"Unexpected error handling message for user {user_id}")
            return Reply(TECHNICAL_ERROR_MESSAGE, TurnKind.TECHNICAL_ERROR)

    async def _turn(self, requester: Requester, text: str) -> Reply:
        ctx = await self.store.get(requester.user_id)
        try:
            snapshot = await self._infrastructure.get_user_infrastructure(requester.user_id)
        except Exception as exc:
            logger.error(f"Could not load infrastructure for user {requester.user_id}: {exc}")
            return Reply(TECHNICAL_ERROR_MESSAGE, TurnKind.TECHNICAL_ERROR)

        if ctx.awaiting_confirmation:
            return await self._resolve_pending(requester, ctx, text, snapshot)

        quick = self._quick_option(text, snapshot)
        if quick is not None:
            return quick

        action = self._classifier.classify(text)
        if action is None:
            return Reply(HELP_MESSAGE, TurnKind.HELP)
        logger.debug(f"User {requester.user_id}: classified as {action.kind.value}")

        outcome = self._builder.build(action, snapshot)
        if outcome.terminal:
            if outcome.rejected:
                kind = TurnKind.REJECTED
            elif isinstance(action, ShowStatus):
                kind = TurnKind.STATUS
            else:
                kind = TurnKind.COMPLETED
            return Reply(outcome.message, kind, outcome.failure)

        await self.store.update(
            requester.user_id,
            state=ConversationState.AWAITING_CONFIRMATION,
            pending_action=outcome.action,
        )
        return Reply(outcome.message, TurnKind.CONFIRMATION_REQUESTED)

    async def _resolve_pending(
        self,
        requester: Requester,
        ctx: UserConversationContext,
        text: str,
        snapshot: InfrastructureSnapshot,
    ) -> Reply:
        action = ctx.pending_action
        answer = classify_reply(text)
        # Cleared before anything runs so the same confirmation cannot execute twice.
        await self.store.clear(requester.user_id)

        if answer is ReplyKind.AFFIRMATIVE:
            result = await self._dispatcher.run(action, requester, snapshot)
            if isinstance(result, Err):
                return Reply(format_result(result), TurnKind.EXECUTION_FAILED, result.kind)
            return Reply(format_result(result), TurnKind.EXECUTED)

        if answer is ReplyKind.NEGATIVE:
            logger.debug(f"User {requester.user_id}: cancelled {action.kind.value}")
            return Reply(CANCELLED_MESSAGE, TurnKind.CANCELLED)

        logger.debug(f"User {requester.user_id}: unclear reply, dropped {action.kind.value}")
        return Reply(UNCLEAR_MESSAGE, TurnKind.UNCLEAR)

    def _quick_option(self, text: str, snapshot: InfrastructureSnapshot) -> Reply | None:
        if not self._quick_options:
            return None
        option = QUICK_OPTIONS.get(text.strip())
        if option is None:
            return None
        command, examples = option
        if not examples:
            return Reply(render_status(snapshot), TurnKind.STATUS)
        lines = [f"Para {command}, especifica los detalles.", "", "Ejemplo:"]
        lines.extend(f"• {e}" for e in examples)
        return Reply("\n".join(lines), TurnKind.QUICK_OPTION)
