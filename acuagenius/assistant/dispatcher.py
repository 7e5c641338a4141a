"""Execute confirmed actions against the CRUD collaborators.

Only ever called after an explicit "sí" to a prompt produced by the
confirmation builder.  Each handler makes its collaborator call(s) and
converts failures into an ``Err`` value; nothing here raises to the caller.
A failed action is not retried: the user has to ask again.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from loguru import logger

from acuagenius.assistant.actions import (
    Action,
    CreateReport,
    CreateSensors,
    CreateTank,
    DeleteSensor,
    DeleteTank,
    EditTank,
    ReportRange,
    Requester,
)
from acuagenius.assistant.results import ActionResult, Err, FailureKind, Ok, format_result
from acuagenius.infrastructure.contracts import (
    InfrastructureSnapshot,
    ReportRequest,
    ReportService,
    SensorCreate,
    SensorInfo,
    SensorService,
    TankCreate,
    TankService,
)

_SENSOR_NUMBER_RE = re.compile(r"Sensor[-\s](\d+)", re.IGNORECASE)

_TANKS_LINK = "🔗 [Ver Tanques](/tanks-and-sensors)"
_SENSORS_LINK = "🔗 [Ver Sensores](/tanks-and-sensors)"
_REPORTS_LINK = "🔗 [Ver Reportes](/reports)"


def _localnow() -> datetime:
    # Report days follow the deployment's wall clock, not UTC.
    return datetime.now().astimezone()


def next_sensor_number(sensors: Iterable[SensorInfo]) -> int:
    """One more than the highest ``Sensor-NNN`` / ``Sensor NNN`` in names or hardware IDs.

    Numbering is global to the user, not per tank.
    """
    highest = 0
    for sensor in sensors:
        for text in (sensor.name, sensor.hardware_id):
            m = _SENSOR_NUMBER_RE.search(text or "")
            if m:
                highest = max(highest, int(m.group(1)))
    return highest + 1


def report_window(period: ReportRange, now: datetime) -> tuple[date, date]:
    """``(start, end)`` calendar dates for a report requested at *now*.

    Dates are taken in *now*'s own timezone.
    """
    if period is ReportRange.WEEK:
        return (now - timedelta(days=7)).date(), now.date()
    if period is ReportRange.MONTH:
        return (now - timedelta(days=30)).date(), now.date()
    return now.date(), now.date()


class ActionDispatcher:
    """Runs a resolved action and reports what happened."""

    def __init__(
        self,
        tanks: TankService,
        sensors: SensorService,
        reports: ReportService,
        clock: Callable[[], datetime] = _localnow,
    ) -> None:
        self._tanks = tanks
        self._sensors = sensors
        self._reports = reports
        self._clock = clock
        self._handlers = {
            CreateTank: self._create_tank,
            EditTank: self._edit_tank,
            DeleteTank: self._delete_tank,
            CreateSensors: self._create_sensors,
            DeleteSensor: self._delete_sensor,
            CreateReport: self._create_report,
        }

    async def run(
        self,
        action: Action,
        requester: Requester,
        snapshot: InfrastructureSnapshot | None = None,
    ) -> ActionResult:
        handler = self._handlers.get(type(action))
        if handler is None:
            return Err(FailureKind.PRECONDITION, f"Acción no ejecutable: {action.kind.value}.")
        logger.info(f"Executing {action.kind.value} for user {requester.user_id}")
        result = await handler(action, requester, snapshot or InfrastructureSnapshot())
        if isinstance(result, Err):
            logger.warning(f"{action.kind.value} for user {requester.user_id} failed ({result.kind.value}): {result.detail}")
        return result

    async def execute(
        self,
        action: Action,
        requester: Requester,
        snapshot: InfrastructureSnapshot | None = None,
    ) -> str:
        return format_result(await self.run(action, requester, snapshot))

    # ------------------------------------------------------------------
    # Tanks
    # ------------------------------------------------------------------

    async def _create_tank(
        self, action: CreateTank, requester: Requester, snapshot: InfrastructureSnapshot
    ) -> ActionResult:
        if not action.name or not action.location:
            return Err(FailureKind.MISSING_PARAMETER, "Nombre o ubicación del tanque sin confirmar.")
        data = TankCreate(name=action.name, location=action.location, user_id=requester.user_id)
        try:
            tank = await self._tanks.create_tank(data)
        except Exception as exc:
            logger.error(f"Error creating tank {data.name!r}: {exc}")
            return Err(FailureKind.EXECUTION, str(exc))
        return Ok(f'✅ Tanque creado: "{tank.name}"\n📍 {tank.location}\n\n{_TANKS_LINK}')

    async def _edit_tank(
        self, action: EditTank, requester: Requester, snapshot: InfrastructureSnapshot
    ) -> ActionResult:
        if action.tank_id is None:
            return Err(FailureKind.NOT_FOUND, "Tanque no encontrado.")
        changes: dict[str, str] = {}
        if action.new_name:
            changes["name"] = action.new_name
        if action.new_location:
            changes["location"] = action.new_location
        if not changes:
            return Err(FailureKind.PRECONDITION, "Sin cambios especificados.")
        try:
            await self._tanks.update_tank(action.tank_id, changes)
        except Exception as exc:
            logger.error(f"Error editing tank {action.tank_id}: {exc}")
            return Err(FailureKind.EXECUTION, str(exc))
        if action.new_location:
            return Ok(f'✅ Tanque actualizado\n📍 Nueva ubicación: "{action.new_location}"\n\n{_TANKS_LINK}')
        old_name = action.old_name or action.tank_name
        return Ok(f'✅ Tanque actualizado\n🔄 "{old_name}" → "{action.new_name}"\n\n{_TANKS_LINK}')

    async def _delete_tank(
        self, action: DeleteTank, requester: Requester, snapshot: InfrastructureSnapshot
    ) -> ActionResult:
        if action.tank_id is None:
            return Err(FailureKind.NOT_FOUND, "Tanque no encontrado.")
        try:
            await self._tanks.delete_tank(action.tank_id)
        except Exception as exc:
            logger.error(f"Error deleting tank {action.tank_id}: {exc}")
            return Err(FailureKind.EXECUTION, str(exc))
        return Ok(f'✅ Tanque "{action.tank_name}" eliminado\n{_TANKS_LINK}')

    # ------------------------------------------------------------------
    # Sensors
    # ------------------------------------------------------------------

    async def _create_sensors(
        self, action: CreateSensors, requester: Requester, snapshot: InfrastructureSnapshot
    ) -> ActionResult:
        if action.tank_id is None:
            return Err(FailureKind.NOT_FOUND, "Tanque no encontrado.")

        number = next_sensor_number(snapshot.all_sensors())
        created: list[str] = []
        errors: list[str] = []
        for sensor_type in action.types:
            hardware_id = f"Sensor-{number:03d}"
            data = SensorCreate(
                name=f"Sensor {sensor_type.label} {number:03d}",
                type=sensor_type,
                tank_id=action.tank_id,
                hardware_id=hardware_id,
                calibration_date=self._clock().isoformat(),
            )
            try:
                await self._sensors.create_sensor(data)
            except Exception as exc:
                logger.error(f"Error creating {sensor_type.value} sensor on tank {action.tank_id}: {exc}")
                errors.append(f"{sensor_type.label}: {exc}")
                continue
            created.append(f"{sensor_type.label} ({hardware_id})")
            number += 1

        if not created:
            return Err(FailureKind.EXECUTION, "; ".join(errors) or "no se creó ningún sensor")

        lines = [f"✅ {len(created)} sensor(es) creado(s):"]
        lines.extend(f"   📡 {c}" for c in created)
        lines.append("")
        lines.append(f'📦 Tanque: "{action.tank_name}"')
        if errors:
            lines.append("")
            lines.append("⚠️ Errores:")
            lines.extend(f"   • {e}" for e in errors)
        lines.append("")
        lines.append(_SENSORS_LINK)
        return Ok("\n".join(lines))

    async def _delete_sensor(
        self, action: DeleteSensor, requester: Requester, snapshot: InfrastructureSnapshot
    ) -> ActionResult:
        if action.sensor_id is None:
            return Err(FailureKind.NOT_FOUND, "Sensor no encontrado.")
        try:
            await self._sensors.delete_sensor(action.sensor_id, requester.user_id, requester.role)
        except Exception as exc:
            logger.error(f"Error deleting sensor {action.sensor_id}: {exc}")
            return Err(FailureKind.EXECUTION, str(exc))
        return Ok(
            f'✅ Sensor de {action.sensor_type.label} eliminado del tanque "{action.tank_name}"\n{_SENSORS_LINK}'
        )

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def _create_report(
        self, action: CreateReport, requester: Requester, snapshot: InfrastructureSnapshot
    ) -> ActionResult:
        if action.tank_id is None:
            return Err(FailureKind.PRECONDITION, "No tienes tanques.")
        if not action.sensor_ids:
            return Err(FailureKind.PRECONDITION, f'El tanque "{action.tank_name}" no tiene sensores.')

        start, end = report_window(action.range, self._clock())
        data = ReportRequest(
            report_name=f"Reporte IA - {action.range.label}",
            user_id=requester.user_id,
            tank_id=action.tank_id,
            sensor_ids=action.sensor_ids,
            start_date=start.isoformat(),
            end_date=end.isoformat(),
            is_automatic=False,
        )
        try:
            await self._reports.create_report(data)
        except Exception as exc:
            logger.error(f"Error submitting report for tank {action.tank_id}: {exc}")
            return Err(FailureKind.EXECUTION, str(exc))
        # Generation finishes asynchronously; only the submission is reported here.
        return Ok(f"✅ Reporte solicitado\n📅 {action.range.label}\n⏳ Se está generando\n{_REPORTS_LINK}")
