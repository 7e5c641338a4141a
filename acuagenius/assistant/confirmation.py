"""Validate candidate actions against the user's infrastructure.

For every mutating action the builder either rejects it right away (the
referenced tank does not exist, the tank still has sensors, ...), completes
it as a no-op, or resolves names to IDs and returns the prompt the user must
answer with "sí".  Reads (status) are answered directly and never gated.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import replace

from loguru import logger

from acuagenius.assistant.actions import (
    Action,
    CreateReport,
    CreateSensors,
    CreateTank,
    DeleteSensor,
    DeleteTank,
    EditTank,
    ShowStatus,
)
from acuagenius.assistant.results import BuildOutcome, FailureKind
from acuagenius.infrastructure.contracts import InfrastructureSnapshot, TankInfo
from acuagenius.settings import get_settings

_TANK_NAME_RE = re.compile(r"^Tanque\s+(\d+)$", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def next_tank_name(tanks: Sequence[TankInfo]) -> str:
    """Next sequential ``Tanque NNN`` name.

    Only names that are exactly ``Tanque <number>`` count towards the
    maximum; anything else ("Tanque Norte", "Mi Tanque 9") is ignored.
    """
    highest = 0
    for tank in tanks:
        m = _TANK_NAME_RE.match(tank.name.strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return f"Tanque {highest + 1:03d}"


def find_tank(tanks: Sequence[TankInfo], reference: str | None) -> TankInfo | None:
    """Resolve a tank reference typed by the user.

    Case-insensitive substring match, or equality once whitespace is removed
    ("tanque004" finds "Tanque 004").  The first tank in snapshot order wins;
    ambiguous references are not disambiguated further.
    """
    if reference is None:
        return None
    needle = reference.strip().lower()
    compact = _WS_RE.sub("", needle)
    for tank in tanks:
        name = tank.name.lower()
        if needle in name or _WS_RE.sub("", name) == compact:
            return tank
    return None


def render_status(snapshot: InfrastructureSnapshot) -> str:
    lines = ["📊 **Estado del Sistema**", "", f"📦 Tanques: {len(snapshot.tanks)}"]
    for idx, tank in enumerate(snapshot.tanks, start=1):
        lines.append(f'   {idx}. "{tank.name}" - {len(tank.sensors)} sensores')
    lines.append("")
    lines.append(f"🚨 Alertas activas: {snapshot.open_alert_count}")
    lines.append(f"📊 Reportes generados: {snapshot.report_count}")
    return "\n".join(lines)


def _tank_list(tanks: Sequence[TankInfo]) -> str:
    if not tanks:
        return "Ninguno"
    return "\n".join(f"{i}. {t.name}" for i, t in enumerate(tanks, start=1))


def _reject(kind: FailureKind, detail: str) -> BuildOutcome:
    logger.debug(f"Confirmation rejected ({kind.value}): {detail}")
    return BuildOutcome.reject(kind, detail)


class ConfirmationBuilder:
    """One handler per action type; every action type must have one."""

    def __init__(self, default_location: str | None = None) -> None:
        self.default_location = default_location or get_settings().default_location_name
        self._handlers: dict[type, Callable[[Action, InfrastructureSnapshot], BuildOutcome]] = {
            CreateTank: self._create_tank,
            EditTank: self._edit_tank,
            DeleteTank: self._delete_tank,
            CreateSensors: self._create_sensors,
            DeleteSensor: self._delete_sensor,
            CreateReport: self._create_report,
            ShowStatus: self._show_status,
        }

    def build(self, action: Action, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise TypeError(f"No confirmation handler for {type(action).__name__}")
        return handler(action, snapshot)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _create_tank(self, action: CreateTank, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        name = next_tank_name(snapshot.tanks)
        location = action.location or self.default_location
        return BuildOutcome.confirm(
            f'Voy a crear el tanque "{name}" en {location}. ¿Confirmas?',
            replace(action, name=name, location=location),
        )

    def _edit_tank(self, action: EditTank, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        tank = find_tank(snapshot.tanks, action.tank_name)
        if tank is None:
            return _reject(FailureKind.NOT_FOUND, f'No encontré ningún tanque llamado "{action.tank_name}".')
        resolved = replace(action, tank_id=tank.id, old_name=tank.name)
        if action.new_location:
            return BuildOutcome.confirm(
                f'Voy a cambiar la ubicación de "{tank.name}" a "{action.new_location}". ¿Confirmas?',
                resolved,
            )
        if action.new_name:
            return BuildOutcome.confirm(
                f'Voy a cambiar el nombre de "{tank.name}" a "{action.new_name}". ¿Confirmas?',
                resolved,
            )
        return _reject(FailureKind.PRECONDITION, "Sin cambios especificados.")

    def _delete_tank(self, action: DeleteTank, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        tank = find_tank(snapshot.tanks, action.tank_name)
        if tank is None:
            return _reject(FailureKind.NOT_FOUND, "No encontré ningún tanque con ese nombre.")
        if tank.sensors:
            # Sensors must be removed first; a tank with sensors is never deletable in one step.
            return _reject(
                FailureKind.PRECONDITION,
                f'El tanque "{tank.name}" tiene {len(tank.sensors)} sensores. Elimínalos primero.',
            )
        return BuildOutcome.confirm(
            f'Voy a eliminar el tanque "{tank.name}". ¿Confirmas?',
            replace(action, tank_name=tank.name, tank_id=tank.id),
        )

    def _create_sensors(self, action: CreateSensors, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        if not action.tank_name:
            return _reject(
                FailureKind.MISSING_PARAMETER,
                "Debes especificar el tanque\n\n"
                'Ejemplo: "crear sensores en tanque 004"\n\n'
                f"Tus tanques:\n{_tank_list(snapshot.tanks)}",
            )
        tank = find_tank(snapshot.tanks, action.tank_name)
        if tank is None:
            return _reject(FailureKind.NOT_FOUND, f'No encontré el tanque "{action.tank_name}".')

        existing = {s.type for s in tank.sensors}
        missing = tuple(t for t in action.types if t not in existing)
        if not missing:
            return BuildOutcome.done(f'✅ El tanque "{tank.name}" ya tiene todos los sensores solicitados.')

        labels = ", ".join(t.label for t in missing)
        return BuildOutcome.confirm(
            f'Voy a crear {len(missing)} sensor(es) en "{tank.name}": {labels}. ¿Confirmas?',
            replace(action, types=missing, tank_name=tank.name, tank_id=tank.id),
        )

    def _delete_sensor(self, action: DeleteSensor, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        reference = action.tank_name
        if not reference and snapshot.tanks:
            reference = snapshot.tanks[0].name
        tank = find_tank(snapshot.tanks, reference)
        if tank is None:
            return _reject(FailureKind.NOT_FOUND, "No encontré el tanque.")
        sensor = next((s for s in tank.sensors if s.type == action.sensor_type), None)
        if sensor is None:
            return _reject(
                FailureKind.NOT_FOUND,
                f'El tanque "{tank.name}" no tiene sensor de {action.sensor_type.label}.',
            )
        return BuildOutcome.confirm(
            f'Voy a eliminar el sensor de {action.sensor_type.label} del tanque "{tank.name}". ¿Confirmas?',
            replace(action, tank_name=tank.name, tank_id=tank.id, sensor_id=sensor.id),
        )

    def _create_report(self, action: CreateReport, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        if not snapshot.tanks:
            return _reject(FailureKind.PRECONDITION, "No tienes tanques para generar reportes.")
        tank = snapshot.tanks[0]
        return BuildOutcome.confirm(
            f'Voy a generar un reporte de {action.range.label} del tanque "{tank.name}". ¿Confirmas?',
            replace(
                action,
                tank_id=tank.id,
                tank_name=tank.name,
                sensor_ids=tuple(s.id for s in tank.sensors),
            ),
        )

    def _show_status(self, action: ShowStatus, snapshot: InfrastructureSnapshot) -> BuildOutcome:
        return BuildOutcome.done(render_status(snapshot))
