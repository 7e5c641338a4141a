"""Actions the assistant can propose, confirm and execute.

Every supported operation has its own frozen parameter record.  The intent
classifier fills in what it can read from the text (names, types, ranges);
the confirmation builder returns an enriched copy with the IDs it resolved
against the user's infrastructure.  Records are never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Union

from acuagenius.infrastructure.contracts import SensorType

ALL_SENSOR_TYPES: tuple[SensorType, ...] = (
    SensorType.TEMPERATURE,
    SensorType.PH,
    SensorType.OXYGEN,
)


class ReportRange(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

    @property
    def label(self) -> str:
        return _RANGE_LABELS[self]


_RANGE_LABELS: dict[ReportRange, str] = {
    ReportRange.TODAY: "hoy",
    ReportRange.WEEK: "última semana",
    ReportRange.MONTH: "último mes",
}


class ActionKind(str, Enum):
    CREATE_TANK = "CREATE_TANK"
    EDIT_TANK = "EDIT_TANK"
    DELETE_TANK = "DELETE_TANK"
    CREATE_SENSORS = "CREATE_SENSORS"
    DELETE_SENSOR = "DELETE_SENSOR"
    CREATE_REPORT = "CREATE_REPORT"
    SHOW_STATUS = "SHOW_STATUS"


# ---------------------------------------------------------------------------
# action records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CreateTank:
    name: str | None = None  # proposed sequential name, set by the builder
    location: str | None = None

    kind: ClassVar[ActionKind] = ActionKind.CREATE_TANK


@dataclass(frozen=True, slots=True)
class EditTank:
    tank_name: str
    new_name: str | None = None
    new_location: str | None = None
    tank_id: str | None = None
    old_name: str | None = None

    kind: ClassVar[ActionKind] = ActionKind.EDIT_TANK


@dataclass(frozen=True, slots=True)
class DeleteTank:
    tank_name: str
    tank_id: str | None = None

    kind: ClassVar[ActionKind] = ActionKind.DELETE_TANK


@dataclass(frozen=True, slots=True)
class CreateSensors:
    types: tuple[SensorType, ...]
    tank_name: str | None = None
    tank_id: str | None = None

    kind: ClassVar[ActionKind] = ActionKind.CREATE_SENSORS


@dataclass(frozen=True, slots=True)
class DeleteSensor:
    sensor_type: SensorType = SensorType.TEMPERATURE
    tank_name: str | None = None
    tank_id: str | None = None
    sensor_id: str | None = None

    kind: ClassVar[ActionKind] = ActionKind.DELETE_SENSOR


@dataclass(frozen=True, slots=True)
class CreateReport:
    range: ReportRange = ReportRange.TODAY
    tank_id: str | None = None
    tank_name: str | None = None
    sensor_ids: tuple[str, ...] = ()

    kind: ClassVar[ActionKind] = ActionKind.CREATE_REPORT


@dataclass(frozen=True, slots=True)
class ShowStatus:
    kind: ClassVar[ActionKind] = ActionKind.SHOW_STATUS


Action = Union[CreateTank, EditTank, DeleteTank, CreateSensors, DeleteSensor, CreateReport, ShowStatus]

# The mutation held in the conversation store while waiting for "sí" / "no".
PendingAction = Action

MUTATING_KINDS = frozenset(ActionKind) - {ActionKind.SHOW_STATUS}

_ACTION_TYPES: dict[ActionKind, type] = {
    cls.kind: cls
    for cls in (CreateTank, EditTank, DeleteTank, CreateSensors, DeleteSensor, CreateReport, ShowStatus)
}


@dataclass(frozen=True, slots=True)
class Requester:
    """The authenticated user a turn is handled for."""

    user_id: str
    role: str = "USER"


# ---------------------------------------------------------------------------
# serialization (used by shared conversation-store backends)
# ---------------------------------------------------------------------------


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    return value


def action_to_dict(action: Action) -> dict[str, Any]:
    """Return ``{"action": <kind>, "params": {...}}`` with JSON-safe values."""
    params = {f.name: _plain(getattr(action, f.name)) for f in fields(action)}
    return {"action": action.kind.value, "params": params}


def action_from_dict(data: dict[str, Any]) -> Action:
    """Rebuild an action record produced by :func:`action_to_dict`."""
    kind = ActionKind(data["action"])
    params = dict(data.get("params") or {})

    if kind is ActionKind.CREATE_SENSORS:
        params["types"] = tuple(SensorType(t) for t in params.get("types", ()))
    elif kind is ActionKind.DELETE_SENSOR and "sensor_type" in params:
        params["sensor_type"] = SensorType(params["sensor_type"])
    elif kind is ActionKind.CREATE_REPORT:
        if "range" in params:
            params["range"] = ReportRange(params["range"])
        params["sensor_ids"] = tuple(params.get("sensor_ids", ()))

    return _ACTION_TYPES[kind](**params)
