"""Collaborator contracts consumed by the assistant.

The assistant never talks to a database.  It reads a per-turn snapshot of
the user's tanks and calls narrow CRUD services to mutate them; concrete
implementations live in the host application.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable


class SensorType(str, Enum):
    TEMPERATURE = "TEMPERATURE"
    PH = "PH"
    OXYGEN = "OXYGEN"

    @property
    def label(self) -> str:
        """Spanish display name used in prompts and sensor names."""
        return _SENSOR_LABELS[self]


_SENSOR_LABELS: dict[SensorType, str] = {
    SensorType.TEMPERATURE: "Temperatura",
    SensorType.PH: "pH",
    SensorType.OXYGEN: "Oxígeno",
}


class CollaboratorError(RuntimeError):
    """Raised by collaborator implementations for expected failures (not found, conflict)."""


# ---------------------------------------------------------------------------
# snapshot records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SensorInfo:
    id: str
    type: SensorType
    name: str
    hardware_id: str = ""


@dataclass(frozen=True, slots=True)
class TankInfo:
    id: str
    name: str
    location: str = ""
    sensors: tuple[SensorInfo, ...] = ()


@dataclass(frozen=True, slots=True)
class InfrastructureSnapshot:
    """Read-only view of one user's infrastructure, fetched once per turn."""

    tanks: tuple[TankInfo, ...] = ()
    open_alert_count: int = 0
    report_count: int = 0

    def all_sensors(self) -> list[SensorInfo]:
        return [s for t in self.tanks for s in t.sensors]


# ---------------------------------------------------------------------------
# payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TankCreate:
    name: str
    location: str
    user_id: str


@dataclass(frozen=True, slots=True)
class SensorCreate:
    name: str
    type: SensorType
    tank_id: str
    hardware_id: str
    calibration_date: str  # ISO-8601


@dataclass(frozen=True, slots=True)
class ReportRequest:
    report_name: str
    user_id: str
    tank_id: str
    sensor_ids: tuple[str, ...]
    start_date: str  # YYYY-MM-DD
    end_date: str  # YYYY-MM-DD
    is_automatic: bool = False


@dataclass(frozen=True, slots=True)
class ReportInfo:
    id: str
    name: str
    status: str = "PENDING"


# ---------------------------------------------------------------------------
# protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class InfrastructureProvider(Protocol):
    async def get_user_infrastructure(self, user_id: str) -> InfrastructureSnapshot:
        """Return the user's tanks (with sensors), open alert count and report count."""
        ...


@runtime_checkable
class TankService(Protocol):
    async def create_tank(self, data: TankCreate) -> TankInfo: ...

    async def update_tank(self, tank_id: str, changes: dict[str, str]) -> TankInfo: ...

    async def delete_tank(self, tank_id: str) -> None:
        """Fails when the tank still has sensors attached."""
        ...


@runtime_checkable
class SensorService(Protocol):
    async def create_sensor(self, data: SensorCreate) -> SensorInfo: ...

    async def delete_sensor(self, sensor_id: str, requester_id: str, requester_role: str) -> None: ...


@runtime_checkable
class ReportService(Protocol):
    async def create_report(self, data: ReportRequest) -> ReportInfo:
        """Submit report generation; completion happens asynchronously."""
        ...
