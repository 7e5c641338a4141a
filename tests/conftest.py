"""Shared fixtures: a sample user snapshot and fake collaborators."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from acuagenius.infrastructure import (
    InfrastructureSnapshot,
    ReportInfo,
    SensorInfo,
    SensorType,
    TankInfo,
)
from acuagenius.settings import get_settings


def make_sensor(sensor_id: str, sensor_type: SensorType, number: int) -> SensorInfo:
    return SensorInfo(
        id=sensor_id,
        type=sensor_type,
        name=f"Sensor {sensor_type.label} {number:03d}",
        hardware_id=f"Sensor-{number:03d}",
    )


def sample_snapshot() -> InfrastructureSnapshot:
    """Four tanks: 001 fully equipped, 002 empty, 004 with pH only, Norte empty."""
    return InfrastructureSnapshot(
        tanks=(
            TankInfo(
                id="t1",
                name="Tanque 001",
                location="Barranquilla, Atlántico",
                sensors=(
                    make_sensor("s1", SensorType.TEMPERATURE, 1),
                    make_sensor("s2", SensorType.PH, 2),
                    make_sensor("s3", SensorType.OXYGEN, 3),
                ),
            ),
            TankInfo(id="t2", name="Tanque 002", location="Barranquilla, Atlántico"),
            TankInfo(
                id="t4",
                name="Tanque 004",
                location="Soledad, Atlántico",
                sensors=(make_sensor("s4", SensorType.PH, 4),),
            ),
            TankInfo(id="t9", name="Tanque Norte", location="Puerto Colombia"),
        ),
        open_alert_count=2,
        report_count=7,
    )


class FakeInfrastructure:
    """In-memory ``InfrastructureProvider`` that can be told to fail."""

    def __init__(self, snapshot: InfrastructureSnapshot) -> None:
        self.snapshot = snapshot
        self.error: Exception | None = None
        self.calls: list[str] = []

    async def get_user_infrastructure(self, user_id: str) -> InfrastructureSnapshot:
        self.calls.append(user_id)
        if self.error is not None:
            raise self.error
        return self.snapshot


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 3, 15, 10, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep host ``ACUA_*`` variables and the settings cache out of tests."""
    monkeypatch.delenv("ACUA_CONVERSATION_BACKEND", raising=False)
    monkeypatch.delenv("ACUA_CONTEXT_TTL_SECONDS", raising=False)
    monkeypatch.delenv("ACUA_QUICK_OPTIONS_ENABLED", raising=False)
    monkeypatch.delenv("ACUA_DEFAULT_LOCATION_NAME", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def snapshot() -> InfrastructureSnapshot:
    return sample_snapshot()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def infrastructure(snapshot) -> FakeInfrastructure:
    return FakeInfrastructure(snapshot)


@pytest.fixture
def tanks() -> AsyncMock:
    service = AsyncMock()
    service.create_tank.side_effect = lambda data: TankInfo(id="t-new", name=data.name, location=data.location)
    return service


@pytest.fixture
def sensors() -> AsyncMock:
    service = AsyncMock()
    service.create_sensor.side_effect = lambda data: SensorInfo(
        id=f"id-{data.hardware_id}", type=data.type, name=data.name, hardware_id=data.hardware_id
    )
    return service


@pytest.fixture
def reports() -> AsyncMock:
    service = AsyncMock()
    service.create_report.return_value = ReportInfo(id="r1", name="Reporte IA")
    return service
