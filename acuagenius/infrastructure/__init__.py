"""Contracts for the CRUD services and snapshot provider the assistant calls."""

from acuagenius.infrastructure.contracts import (
    CollaboratorError,
    InfrastructureProvider,
    InfrastructureSnapshot,
    ReportInfo,
    ReportRequest,
    ReportService,
    SensorCreate,
    SensorInfo,
    SensorService,
    SensorType,
    TankCreate,
    TankInfo,
    TankService,
)

__all__ = [
    "CollaboratorError",
    "InfrastructureProvider",
    "InfrastructureSnapshot",
    "ReportInfo",
    "ReportRequest",
    "ReportService",
    "SensorCreate",
    "SensorInfo",
    "SensorService",
    "SensorType",
    "TankCreate",
    "TankInfo",
    "TankService",
]
