"""Conversational command assistant: intents, confirmations and execution."""

from acuagenius.assistant.actions import (
    Action,
    ActionKind,
    CreateReport,
    CreateSensors,
    CreateTank,
    DeleteSensor,
    DeleteTank,
    EditTank,
    ReportRange,
    Requester,
    ShowStatus,
)
from acuagenius.assistant.confirmation import ConfirmationBuilder
from acuagenius.assistant.dispatcher import ActionDispatcher
from acuagenius.assistant.engine import ConversationEngine, Reply, TurnKind
from acuagenius.assistant.intent import IntentClassifier, classify
from acuagenius.assistant.results import Err, FailureKind, Ok, format_result

__all__ = [
    "Action",
    "ActionDispatcher",
    "ActionKind",
    "ConfirmationBuilder",
    "ConversationEngine",
    "CreateReport",
    "CreateSensors",
    "CreateTank",
    "DeleteSensor",
    "DeleteTank",
    "EditTank",
    "Err",
    "FailureKind",
    "IntentClassifier",
    "Ok",
    "Reply",
    "ReportRange",
    "Requester",
    "ShowStatus",
    "TurnKind",
    "classify",
    "format_result",
]
