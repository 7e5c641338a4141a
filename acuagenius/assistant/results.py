"""Outcome types shared by the confirmation builder and the dispatcher.

Handlers return ``Ok`` / ``Err`` values; only the conversation boundary turns
them into display text (``format_result``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from acuagenius.assistant.actions import MUTATING_KINDS, Action


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"  # referenced tank / sensor does not exist
    PRECONDITION = "precondition"  # entity exists but the action is not allowed
    MISSING_PARAMETER = "missing_parameter"  # a mandatory reference was not given
    EXECUTION = "execution"  # a collaborator call raised


@dataclass(frozen=True, slots=True)
class Ok:
    message: str


@dataclass(frozen=True, slots=True)
class Err:
    kind: FailureKind
    detail: str


ActionResult = Union[Ok, Err]


def format_result(result: ActionResult) -> str:
    if isinstance(result, Ok):
        return result.message
    if result.kind is FailureKind.EXECUTION:
        return f"❌ Error: {result.detail}"
    if result.kind is FailureKind.NOT_FOUND:
        return f"❌ {result.detail}"
    return f"⚠️ {result.detail}"


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    """Result of validating a candidate action against the live snapshot.

    ``terminal`` outcomes need no confirmation: either nothing will be
    mutated (status, "already complete") or the action is impossible
    (``failure`` is set).  A non-terminal outcome always carries the resolved
    action that the dispatcher will run after an explicit "sí".
    """

    message: str
    action: Action | None
    terminal: bool
    failure: FailureKind | None = None

    @property
    def rejected(self) -> bool:
        return self.failure is not None

    @classmethod
    def confirm(cls, message: str, action: Action) -> BuildOutcome:
        if action.kind not in MUTATING_KINDS:
            raise ValueError(f"{action.kind.value} is a read and is never confirmed")
        return cls(message=message, action=action, terminal=False)

    @classmethod
    def done(cls, message: str) -> BuildOutcome:
        return cls(message=message, action=None, terminal=True)

    @classmethod
    def reject(cls, kind: FailureKind, detail: str) -> BuildOutcome:
        return cls(message=format_result(Err(kind, detail)), action=None, terminal=True, failure=kind)
