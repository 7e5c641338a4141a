"""Rule-based intent classification for infrastructure commands.

No model is involved: a message is lower-cased and trimmed, then checked
against an ordered list of rules.  The first rule whose predicate holds and
whose extractor produces an action wins.  Order matters because keyword sets
overlap ("sensor" appears in both create and delete phrasings, "tanque" in
create / edit / delete), so each rule is listed with the exclusions that keep
it from stealing the phrasings of another.

The result is only a candidate; nothing here looks at the user's tanks.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from acuagenius.assistant.actions import (
    ALL_SENSOR_TYPES,
    Action,
    CreateReport,
    CreateSensors,
    CreateTank,
    DeleteSensor,
    DeleteTank,
    EditTank,
    ReportRange,
    SensorType,
    ShowStatus,
)

# ---------------------------------------------------------------------------
# vocabulary
# ---------------------------------------------------------------------------

_CREATE_VERBS = ("crear", "crea", "agregar", "agrega")
_TANK_CREATE_VERBS = ("crear", "crea")
_EDIT_VERBS = ("cambiar", "cambia", "editar", "edita", "modificar", "modifica")
_RENAME_VERBS = _EDIT_VERBS + ("renombrar", "renombra")
_DELETE_VERBS = ("eliminar", "elimina", "borrar", "borra", "quitar", "quita")
_REPORT_VERBS = ("generar", "genera", "crear", "crea", "hacer", "haz")

_LOCATION_NOUNS = (
    "ubicación", "ubicacion", "localización", "localizacion",
    "lugar", "dirección", "direccion",
)
_STATUS_WORDS = ("estado", "resumen", "información", "info", "status")
_ALL_TYPES_MARKERS = ("todos", "todo", "falta", "completo", "completa")

_TYPE_KEYWORDS: tuple[tuple[SensorType, tuple[str, ...]], ...] = (
    (SensorType.PH, ("ph",)),
    (SensorType.TEMPERATURE, ("temperatura", "temperature")),
    (SensorType.OXYGEN, ("oxígeno", "oxigeno", "oxygen")),
)

_VERB_ALT = "|".join(_EDIT_VERBS)
_RENAME_ALT = "|".join(_RENAME_VERBS)
_LOCATION_ALT = "|".join(_LOCATION_NOUNS)

# "crear sensor ph en tanque 004", "crear todos los sensores en el tanque norte"
_SENSOR_TANK_RE = re.compile(
    r"(?:en\s+)?(?:el\s+)?(?:al\s+)?(?:del?\s+)?tanque\s+([\w\s]+?)(?:\s+crear|\s+los|\s+sensor|$)",
    re.IGNORECASE,
)
# "cambiar ubicación tanque 005 a Cartagena, Bolívar"
_EDIT_LOCATION_RE = re.compile(
    rf"(?:{_VERB_ALT})\s+(?:la\s+)?(?:{_LOCATION_ALT})\s+(?:del?\s+)?tanque\s+(\w+)\s+(?:a|por)\s+(.+)",
    re.IGNORECASE,
)
# "cambiar el nombre del tanque 003 a Tanque Norte"; the new name runs to the end
_RENAME_RES = (
    re.compile(
        rf"(?:{_RENAME_ALT})\s+(?:el\s+)?(?:nombre\s+)?(?:de\s+)?(?:del?\s+)?tanque\s+(\w+)\s+(?:a|por)\s+(.+)$",
        re.IGNORECASE,
    ),
    re.compile(r"tanque\s+(\w+)\s+(?:a|por)\s+(.+)$", re.IGNORECASE),
)
_TANK_REF_RE = re.compile(r"tanque\s+(\w+)", re.IGNORECASE)
# First " a " / " por ": what follows is the new value, free text.
_VALUE_SEPARATOR_RE = re.compile(r"\s(?:a|por)\s")


def _has_any(text: str, words: Sequence[str]) -> bool:
    return any(w in text for w in words)


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class IntentRule:
    """One ``(predicate, extractor)`` pair.

    ``matches`` sees the normalized text.  ``extract`` receives the normalized
    and the trimmed original text (free-text values such as a new tank name
    keep their casing) and may return ``None`` to let later rules try.
    An ``exclusive`` rule ends classification when it matches, even if its
    extractor came back empty.
    """

    name: str
    matches: Callable[[str], bool]
    extract: Callable[[str, str], Action | None]
    exclusive: bool = False


def _wants_sensor_creation(msg: str) -> bool:
    return "sensor" in msg and _has_any(msg, _CREATE_VERBS)


def _extract_sensor_creation(msg: str, raw: str) -> Action | None:
    if _has_any(msg, _ALL_TYPES_MARKERS):
        types = ALL_SENSOR_TYPES
    else:
        found = {t for t, words in _TYPE_KEYWORDS if _has_any(msg, words)}
        types = tuple(t for t in ALL_SENSOR_TYPES if t in found)
    if not types:
        # Ambiguous request: answer with the help menu rather than guess a type.
        return None
    m = _SENSOR_TANK_RE.search(msg)
    tank_name = m.group(1).strip() if m else None
    return CreateSensors(types=types, tank_name=tank_name or None)


def _wants_location_edit(msg: str) -> bool:
    return _has_any(msg, _EDIT_VERBS) and _has_any(msg, _LOCATION_NOUNS)


def _extract_location_edit(msg: str, raw: str) -> Action | None:
    m = _EDIT_LOCATION_RE.search(raw)
    if not m:
        return None
    return EditTank(tank_name=m.group(1).strip(), new_location=m.group(2).strip())


def _wants_rename(msg: str) -> bool:
    # Location nouns only count before the new name ("... a Lugar Seco" is a rename).
    head = _VALUE_SEPARATOR_RE.split(msg, maxsplit=1)[0]
    return (
        _has_any(msg, _RENAME_VERBS)
        and ("nombre" in msg or "tanque" in msg)
        and not _has_any(head, _LOCATION_NOUNS)
    )


def _extract_rename(msg: str, raw: str) -> Action | None:
    for pattern in _RENAME_RES:
        m = pattern.search(raw)
        if m:
            return EditTank(tank_name=m.group(1).strip(), new_name=m.group(2).strip())
    return None


def _wants_tank_creation(msg: str) -> bool:
    return _has_any(msg, _TANK_CREATE_VERBS) and "tanque" in msg and "sensor" not in msg


def _wants_tank_deletion(msg: str) -> bool:
    return _has_any(msg, _DELETE_VERBS) and "tanque" in msg and "sensor" not in msg


def _extract_tank_deletion(msg: str, raw: str) -> Action | None:
    m = _TANK_REF_RE.search(msg)
    if not m:
        return None
    return DeleteTank(tank_name=m.group(1).strip())


def _wants_sensor_deletion(msg: str) -> bool:
    return _has_any(msg, _DELETE_VERBS) and "sensor" in msg


def _extract_sensor_deletion(msg: str, raw: str) -> Action | None:
    # Later keywords override earlier ones; temperature is also the default.
    sensor_type = SensorType.TEMPERATURE
    for candidate, words in _TYPE_KEYWORDS:
        if _has_any(msg, words):
            sensor_type = candidate
    m = _TANK_REF_RE.search(msg)
    return DeleteSensor(sensor_type=sensor_type, tank_name=m.group(1).strip() if m else None)


def _wants_report(msg: str) -> bool:
    return _has_any(msg, _REPORT_VERBS) and "reporte" in msg


def _extract_report(msg: str, raw: str) -> Action | None:
    period = ReportRange.TODAY
    if "semana" in msg:
        period = ReportRange.WEEK
    if "mes" in msg:
        period = ReportRange.MONTH
    return CreateReport(range=period)


def _wants_status(msg: str) -> bool:
    return _has_any(msg, _STATUS_WORDS)


DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule("create_sensors", _wants_sensor_creation, _extract_sensor_creation, exclusive=True),
    IntentRule("edit_tank_location", _wants_location_edit, _extract_location_edit),
    IntentRule("edit_tank_name", _wants_rename, _extract_rename),
    IntentRule("create_tank", _wants_tank_creation, lambda msg, raw: CreateTank()),
    IntentRule("delete_tank", _wants_tank_deletion, _extract_tank_deletion),
    IntentRule("delete_sensor", _wants_sensor_deletion, _extract_sensor_deletion),
    IntentRule("create_report", _wants_report, _extract_report),
    IntentRule("show_status", _wants_status, lambda msg, raw: ShowStatus()),
)


class IntentClassifier:
    """Evaluate rules in order; first match wins."""

    def __init__(self, rules: Sequence[IntentRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def match_rule(self, text: str) -> tuple[IntentRule, Action] | None:
        """Return the winning rule together with its action, if any."""
        raw = text.strip()
        msg = raw.lower()
        for rule in self.rules:
            if not rule.matches(msg):
                continue
            action = rule.extract(msg, raw)
            if action is not None:
                return rule, action
            if rule.exclusive:
                return None
        return None

    def classify(self, text: str) -> Action | None:
        hit = self.match_rule(text)
        return hit[1] if hit else None


_default = IntentClassifier()


def classify(text: str) -> Action | None:
    """Classify *text* with the default rule set."""
    return _default.classify(text)
