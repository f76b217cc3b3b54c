"""Low-level extraction helpers for detee-cli output.

Two strategies are tried in order: structured JSON anywhere in the text,
then a line scan for labelled values and pipe tables. All helpers take
sanitized text and raise ``ParseError`` with the raw text on malformed input.
"""

import json
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ...config.labels import COLUMN_ALIASES, Label, LabelSet, normalize_label
from ...models.errors import ParseError

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]|\x1b[@-Z\\-_]")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_UUID = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")
_NUMBER = re.compile(r"^(?P<number>-?\d+(?:\.\d+)?)(?P<sep>\s*)(?P<unit>[A-Za-z]*)")
_SEPARATOR_CHARS = set("-+|=: ─━┼╋├┤┬┴┌┐└┘╭╮╰╯")

# Unit multipliers per target unit
_MB_UNITS = {"": 1, "m": 1, "mb": 1, "mib": 1, "g": 1024, "gb": 1024, "gib": 1024}
_GB_UNITS = {"": 1, "g": 1, "gb": 1, "gib": 1, "t": 1024, "tb": 1024, "tib": 1024}
_HOUR_UNITS = {"": 1, "h": 1, "hr": 1, "hrs": 1, "hour": 1, "hours": 1}


def sanitize(text: str) -> str:
    """Strip ANSI sequences and control characters, keep newlines and tabs."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _ANSI_ESCAPE.sub("", text)
    return _CONTROL_CHARS.sub("", text)


# ----------------------------------------------------------------------
# Structured strategy
# ----------------------------------------------------------------------


def find_json(text: str, kind: Union[type, Tuple[type, ...]], raw: str) -> Optional[Any]:
    """Return the first JSON value of ``kind`` (dict, list, or a tuple of both).

    The value may follow banner or progress lines. Text that starts like JSON
    but does not decode is truncated or malformed and raises ParseError
    instead of falling back to the line scan.
    """
    kinds = kind if isinstance(kind, tuple) else (kind,)
    openers = [{dict: "{", list: "["}[k] for k in kinds]
    decoder = json.JSONDecoder()
    index = 0
    while True:
        starts = [pos for pos in (text.find(opener, index) for opener in openers) if pos != -1]
        if not starts:
            break
        start = min(starts)
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, kinds):
            return value
        index = start + 1

    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        raise ParseError("malformed JSON", raw)
    return None


def json_fields(obj: Mapping[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    """Map JSON keys onto record field names via the column aliases."""
    known = set(known)
    fields: Dict[str, Any] = {}
    for key, value in obj.items():
        normalized = normalize_label(str(key))
        name = COLUMN_ALIASES.get(normalized) or normalized.replace(" ", "_")
        if name in known and name not in fields:
            fields[name] = value
    return fields


# ----------------------------------------------------------------------
# Line-scan strategy
# ----------------------------------------------------------------------


def _label_pattern(label: Label) -> re.Pattern:
    text = re.escape(label.text)
    if label.inline:
        return re.compile(r"(?i)(?:^|[\s>])" + text + r"\s*(?P<value>.*)$")
    return re.compile(r"(?i)(?:^|\s)" + text + r"\s*(?:is\s*)?:\s*(?P<value>.*)$")


def find_label(lines: List[str], labels: Iterable[Label]) -> Optional[str]:
    """Return the value following the first label that matches any line."""
    for label in labels:
        pattern = _label_pattern(label)
        for line in lines:
            match = pattern.search(line.strip())
            if match:
                return match.group("value").strip()
    return None


def scan_labels(text: str, label_set: LabelSet) -> Dict[str, str]:
    """Collect raw string values for every field whose label appears."""
    lines = text.splitlines()
    values: Dict[str, str] = {}
    for field_name, labels in label_set.items():
        value = find_label(lines, labels)
        if value is not None:
            values[field_name] = value
    return values


def _is_separator(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and set(stripped) <= _SEPARATOR_CHARS and any(c in stripped for c in "-─━=")


def _cells(line: str) -> List[str]:
    return [cell.strip() for cell in line.strip().strip("|").split("|")]


def parse_table(text: str, raw: str) -> Optional[List[Dict[str, str]]]:
    """Parse a pipe table whose header names a uuid column.

    Returns None when no such header exists. Rows are keyed by field name;
    columns with unknown headers are dropped.
    """
    lines = [line.replace("│", "|").replace("┃", "|") for line in text.splitlines()]
    header: Optional[List[Optional[str]]] = None
    rows: List[Dict[str, str]] = []
    for line in lines:
        if "|" not in line or _is_separator(line):
            continue
        cells = _cells(line)
        if header is None:
            mapped = [COLUMN_ALIASES.get(normalize_label(cell)) for cell in cells]
            if "uuid" in mapped:
                header = mapped
            continue
        if len(cells) != len(header):
            raise ParseError(f"table row has {len(cells)} cells, header has {len(header)}", raw)
        rows.append({name: cell for name, cell in zip(header, cells) if name})
    if header is None:
        return None
    return rows


# ----------------------------------------------------------------------
# Value coercion
# ----------------------------------------------------------------------


def _first_token(value: str) -> str:
    tokens = value.split()
    return tokens[0] if tokens else ""


def _number(field_name: str, value: Any, units: Mapping[str, float], raw: str) -> float:
    if isinstance(value, bool):
        raise ParseError(f"{field_name}: expected a number, got {value!r}", raw)
    if isinstance(value, (int, float)):
        return value
    match = _NUMBER.match(str(value).strip())
    if not match:
        raise ParseError(f"{field_name}: expected a number, got {value!r}", raw)
    unit = match.group("unit").lower()
    if unit not in units and match.group("sep"):
        # "22 root@host": the following word is not a unit
        unit = ""
    if unit not in units:
        raise ParseError(f"{field_name}: unknown unit {unit!r}", raw)
    return float(match.group("number")) * units[unit]


def to_int(units: Mapping[str, float] = None) -> Callable[[str, Any, str], int]:
    units = units or {"": 1}

    def convert(field_name: str, value: Any, raw: str) -> int:
        number = _number(field_name, value, units, raw)
        if number != int(number):
            raise ParseError(f"{field_name}: expected a whole number, got {value!r}", raw)
        return int(number)

    return convert


def to_float(field_name: str, value: Any, raw: str) -> float:
    return float(_number(field_name, value, {"": 1, "lp": 1}, raw))


def to_str(field_name: str, value: Any, raw: str) -> str:
    return str(value).strip()


def to_uuid(field_name: str, value: Any, raw: str) -> str:
    text = str(value)
    match = _UUID.search(text)
    if match:
        return match.group(0).lower()
    token = _first_token(text)
    if not token:
        raise ParseError(f"{field_name}: empty VM id", raw)
    return token


def to_price(field_name: str, value: Any, raw: str) -> str:
    # "20000/unit/h" keeps the amount only
    return str(value).split("/")[0].strip()


def to_ssh_host(field_name: str, value: Any, raw: str) -> str:
    for token in str(value).split():
        if "@" in token:
            return token.split("@", 1)[1]
    return _first_token(str(value))


COERCERS: Dict[str, Callable[[str, Any, str], Any]] = {
    "uuid": to_uuid,
    "hostname": to_str,
    "distro": to_str,
    "vcpus": to_int(),
    "memory_mb": to_int(_MB_UNITS),
    "disk_gb": to_int(_GB_UNITS),
    "hours": to_int(_HOUR_UNITS),
    "price": to_price,
    "total_units": to_int(),
    "locked_lp": to_float,
    "lp_per_hour": to_float,
    "ssh_host": to_ssh_host,
    "ssh_port": to_int(),
    "city": to_str,
    "time_left": to_str,
    "status": to_str,
    "hours_updated": to_int(_HOUR_UNITS),
}


def coerce_fields(values: Mapping[str, Any], raw: str) -> Dict[str, Any]:
    """Convert raw field strings to typed values. Blank values are dropped."""
    typed: Dict[str, Any] = {}
    for field_name, value in values.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        coercer = COERCERS.get(field_name, to_str)
        typed[field_name] = coercer(field_name, value, raw)
    return typed
