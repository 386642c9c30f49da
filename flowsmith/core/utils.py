"""Shared naming and literal helpers for the code generators.

Everything here is a pure function of its input so that identical graphs
always produce identical identifiers.
"""

import json
import re
from typing import Any

_NON_ALNUM_RUN = re.compile(r"[^a-zA-Z0-9]+(.)")
_NON_IDENT_CHAR = re.compile(r"[^a-zA-Z0-9_$]")
_WORD = re.compile(r"[a-zA-Z0-9]+")

# Duration units accepted by the durable-execution runtime, in milliseconds
_DURATION_UNITS = {
    "ms": 1,
    "millisecond": 1,
    "milliseconds": 1,
    "s": 1000,
    "sec": 1000,
    "second": 1000,
    "seconds": 1000,
    "m": 60_000,
    "min": 60_000,
    "minute": 60_000,
    "minutes": 60_000,
    "h": 3_600_000,
    "hour": 3_600_000,
    "hours": 3_600_000,
    "d": 86_400_000,
    "day": 86_400_000,
    "days": 86_400_000,
}

# Words that cannot name a binding in strict-mode module code
RESERVED_WORDS = frozenset(
    {
        "arguments", "await", "break", "case", "catch", "class", "const", "continue",
        "debugger", "default", "delete", "do", "else", "enum", "eval", "export",
        "extends", "false", "finally", "for", "function", "if", "implements", "import",
        "in", "instanceof", "interface", "let", "new", "null", "package", "private",
        "protected", "public", "return", "static", "super", "switch", "this", "throw",
        "true", "try", "typeof", "var", "void", "while", "with", "yield",
    }
)

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")


def to_camel_case(text: str) -> str:
    """Convert ``send-email`` / ``Send Email`` to ``sendEmail``."""
    result = _NON_ALNUM_RUN.sub(lambda m: m.group(1).upper(), text)
    result = re.sub(r"[^a-zA-Z0-9]", "", result)
    if result and result[0].isupper():
        result = result[0].lower() + result[1:]
    return result


def to_pascal_case(text: str) -> str:
    """Convert a display name to a PascalCase identifier (``order flow`` -> ``OrderFlow``)."""
    words = _WORD.findall(text)
    return "".join(w[0].upper() + w[1:] for w in words)


def to_kebab_case(text: str) -> str:
    """Convert a display name to a package-style name (``Order Flow`` -> ``order-flow``)."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", text)
    return "-".join(w.lower() for w in _WORD.findall(spaced))


def to_identifier(text: str) -> str:
    """Replace characters that are not valid in a TypeScript identifier.

    Reserved words get a leading underscore (``delete`` -> ``_delete``).
    """
    ident = _NON_IDENT_CHAR.sub("_", text)
    if not ident or ident[0].isdigit() or ident in RESERVED_WORDS:
        ident = f"_{ident}"
    return ident


def is_identifier(text: str) -> bool:
    """True for a usable binding name: valid characters and not reserved."""
    return bool(text) and to_identifier(text) == text


def result_var_name(node_id: str) -> str:
    """Base name of the variable holding a node's outcome.

    Distinct ids can share a base name (``load-order`` / ``load_order``);
    CompilationContext.allocate_result_var() makes the final names unique.
    """
    return f"result_{_NON_IDENT_CHAR.sub('_', node_id)}"


def ts_string(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f"'{escaped}'"


def ts_literal(value: Any) -> str:
    """JSON-encoded literal, matching JSON.stringify output."""
    return json.dumps(value, separators=(",", ":"))


def ts_number(value: float | int) -> str:
    return repr(value) if isinstance(value, float) else str(value)


def ts_key(key: str) -> str:
    """Object literal key, quoted only when it is not an identifier."""
    return key if is_identifier(key) else json.dumps(key)


def comment_text(text: str) -> str:
    """Flatten text so it is safe inside a line or block comment."""
    return " ".join(str(text).split()).replace("*/", "* /")


def parse_duration_ms(text: str | int | float | None) -> int | None:
    """Parse ``500ms``, ``1s``, ``5 minutes``, ``1h`` into milliseconds.

    Bare numbers are milliseconds. Returns None when the text is not a
    duration this parser understands.
    """
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, int | float):
        return int(text)
    match = _DURATION.match(text)
    if not match:
        return None
    amount, unit = match.groups()
    factor = _DURATION_UNITS.get(unit.lower() or "ms")
    if factor is None:
        return None
    return int(float(amount) * factor)
