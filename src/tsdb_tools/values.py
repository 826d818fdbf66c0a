"""
Field value literals and key escaping for line protocol.

The same literal syntax is used for field cells in CSV, so both directions
share these functions.
"""

import re
from typing import FrozenSet

from .errors import InvalidFieldLiteral, UnterminatedString
from .models import (
    INT64_MAX,
    INT64_MIN,
    UINT64_MAX,
    BooleanValue,
    FieldValue,
    FloatValue,
    IntegerValue,
    StringValue,
    UnsignedValue,
)

# ==================== Literal Syntax ====================

INTEGER_RE = re.compile(r"[+-]?[0-9]+")
UNSIGNED_RE = re.compile(r"[0-9]+")
FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

TRUE_LITERALS = frozenset({"t", "true"})
FALSE_LITERALS = frozenset({"f", "false"})

# Characters a backslash escapes, per context
MEASUREMENT_SPECIALS: FrozenSet[str] = frozenset(", ")
KEY_SPECIALS: FrozenSet[str] = frozenset(", =")


def parse_field_value(token: str) -> FieldValue:
    """
    Parse one field literal into a typed value.

    Args:
        token: Raw literal, e.g. '65i', '12u', 'true', '"text"', '1.5e3'

    Returns:
        The matching FieldValue variant

    Raises:
        UnterminatedString: A quoted literal has no closing quote
        InvalidFieldLiteral: The token matches none of the literal syntaxes
    """
    if token.startswith('"'):
        return StringValue(value=_parse_string(token))

    if token.endswith("i"):
        digits = token[:-1]
        if not INTEGER_RE.fullmatch(digits):
            raise InvalidFieldLiteral(f"invalid integer literal {token!r}")
        value = int(digits)
        if not INT64_MIN <= value <= INT64_MAX:
            raise InvalidFieldLiteral(f"integer literal {token!r} overflows 64 bits")
        return IntegerValue(value=value)

    if token.endswith("u"):
        digits = token[:-1]
        if not UNSIGNED_RE.fullmatch(digits):
            raise InvalidFieldLiteral(f"invalid unsigned literal {token!r}")
        value = int(digits)
        if value > UINT64_MAX:
            raise InvalidFieldLiteral(f"unsigned literal {token!r} overflows 64 bits")
        return UnsignedValue(value=value)

    lowered = token.lower()
    if lowered in TRUE_LITERALS:
        return BooleanValue(value=True)
    if lowered in FALSE_LITERALS:
        return BooleanValue(value=False)

    if not FLOAT_RE.fullmatch(token):
        raise InvalidFieldLiteral(f"invalid field literal {token!r}")
    value = float(token)
    if value in (float("inf"), float("-inf")):
        raise InvalidFieldLiteral(f"float literal {token!r} is out of range")
    return FloatValue(value=value)


def _parse_string(token: str) -> str:
    chars = []
    i = 1
    while i < len(token):
        ch = token[i]
        if ch == "\\" and i + 1 < len(token) and token[i + 1] in '"\\':
            chars.append(token[i + 1])
            i += 2
            continue
        if ch == '"':
            if i != len(token) - 1:
                raise InvalidFieldLiteral(f"unexpected text after string literal {token!r}")
            return "".join(chars)
        chars.append(ch)
        i += 1
    raise UnterminatedString(f"unterminated string literal {token!r}")


def format_field_value(value: FieldValue) -> str:
    """Render a field value as its canonical line protocol literal."""
    if isinstance(value, IntegerValue):
        return f"{value.value}i"
    if isinstance(value, UnsignedValue):
        return f"{value.value}u"
    if isinstance(value, BooleanValue):
        return "true" if value.value else "false"
    if isinstance(value, StringValue):
        escaped = value.value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, FloatValue):
        return format_float(value.value)
    raise TypeError(f"Not a field value: {value!r}")


def format_float(value: float) -> str:
    """Shortest literal that parses back to the same double; '82.0' prints as '82'."""
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return text


# ==================== Escaping ====================


def unescape(text: str, specials: FrozenSet[str]) -> str:
    """Drop each backslash that precedes one of `specials`; other backslashes are literal."""
    if "\\" not in text:
        return text
    chars = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] in specials:
            chars.append(text[i + 1])
            i += 2
            continue
        chars.append(ch)
        i += 1
    return "".join(chars)


def escape(text: str, specials: FrozenSet[str]) -> str:
    """Backslash-escape every character of `text` found in `specials`."""
    return "".join("\\" + ch if ch in specials else ch for ch in text)


def escape_measurement(name: str) -> str:
    return escape(name, MEASUREMENT_SPECIALS)


def unescape_measurement(name: str) -> str:
    return unescape(name, MEASUREMENT_SPECIALS)


def escape_key(text: str) -> str:
    """Escape a tag key, tag value or field key."""
    return escape(text, KEY_SPECIALS)


def unescape_key(text: str) -> str:
    """Unescape a tag key, tag value or field key."""
    return unescape(text, KEY_SPECIALS)
