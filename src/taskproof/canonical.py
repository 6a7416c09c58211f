"""Canonical JSON encoding for signature payloads.

Rules:
- No whitespace (separators ``,`` and ``:``)
- UTF-8, non-ASCII emitted as-is
- NaN / Infinity rejected
- Numbers written the way ECMAScript ``Number::toString`` writes them:
  integral values below 1e21 as integers (``1000.0`` -> ``1000``), plain
  decimals down to 1e-6 (``0.00001``), exponent form otherwise with an
  unpadded, signed exponent (``1e-7``, ``1e+21``)
- Keys sorted by code point (``sorted``) or kept in the order given
  (``document``)
"""
from __future__ import annotations

import json
import math
from typing import Any

from .errors import MalformedArtifact

KEY_ORDER_SORTED = "sorted"
KEY_ORDER_DOCUMENT = "document"
KEY_ORDERS = (KEY_ORDER_SORTED, KEY_ORDER_DOCUMENT)


def _ecma_number(value: float) -> str:
    """Render a finite float as ECMAScript does."""
    if value == 0:
        return "0"
    # repr() gives the shortest round-tripping digits, as ECMAScript requires
    mantissa, _, exp = repr(abs(value)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    all_digits = int_part + frac_part
    digits = all_digits.lstrip("0")
    # value == 0.<digits> * 10**n
    n = len(int_part) + int(exp or 0) - (len(all_digits) - len(digits))
    digits = digits.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        e = n - 1
        sign = "+" if e >= 0 else "-"
        head = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{head}e{sign}{abs(e)}"
    return "-" + text if value < 0 else text


def _encode(value: Any, sort_keys: bool) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise MalformedArtifact("non-finite number cannot be canonically encoded")
        return _ecma_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, dict):
        for k in value:
            if not isinstance(k, str):
                raise MalformedArtifact(f"non-string object key: {k!r}")
        keys = sorted(value) if sort_keys else list(value)
        members = (f"{json.dumps(k, ensure_ascii=False)}:{_encode(value[k], sort_keys)}" for k in keys)
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(v, sort_keys) for v in value) + "]"
    raise MalformedArtifact(f"unsupported type for canonical encoding: {type(value).__name__}")


def canonical_json(obj: Any, key_order: str = KEY_ORDER_SORTED) -> str:
    """Encode ``obj`` as canonical JSON text."""
    if key_order not in KEY_ORDERS:
        raise ValueError(f"unknown key order {key_order!r}; expected one of {KEY_ORDERS}")
    return _encode(obj, key_order == KEY_ORDER_SORTED)


def canonical_json_bytes(obj: Any, key_order: str = KEY_ORDER_SORTED) -> bytes:
    """Encode ``obj`` as canonical UTF-8 JSON bytes.

    Raises:
        MalformedArtifact: If ``obj`` holds a non-finite number, a non-string
            key, or text with an unpaired surrogate.
    """
    try:
        return canonical_json(obj, key_order).encode("utf-8")
    except UnicodeEncodeError as exc:
        raise MalformedArtifact(f"text is not encodable as UTF-8: {exc.reason}") from None


__all__ = [
    "KEY_ORDER_SORTED",
    "KEY_ORDER_DOCUMENT",
    "KEY_ORDERS",
    "canonical_json",
    "canonical_json_bytes",
]
