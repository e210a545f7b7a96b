"""
Value decoding for GraphSON.

GraphSON only carries JSON data types, so decoding is lossy with respect to
the source graph's types (a 32-bit float becomes a 64-bit float, ids may
not come back in the type they were written with). The decoder narrows a
generic parsed JSON node into that value domain and rejects anything else.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from graphson_io.errors import MalformedValue
from graphson_io.models import DecodedValue


@dataclass(frozen=True)
class ValueProfile:
    """Options controlling how JSON numbers are decoded."""
    use_float: bool = True
    decimal_as_float: bool = True
    allow_non_finite: bool = False
    integral_floats_as_int: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "use_float": self.use_float,
            "decimal_as_float": self.decimal_as_float,
            "allow_non_finite": self.allow_non_finite,
            "integral_floats_as_int": self.integral_floats_as_int,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueProfile":
        unknown = set(data) - {
            "use_float", "decimal_as_float", "allow_non_finite", "integral_floats_as_int"
        }
        if unknown:
            raise ValueError(f"Unknown value profile options: {sorted(unknown)}")
        return cls(
            use_float=bool(data.get("use_float", True)),
            decimal_as_float=bool(data.get("decimal_as_float", True)),
            allow_non_finite=bool(data.get("allow_non_finite", False)),
            integral_floats_as_int=bool(data.get("integral_floats_as_int", False)),
        )


DEFAULT_PROFILE = ValueProfile()


class ValueDecoder:
    """
    Converts parsed JSON nodes into decoded values.

    Usage:
        decoder = ValueDecoder()
        decoder.decode({"name": "marko", "age": 29})
    """

    def __init__(self, profile: ValueProfile = DEFAULT_PROFILE):
        self.profile = profile

    def decode(self, node: Any) -> DecodedValue:
        """Decode one JSON node. Raises MalformedValue for unsupported nodes."""
        # bool before int: bool is an int subclass
        if node is None or isinstance(node, (str, bool)):
            return node
        if isinstance(node, int):
            return int(node)
        if isinstance(node, float):
            return self._decode_float(node)
        if isinstance(node, Decimal):
            return self._decode_decimal(node)
        if isinstance(node, dict):
            decoded = {}
            for key, value in node.items():
                if not isinstance(key, str):
                    raise MalformedValue(f"Map keys must be strings, got {type(key).__name__}")
                decoded[key] = self.decode(value)
            return decoded
        if isinstance(node, list):
            return [self.decode(item) for item in node]
        raise MalformedValue(f"Unsupported value type: {type(node).__name__}")

    def decode_map(self, node: Any, what: str) -> Dict[str, DecodedValue]:
        """Decode a node that must be a JSON object."""
        if not isinstance(node, dict):
            raise MalformedValue(f"Expected {what} to be an object, got {_json_type(node)}")
        return self.decode(node)

    def decode_text(self, node: Any, field: str) -> str:
        """Decode a node that must be plain text, such as a label."""
        if not isinstance(node, str):
            raise MalformedValue(f"Field '{field}' must be a string, got {_json_type(node)}")
        return node

    def _decode_float(self, value: float) -> DecodedValue:
        if not math.isfinite(value) and not self.profile.allow_non_finite:
            raise MalformedValue(f"Non-finite number not supported: {value}")
        if self.profile.integral_floats_as_int and math.isfinite(value) and value.is_integer():
            return int(value)
        return value

    def _decode_decimal(self, value: Decimal) -> DecodedValue:
        if not value.is_finite():
            if not self.profile.allow_non_finite:
                raise MalformedValue(f"Non-finite number not supported: {value}")
            return float(value)
        if self.profile.integral_floats_as_int and value == value.to_integral_value():
            return int(value)
        if self.profile.decimal_as_float:
            return self._decode_float(float(value))
        return value


def _json_type(node: Any) -> str:
    if node is None:
        return "null"
    if isinstance(node, bool):
        return "boolean"
    if isinstance(node, (int, float, Decimal)):
        return "number"
    if isinstance(node, str):
        return "string"
    if isinstance(node, list):
        return "array"
    if isinstance(node, dict):
        return "object"
    return type(node).__name__
