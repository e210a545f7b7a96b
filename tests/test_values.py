"""Tests for GraphSON value decoding."""
import math
from decimal import Decimal

import pytest

from graphson_io.errors import MalformedValue
from graphson_io.formats.values import ValueDecoder, ValueProfile


class TestValueDecoder:
    """Test decoding of generic JSON nodes."""

    @pytest.fixture
    def decoder(self):
        return ValueDecoder()

    def test_scalars(self, decoder):
        assert decoder.decode("marko") == "marko"
        assert decoder.decode(True) is True
        assert decoder.decode(None) is None
        assert decoder.decode(29) == 29
        assert decoder.decode(0.5) == 0.5

    def test_bool_stays_bool(self, decoder):
        decoded = decoder.decode(False)
        assert decoded is False
        assert not isinstance(decoder.decode(1), bool)

    def test_nested(self, decoder):
        node = {"a": [1, {"b": None}], "c": {"d": "x"}}
        assert decoder.decode(node) == {"a": [1, {"b": None}], "c": {"d": "x"}}

    def test_decimal_becomes_float(self, decoder):
        value = decoder.decode(Decimal("0.25"))
        assert isinstance(value, float)
        assert value == 0.25

    def test_decimal_kept_when_configured(self):
        decoder = ValueDecoder(ValueProfile(use_float=False, decimal_as_float=False))
        assert decoder.decode(Decimal("1.10")) == Decimal("1.10")

    def test_integral_floats_as_int(self):
        decoder = ValueDecoder(ValueProfile(integral_floats_as_int=True))
        value = decoder.decode(2.0)
        assert value == 2
        assert isinstance(value, int)
        assert decoder.decode(2.5) == 2.5

    def test_non_finite_rejected(self, decoder):
        with pytest.raises(MalformedValue):
            decoder.decode(float("nan"))
        with pytest.raises(MalformedValue):
            decoder.decode(Decimal("Infinity"))

    def test_non_finite_allowed(self):
        decoder = ValueDecoder(ValueProfile(allow_non_finite=True))
        assert math.isinf(decoder.decode(float("inf")))

    def test_unsupported_type(self, decoder):
        with pytest.raises(MalformedValue):
            decoder.decode({1, 2})
        with pytest.raises(MalformedValue):
            decoder.decode(b"bytes")

    def test_non_string_key(self, decoder):
        with pytest.raises(MalformedValue):
            decoder.decode({1: "x"})

    def test_decode_map_requires_object(self, decoder):
        assert decoder.decode_map({"k": 1}, "variables") == {"k": 1}
        with pytest.raises(MalformedValue, match="variables"):
            decoder.decode_map([1], "variables")

    def test_decode_text(self, decoder):
        assert decoder.decode_text("person", "label") == "person"
        with pytest.raises(MalformedValue, match="label"):
            decoder.decode_text(5, "label")


class TestValueProfile:
    def test_round_trip_dict(self):
        profile = ValueProfile(use_float=False, allow_non_finite=True)
        assert ValueProfile.from_dict(profile.to_dict()) == profile

    def test_unknown_option(self):
        with pytest.raises(ValueError):
            ValueProfile.from_dict({"use_floats": True})
