from dataclasses import dataclass
from enum import Enum
from typing import Optional

import pytest

from layerconf.errors import ConfigError, ConfigTypeError, MessageError
from layerconf.value import Value, ValueKind


def test_value_deserialize_invalid_type():
    value = Value.from_python("fals")
    with pytest.raises(ConfigTypeError) as info:
        value.try_deserialize(bool)
    assert str(info.value) == 'invalid type: string "fals", expected a boolean'


class Diode(Enum):
    Off = "off"
    Brightness = int
    Blinking = tuple[int, int]


def test_value_deserialize_enum_errors():
    with pytest.raises(MessageError) as info:
        Value.from_python("on").try_deserialize(Diode)
    assert str(info.value) == "enum Diode does not have variant constructor on"

    structural = (
        "value of enum Diode should be represented by either string or table with exactly one key"
    )
    with pytest.raises(MessageError) as info:
        Value.from_python([100, 100]).try_deserialize(Diode)
    assert str(info.value) == structural

    with pytest.raises(MessageError) as info:
        Value.from_python({"Brightness": 100, "Blinking": [300, 700]}).try_deserialize(Diode)
    assert str(info.value) == structural


def test_enum_variants():
    assert Value.from_python("Off").try_deserialize(Diode) is Diode.Off
    assert Value.from_python({"Brightness": 100}).try_deserialize(Diode) == (Diode.Brightness, 100)
    assert Value.from_python({"Blinking": [300, 700]}).try_deserialize(Diode) == (
        Diode.Blinking,
        (300, 700),
    )


@dataclass
class Unsigned:
    unsigned: int = 128


@dataclass
class Container:
    inner: Unsigned


def test_deser_unsigned_int_hm():
    built = Value.from_python({"inner": Unsigned()}).try_deserialize(Container)
    assert built == Container(Unsigned())


@dataclass
class Place:
    name: int


@dataclass
class Output:
    place: Place


def test_deserialize_invalid_type_path():
    value = Value.from_python({"place": {"name": "Torre di Pisa"}})
    with pytest.raises(ConfigTypeError) as info:
        value.try_deserialize(Output)
    assert info.value.key == "place.name"
    assert str(info.value) == (
        'invalid type: string "Torre di Pisa", expected an integer for key `place.name`'
    )


@dataclass
class InnerSettings:
    value: int
    value2: int


@dataclass
class Settings:
    inner: InnerSettings


def test_deserialize_missing_field():
    with pytest.raises(ConfigError) as info:
        Value.from_python({"inner": {"value": 42}}).try_deserialize(Settings)
    message = str(info.value)
    assert message == "missing field `value2` for key `inner`"


def test_origin_appears_in_error():
    value = Value.from_python({"a": "fals"}, "tests/testsuite/get-invalid-type.json")
    with pytest.raises(ConfigTypeError) as info:
        value.into_table()["a"].into_bool()
    assert str(info.value).endswith(" in tests/testsuite/get-invalid-type.json")


@pytest.mark.parametrize(
    "raw,target,expected",
    [
        (True, bool, True),
        (True, str, "true"),
        (True, int, 1),
        (True, float, 1.0),
        ("true", bool, True),
        ("true", int, 1),
        ("true", float, 1.0),
        (False, str, "false"),
        (False, int, 0),
        ("false", bool, False),
        ("false", float, 0.0),
    ],
)
def test_scalar_type_loose(raw, target, expected):
    assert Value.from_python(raw).try_deserialize(target) == expected


@dataclass
class Loose:
    debug: float
    production: Optional[str]
    telephone: Optional[str]
    arr: list[str]


def test_struct_conversions():
    s = Value.from_python(
        {"debug": True, "production": False, "arr": list(range(1, 11))}
    ).try_deserialize(Loose)
    assert s.debug == 1.0
    assert s.production == "false"
    assert s.telephone is None
    assert len(s.arr) == 10
    assert s.arr[3] == "4"


def test_int_keys_and_nested_map():
    value = Value.from_python({"divisors": {"1": 1, "2": 2, "4": 3, "5": 2}})
    result = value.try_deserialize(dict[str, dict[int, int]])
    assert result["divisors"][4] == 3
    assert len(result["divisors"]) == 4


def test_table_and_array_errors():
    value = Value.from_python(True)
    with pytest.raises(ConfigTypeError, match="expected a map"):
        value.into_table()
    with pytest.raises(ConfigTypeError, match="expected an array"):
        value.into_array()


def test_round_trip_to_python():
    data = {"a": [1, 2.5, "x", None, {"b": False}]}
    assert Value.from_python(data).to_python() == data


def test_integer_kinds():
    assert Value.from_python(5).kind is ValueKind.I64
    assert Value.from_python(2**63).kind is ValueKind.U64
    assert Value.from_python(-(2**63) - 1).kind is ValueKind.I128


def test_into_uint_rejects_negative():
    with pytest.raises(ConfigTypeError):
        Value.from_python(-1).into_uint()


def test_array_index_in_error_path():
    with pytest.raises(ConfigTypeError) as info:
        Value.from_python({"arr": [1, "x"]}).try_deserialize(dict[str, list[int]])
    assert info.value.key == "arr[1]"