import json
import tomllib

import pytest

from layerconf.errors import ConfigTypeError
from layerconf.formats import (
    FileFormat,
    FileStoredFormat,
    Format,
    MultipleDocumentsError,
    all_extensions,
    extract_root_table,
)
from layerconf.value import Value, ValueKind
from dataclasses import dataclass

TOML_TEXT = """
debug = true
debug_s = "true"
production = false
production_s = "false"

code = 53

# errors
boolean_s_parse = "fals"

# For override tests
FOO="FOO should be overridden"
bar="I am bar"

arr = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
quarks = ["up", "down", "strange", "charm", "bottom", "top"]

[diodes]
green = "off"

[diodes.red]
brightness = 100

[diodes.blue]
blinking = [300, 700]

[diodes.white.pattern]
name = "christmas"
inifinite = true

[[items]]
name = "1"

[[items]]
name = "2"

[place]
number = 1
name = "Torre di Pisa"
longitude = 43.7224985
latitude = 10.3970522
favorite = false
reviews = 3866
rating = 4.5

[place.creator]
name = "John Smith"
username = "jsmith"
email = "jsmith@localhost"

[proton]
up = 2
down = 1

[divisors]
1 = 1
2 = 2
4 = 3
5 = 2
"""


@dataclass
class Place:
    number: int
    name: str
    longitude: float
    latitude: float
    favorite: bool
    telephone: str | None
    reviews: int
    creator: dict[str, Value]
    rating: float | None


@dataclass
class Settings:
    debug: float
    production: str | None
    code: int
    place: Place
    arr: list[str]


def test_toml_file():
    table = FileFormat.TOML.parse(None, TOML_TEXT)
    s = Value(ValueKind.TABLE, table).try_deserialize(Settings)
    assert s.debug == pytest.approx(1.0)
    assert s.production == "false"
    assert s.code == 53
    assert s.place.number == 1
    assert s.place.name == "Torre di Pisa"
    assert s.place.longitude == pytest.approx(43.7224985)
    assert s.place.latitude == pytest.approx(10.3970522)
    assert s.place.favorite is False
    assert s.place.reviews == 3866
    assert s.place.rating == 4.5
    assert s.place.telephone is None
    assert len(s.arr) == 10
    assert s.arr[3] == "4"
    assert list(s.place.creator.items()) == [
        ("name", Value(ValueKind.STRING, "John Smith")),
        ("username", Value(ValueKind.STRING, "jsmith")),
        ("email", Value(ValueKind.STRING, "jsmith@localhost")),
    ]


def test_toml_error_parse():
    with pytest.raises(tomllib.TOMLDecodeError):
        FileFormat.TOML.parse(None, "\nok = true\nerror = tru\n")


def test_toml_datetime_is_string():
    table = FileFormat.TOML.parse(None, "\n            toml_datetime = 2017-05-11T14:55:15Z\n")
    assert table["toml_datetime"].kind is ValueKind.STRING
    assert table["toml_datetime"].into_string() == "2017-05-11T14:55:15Z"


def test_toml_values_carry_origin():
    table = FileFormat.TOML.parse("conf.toml", 'a = 1\n[b]\nc = "x"\n')
    assert table["a"].origin == "conf.toml"
    assert table["b"].data["c"].origin == "conf.toml"


def test_json_root_not_table():
    with pytest.raises(ConfigTypeError) as info:
        FileFormat.JSON.parse(None, "false")
    assert str(info.value) == "invalid type: boolean `false`, expected a map"


def test_json_trailing_comma_rejected():
    with pytest.raises(json.JSONDecodeError):
        FileFormat.JSON.parse(None, '\n{\n  "boolean_s_parse": "fals",\n}\n')


def test_json_kinds():
    table = FileFormat.JSON.parse(None, '{"i": 5, "f": 4.5, "n": null, "b": true, "a": [1]}')
    assert table["i"].kind is ValueKind.I64
    assert table["f"].kind is ValueKind.FLOAT
    assert table["n"].kind is ValueKind.NIL
    assert table["b"].data is True
    assert table["a"].to_python() == [1]


def test_json_large_integer_becomes_float():
    table = FileFormat.JSON.parse(None, '{"big": 18446744073709551615}')
    assert table["big"].kind is ValueKind.FLOAT
    assert table["big"].data == float(18446744073709551615)


def test_json_rejects_nan():
    with pytest.raises(ValueError):
        FileFormat.JSON.parse(None, '{"x": NaN}')


def test_yaml_multiple_documents():
    with pytest.raises(MultipleDocumentsError) as info:
        FileFormat.YAML.parse(None, "a: 1\n---\nb: 2\n")
    assert str(info.value) == "Got 2 YAML documents, expected 1"


def test_yaml_empty_is_empty_table():
    assert FileFormat.YAML.parse(None, "") == {}


def test_yaml_core_schema_scalars():
    table = FileFormat.YAML.parse(None, "flag: yes\nreal: true\nwhen: 2017-05-11\n1: one\n")
    assert table["flag"].kind is ValueKind.STRING
    assert table["real"].data is True
    assert table["when"].into_string() == "2017-05-11"
    assert table["1"].into_string() == "one"


def test_yaml_root_list_rejected():
    with pytest.raises(ConfigTypeError) as info:
        FileFormat.YAML.parse("x.yaml", "- 1\n- 2\n")
    assert str(info.value) == "invalid type: sequence, expected a map in x.yaml"


def test_ini_sections_and_general_keys():
    table = FileFormat.INI.parse(None, "Top = 1\n[Server]\nHost = local\nPort: 80\n")
    assert table["Top"] == Value(ValueKind.STRING, "1")
    assert table["Server"].to_python() == {"Host": "local", "Port": "80"}


def test_all_extensions():
    assert all_extensions() == {
        FileFormat.TOML: ("toml",),
        FileFormat.JSON: ("json",),
        FileFormat.YAML: ("yaml", "yml"),
        FileFormat.INI: ("ini",),
    }


def test_file_format_is_stored_format():
    assert isinstance(FileFormat.YAML, FileStoredFormat)
    assert FileFormat.YAML.file_extensions() == ("yaml", "yml")


def test_extract_root_table_returns_table():
    table = {"k": Value(ValueKind.I64, 1)}
    assert extract_root_table(None, Value(ValueKind.TABLE, table)) is table


def test_custom_format():
    class Mine(Format):
        def parse(self, uri, text):
            if text == "good":
                return {"key": Value(ValueKind.STRING, text, uri)}
            return {}

    assert Mine().parse(None, "good") == {"key": Value(ValueKind.STRING, "good")}
    assert Mine().parse(None, "bad") == {}