import pytest

from miztranslate.dictionary import decode_dictionary, decode_table_fields, encode_dictionary
from miztranslate.errors import DictionaryFormatError

DCS_DICTIONARY = r'''dictionary =
{
    ["DictKey_ActionText_1"] = "Engage bandits, angels 20",
    ["DictKey_descriptionText_2"] = "Line one\
Line two",
    ["DictKey_3"] = "Quote \"here\"",
    [4] = "numeric key",
    ["DictKey_5"] = 42,
} -- end of dictionary
'''


def test_decode_reads_string_entries_only():
    assert decode_dictionary(DCS_DICTIONARY) == {
        "DictKey_ActionText_1": "Engage bandits, angels 20",
        "DictKey_descriptionText_2": "Line one\nLine two",
        "DictKey_3": "Quote \"here\"",
    }


def test_decode_accepts_bytes_with_bom():
    blob = "\ufeffdictionary = { [\"k\"] = \"Привет\" }".encode("utf-8")

    assert decode_dictionary(blob) == {"k": "Привет"}


def test_decode_keeps_first_duplicate():
    blob = "dictionary = { [\"a\"] = \"first\", [\"a\"] = \"second\" }"

    assert decode_dictionary(blob) == {"a": "first"}


def test_missing_resource_or_table_is_empty():
    assert decode_dictionary(None) == {}
    assert decode_dictionary("mission = { }") == {}


def test_decode_handles_comments_long_strings_and_nested_tables():
    blob = (
        "-- header\n"
        "dictionary = {\n"
        "    --[[ block\n comment ]]\n"
        "    [\"a\"] = [[long\ntext]],\n"
        "    [\"b\"] = { \"x\", y = 1 };\n"
        "    c = 'single',\n"
        "    [\"d\"] = true,\n"
        "    [\"e\"] = -1.5e3,\n"
        "}\n"
    )

    assert decode_dictionary(blob) == {"a": "long\ntext", "c": "single"}


def test_decode_resolves_lua_escapes():
    blob = "dictionary = { [\"k\"] = \"\\65\\x42\\u{43}\\t\\\\\" }"

    assert decode_dictionary(blob) == {"k": "ABC\t\\"}


def test_decode_keeps_field_order():
    fields = decode_table_fields("dictionary = { [\"b\"] = \"2\", [\"a\"] = \"1\", \"x\" }")

    assert fields == [("b", "2"), ("a", "1"), (1, "x")]


def test_broken_table_raises():
    with pytest.raises(DictionaryFormatError):
        decode_dictionary("dictionary = { [\"a\"] = \"x\" ")
    with pytest.raises(DictionaryFormatError):
        decode_dictionary("dictionary = { [\"a\"] = \"x\n\" }")


def test_encode_layout_and_escaping():
    encoded = encode_dictionary({"k": "say \"hi\"\nnow", "DictKey_2": "plain"})

    assert encoded == (
        "dictionary = {\n"
        "    [\"k\"] = \"say \\\"hi\\\"\\nnow\",\n"
        "    [\"DictKey_2\"] = \"plain\",\n"
        "}"
    )


def test_encode_then_decode_returns_the_mapping():
    mapping = {
        "DictKey_1": "Engage bandits, angels 20",
        "DictKey_2": "Line one\nLine two",
        "DictKey \"3\"": "C:\\Saved Games\\DCS",
        "DictKey_4": "交战敌机，高度20",
        "DictKey_5": "it's 'quoted'",
        "DictKey_6": "",
    }

    assert decode_dictionary(encode_dictionary(mapping)) == mapping
