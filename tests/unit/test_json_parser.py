"""Tests for JSON parser."""

from sqlterm.utils.json_parser import JSONParser


def test_extract_json_plain():
    assert JSONParser.extract_json('{"relevant_tables": ["users"]}') == {"relevant_tables": ["users"]}


def test_extract_json_code_block():
    text = 'Here you go:\n```json\n{"commands": ["SELECT 1;"]}\n```'
    assert JSONParser.extract_json(text) == {"commands": ["SELECT 1;"]}


def test_extract_json_surrounded_by_text():
    text = 'The answer is {"commands": [], "explanation": "nothing to do"} as requested.'
    assert JSONParser.extract_json(text)["explanation"] == "nothing to do"


def test_extract_json_not_an_object():
    assert JSONParser.extract_json('["users"]') == {}


def test_extract_json_invalid():
    assert JSONParser.extract_json("no json here") == {}
