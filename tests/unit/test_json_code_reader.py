# tests/unit/test_json_code_reader.py
# ------------------------------------------------------------
# Purpose: read_codes() returns the JSON array unchanged, or []
#          for anything it cannot use (never raises).
# ------------------------------------------------------------

import json

import pytest

from src.extract.json_code_reader import read_codes


def test_read_codes_preserves_order(tmp_path):
    codes = ["CA40", "1A00", "BA00.0", "CA40"]
    path = tmp_path / "codes.json"
    path.write_text(json.dumps(codes), encoding="utf-8")

    assert read_codes(str(path)) == codes


def test_read_codes_empty_array(tmp_path):
    path = tmp_path / "codes.json"
    path.write_text("[]", encoding="utf-8")

    assert read_codes(str(path)) == []


def test_read_codes_missing_file_returns_empty(tmp_path):
    assert read_codes(str(tmp_path / "does_not_exist.json")) == []


def test_read_codes_malformed_json_returns_empty(tmp_path):
    path = tmp_path / "codes.json"
    path.write_text('["CA40", ', encoding="utf-8")

    assert read_codes(str(path)) == []


@pytest.mark.parametrize("content", ['{"codes": ["CA40"]}', '"CA40"', "42", "null"])
def test_read_codes_rejects_non_array(tmp_path, content):
    path = tmp_path / "codes.json"
    path.write_text(content, encoding="utf-8")

    assert read_codes(str(path)) == []


def test_read_codes_directory_path_returns_empty(tmp_path):
    # Opening a directory raises an OSError subclass
    assert read_codes(str(tmp_path)) == []
