"""Tests for JSON detection, key validation and safe decomposition."""
import logging

import pytest

from doppler_action.secrets.domains.json_secrets import (
    DecodeError,
    decompose,
    is_json_object,
    is_valid_key,
)

DEEPLY_NESTED = "[" * 100000 + "]" * 100000


class TestIsJsonObject:
    """Test suite for is_json_object."""

    @pytest.mark.parametrize("value", [
        '{}',
        '{"a": 1}',
        '  {"nested": {"x": [1, 2]}}  ',
        '{"a": null}',
    ])
    def test_objects_are_detected(self, value):
        """Test that JSON objects return True."""
        assert is_json_object(value) is True

    @pytest.mark.parametrize("value", [
        '[]',
        '[{"a": 1}]',
        'null',
        '42',
        '"a string"',
        'true',
        '',
        '   ',
        '{not valid',
        "{'single': 'quotes'}",
        'plain-password',
        '{"a": NaN}',
    ])
    def test_non_objects_are_rejected(self, value):
        """Test that scalars, arrays, null and invalid JSON return False."""
        assert is_json_object(value) is False

    def test_non_string_input_does_not_raise(self):
        """Test that a non-string value returns False instead of raising."""
        assert is_json_object(None) is False

    def test_deeply_nested_json_is_rejected(self):
        """Test that nesting past the parser's recursion limit returns False."""
        assert is_json_object(DEEPLY_NESTED) is False
        assert is_json_object('{"a": ' + DEEPLY_NESTED + '}') is False


class TestIsValidKey:
    """Test suite for is_valid_key."""

    @pytest.mark.parametrize("key", [
        "a", "_", "DB_HOST", "db-port", "_private", "Key123", "ok-key", "A_b-C_9",
    ])
    def test_valid_keys(self, key):
        """Test keys starting with a letter or underscore."""
        assert is_valid_key(key) is True

    @pytest.mark.parametrize("key", [
        "", "1bad", "-leading", "has space", "db.host", "key$", "ключ", "key\n", "a/b",
    ])
    def test_invalid_keys(self, key):
        """Test keys with a bad first character or illegal characters."""
        assert is_valid_key(key) is False

    def test_non_string_key_is_invalid(self):
        """Test that non-string keys are rejected."""
        assert is_valid_key(5) is False
        assert is_valid_key(None) is False


class TestDecompose:
    """Test suite for decompose."""

    def test_returns_all_valid_keys(self):
        """Test that a clean object is returned unchanged."""
        result = decompose('{"db_host": "x", "db_port": 5432}', "CONFIG")
        assert result == {"db_host": "x", "db_port": 5432}

    def test_filters_invalid_keys_with_warning(self, caplog):
        """Test that invalid keys are dropped and each one is named in a warning."""
        caplog.set_level(logging.WARNING)

        result = decompose('{"good":"1","1bad":"2","ok-key":"3"}', "MY_SECRET")

        assert result == {"good": "1", "ok-key": "3"}
        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert '"1bad"' in warnings[0]
        assert "MY_SECRET" in warnings[0]

    def test_all_keys_invalid_returns_empty_mapping(self, caplog):
        """Test that an object with only invalid keys decomposes to nothing."""
        caplog.set_level(logging.WARNING)

        result = decompose('{"1a": 1, "b c": 2}', "S")

        assert result == {}
        assert len(caplog.records) == 2

    def test_preserves_document_order(self):
        """Test that keys keep their order in the JSON text."""
        result = decompose('{"z": 1, "a": 2, "m": 3}', "S")
        assert list(result) == ["z", "a", "m"]

    def test_is_idempotent(self):
        """Test that decomposing the same text twice yields identical mappings."""
        text = '{"a": {"b": 1}, "c": [1, 2], "bad key": 0}'
        assert decompose(text, "S") == decompose(text, "S")

    def test_invalid_json_raises_decode_error(self):
        """Test that malformed JSON raises DecodeError naming the secret."""
        with pytest.raises(DecodeError) as exc_info:
            decompose("{not valid", "BAD_JSON")

        assert "BAD_JSON" in str(exc_info.value)

    @pytest.mark.parametrize("text", ["[1, 2]", "null", "42", '"str"'])
    def test_non_object_json_raises_decode_error(self, text):
        """Test that arrays, null and scalars raise DecodeError."""
        with pytest.raises(DecodeError) as exc_info:
            decompose(text, "LIST_SECRET")

        assert "is not an object" in str(exc_info.value)

    def test_deeply_nested_json_raises_decode_error(self):
        """Test that a recursion overflow while parsing surfaces as DecodeError."""
        with pytest.raises(DecodeError) as exc_info:
            decompose('{"a": ' + DEEPLY_NESTED + '}', "DEEP")

        assert "DEEP" in str(exc_info.value)

    def test_decode_error_is_value_error(self):
        """Test that DecodeError can be handled as ValueError."""
        with pytest.raises(ValueError):
            decompose("", "EMPTY")
