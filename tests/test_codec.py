"""
Tests for the codec module.

Tests decoding and comparison of test-case values including:
- Strict JSON input
- Literal and assignment-shorthand fallbacks
- Opaque text fallback
- Canonical encoding
- Comparison normalization
"""

import pytest
from unittest.mock import Mock
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from gradecore import codec


class TestDecodeJson:
    """Test the strict JSON tier."""

    def test_decode_array(self):
        assert codec.decode("[0,1]") == [0, 1]

    def test_decode_boolean(self):
        assert codec.decode("true") is True
        assert codec.decode("false") is False

    def test_decode_surrounding_whitespace(self):
        assert codec.decode("  42 \n") == 42

    def test_decode_object(self):
        assert codec.decode('{"a": [1, null]}') == {"a": [1, None]}

    def test_json_does_not_report_fallback(self):
        on_fallback = Mock()

        codec.decode("[1, 2]", on_fallback=on_fallback)

        on_fallback.assert_not_called()

    def test_non_string_passes_through(self):
        assert codec.decode(5) == 5


class TestDecodeLiteralFallback:
    """Test the permissive literal tier."""

    def test_assignment_shorthand(self):
        """Shorthand like 'nums = [...], target = 9' becomes an ordered mapping."""
        value = codec.decode("nums = [2,7,11,15], target = 9")

        assert value == {"nums": [2, 7, 11, 15], "target": 9}
        assert list(value) == ["nums", "target"]

    def test_python_literals(self):
        assert codec.decode("True") is True
        assert codec.decode("'abc'") == "abc"
        assert codec.decode("(1, 2)") == (1, 2)

    def test_js_names_inside_shorthand(self):
        assert codec.decode("flag = true, other = null") == {"flag": True, "other": None}

    def test_fallback_is_reported(self):
        on_fallback = Mock()

        codec.decode("x = 1", on_fallback=on_fallback)

        on_fallback.assert_called_once_with("literal", "x = 1")


class TestDecodeTextFallback:
    """Test that anything else comes back unchanged."""

    def test_plain_words(self):
        on_fallback = Mock()

        assert codec.decode("hello world", on_fallback=on_fallback) == "hello world"
        on_fallback.assert_called_once_with("text", "hello world")

    def test_code_is_never_evaluated(self):
        text = "__import__('os').getcwd()"
        assert codec.decode(text) == text

    def test_unbalanced_wrapping_is_rejected(self):
        assert codec.decode("1)(2") == "1)(2"

    def test_arithmetic_is_not_evaluated(self):
        assert codec.decode("1 + 1") == "1 + 1"

    def test_empty_string(self):
        assert codec.decode("") == ""


class TestDecodeArguments:
    """Test decoding of test-case inputs into positional arguments."""

    def test_shorthand_gives_arguments_in_order(self):
        assert codec.decode_arguments("nums = [2,7,11,15], target = 9") == [[2, 7, 11, 15], 9]

    def test_single_json_value_is_one_argument(self):
        assert codec.decode_arguments("[1,2,3]") == [[1, 2, 3]]
        assert codec.decode_arguments("121") == [121]

    def test_json_object_spreads_like_shorthand(self):
        """{"a": 1, "b": 2} and a = 1, b = 2 give the same arguments."""
        assert codec.decode_arguments('{"a": 1, "b": [2]}') == [1, [2]]
        assert codec.decode_arguments('{"a": 1, "b": [2]}') == codec.decode_arguments("a = 1, b = [2]")

    def test_python_dict_literal_spreads(self):
        assert codec.decode_arguments("{'x': 5}") == [5]

    def test_comma_separated_literals(self):
        assert codec.decode_arguments("1, [2]") == [1, [2]]

    def test_empty_input_means_no_arguments(self):
        assert codec.decode_arguments("   ") == []

    def test_bare_word_is_a_string_argument(self):
        assert codec.decode_arguments("hello") == ["hello"]


class TestEncode:
    """Test canonical encoding."""

    def test_compact_json(self):
        assert codec.encode([0, 1]) == "[0,1]"
        assert codec.encode(True) == "true"
        assert codec.encode({"a": 1}) == '{"a":1}'

    def test_tuple_and_set(self):
        assert codec.encode((1, 2)) == "[1,2]"
        assert codec.encode({3, 1, 2}) == "[1,2,3]"

    def test_unicode_kept(self):
        assert codec.encode("é") == '"é"'

    def test_unencodable_keys_fall_back_to_repr(self):
        assert codec.encode({(1, 2): 3}) == '"{(1, 2): 3}"'


class TestValuesEqual:
    """Test the comparison used to decide pass/fail."""

    def test_arrays_are_order_sensitive(self):
        assert codec.values_equal([0, 1], [0, 1])
        assert not codec.values_equal([1, 0], [0, 1])

    def test_objects_compare_by_keys(self):
        assert codec.values_equal({"a": 1, "b": 2}, {"b": 2, "a": 1})
        assert not codec.values_equal({"a": 1}, {"a": 1, "b": 2})

    def test_string_true_matches_boolean_true(self):
        """A returned "true" string is re-decoded once and matches true."""
        assert codec.values_equal("true", True)
        assert codec.values_equal("[0,1]", [0, 1])

    def test_boolean_never_equals_number(self):
        assert not codec.values_equal(True, 1)
        assert not codec.values_equal(0, False)

    def test_integral_float_equals_int(self):
        assert codec.values_equal(1.0, 1)
        assert not codec.values_equal(1.5, 1)

    def test_tuple_equals_list(self):
        assert codec.values_equal((0, 1), [0, 1])

    def test_nested_strings_are_not_redecoded(self):
        assert not codec.values_equal(["1"], [1])

    @pytest.mark.parametrize("value", ["hello", None, [], {}, 0])
    def test_value_equals_itself(self, value):
        assert codec.values_equal(value, value)
