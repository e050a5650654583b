import pytest

from practice_judge.comparator import compare
from practice_judge.normalizer import normalize


def test_equal_strings_pass_without_diff():
    result = compare("[0,1]", "[0,1]", "two-sum")
    assert result.passed
    assert result.diff is None


def test_paired_index_is_order_insensitive():
    assert compare(normalize("[0,1]", "two-sum"), normalize("[1,0]", "two-sum"), "two-sum").passed
    assert compare("[0,1]", "[1, 0]", "two-sum").passed


def test_paired_index_extracts_pair_from_noisy_output():
    assert compare("[0,1]", "indices: [1, 0]", "two-sum").passed


def test_paired_index_mismatch_names_first_sorted_index():
    result = compare("[0,1]", "[1,2]", "two-sum")
    assert not result.passed
    assert result.diff.splitlines()[0] == "Index 0 differs: expected 0, actual 1"
    assert "Expected indices [0, 1], got [1, 2]" in result.diff


def test_paired_index_second_position_mismatch():
    result = compare("[0,3]", "[0,2]", "two-sum")
    assert result.diff.startswith("Index 1 differs: expected 3, actual 2")


def test_array_length_and_missing_elements():
    result = compare("[1,2,3]", "[1,2]", "array")
    assert not result.passed
    assert "- Array length mismatch: expected 3, got 2" in result.diff
    assert "- Missing elements: 3" in result.diff


def test_array_extra_elements():
    result = compare("[1,2]", "[1,2,4]", "array")
    assert "- Extra elements: 4" in result.diff


def test_array_order_difference_reports_first_index():
    result = compare("[1,2,3]", "[3,2,1]", "array")
    assert not result.passed
    assert "- First difference at index 0: expected 1, got 3" in result.diff
    assert "Missing" not in result.diff


def test_array_duplicate_counts_are_reported_by_position():
    result = compare("[1,1,2]", "[1,2,2]", "array")
    assert not result.passed
    assert "Missing" not in result.diff
    assert "Extra" not in result.diff
    assert "- First difference at index 1: expected 1, got 2" in result.diff


def test_array_does_not_confuse_true_with_one():
    assert not compare("[1]", "[true]", "array").passed


def test_array_equal_after_parsing_passes():
    assert compare("[1,2]", "1, 2", "array").passed


def test_scalar_diff_reports_first_position():
    result = compare("abc", "abd", "generic")
    assert not result.passed
    lines = result.diff.splitlines()
    assert lines[:3] == ["Differences found:", "- Expected: abc", "- Actual: abd"]
    assert "- First difference at position 2: expected 'c', got 'd'" in lines


def test_scalar_length_mismatch():
    result = compare("abc", "ab", "string")
    assert "- Length mismatch: expected 3, got 2" in result.diff


def test_malformed_structured_input_falls_back_to_scalar_diff():
    result = compare("[0,1]", "not an answer", "two-sum")
    assert not result.passed
    assert result.diff.startswith("Differences found:")
    assert "- Expected: [0,1]" in result.diff


@pytest.mark.parametrize("expected,actual", [
    (None, None), ("", "x"), ("[", "]"), ("[1,", "[1,2"), ("{}", "[]"), ("\x00", "�"),
])
@pytest.mark.parametrize("shape", ["two-sum", "array", "string", "generic", None])
def test_compare_never_raises(expected, actual, shape):
    result = compare(expected, actual, shape)
    assert isinstance(result.passed, bool)
