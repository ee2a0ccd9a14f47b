"""Tests for the fuzzy search, sorting and pagination helpers."""
import pytest

from argobooks.domain.enums import SortDirection
from argobooks.utilities import pagination
from argobooks.utilities.levenshtein import (
    contains_substring,
    distance,
    normalized_similarity,
    search_score,
)
from argobooks.utilities.sorting import apply_sort, next_direction


# ============================================================================
# LEVENSHTEIN / SEARCH
# ============================================================================

class TestDistance:

    def test_classic_pair(self):
        assert distance("kitten", "sitting") == 3

    def test_empty_strings(self):
        assert distance("", "abc") == 3
        assert distance("abc", "") == 3
        assert distance(None, None) == 0

    def test_similarity_bounds(self):
        assert normalized_similarity("Widget", "widget") == 1.0
        assert normalized_similarity("", "") == 1.0
        assert normalized_similarity("abc", "") == 0.0

    def test_contains_substring_is_case_insensitive(self):
        assert contains_substring("LACE", "Ada Lovelace")
        assert contains_substring("", "anything")
        assert not contains_substring("x", None)


class TestSearchScore:

    def test_exact_match(self):
        assert search_score("john smith", "John Smith") == 1.0

    def test_prefix_match(self):
        assert search_score("john", "John Smith") == 0.95

    def test_word_prefix_match(self):
        assert search_score("smi", "John Smith") == 0.9

    def test_substring_match(self):
        assert search_score("ohn", "John Smith") == 0.8

    def test_fuzzy_match_is_scaled(self):
        # "jhon" vs the word "john": two edits over four characters
        assert search_score("jhon", "John Smith") == pytest.approx(0.5 * 0.7)

    def test_no_match(self):
        assert search_score("xyz", "John Smith") == -1.0

    def test_blank_term_matches_everything(self):
        assert search_score("", "John Smith") == 1.0
        assert search_score(None, "") == 1.0

    def test_blank_target_never_matches(self):
        assert search_score("john", "") == -1.0


# ============================================================================
# SORTING
# ============================================================================

ROWS = [
    {"name": "banana", "qty": 3},
    {"name": "Apple", "qty": None},
    {"name": "cherry", "qty": 1},
]
SELECTORS = {"Name": lambda r: r["name"], "Qty": lambda r: r["qty"]}


class TestApplySort:

    def test_ascending_is_case_insensitive(self):
        result = apply_sort(ROWS, "Name", SortDirection.ASCENDING, SELECTORS)
        assert [r["name"] for r in result] == ["Apple", "banana", "cherry"]

    def test_descending(self):
        result = apply_sort(ROWS, "Name", SortDirection.DESCENDING, SELECTORS)
        assert [r["name"] for r in result] == ["cherry", "banana", "Apple"]

    def test_none_sorts_first(self):
        result = apply_sort(ROWS, "Qty", SortDirection.ASCENDING, SELECTORS)
        assert [r["qty"] for r in result] == [None, 1, 3]

    def test_no_direction_uses_default(self):
        result = apply_sort(ROWS, "Qty", SortDirection.NONE, SELECTORS, default=SELECTORS["Name"])
        assert [r["name"] for r in result] == ["Apple", "banana", "cherry"]

    def test_no_direction_without_default_keeps_order(self):
        result = apply_sort(ROWS, "Qty", SortDirection.NONE, SELECTORS)
        assert result == ROWS
        assert result is not ROWS

    def test_unknown_column_keeps_order(self):
        assert apply_sort(ROWS, "Missing", SortDirection.ASCENDING, SELECTORS) == ROWS

    def test_stable_for_equal_keys(self):
        rows = [{"name": "a", "n": 1}, {"name": "A", "n": 2}, {"name": "a", "n": 3}]
        result = apply_sort(rows, "Name", SortDirection.ASCENDING, SELECTORS)
        assert [r["n"] for r in result] == [1, 2, 3]

    def test_direction_cycle(self):
        assert next_direction(SortDirection.NONE) == SortDirection.ASCENDING
        assert next_direction(SortDirection.ASCENDING) == SortDirection.DESCENDING
        assert next_direction(SortDirection.DESCENDING) == SortDirection.NONE


# ============================================================================
# PAGINATION
# ============================================================================

class TestPagination:

    def test_total_pages(self):
        assert pagination.total_pages(0, 10) == 1
        assert pagination.total_pages(10, 10) == 1
        assert pagination.total_pages(25, 10) == 3

    def test_page_window_at_edges(self):
        assert pagination.page_window(1, 10) == [1, 2, 3, 4, 5]
        assert pagination.page_window(5, 10) == [3, 4, 5, 6, 7]
        assert pagination.page_window(10, 10) == [6, 7, 8, 9, 10]
        assert pagination.page_window(2, 3) == [1, 2, 3]

    def test_page_slice_and_index(self):
        items = list(range(25))
        assert pagination.page_slice(items, 3, 10) == [20, 21, 22, 23, 24]
        assert pagination.page_for_index(19, 10) == 2
        assert pagination.page_for_index(20, 10) == 3

    def test_clamp_page(self):
        assert pagination.clamp_page(7, 3) == 3
        assert pagination.clamp_page(0, 3) == 1

    @pytest.mark.parametrize("total,page,pages,expected", [
        (0, 1, 1, "0 customers"),
        (1, 1, 1, "1 customer"),
        (7, 1, 1, "7 customers"),
        (45, 2, 5, "11-20 of 45 customers"),
        (45, 5, 5, "41-45 of 45 customers"),
    ])
    def test_format_pagination_text(self, total, page, pages, expected):
        assert pagination.format_pagination_text(total, page, 10, pages, "customer") == expected

    def test_irregular_plural(self):
        assert pagination.format_pagination_text(2, 1, 10, 1, "category", "categories") == "2 categories"
        assert pagination.format_simple_count(1, "category", "categories") == "1 category"
