"""
Unit tests for SKU text utilities.

Run: pytest tests/unit/test_text_utils.py -v
"""

import pytest

from utils.text_utils import normalize_sku, sku_similarity, is_standard_sku_format


class TestNormalizeSku:
    """Tests for normalize_sku()"""

    @pytest.mark.parametrize("raw,expected", [
        ("HP-26-X", "hp26x"),
        (" cf 226x ", "cf226x"),
        ("Canon #137", "canon137"),
        ("Café-12", "caf12"),
        ("---", ""),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_sku(raw) == expected


class TestSkuSimilarity:
    """Tests for sku_similarity()"""

    def test_identical_is_one(self):
        assert sku_similarity("CF226X", "CF226X") == 1.0

    def test_equal_after_normalization_is_one(self):
        """Case and punctuation are ignored."""
        assert sku_similarity("HP-26-X", "hp26x") == 1.0

    def test_containment_is_point_nine(self):
        assert sku_similarity("CF226X", "226X") == 0.9
        assert sku_similarity("226", "CF226X-BLK") == 0.9

    def test_character_overlap_ratio(self):
        """Characters of the shorter string found in the longer, over longer length."""
        # hp26x vs cf226x: 2, 6, x hit -> 3 / 6
        assert sku_similarity("HP26X", "CF226X") == pytest.approx(0.5)

    def test_repeated_characters_count_per_position(self):
        # "aab" vs "abcd": a, a, b all occur -> 3 / 4
        assert sku_similarity("aab", "abcd") == pytest.approx(0.75)

    def test_order_does_not_matter(self):
        # same characters, reversed, no containment
        assert sku_similarity("ABCDE", "EDCBA") == pytest.approx(1.0)

    def test_no_shared_characters_is_zero(self):
        assert sku_similarity("ZZZ999", "CF226X") == 0.0

    def test_equal_length_scans_first_argument(self):
        # "aab" scanned against "abc": 3/3; "abc" scanned against "aab": a, b hit -> 2/3
        assert sku_similarity("aab", "abc") == pytest.approx(1.0)
        assert sku_similarity("abc", "aab") == pytest.approx(2 / 3)

    def test_both_empty_after_normalization(self):
        assert sku_similarity("---", "  ") == 1.0

    def test_one_side_empty_is_zero(self):
        """An empty spelling is not treated as contained in the other."""
        assert sku_similarity("---", "CF226X") == 0.0
        assert sku_similarity("CF226X", None) == 0.0

    @pytest.mark.parametrize("sku", ["CF226X", "HP-26-X", "q2612a", "85A BLK"])
    def test_self_similarity(self, sku):
        assert sku_similarity(sku, sku) == 1.0

    @pytest.mark.parametrize("a,b", [
        ("HP26X", "CF226X"),
        ("85A-BLK", "CE285A"),
        ("Q2612A", "12A"),
    ])
    def test_score_in_range(self, a, b):
        assert 0.0 <= sku_similarity(a, b) <= 1.0


class TestIsStandardSkuFormat:
    """Tests for is_standard_sku_format()"""

    @pytest.mark.parametrize("sku", ["CF226X", "CE285A", "Q2612A", "TN450", "CF2260X"])
    def test_catalog_skus(self, sku):
        assert is_standard_sku_format(sku) is True

    @pytest.mark.parametrize("sku", ["HP-26-X", "cf226x", "HP 26X", "ABCD", "CF2260XX", "", None])
    def test_customer_spellings(self, sku):
        assert is_standard_sku_format(sku) is False
