"""
Text utilities for comparing SKU spellings.

Used by SKU detection to score customer/vendor SKUs against the catalog.
"""

import re
from typing import Optional


_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Catalog SKUs look like CF226X, CE285A, Q2612A
_STANDARD_SKU_FORMAT = re.compile(r"^[A-Z0-9]{5,6}X?$")


def normalize_sku(sku: Optional[str]) -> str:
    """
    Normalize a SKU for fuzzy comparison.

    Lowercases and drops everything that is not an ASCII letter or digit:
    - "HP-26-X" → "hp26x"
    - " cf 226x " → "cf226x"
    - "Canon #137" → "canon137"

    Args:
        sku: Raw SKU as supplied (may be None)

    Returns:
        Normalized string, empty if nothing alphanumeric remains
    """
    if not sku:
        return ""
    return _NON_ALNUM.sub("", sku.lower())


def sku_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Score how alike two SKU spellings are, from 0.0 to 1.0.

    Scoring on the normalized forms:
    1. Equal → 1.0 (two blanks are equal)
    2. One contains the other → 0.9. A side that normalizes to empty is
       excluded: it scores 0.0 against any non-empty SKU.
    3. Otherwise the share of characters of the shorter string that occur
       anywhere in the longer one, divided by the longer length.

    Character hits are position independent and repeats are counted per
    position. On equal lengths the first argument is the one scanned.

    Args:
        a: First SKU (the incoming spelling during detection)
        b: Second SKU (catalog or variation spelling)

    Returns:
        Similarity in [0.0, 1.0]
    """
    left = normalize_sku(a)
    right = normalize_sku(b)

    if left == right:
        return 1.0

    # Only one side is empty: nothing to compare
    if not left or not right:
        return 0.0

    if right in left or left in right:
        return 0.9

    if len(left) <= len(right):
        shorter, longer = left, right
    else:
        shorter, longer = right, left

    if not longer:
        return 0.0

    matches = sum(1 for char in shorter if char in longer)
    return matches / len(longer)


def is_standard_sku_format(sku: Optional[str]) -> bool:
    """
    Check whether a SKU already looks like a catalog SKU.

    Catalog SKUs are 5-6 uppercase letters/digits with an optional
    trailing X (high-yield marker). Anything else is treated as a
    customer spelling that needs mapping.
    """
    if not sku:
        return False
    return bool(_STANDARD_SKU_FORMAT.match(sku.strip()))
