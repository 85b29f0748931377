"""Display ordering for garment size labels.

Numeric labels (waist sizes such as ``28"``) come first in ascending order,
then letter sizes from XXS to 4XL, then anything unrecognised, and
``One Size`` always last.
"""
import re
from functools import cmp_to_key
from typing import Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")

LETTER_SIZE_ORDER = {
    "XXS": 0, "XS": 1, "S": 2, "M": 3, "L": 4, "XL": 5,
    "XXL": 6, "2XL": 6, "3XL": 7, "4XL": 8,
}
UNKNOWN_SIZE_RANK = 999

_LEADING_NUMBER = re.compile(r"^(\d+(?:\.\d+)?|\.\d+)")


def _parse_number(label: str) -> Optional[float]:
    """Leading number of a label, or None for letter sizes and text."""
    # "2XL" starts with a digit but is a letter size
    if label.upper() in LETTER_SIZE_ORDER:
        return None
    m = _LEADING_NUMBER.match(label)
    return float(m.group(1)) if m else None


def _is_one_size(label: str) -> bool:
    return label.lower() == "one size"


def compare_sizes(a: str, b: str) -> int:
    sa = a.strip()
    sb = b.strip()
    a_one, b_one = _is_one_size(sa), _is_one_size(sb)
    if a_one and b_one:
        return 0
    if a_one:
        return 1
    if b_one:
        return -1

    num_a = _parse_number(sa)
    num_b = _parse_number(sb)
    if num_a is not None and num_b is not None:
        return (num_a > num_b) - (num_a < num_b)
    if num_a is not None:
        return -1
    if num_b is not None:
        return 1

    rank_a = LETTER_SIZE_ORDER.get(sa.upper(), UNKNOWN_SIZE_RANK)
    rank_b = LETTER_SIZE_ORDER.get(sb.upper(), UNKNOWN_SIZE_RANK)
    return rank_a - rank_b


def sort_sizes(entries: Iterable[T], key: Optional[Callable[[T], str]] = None) -> List[T]:
    """Return entries sorted by size label; ``key`` extracts the label (default: identity)."""
    get = key or (lambda e: e)
    return sorted(entries, key=cmp_to_key(lambda x, y: compare_sizes(get(x), get(y))))
