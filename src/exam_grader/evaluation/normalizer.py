"""
Answer Normalization

Canonical comparable form for submitted and reference answers.
"""

import re
from typing import Any, Iterable, FrozenSet

_WHITESPACE = re.compile(r'\s+')


def normalize_answer(value: Any) -> str:
    """Trim, lowercase and collapse whitespace runs. None maps to ''."""
    if value is None:
        return ""
    text = str(value).strip().lower()
    return _WHITESPACE.sub(' ', text)


def normalize_selection(values: Iterable[Any]) -> FrozenSet[str]:
    """Normalize a multi-choice selection into an order-free set."""
    return frozenset(normalize_answer(v) for v in values)
