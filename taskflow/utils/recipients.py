"""Recipient selection helpers."""
from typing import Hashable, Iterable, List, Optional


def recipients(candidates: Iterable[Optional[Hashable]], exclude: Optional[Hashable] = None) -> List[Hashable]:
    """Unique, non-empty candidates in first-seen order, minus ``exclude``."""
    seen = []
    for candidate in candidates:
        if candidate is None or candidate == exclude or candidate in seen:
            continue
        seen.append(candidate)
    return seen
