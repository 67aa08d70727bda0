"""Item identifiers: PREFIX-YY-NNNNNN, sequence scoped by the two-digit year."""

import datetime
import re
from typing import Iterable, Optional

from ...core.config import ITEM_ID_PREFIX
from .schemas import Item

SEQUENCE_DIGITS = 6
ITEM_ID_PATTERN = re.compile(r"^[A-Z]+-\d{2}-\d{6}$")


def current_year2(today: Optional[datetime.date] = None) -> str:
    today = today or datetime.date.today()
    return f"{today.year % 100:02d}"


def next_item_id(
    items: Iterable[Item], year: Optional[str] = None, prefix: str = ITEM_ID_PREFIX
) -> str:
    """Returns the next free item id for the year.

    The sequence is the highest one already issued for the year plus one, so
    ids freed by deletions are never handed out again. Ids whose sequence
    part is not an integer are ignored.

    Args:
        items: Every known item (local and remote, merged).
        year: Two-digit year, defaults to the current year.
        prefix: Id prefix, defaults to ITEM_ID_PREFIX.

    Returns:
        The new item id, e.g. "AG-26-000007".
    """
    year = year or current_year2()
    year_prefix = f"{prefix}-{year}-"
    highest = 0
    for item in items:
        if not item.item_id.startswith(year_prefix):
            continue
        try:
            sequence = int(item.item_id[len(year_prefix):])
        except ValueError:
            continue
        highest = max(highest, sequence)
    return f"{year_prefix}{highest + 1:0{SEQUENCE_DIGITS}d}"


def parse_item_id(scanned_text: Optional[str]) -> Optional[str]:
    """Extracts an item id from scanned QR text (the bare id) or typed input."""
    if not scanned_text:
        return None
    candidate = scanned_text.strip().upper()
    return candidate if ITEM_ID_PATTERN.match(candidate) else None
