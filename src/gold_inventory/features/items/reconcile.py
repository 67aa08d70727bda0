"""Last-write-wins merge of the local item collection with a remote snapshot.

Everything here is pure: no storage, no network. The side-effecting pull and
push wrappers live in `service`.
"""

from typing import Dict, Iterable, List

from ...common.models import parse_timestamp
from .schemas import Item


def sort_key(item: Item):
    return (parse_timestamp(item.updated_at), item.item_id)


def ordered(items: Iterable[Item]) -> List[Item]:
    """Newest `updated_at` first; equal timestamps by item id, descending."""
    return sorted(items, key=sort_key, reverse=True)


def remote_wins(local: Item, remote: Item) -> bool:
    # Ties go to the remote copy: a local write that was pushed already
    # carries the same timestamp remotely.
    return parse_timestamp(remote.updated_at) >= parse_timestamp(local.updated_at)


def reconcile(local: Iterable[Item], remote: Iterable[Item]) -> List[Item]:
    """Merges a remote page of items into the local collection.

    Items are keyed by `item_id`. A remote item unknown locally is added; a
    known one replaces the local copy when its `updated_at` is the same or
    newer. Applying the same remote snapshot twice gives the same result.

    Args:
        local: The full local collection.
        remote: The most recently updated remote rows, already converted.

    Returns:
        The merged collection in `ordered` order.
    """
    by_id: Dict[str, Item] = {item.item_id: item for item in local}
    for remote_item in remote:
        existing = by_id.get(remote_item.item_id)
        if existing is None or remote_wins(existing, remote_item):
            by_id[remote_item.item_id] = remote_item
    return ordered(by_id.values())


def upsert_local(items: Iterable[Item], item: Item) -> List[Item]:
    """Puts `item` first, dropping any earlier entry with the same id."""
    return [item] + [x for x in items if x.item_id != item.item_id]


def replace_local(items: Iterable[Item], item: Item) -> List[Item]:
    """Swaps the entry with the same id in place, keeping collection order."""
    return [item if x.item_id == item.item_id else x for x in items]


def remove_local(items: Iterable[Item], item_id: str) -> List[Item]:
    return [x for x in items if x.item_id != item_id]


def status_counts(items: Iterable[Item]) -> Dict[str, int]:
    counts = {"IN_STOCK": 0, "SOLD": 0, "RETURNED": 0}
    for item in items:
        counts[item.status.value] = counts.get(item.status.value, 0) + 1
    return counts
