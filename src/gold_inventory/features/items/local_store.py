import logging
from typing import List

from pydantic import ValidationError

from ...core.config import ITEMS_STORAGE_KEY
from .models import LocalCollection
from .schemas import Item

logger = logging.getLogger(__name__)


async def load_items(key: str = ITEMS_STORAGE_KEY) -> List[Item]:
    """
    Loads the device's item collection.

    A missing key gives an empty collection, and so does a payload that is
    not a list. Individual entries that cannot be read are skipped.

    Args:
        key: Storage key of the collection.

    Returns:
        The stored items, in stored order.
    """
    collection = await LocalCollection.get_or_none(key=key)
    if collection is None or not isinstance(collection.payload, list):
        return []
    items = []
    for entry in collection.payload:
        try:
            items.append(Item.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable local item entry: {e}")
    return items


async def save_items(items: List[Item], key: str = ITEMS_STORAGE_KEY) -> None:
    """Overwrites the stored collection with `items`."""
    payload = [item.model_dump(mode="json") for item in items]
    await LocalCollection.update_or_create(key=key, defaults={"payload": payload})
    logger.debug(f"Persisted {len(payload)} local items under '{key}'")


async def clear_items(key: str = ITEMS_STORAGE_KEY) -> None:
    await LocalCollection.filter(key=key).delete()
