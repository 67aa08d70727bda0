"""Local durable storage for the device's item collection."""

from tortoise import fields
from ...common.models import TimestampMixin


class LocalCollection(TimestampMixin):
    # One row per storage key; the whole collection is rewritten on every change.
    key = fields.CharField(max_length=100, primary_key=True)
    payload = fields.JSONField(default=list)

    def __str__(self):
        size = len(self.payload) if isinstance(self.payload, list) else 0
        return f"LocalCollection {self.key} ({size} entries)"

    class Meta:
        table = "local_collections"
