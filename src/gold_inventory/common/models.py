"""Models module for the app.

This module contains the common database models for the application.
It includes a TimestampMixin class that provides created_at and updated_at
fields for models, a utility function for generating KSUIDs
(K-Sortable Unique IDentifiers) and the timestamp helpers shared by the
item and order features."""

import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError
from tortoise import fields, models
from ksuid import ksuid

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_timestamp_adapter = TypeAdapter(datetime.datetime)


def generate_ksuid():
    """Generate a K-Sortable Unique IDentifier (KSUID).

    Used for storage object names, so two uploads in the same second never
    overwrite each other and listings stay in upload order.

    Returns:
        str: A string representation of the generated KSUID.
    """
    return str(ksuid.Ksuid())


def utc_now_iso() -> str:
    """Current time as an ISO-8601 string with an explicit UTC offset."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def parse_timestamp(value: Any) -> datetime.datetime:
    """Parses an ISO-8601 timestamp for comparison.

    Missing or unparseable values become the epoch, naive values are taken
    as UTC. Any number of fractional second digits is accepted. Never raises.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return EPOCH
    try:
        parsed = _timestamp_adapter.validate_python(value.strip() if isinstance(value, str) else value)
    except ValidationError:
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


class TimestampMixin(models.Model):
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        abstract = True
