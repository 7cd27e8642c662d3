"""Shared utilities: datetime and id generators."""

from talentmail.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_ms_utc,
    to_timestamp_ms,
    utc_now,
)
from talentmail.shared.utils.generators import generate_cuid, synthesize_message_id

__all__ = [
    "generate_cuid",
    "synthesize_message_id",
    "utc_now",
    "ensure_utc",
    "from_timestamp_ms_utc",
    "to_timestamp_ms",
]
