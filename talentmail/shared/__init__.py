"""Shared utilities: telemetry and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from talentmail.shared.utils import (
    ensure_utc,
    from_timestamp_ms_utc,
    generate_cuid,
    synthesize_message_id,
    to_timestamp_ms,
    utc_now,
)

__all__ = [
    "generate_cuid",
    "synthesize_message_id",
    "utc_now",
    "ensure_utc",
    "from_timestamp_ms_utc",
    "to_timestamp_ms",
]
