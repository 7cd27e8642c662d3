"""ID generators: CUID primary keys and synthesized provider message ids."""

import secrets

from cuid2 import cuid_wrapper

from talentmail.shared.utils.datetime import utc_now, to_timestamp_ms

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2)."""
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def synthesize_message_id(prefix: str) -> str:
    """Build `<prefix>_<epoch ms>_<random>` for transports that return no message id."""
    return f"{prefix}_{to_timestamp_ms(utc_now())}_{secrets.token_hex(6)}"
