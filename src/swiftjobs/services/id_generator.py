"""Prefixed ID generation utility."""

import secrets
import string
import time
import uuid


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID.

    Args:
        prefix: The prefix (e.g., "job_", "mtch_", "txn_").

    Returns:
        A string like "job_a1b2c3d4e5f6a7b8".
    """
    short_uuid = uuid.uuid4().hex[:16]
    return f"{prefix}{short_uuid}"


_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_payment_reference(prefix: str = "SWF") -> str:
    """Generate the reference a client quotes when paying offline.

    Format: ``SWF-<epoch ms>-<6 chars>-<4 hex>``; the tail comes from
    ``secrets`` so two references minted in the same millisecond still differ.
    """
    millis = int(time.time() * 1000)
    tag = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
    return f"{prefix}-{millis}-{tag}-{secrets.token_hex(2).upper()}"
