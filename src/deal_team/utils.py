"""
Id helpers.

uuid7() wraps fastuuid.uuid7() to return a stdlib uuid.UUID instance.
fastuuid.UUID is a Rust-backed type that is NOT isinstance-compatible with
uuid.UUID, so we roundtrip through the string representation.
"""

import fastuuid
from uuid import UUID


def uuid7() -> UUID:
    """Generate a UUIDv7 (time-sortable) as a stdlib uuid.UUID."""
    return UUID(str(fastuuid.uuid7()))


def new_id() -> str:
    """String id for log entries, messages, deals and deliverables."""
    return str(uuid7())


def generate_trace_id() -> str:
    """Short uppercase id grouping the steps of one pipeline run."""
    # The tail of a UUIDv7 is random; the head is the timestamp.
    return uuid7().hex[-7:].upper()
