"""Service for generating sortable session IDs."""

from datetime import datetime

from ulid import ULID


def generate_session_id(kind: str, started_at: datetime | None = None) -> str:
    """
    Generate a session ID using ULID, e.g. ``review_01HV...``.

    When started_at is given, the ULID timestamp matches it, so IDs sort
    in session start order.
    """
    ulid = ULID.from_datetime(started_at) if started_at else ULID()
    return f"{kind}_{ulid}"


def generate_review_session_id(started_at: datetime | None = None) -> str:
    return generate_session_id("review", started_at)


def generate_quiz_session_id(started_at: datetime | None = None) -> str:
    return generate_session_id("quiz", started_at)
