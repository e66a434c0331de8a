"""
Container identifier generation.

Containers written without an explicit ``identifier`` get a ULID whose
time component is the session start, so identifiers sort by recording
session rather than by file creation.

Example:
    01HQ4ZP3M8X0V8S4B7N2K5D6TC
"""

from typing import Optional

from ulid import ULID


def generate_identifier(session_start_time: Optional[float] = None) -> str:
    """
    Generate a container identifier.

    Args:
        session_start_time: Session start in seconds since the epoch. The
                            current time is used when None or before the
                            epoch, which a ULID cannot represent.

    Returns:
        26-character uppercase ULID string
    """
    if session_start_time is None or session_start_time < 0:
        return str(ULID())
    return str(ULID.from_timestamp(session_start_time))

