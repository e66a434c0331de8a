"""Test fixtures for nwb-ephys-format tests."""

from .containers import (
    DEVICE,
    FIXED_NOW,
    SESSION_GENERAL,
    SESSION_SUBJECT,
    SESSION_TOP_LEVEL,
    create_session_file,
    fixed_clock,
)

__all__ = [
    "DEVICE",
    "FIXED_NOW",
    "SESSION_GENERAL",
    "SESSION_SUBJECT",
    "SESSION_TOP_LEVEL",
    "create_session_file",
    "fixed_clock",
]
