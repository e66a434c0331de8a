"""
Session metadata loading.

Reads a JSON description of a recording session, validates it against the
session metadata JSON schema and turns it into records ready for
:class:`~nwb_ephys_format.writer.NwbWriter`.

Example file::

    {
        "top_level": {
            "session_description": "Whole-cell recordings",
            "session_start_time": "2024-03-01T09:30:00Z"
        },
        "general": {"lab": "Ephys Lab", "experimenter": "J. Doe"},
        "subject": {"subject_id": "M-17", "species": "Mus musculus"}
    }
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import jsonschema

from .codecs.timestamps import parse_timestamp
from .constants import SCHEMA_PATH_ENV
from .errors import MetadataValidationError
from .records import GeneralInfo, SessionMetadata, SubjectInfo, TopLevelInfo

logger = logging.getLogger(__name__)

BUNDLED_SCHEMA_PATH = Path(__file__).parent / "schema" / "session_metadata_v1.json"


def find_schema_path(schema_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Locate the session metadata schema.

    Search order:
    1. Explicitly configured schema_path
    2. Environment variable NWB_EPHYS_SCHEMA_PATH
    3. Bundled schema in package
    """
    if schema_path is not None:
        return Path(schema_path)

    env_path = os.environ.get(SCHEMA_PATH_ENV)
    if env_path:
        env_path_obj = Path(env_path)
        if env_path_obj.exists():
            return env_path_obj
        logger.warning(f"{SCHEMA_PATH_ENV}={env_path} does not exist, using bundled schema")

    return BUNDLED_SCHEMA_PATH


def load_schema(schema_path: Optional[Union[str, Path]] = None) -> dict[str, Any]:
    path = find_schema_path(schema_path)
    with open(path) as f:
        schema = json.load(f)
    logger.debug(f"Loaded session metadata schema from {path}")
    return schema


def validate_metadata(data: Any, schema: dict[str, Any]) -> list[str]:
    """
    Validate metadata against the schema.

    Returns list of validation errors (empty if valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in validator.iter_errors(data):
        path = ".".join(str(p) for p in error.absolute_path)
        errors.append(f"{path}: {error.message}" if path else error.message)
    return errors


def metadata_from_dict(data: dict[str, Any]) -> SessionMetadata:
    """
    Build records from an already validated metadata dict.

    Raises:
        MetadataValidationError: If session_start_time text is not a calendar date
    """
    top_level = dict(data.get("top_level") or {})

    start = top_level.get("session_start_time")
    if isinstance(start, str):
        top_level["session_start_time"] = parse_timestamp(start)
        if top_level["session_start_time"] is None:
            raise MetadataValidationError(
                "Invalid session start time",
                [f"top_level.session_start_time: {start!r} is not a valid timestamp"],
            )
    elif start is not None:
        top_level["session_start_time"] = float(start)

    return SessionMetadata(
        top_level=TopLevelInfo.from_dict(top_level),
        general=GeneralInfo.from_dict(data.get("general") or {}),
        subject=SubjectInfo.from_dict(data.get("subject") or {}),
    )


def load_session_metadata(
    path: Union[str, Path],
    schema_path: Optional[Union[str, Path]] = None,
) -> SessionMetadata:
    """
    Load and validate a session metadata JSON file.

    Args:
        path: Metadata JSON file
        schema_path: Optional path to a metadata JSON schema

    Returns:
        The session metadata records

    Raises:
        MetadataValidationError: If the file does not conform to the schema
    """
    with open(path) as f:
        data = json.load(f)

    errors = validate_metadata(data, load_schema(schema_path))
    if errors:
        raise MetadataValidationError(
            f"{path} does not conform to the session metadata schema", errors
        )

    return metadata_from_dict(data)
