"""
Command-line interface for nwb-ephys-format.

Create NWB electrophysiology container skeletons from a JSON session
description, inspect their metadata and check their integrity.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .codecs.timestamps import format_timestamp
from .constants import ACQUISITION_PATH, STIMULUS_PRESENTATION_PATH, Severity
from .errors import MetadataValidationError, NwbFormatError
from .metadata import load_session_metadata
from .store import H5Store
from .validator import IntegrityValidator
from .walker import SchemaWalker
from .writer import create_container

_SEVERITY_COLORS = {
    Severity.OK: "green",
    Severity.INFO: "blue",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
    Severity.FATAL: "red",
}


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """
    NWB electrophysiology format tools.

    Create, inspect and validate NWB v1 electrophysiology containers.
    """
    pass


@main.command()
@click.argument("file", type=click.Path(path_type=Path))
@click.option(
    "--metadata",
    "metadata_file",
    type=click.Path(exists=True, path_type=Path),
    help="Session metadata JSON file",
)
@click.option("--schema", type=click.Path(exists=True, path_type=Path), help="Metadata JSON schema")
@click.option("--overwrite", is_flag=True, help="Replace an existing file")
def init(
    file: Path, metadata_file: Optional[Path], schema: Optional[Path], overwrite: bool
) -> None:
    """Create a new NWB container skeleton.

    Example:

        nwb-ephys-format init session.nwb --metadata session.json

    \b
    Metadata format:
        {
          "top_level": {"session_description": "...", "session_start_time": "..."},
          "general": {"lab": "...", "experimenter": "..."},
          "subject": {"subject_id": "...", "species": "..."}
        }
    """
    if file.exists() and not overwrite:
        click.echo(
            click.style(f"{file} exists, use --overwrite to replace it", fg="red"), err=True
        )
        sys.exit(1)

    metadata = None
    if metadata_file:
        try:
            metadata = load_session_metadata(metadata_file, schema_path=schema)
        except MetadataValidationError as e:
            click.echo(
                click.style(f"Metadata validation errors in {metadata_file}:", fg="red"), err=True
            )
            for error in e.errors:
                click.echo(f"  - {error}", err=True)
            sys.exit(1)
        except (OSError, ValueError) as e:
            click.echo(click.style(f"Error reading metadata: {e}", fg="red"), err=True)
            sys.exit(1)

    top_level = create_container(file, metadata, overwrite=overwrite)
    click.echo(click.style(f"Created {file}", fg="green"))
    click.echo(f"  Identifier: {top_level.identifier}")
    click.echo(f"  NWB version: {top_level.nwb_version}")


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--compact", is_flag=True, help="Output compact JSON (no indentation)")
def inspect(file: Path, compact: bool) -> None:
    """Print container metadata and group listings as JSON."""
    try:
        with H5Store(file, mode="r") as store:
            walker = SchemaWalker(store)
            top_level = walker.read_top_level_info().to_dict(include_none=True)
            if top_level["session_start_time"] is not None:
                top_level["session_start_time"] = format_timestamp(
                    top_level["session_start_time"], walker.timestamp_digits
                )
            report = {
                "top_level": top_level,
                "general": walker.read_general_info().to_dict(include_none=True),
                "subject": walker.read_subject_info().to_dict(include_none=True),
                "devices": walker.list_devices(),
                "electrodes": walker.list_electrodes(),
                "acquisition": _list_or_empty(walker.list_acquisition_channels),
                "stimulus": _list_or_empty(walker.list_stimulus_channels),
                "stimsets": walker.list_stimsets(),
            }
    except (OSError, NwbFormatError) as e:
        click.echo(click.style(f"Error reading {file}: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(json.dumps(report, indent=None if compact else 2, default=str))


def _list_or_empty(lister) -> list[str]:
    try:
        return lister()
    except NwbFormatError:
        return []


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
def channels(file: Path) -> None:
    """List the acquisition and stimulus channels of a container."""
    try:
        with H5Store(file, mode="r") as store:
            walker = SchemaWalker(store)
            for group_path in (ACQUISITION_PATH, STIMULUS_PRESENTATION_PATH):
                click.echo(click.style(group_path, fg="cyan", bold=True))
                if not store.group_exists(group_path):
                    click.echo("  (missing)")
                    continue
                for info in walker.read_channels(group_path):
                    _echo_channel(info)
    except (OSError, NwbFormatError) as e:
        click.echo(click.style(f"Error reading {file}: {e}", fg="red"), err=True)
        sys.exit(1)


def _echo_channel(info) -> None:
    if info.identifier is None:
        click.echo(click.style(f"  {info.name}: not a channel name", fg="yellow"))
        return

    ident = info.identifier
    line = f"  {info.name}: {ident.channel_type.value} {ident.channel_number}"
    if ident.ttl_bit is not None:
        line += f" bit {ident.ttl_bit}"
    if info.provenance is not None:
        prov = info.provenance
        line += f", device {prov.device}, sweep {prov.sweep}"
    if info.unit:
        line += f", unit {info.unit} x {info.conversion}"

    color = None if info.is_consistent and info.has_data else "red"
    click.echo(click.style(line, fg=color))


@main.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output the result as JSON")
def validate(file: Path, as_json: bool) -> None:
    """Check a container for internal consistency."""
    try:
        with H5Store(file, mode="r") as store:
            result = IntegrityValidator(store).validate()
    except (OSError, NwbFormatError) as e:
        click.echo(click.style(f"Error reading {file}: {e}", fg="red"), err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        for issue in result.issues:
            click.echo(click.style(str(issue), fg=_SEVERITY_COLORS[issue.severity]))
        if result.is_valid:
            click.echo(click.style(f"✓ Valid NWB container: {file}", fg="green"))
        else:
            click.echo(click.style(f"✗ Validation failed: {file}", fg="red"), err=True)

    if not result.is_valid:
        sys.exit(1)


if __name__ == "__main__":
    main()
