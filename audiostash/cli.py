"""
Command-line interface for audiostash.

This module implements the CLI using Click, with rich-click for help
formatting and colours.

Commands:
    audiostash convert <file>...        Convert files into the upload root
    audiostash status <hash>            Show the artifacts stored for a hash
    audiostash duration <file.mp3>      Print the duration of an MP3 file

Options (convert, status):
    --config <path>                     Path to config.yaml
    --root <dir>                        Override the upload root

Usage:
    # Convert two files and print one JSON result per file
    audiostash convert song.wav other.flac

    # Check whether a hash is fully processed
    audiostash status 3a7bd3e2360a3d29eea436fcfb7e44c735d117c42d1c1835420b6b9942dd4f1b

Exit Codes:
    0 - Success
    1 - At least one conversion failed, or the command failed
    2 - Configuration error
    130 - Interrupted by user
"""

import dataclasses
import json
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional

import rich_click as click
from tqdm import tqdm

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.MAX_WIDTH = 100

from audiostash import __version__
from audiostash.convert.metadata import calculate_duration
from audiostash.convert.waveform import decode_waveform
from audiostash.core import (
    ArtifactStore,
    ConfigError,
    ConversionConfig,
    MetadataError,
    StorageConfig,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from audiostash.pipeline import ConversionPipeline, ConversionStatus, UploadedFile

logger = get_logger(__name__)


CONFIG_OPTION = click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)

ROOT_OPTION = click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Upload root directory (overrides the configuration)"
)


@click.group()
@click.version_option(__version__, prog_name="audiostash")
def cli() -> None:
    """
    audiostash: content-addressed audio conversion.

    Uploaded audio is identified by the SHA-256 of its bytes, encoded to MP3
    and given a waveform. Identical content is converted only once.
    """


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@CONFIG_OPTION
@ROOT_OPTION
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def convert(
    files: tuple[Path, ...],
    config_path: Optional[Path],
    root: Optional[Path],
    verbose: bool
) -> None:
    """
    Convert audio files and print one JSON result per file.

    Each file is copied into the upload root first, the way the upload
    layer would store it; the original is left untouched.
    """
    config = _load_configuration(config_path, root)

    setup_logging(config.log_directory, verbose=verbose or config.logging.verbose)
    logger.info(f"audiostash {__version__} starting, upload root: {config.storage.upload_root}")

    failed = 0
    try:
        pipeline = ConversionPipeline.from_config(config)

        for source in tqdm(files, desc="Converting", unit="file", disable=len(files) < 2):
            upload = _receive(source, pipeline.store.root)
            result = pipeline.convert_sync(upload)
            if result.status is ConversionStatus.FAILURE:
                failed += 1
            tqdm.write(json.dumps(result.to_dict(), indent=2))

        logger.info(f"Done: {len(files) - failed}/{len(files)} converted")

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()

    if failed:
        sys.exit(1)


@cli.command()
@click.argument("content_hash", metavar="HASH")
@CONFIG_OPTION
@ROOT_OPTION
def status(content_hash: str, config_path: Optional[Path], root: Optional[Path]) -> None:
    """Show the stored artifacts for a content hash."""
    config = _load_configuration(config_path, root)
    store = ArtifactStore(config.storage.upload_root, create=False)

    try:
        artifacts = store.artifacts(content_hash.strip().lower())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="HASH")

    complete = store.exists(artifacts.identity)

    click.echo(f"hash:      {artifacts.identity}")
    click.echo(f"encoded:   {artifacts.encoded_path} ({_presence(artifacts.encoded_path)})")
    click.echo(f"waveform:  {artifacts.waveform_path} ({_presence(artifacts.waveform_path)})")
    if artifacts.waveform_path.is_file():
        try:
            peaks = decode_waveform(artifacts.waveform_path.read_bytes())
        except ValueError as e:
            click.echo(f"peaks:     corrupt ({e})")
            complete = False
        else:
            click.echo(f"peaks:     {peaks.size}")
    click.echo(f"complete:  {'yes' if complete else 'no'}")

    if not complete:
        sys.exit(1)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def duration(file: Path) -> None:
    """Print the duration of an MP3 file in seconds."""
    try:
        seconds = calculate_duration(file)
    except MetadataError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    minutes, rest = divmod(seconds, 60)
    click.echo(f"{seconds:.3f}s ({int(minutes)}:{rest:06.3f})")


def _load_configuration(config_path: Path | None, root: Path | None) -> ConversionConfig:
    """
    Load configuration, applying the --root override.

    Exits with code 2 on configuration errors.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(2)

    if root is not None:
        config = dataclasses.replace(
            config,
            storage=StorageConfig(upload_root=root.expanduser().resolve())
        )

    return config


def _receive(source: Path, upload_root: Path) -> UploadedFile:
    """
    Copy a file into the upload root under a temporary name.

    Stands in for the HTTP upload layer, which writes request bodies
    to the upload root before handing them to the pipeline.
    """
    fd, temp_name = tempfile.mkstemp(prefix="upload_", dir=upload_root)
    os.close(fd)
    shutil.copyfile(source, temp_name)
    return UploadedFile(path=Path(temp_name), display_name=source.name)


def _presence(path: Path) -> str:
    return "present" if path.is_file() else "missing"


def main() -> None:
    """Entry point for the `audiostash` console script."""
    cli()


if __name__ == "__main__":
    main()
