"""
Configuration management for audiostash.

This module holds the policy constants of the conversion pipeline
(upload root, MP3 bitrate, waveform resolution) as frozen dataclasses,
and a loader that reads them from a config.yaml file.

The pipeline itself never reads configuration from disk: it receives a
ConversionConfig in its constructor. load_config() is only used by the
command line entry point.

Configuration File Location:
    An explicit path can be passed to load_config(). Otherwise config.yaml
    in the current working directory is used if present, and the defaults
    apply when it is not.

Environment:
    A .env file is loaded if present. AUDIOSTASH_UPLOAD_ROOT overrides
    storage.upload_root.

Example config.yaml:
    storage:
      upload_root: "./uploads"

    encoder:
      bitrate: 128

    waveform:
      precision: 4
      width: 44100

    logging:
      directory: null   # defaults to <upload_root>/logs
      verbose: false
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from audiostash.core.exceptions import ConfigError


# Default configuration file name (looked up in the current working directory)
CONFIG_FILENAME = "config.yaml"

# Environment variable overriding storage.upload_root
UPLOAD_ROOT_ENV = "AUDIOSTASH_UPLOAD_ROOT"

# Bitrates accepted by the LAME encoder, in kbps
ALLOWED_BITRATES = (
    8, 16, 24, 32, 40, 48, 56, 64, 80, 96,
    112, 128, 144, 160, 192, 224, 256, 320,
)

DEFAULT_BITRATE = 128
DEFAULT_WAVEFORM_PRECISION = 4
DEFAULT_WAVEFORM_WIDTH = 44100


@dataclass(frozen=True)
class StorageConfig:
    """
    Artifact storage configuration.

    Attributes:
        upload_root: Absolute path of the directory that receives uploads and
                     holds every content-addressed artifact. Created on demand
                     by ArtifactStore.
    """
    upload_root: Path


@dataclass(frozen=True)
class EncoderConfig:
    """
    MP3 encoding policy.

    Attributes:
        bitrate: Constant bitrate in kbps, one of ALLOWED_BITRATES.
    """
    bitrate: int = DEFAULT_BITRATE


@dataclass(frozen=True)
class WaveformConfig:
    """
    Waveform extraction policy.

    Attributes:
        precision: Decimal places kept for each normalized peak value.
        width: Maximum number of peaks (one per horizontal pixel).
    """
    precision: int = DEFAULT_WAVEFORM_PRECISION
    width: int = DEFAULT_WAVEFORM_WIDTH


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging output configuration.

    Attributes:
        directory: Where log files are written. None means <upload_root>/logs.
        verbose: Show DEBUG messages on the console.
    """
    directory: Path | None = None
    verbose: bool = False


@dataclass(frozen=True)
class ConversionConfig:
    """
    Complete application configuration.

    Created by load_config() or default_config() and passed to
    ConversionPipeline. Treated as immutable.

    Example:
        config = load_config()
        print(f"Uploads in: {config.storage.upload_root}")
        print(f"Encoding at {config.encoder.bitrate} kbps")
    """
    storage: StorageConfig
    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    waveform: WaveformConfig = field(default_factory=WaveformConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def log_directory(self) -> Path:
        """Resolved log directory."""
        return self.logging.directory or self.storage.upload_root / "logs"


def default_config(upload_root: Path | str) -> ConversionConfig:
    """
    Build a configuration with default policy for the given upload root.

    Args:
        upload_root: Directory for uploads and artifacts.

    Returns:
        ConversionConfig with default encoder, waveform and logging settings.
    """
    return ConversionConfig(
        storage=StorageConfig(upload_root=Path(upload_root).expanduser().resolve())
    )


def load_config(config_path: Path | None = None) -> ConversionConfig:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to the config file. If None,
                     config.yaml in the current directory is used when it
                     exists, otherwise defaults apply.

    Returns:
        ConversionConfig: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is missing, the file cannot be
                     read, has invalid YAML syntax, or contains invalid values.

    Behavior:
        1. Load .env (if present)
        2. Locate and parse the YAML file
        3. Parse each section, applying defaults for missing ones
        4. Resolve relative paths against the config file's directory
        5. Apply the AUDIOSTASH_UPLOAD_ROOT override
    """
    load_dotenv()

    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    base_dir = config_path.parent.resolve()

    storage = _parse_storage_config(_section(raw_config, "storage"), base_dir)
    encoder = _parse_encoder_config(_section(raw_config, "encoder"))
    waveform = _parse_waveform_config(_section(raw_config, "waveform"))
    logging_config = _parse_logging_config(_section(raw_config, "logging"), base_dir)

    return ConversionConfig(
        storage=storage,
        encoder=encoder,
        waveform=waveform,
        logging=logging_config,
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    """Read the config file and return its top-level mapping."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file is a valid "all defaults" configuration
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any] | None:
    """Return an optional section, checking that it is a mapping."""
    section = raw_config.get(name)
    if section is not None and not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _resolve_path(raw: str, base_dir: Path) -> Path:
    path = Path(raw.strip()).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _parse_storage_config(
    storage_section: dict[str, Any] | None,
    base_dir: Path
) -> StorageConfig:
    """
    Parse the storage section.

    Default upload root: <config dir>/uploads. The environment override
    wins over the file.

    Raises:
        ConfigError: If upload_root is present but not a non-empty string.
    """
    raw_root: Any = "uploads"

    if storage_section is not None and "upload_root" in storage_section:
        raw_root = storage_section["upload_root"]
        if not isinstance(raw_root, str) or not raw_root.strip():
            raise ConfigError(
                "'storage.upload_root' must be a non-empty string",
                details={"field": "storage.upload_root"}
            )

    env_root = os.environ.get(UPLOAD_ROOT_ENV)
    if env_root and env_root.strip():
        raw_root = env_root

    return StorageConfig(upload_root=_resolve_path(raw_root, base_dir))


def _parse_encoder_config(encoder_section: dict[str, Any] | None) -> EncoderConfig:
    """
    Parse the encoder section.

    Raises:
        ConfigError: If bitrate is not one of ALLOWED_BITRATES.
    """
    if encoder_section is None:
        return EncoderConfig()

    bitrate = encoder_section.get("bitrate", DEFAULT_BITRATE)
    # bool is an int subclass; reject it explicitly
    if isinstance(bitrate, bool) or bitrate not in ALLOWED_BITRATES:
        raise ConfigError(
            f"'encoder.bitrate' must be one of {', '.join(map(str, ALLOWED_BITRATES))}",
            details={"field": "encoder.bitrate", "value": bitrate}
        )

    return EncoderConfig(bitrate=bitrate)


def _parse_waveform_config(waveform_section: dict[str, Any] | None) -> WaveformConfig:
    """
    Parse the waveform section.

    Raises:
        ConfigError: If precision is negative or width is not positive.
    """
    if waveform_section is None:
        return WaveformConfig()

    precision = waveform_section.get("precision", DEFAULT_WAVEFORM_PRECISION)
    if isinstance(precision, bool) or not isinstance(precision, int) or precision < 0:
        raise ConfigError(
            "'waveform.precision' must be a non-negative integer",
            details={"field": "waveform.precision", "value": precision}
        )

    width = waveform_section.get("width", DEFAULT_WAVEFORM_WIDTH)
    if isinstance(width, bool) or not isinstance(width, int) or width < 1:
        raise ConfigError(
            "'waveform.width' must be a positive integer",
            details={"field": "waveform.width", "value": width}
        )

    return WaveformConfig(precision=precision, width=width)


def _parse_logging_config(
    logging_section: dict[str, Any] | None,
    base_dir: Path
) -> LoggingConfig:
    if logging_section is None:
        return LoggingConfig()

    directory = None
    raw_dir = logging_section.get("directory")
    if raw_dir is not None:
        if not isinstance(raw_dir, str) or not raw_dir.strip():
            raise ConfigError(
                "'logging.directory' must be a non-empty string or null",
                details={"field": "logging.directory"}
            )
        directory = _resolve_path(raw_dir, base_dir)

    verbose = logging_section.get("verbose", False)
    if not isinstance(verbose, bool):
        raise ConfigError(
            "'logging.verbose' must be true or false",
            details={"field": "logging.verbose", "value": verbose}
        )

    return LoggingConfig(directory=directory, verbose=verbose)
