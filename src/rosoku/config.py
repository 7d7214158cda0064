from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
import sys
import tomllib
from typing import Any, ClassVar, TypeVar

from loguru import logger

from rosoku.models import Exchange, MarketType

# --- Constants ---
APP_NAME = "rosoku"
# Use a platform-agnostic user config directory
if sys.platform == "win32":
    CONFIG_DIR = Path.home() / "AppData" / "Roaming" / APP_NAME
else:
    CONFIG_DIR = Path.home() / ".config" / APP_NAME

CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG_TEMPLATE = """\
# rosoku configuration file
# Uncomment and edit any value to override the default.

[general]
# log_level_console = "INFO"
# log_level_file = "DEBUG"
# file_logging = false
# log_directory = "~/.config/rosoku/logs"

[http]
# timeout_seconds = 20.0
# http2 = true
# follow_redirects = true

[retrieval]
# default_exchange = "binance"
# default_market_type = "spot"
# widen_window = false
"""

# --- Dataclass Models for Settings ---
T = TypeVar("T")


@dataclass
class GeneralSettings:
    """Logging settings."""

    log_level_console: str = "INFO"
    log_level_file: str = "DEBUG"
    file_logging: bool = False
    log_directory: str = str(CONFIG_DIR / "logs")


@dataclass
class HTTPSettings:
    """Settings for the shared HTTP client."""

    timeout_seconds: float = 20.0
    http2: bool = True
    follow_redirects: bool = True


@dataclass
class RetrievalSettings:
    """Defaults applied when the command line does not say otherwise."""

    default_exchange: str = "binance"
    default_market_type: str = "spot"
    # Grow every page request by 1 ms on each side.
    widen_window: bool = False


@dataclass
class Settings:
    """Root container for all application settings."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    http: HTTPSettings = field(default_factory=HTTPSettings)
    retrieval: RetrievalSettings = field(default_factory=RetrievalSettings)

    _instance: ClassVar["Settings | None"] = None

    @classmethod
    def get_instance(cls) -> "Settings":
        """Returns the singleton instance, loading it on first access."""
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance


def _update_dataclass(dc_instance: T, data: dict[str, Any]) -> T:
    """Recursively updates a dataclass instance from a dictionary.

    Unknown keys are logged and ignored so that a typo never aborts a run.
    """
    known = {f.name for f in fields(dc_instance)}  # type: ignore[arg-type]
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown configuration key '{key}'.")
            continue
        current = getattr(dc_instance, key)
        if is_dataclass(current):
            if isinstance(value, dict):
                _update_dataclass(current, value)
            else:
                logger.warning(f"Expected a table for '{key}', got {value!r}.")
        else:
            setattr(dc_instance, key, value)
    return dc_instance


def _validate_retrieval(retrieval: RetrievalSettings) -> None:
    """Resets default exchange/market type values that name nothing known."""
    defaults = RetrievalSettings()
    if retrieval.default_exchange not in {e.value for e in Exchange}:
        logger.warning(
            f"Unknown default_exchange '{retrieval.default_exchange}'; "
            f"using '{defaults.default_exchange}'."
        )
        retrieval.default_exchange = defaults.default_exchange
    if retrieval.default_market_type not in {m.value for m in MarketType}:
        logger.warning(
            f"Unknown default_market_type '{retrieval.default_market_type}'; "
            f"using '{defaults.default_market_type}'."
        )
        retrieval.default_market_type = defaults.default_market_type


def load_config(path: Path = CONFIG_FILE) -> Settings:
    """Loads settings from a TOML file, merging them with defaults.

    If the config file does not exist, a commented template is created and
    the defaults are returned.

    Args:
        path: The path to the configuration file.

    Returns:
        A populated Settings object.
    """
    settings_obj = Settings()
    logger.debug(f"Loading configuration from '{path}'...")

    if not path.exists():
        logger.info(f"Configuration file not found. Creating default at '{path}'.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to create default config file: {e}")
        return settings_obj

    try:
        with path.open("rb") as f:
            user_config = tomllib.load(f)
        _update_dataclass(settings_obj, user_config)
        _validate_retrieval(settings_obj.retrieval)
        logger.debug("Successfully loaded user configuration.")
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Error decoding TOML from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
    except OSError as e:
        logger.error(f"Could not read configuration file '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")

    return settings_obj
