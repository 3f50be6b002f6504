# logbook_config.py
#
# Settings for the fishing log:
# - JSON settings file with defaults (config/logbook.json)
# - env overrides for the data dir / log level / log file
# - logging setup shared by every logbook_* module

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Any, Optional
from threading import Lock

_CONFIG_PATH = Path(os.getenv("FISHLOG_CONFIG", "config/logbook.json"))
_CONFIG_LOCK = Lock()

LOGGER_NAME = "fishlog"

# Reasonable defaults so a fresh install works without editing anything
_DEFAULT_CONFIG: Dict[str, Any] = {
    "weather": {
        "geocode_url": "https://nominatim.openstreetmap.org/search",
        "forecast_url": "https://api.open-meteo.com/v1/forecast",
        "timeout": 10,
        "language": "en",
        "user_agent": "fishing-log/1.0",
    },
    "autosave": {
        "delay_seconds": 1.0,
        "filename": "fishing-log-autosave.json",
    },
    "stats": {
        "top_n": 5,
    },
    "log_level": "INFO",
    "log_file": None,
}


def data_dir() -> Path:
    """Where the collection files live. FISHLOG_DATA_DIR wins over the default."""
    return Path(os.getenv("FISHLOG_DATA_DIR", "data"))


def _ensure_file_exists(path: Path) -> None:
    if not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        with path.open("w", encoding="utf-8") as f:
            json.dump(_DEFAULT_CONFIG, f, indent=2)


def _merge_defaults(cfg: Dict[str, Any]) -> Dict[str, Any]:
    # Back-fill keys that older config files don't have yet
    for key, value in _DEFAULT_CONFIG.items():
        if isinstance(value, dict):
            section = cfg.get(key)
            if not isinstance(section, dict):
                section = {}
            for sub_key, sub_value in value.items():
                section.setdefault(sub_key, sub_value)
            cfg[key] = section
        else:
            cfg.setdefault(key, value)
    return cfg


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    path = Path(path) if path is not None else _CONFIG_PATH
    with _CONFIG_LOCK:
        _ensure_file_exists(path)
        with path.open("r", encoding="utf-8") as f:
            cfg = json.load(f)
    if not isinstance(cfg, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return _merge_defaults(cfg)


def get_weather_settings(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pull the weather block out of a loaded config.

    Falls back to the defaults for anything missing or mistyped.
    """
    defaults = _DEFAULT_CONFIG["weather"]
    section = cfg.get("weather", {})
    return {
        "geocode_url": str(section.get("geocode_url", defaults["geocode_url"])),
        "forecast_url": str(section.get("forecast_url", defaults["forecast_url"])),
        "timeout": float(section.get("timeout", defaults["timeout"])),
        "language": str(section.get("language", defaults["language"])),
        "user_agent": str(section.get("user_agent", defaults["user_agent"])),
    }


def get_autosave_delay(cfg: Dict[str, Any]) -> float:
    section = cfg.get("autosave", {})
    return float(section.get("delay_seconds", _DEFAULT_CONFIG["autosave"]["delay_seconds"]))


def get_autosave_filename(cfg: Dict[str, Any]) -> str:
    section = cfg.get("autosave", {})
    return str(section.get("filename", _DEFAULT_CONFIG["autosave"]["filename"]))


def get_top_n(cfg: Dict[str, Any]) -> int:
    section = cfg.get("stats", {})
    return int(section.get("top_n", _DEFAULT_CONFIG["stats"]["top_n"]))


def get_log_file(cfg: Dict[str, Any]) -> Optional[Path]:
    """Rotating log file location. FISHLOG_LOG_FILE wins; None means console only."""
    value = os.getenv("FISHLOG_LOG_FILE") or cfg.get("log_file")
    return Path(value) if value else None


def configure_logging(level: Optional[str] = None, log_path: Optional[Path] = None) -> logging.Logger:
    """
    Set up the shared "fishlog" logger.

    FISHLOG_LOG_LEVEL beats the level passed in. A rotating file handler
    (2 MB, 3 backups) is added when log_path is given. Calling this twice
    does not stack handlers.
    """
    level_name = (os.getenv("FISHLOG_LOG_LEVEL") or level or "INFO").upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    # RotatingFileHandler is a StreamHandler too, so match the exact type
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    if log_path is not None:
        log_path = Path(log_path)
        target = os.path.abspath(log_path)
        if not any(
            isinstance(h, RotatingFileHandler) and h.baseFilename == target
            for h in logger.handlers
        ):
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                log_path,
                maxBytes=2_000_000,
                backupCount=3,
                encoding="utf-8",
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    return logger
