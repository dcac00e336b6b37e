"""
Config Module - Black Box Interface

Purpose: Bridge settings read from the process environment
Interface: get_config(), reset_config(), ConfigModule.get()
Hidden: Environment variable names, parsing, validation

Swap _load_from_env() to read settings from elsewhere (dotenv file, secret store).
"""

import os
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional


class Setting(NamedTuple):
    env: str
    default: str
    parse: Callable[[str], Any]
    description: str


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


def _origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


# Settings the bridge cannot start without (each has a usable default)
REQUIRED_SETTINGS: Dict[str, Setting] = {
    "host": Setting("BRIDGE_HOST", "127.0.0.1", str, "Bridge bind address"),
    "port": Setting(
        "BRIDGE_HTTP_PORT", "8788", int, "HTTP port, also serving the executor WebSocket"
    ),
    "log_level": Setting("LOG_LEVEL", "INFO", str.upper, "Level for the flowbridge loggers"),
    "task_timeout": Setting(
        "TASK_TIMEOUT",
        "10",
        float,
        "Seconds to wait for an executor reply before answering optimistically",
    ),
}

OPTIONAL_SETTINGS: Dict[str, Setting] = {
    "debug": Setting("DEBUG", "false", _flag, "Auto reload under uvicorn"),
    "cors_origins": Setting("CORS_ORIGINS", "*", _origins, "Comma separated allowed origins"),
}


class ConfigModule:
    """Settings for the bridge process."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._config = self._load_from_env(os.environ if environ is None else environ)
        self._check_ranges()

    def _load_from_env(self, environ: Mapping[str, str]) -> Dict[str, Any]:
        """
        Parse every known setting.

        Raises:
            ValueError: Listing each variable whose value does not parse
        """
        values: Dict[str, Any] = {}
        invalid = []
        for key, setting in {**REQUIRED_SETTINGS, **OPTIONAL_SETTINGS}.items():
            raw = environ.get(setting.env, setting.default)
            try:
                values[key] = setting.parse(raw)
            except ValueError:
                invalid.append(f"{setting.env}={raw!r}")

        if invalid:
            raise ValueError(f"Invalid configuration values: {', '.join(invalid)}")
        return values

    def _check_ranges(self) -> None:
        if self._config["task_timeout"] <= 0:
            raise ValueError("TASK_TIMEOUT must be a positive number of seconds")
        if not 0 < self._config["port"] < 65536:
            raise ValueError("BRIDGE_HTTP_PORT must be between 1 and 65535")

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Override a value at runtime (tests, embedding applications)."""
        self._config[key] = value

    def get_all(self) -> Dict[str, Any]:
        return dict(self._config)

    @staticmethod
    def get_config_schema() -> Dict[str, Dict[str, Dict[str, str]]]:
        """
        Describe the settings contract.

        Example:
            >>> ConfigModule.get_config_schema()["required"]["task_timeout"]["env"]
            'TASK_TIMEOUT'
        """
        return {
            section: {
                key: {
                    "env": setting.env,
                    "default": setting.default,
                    "description": setting.description,
                }
                for key, setting in settings.items()
            }
            for section, settings in (
                ("required", REQUIRED_SETTINGS),
                ("optional", OPTIONAL_SETTINGS),
            )
        }


_instance: Optional[ConfigModule] = None


def get_config() -> ConfigModule:
    """Return the process-wide settings, loading them on first use."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


def reset_config() -> None:
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _instance
    _instance = None


__all__ = ["ConfigModule", "Setting", "get_config", "reset_config"]
