"""Layered configuration service for setup-ai.

Priority (highest to lowest):
1. Environment variables (SETUP_AI_*, ANTHROPIC_MODEL), including a .env file
2. Project config (.setup-ai.toml in current directory)
3. Global config (~/.config/setup-ai/config.toml)
4. Built-in defaults
"""
from __future__ import annotations

import copy
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w
from dotenv import load_dotenv

from setup_ai.errors import ConfigError

logger = logging.getLogger("setup_ai.config")

# Default configuration values
DEFAULTS: dict[str, Any] = {
    "analysis": {
        "enabled": True,
        "backend": "claude-cli",
        "timeout": 120,
    },
    "claude_cli": {
        "executable": "claude",
        "model": "haiku",
        "allowed_tools": ["Read", "Glob", "Grep"],
    },
    "providers": {
        "anthropic": {
            "model": "claude-3-5-haiku-latest",
            "max_tokens": 2000,
        },
    },
    "session": {
        "non_interactive": False,
    },
}

BACKENDS = ("claude-cli", "anthropic")

# Mapping of env vars to config paths
ENV_VAR_MAP = {
    "SETUP_AI_NONINTERACTIVE": "session.non_interactive",
    "SETUP_AI_ANALYSIS": "analysis.enabled",
    "SETUP_AI_BACKEND": "analysis.backend",
    "SETUP_AI_TIMEOUT": "analysis.timeout",
    "SETUP_AI_CLAUDE_BIN": "claude_cli.executable",
    "SETUP_AI_MODEL": "claude_cli.model",
    "ANTHROPIC_MODEL": "providers.anthropic.model",
}

# Provider name -> environment variable holding its API key
PROVIDER_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
}


def _global_config_dir() -> Path:
    """Return the global config directory: ~/.config/setup-ai/."""
    return Path.home() / ".config" / "setup-ai"


def _global_config_path() -> Path:
    """Return the global config file path."""
    return _global_config_dir() / "config.toml"


def _project_config_path() -> Path:
    """Return the project config file path (.setup-ai.toml in cwd)."""
    return Path.cwd() / ".setup-ai.toml"


def _read_toml(path: Path) -> dict:
    """Read a TOML file, returning empty dict if missing or unreadable."""
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Failed to read %s: %s", path, e)
        return {}


def _write_toml(data: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(data, f)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base (override wins)."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_nested(data: dict, dotted_key: str, default: Any = None) -> Any:
    """Get a value from a nested dict using dotted key notation."""
    keys = dotted_key.split(".")
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def _set_nested(data: dict, dotted_key: str, value: Any) -> None:
    """Set a value in a nested dict using dotted key notation."""
    keys = dotted_key.split(".")
    current = data
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")


def _as_bool(value: Any, default: bool) -> bool:
    """Coerce a config value to bool, reading strings such as "off" from TOML."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        return default
    return bool(value)


def parse_value(raw: str) -> Any:
    """Convert a string from the environment or command line to a config value."""
    lowered = raw.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    if lowered.isdigit():
        return int(lowered)
    if "," in raw:
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


@dataclass
class ResolvedConfig:
    """Fully resolved configuration after merging all layers."""
    data: dict = field(default_factory=dict)
    global_config_path: Optional[Path] = None
    project_config_path: Optional[Path] = None

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted key notation."""
        return _get_nested(self.data, dotted_key, default)


class ConfigService:
    """Layered configuration service.

    Resolves config from multiple sources with clear precedence:
    1. Environment variables (SETUP_AI_*, ANTHROPIC_MODEL)
    2. Project config (.setup-ai.toml)
    3. Global config (~/.config/setup-ai/config.toml)
    4. Built-in defaults
    """

    def __init__(self):
        self._resolved: Optional[ResolvedConfig] = None

    def resolve(self, force: bool = False) -> ResolvedConfig:
        """Resolve the full config from all layers."""
        if self._resolved is not None and not force:
            return self._resolved

        env_file = Path.cwd() / ".env"
        if env_file.is_file():
            load_dotenv(env_file, override=False)

        merged = copy.deepcopy(DEFAULTS)

        global_path = _global_config_path()
        global_data = _read_toml(global_path)
        if global_data:
            merged = _deep_merge(merged, global_data)
            logger.debug("Loaded global config from %s", global_path)

        project_path = _project_config_path()
        project_data = _read_toml(project_path)
        if project_data:
            merged = _deep_merge(merged, project_data)
            logger.debug("Loaded project config from %s", project_path)

        for env_var, config_path in ENV_VAR_MAP.items():
            env_value = os.environ.get(env_var)
            if env_value is not None:
                _set_nested(merged, config_path, parse_value(env_value))

        self._resolved = ResolvedConfig(
            data=merged,
            global_config_path=global_path if global_path.is_file() else None,
            project_config_path=project_path if project_path.is_file() else None,
        )
        return self._resolved

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a resolved config value."""
        return self.resolve().get(dotted_key, default)

    def analysis_enabled(self) -> bool:
        return _as_bool(self.get("analysis.enabled", True), True)

    def is_non_interactive(self) -> bool:
        return _as_bool(self.get("session.non_interactive", False), False)

    def get_backend(self) -> str:
        """Get the configured synthesizer backend name."""
        backend = self.get("analysis.backend", "claude-cli")
        if backend not in BACKENDS:
            raise ConfigError(
                f"Unknown analysis backend '{backend}'. Available: {', '.join(BACKENDS)}",
                context={"key": "analysis.backend", "value": backend},
            )
        return backend

    def get_timeout(self) -> float:
        """Get the external invocation timeout in seconds."""
        value = self.get("analysis.timeout", 120)
        try:
            timeout = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"analysis.timeout must be a number, got {value!r}",
                context={"key": "analysis.timeout", "value": value},
            ) from e
        if timeout <= 0:
            raise ConfigError(
                "analysis.timeout must be positive",
                context={"key": "analysis.timeout", "value": value},
            )
        return timeout

    def get_max_tokens(self, provider: str = "anthropic") -> int:
        """Get the response token limit for a provider."""
        key = f"providers.{provider}.max_tokens"
        value = self.get(key, 2000)
        try:
            max_tokens = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"{key} must be an integer, got {value!r}",
                context={"key": key, "value": value},
            ) from e
        if max_tokens <= 0:
            raise ConfigError(f"{key} must be positive", context={"key": key, "value": value})
        return max_tokens

    def get_provider_model(self, provider: str) -> str:
        """Get the model for a provider."""
        return self.get(f"providers.{provider}.model", "")

    def get_api_key(self, provider: str) -> Optional[str]:
        """Get a provider API key from the environment (or .env file)."""
        self.resolve()
        env_var = PROVIDER_KEY_ENV.get(provider)
        if not env_var:
            return None
        return os.environ.get(env_var) or None

    def set_global(self, dotted_key: str, value: Any) -> None:
        """Set a value in the global config file."""
        if _get_nested(DEFAULTS, dotted_key) is None:
            raise ConfigError(
                f"Unknown config key '{dotted_key}'",
                context={"key": dotted_key},
            )
        path = _global_config_path()
        data = _read_toml(path)
        _set_nested(data, dotted_key, value)
        _write_toml(data, path)
        self._resolved = None
        logger.info("Set %s = %s in %s", dotted_key, value, path)

    def init_project_config(self) -> Path:
        """Create a .setup-ai.toml in the current directory with defaults."""
        path = _project_config_path()
        if path.exists():
            raise ConfigError(
                f"Project config already exists: {path}",
                context={"path": str(path)},
            )

        data = {
            "analysis": {
                "enabled": True,
                "backend": "claude-cli",
            },
            "claude_cli": {
                "model": "haiku",
            },
        }
        _write_toml(data, path)
        logger.info("Created project config: %s", path)
        return path

    def show(self) -> dict:
        """Return the resolved config and where it came from."""
        resolved = self.resolve(force=True)
        return {
            "resolved": resolved.data,
            "sources": {
                "global_config": str(resolved.global_config_path) if resolved.global_config_path else None,
                "project_config": str(resolved.project_config_path) if resolved.project_config_path else None,
            },
        }


# Module-level singleton
_config_service: Optional[ConfigService] = None


def get_config_service() -> ConfigService:
    """Get or create the global ConfigService instance."""
    global _config_service
    if _config_service is None:
        _config_service = ConfigService()
    return _config_service


def reset_config_service() -> None:
    """Reset the global config service (useful for testing)."""
    global _config_service
    _config_service = None
