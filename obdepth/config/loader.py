"""TOML config loader with environment variable overrides."""

from __future__ import annotations

import os

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]
from pathlib import Path
from typing import Any

from obdepth.models.depth import Pair

CACHE_KEYINGS = ("date_range", "market_date_range")


class ConfigError(Exception):
    """Raised when config loading or validation fails."""


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base, returning a new dict."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], prefix: str = "OBDEPTH") -> dict[str, Any]:
    """Apply environment variable overrides.

    Env var naming: OBDEPTH__section__key=value (double underscore separator).
    Nested keys: OBDEPTH__retry__max_attempts=10
    """
    result = dict(config)
    env_prefix = f"{prefix}__"

    for env_key, env_value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        parts = env_key[len(env_prefix) :].lower().split("__")
        target = result
        for part in parts[:-1]:
            if part not in target:
                target[part] = {}
            if isinstance(target[part], dict):
                target = target[part]
            else:
                break
        else:
            final_key = parts[-1]
            target[final_key] = _coerce_value(env_value)

    return result


def _coerce_value(value: str) -> Any:
    """Coerce string env var value to appropriate Python type.

    Numeric conversion is attempted BEFORE boolean to avoid "0"/"1"
    being interpreted as False/True when they should be integers.
    """
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    return value


class ConfigLoader:
    """Load and merge TOML config files with env var overrides."""

    def __init__(
        self,
        config_dir: str | Path = "config",
        env: str | None = None,
    ) -> None:
        self._config_dir = Path(config_dir)
        self._env = env or os.environ.get("OBDEPTH_ENV", "development")
        self._config: dict[str, Any] = {}

    def load(self) -> dict[str, Any]:
        """Load config: default.toml → {env}.toml → env vars."""
        default_path = self._config_dir / "default.toml"
        if not default_path.exists():
            msg = f"Default config not found: {default_path}"
            raise ConfigError(msg)

        self._config = self._load_toml(default_path)

        env_path = self._config_dir / f"{self._env}.toml"
        if env_path.exists():
            env_config = self._load_toml(env_path)
            self._config = _deep_merge(self._config, env_config)

        self._config = _apply_env_overrides(self._config)
        return self._config

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted notation: 'retry.max_attempts'."""
        if not self._config:
            self.load()

        parts = dotted_key.split(".")
        current: Any = self._config
        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def get_list(self, dotted_key: str, default: list[str] | None = None) -> list[str] | None:
        """Get a list value; a comma separated string (env override) is split."""
        value = self.get(dotted_key)
        if value is None:
            return default
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return [str(v) for v in value]

    def require(self, dotted_key: str) -> Any:
        """Get a config value, raising ConfigError if missing."""
        value = self.get(dotted_key)
        if value is None:
            msg = f"Required config key missing: {dotted_key}"
            raise ConfigError(msg)
        return value

    def validate_keys(self, required_keys: list[str]) -> None:
        """Validate that all required keys exist."""
        missing = [k for k in required_keys if self.get(k) is None]
        if missing:
            msg = f"Missing required config keys: {', '.join(missing)}"
            raise ConfigError(msg)

    def validate_ranges(self) -> None:
        """Validate config values the loader depends on.

        Raises:
            ConfigError: If any fetch/retry/cache parameter is out of range.
        """
        if not self._config:
            self.load()

        errors: list[str] = []

        max_attempts = self.get("retry.max_attempts")
        if max_attempts is not None and max_attempts < 1:
            errors.append(f"retry.max_attempts must be >= 1, got {max_attempts}")

        for key in ("retry.initial_backoff_seconds", "retry.max_backoff_seconds"):
            value = self.get(key)
            if value is not None and value < 0:
                errors.append(f"{key} must be >= 0, got {value}")

        multiplier = self.get("retry.backoff_multiplier")
        if multiplier is not None and multiplier < 1:
            errors.append(f"retry.backoff_multiplier must be >= 1, got {multiplier}")

        concurrency = self.get("fetch.max_concurrent_days")
        if concurrency is not None and concurrency < 1:
            errors.append(f"fetch.max_concurrent_days must be >= 1, got {concurrency}")

        timeout = self.get("source.request_timeout_seconds")
        if timeout is not None and timeout <= 0:
            errors.append(f"source.request_timeout_seconds must be > 0, got {timeout}")

        keying = self.get("cache.keying")
        if keying is not None and keying not in CACHE_KEYINGS:
            errors.append(f"cache.keying must be one of {CACHE_KEYINGS}, got {keying!r}")

        default_pairs = self.get_list("pairs.default")
        if default_pairs is not None:
            invalid = [p for p in default_pairs if not Pair(p).is_valid]
            if invalid:
                errors.append(f"pairs.default contains invalid pairs: {invalid}")

        if errors:
            msg = "Config validation failed:\n  " + "\n  ".join(errors)
            raise ConfigError(msg)

    @property
    def config(self) -> dict[str, Any]:
        if not self._config:
            self.load()
        return self._config

    @staticmethod
    def _load_toml(path: Path) -> dict[str, Any]:
        with open(path, "rb") as f:
            return tomllib.load(f)
