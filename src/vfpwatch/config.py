"""Global configuration — platform paths, env vars, YAML file, defaults."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from vfpwatch.trace.models import SessionDescriptor

DEFAULT_PROVIDERS = ("Microsoft-Windows-Hyper-V-VfpExt",)


class ConfigError(ValueError):
    """Raised when configuration values are missing or out of range."""


def _default_data_dir() -> Path:
    local = os.environ.get("LOCALAPPDATA")
    if local:
        return Path(local) / "vfpwatch"
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "vfpwatch"
    return Path.home() / ".local" / "share" / "vfpwatch"


def _default_config_dir() -> Path:
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / "vfpwatch"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "vfpwatch"
    return Path.home() / ".config" / "vfpwatch"


def _default_trace_dir() -> Path:
    return _default_data_dir() / "traces"


def parse_addresses(values: Iterable[str] | str | None) -> frozenset[str]:
    """Flatten comma-delimited address lists into one set.

    >>> sorted(parse_addresses(["10.0.0.5,10.0.0.6", " 10.0.0.7 "]))
    ['10.0.0.5', '10.0.0.6', '10.0.0.7']
    """
    if values is None:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    addresses: set[str] = set()
    for value in values:
        for part in str(value).split(","):
            part = part.strip()
            if part:
                addresses.add(part)
    return frozenset(addresses)


@dataclass
class MonitorConfig:
    """Construction-time settings for a Monitor."""

    source: str = "VFP"
    session_name: str = "VfpWatch"
    poll_interval_ms: int = 2000
    max_file_size_mb: int = 250  # 0 = unbounded
    buffer_size_kb: int = 1
    buffer_count: int = 1
    trace_dir: Path = field(default_factory=_default_trace_dir)
    addresses: list[str] = field(default_factory=list)
    providers: list[str] = field(default_factory=lambda: list(DEFAULT_PROVIDERS))

    @classmethod
    def load(cls, path: str | Path | None = None) -> MonitorConfig:
        """Load config: defaults, then the YAML file, then environment variables.

        Without an explicit ``path``, ``config.yaml`` in the config dir is
        used if it exists.
        """
        config = cls()

        if path is None:
            candidate = _default_config_dir() / "config.yaml"
            if candidate.is_file():
                path = candidate
        if path is not None:
            config = config.merged(_read_yaml(Path(path)))

        env_source = os.environ.get("VFPWATCH_SOURCE")
        if env_source:
            config.source = env_source

        env_session = os.environ.get("VFPWATCH_SESSION")
        if env_session:
            config.session_name = env_session

        env_interval = os.environ.get("VFPWATCH_POLL_INTERVAL_MS")
        if env_interval:
            try:
                config.poll_interval_ms = int(env_interval)
            except ValueError as exc:
                raise ConfigError(
                    f"VFPWATCH_POLL_INTERVAL_MS must be an integer, got {env_interval!r}"
                ) from exc

        env_trace_dir = os.environ.get("VFPWATCH_TRACE_DIR")
        if env_trace_dir:
            config.trace_dir = Path(env_trace_dir)

        return config

    def merged(self, overrides: dict) -> MonitorConfig:
        """Return a copy with every non-None override applied.

        Raises ConfigError for unknown keys and values of the wrong type.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(sorted(unknown))}")

        values = {
            key: _coerce(key, value)
            for key, value in overrides.items()
            if value is not None
        }
        return dataclasses.replace(self, **values)

    def validate(self) -> None:
        if not self.session_name.strip():
            raise ConfigError("Session name must not be empty")
        if self.poll_interval_ms <= 0:
            raise ConfigError(
                f"Poll interval must be positive, got {self.poll_interval_ms}ms"
            )
        if self.max_file_size_mb < 0:
            raise ConfigError("Max file size must be >= 0 (0 = unbounded)")
        if self.buffer_size_kb < 1:
            raise ConfigError("Buffer size must be at least 1 KB")
        if self.buffer_count < 1:
            raise ConfigError("Buffer count must be at least 1")
        if not self.providers:
            raise ConfigError("At least one trace provider is required")

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @property
    def interest_set(self) -> frozenset[str]:
        return parse_addresses(self.addresses)

    @property
    def trace_file(self) -> Path:
        return self.trace_dir / f"{self.session_name}.etl"

    def descriptor(self) -> SessionDescriptor:
        return SessionDescriptor(
            name=self.session_name,
            file_path=str(self.trace_file),
            max_file_size_mb=self.max_file_size_mb,
            buffer_size_kb=self.buffer_size_kb,
            buffer_count=self.buffer_count,
            providers=tuple(self.providers),
        )


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must be a mapping")
    return {str(k).replace("-", "_"): v for k, v in data.items()}


_STR_FIELDS = ("source", "session_name")
_INT_FIELDS = ("poll_interval_ms", "max_file_size_mb", "buffer_size_kb", "buffer_count")
_LIST_FIELDS = ("addresses", "providers")


def _coerce(key: str, value: object) -> object:
    """Convert a raw override (YAML or CLI) to the field's type."""
    if key in _STR_FIELDS:
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string, got {value!r}")
        return value

    if key in _INT_FIELDS:
        # bool is an int subclass; "yes" in YAML must not become 1
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise ConfigError(f"{key} must be an integer, got {value!r}")

    if key == "trace_dir":
        if not isinstance(value, (str, Path)):
            raise ConfigError(f"trace_dir must be a path, got {value!r}")
        return Path(value)

    if key in _LIST_FIELDS:
        items = [value] if isinstance(value, str) else value
        if not isinstance(items, (list, tuple)) or not all(
            isinstance(item, str) for item in items
        ):
            raise ConfigError(f"{key} must be a string or a list of strings, got {value!r}")
        return list(items)

    return value
