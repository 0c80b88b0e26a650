"""Global configuration — XDG paths, YAML config file, env vars, defaults."""

from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from consolewarden.errors import ConfigError, InvalidPort
from consolewarden.exitcodes import Platform

_DEFAULT_EXECUTABLES = {
    Platform.WINDOWS: "DedicatedServer.exe",
    Platform.LINUX: "DedicatedServer.x86_64",
}

_DEFAULT_CHILD_FLAGS = ("-batchmode", "-nographics", "-nodedicateddelete")


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "consolewarden"
    return Path.home() / ".config" / "consolewarden"


@dataclass
class WardenConfig:
    """Application-wide configuration."""

    config_dir: Path = field(default_factory=_default_config_dir)
    executable: Path | None = None
    default_port: int = 7777
    port_poll_interval: float = 0.2
    bind_timeout: float = 10.0
    kill_timeout: float = 5.0
    relay_host: str = "127.0.0.1"  # Loopback only
    child_flags: tuple[str, ...] = _DEFAULT_CHILD_FLAGS
    crash_dir: Path = field(default_factory=Path)

    def executable_for(self, platform: Platform) -> Path:
        """Configured executable, or the platform default relative to the cwd."""
        if self.executable is not None:
            return self.executable
        return Path(_DEFAULT_EXECUTABLES[platform])

    @classmethod
    def load(cls, path: str | Path | None = None) -> WardenConfig:
        """Load config from an optional YAML file, then environment variables."""
        config = cls()

        file_path = Path(path) if path else config.config_dir / "config.yaml"
        if path or file_path.is_file():
            config._apply_file(file_path)

        env_executable = os.environ.get("CONSOLEWARDEN_EXECUTABLE")
        if env_executable:
            config.executable = Path(env_executable)

        env_port = os.environ.get("CONSOLEWARDEN_DEFAULT_PORT")
        if env_port:
            config.default_port = _port(env_port, "CONSOLEWARDEN_DEFAULT_PORT")

        env_interval = os.environ.get("CONSOLEWARDEN_POLL_INTERVAL")
        if env_interval:
            config.port_poll_interval = _positive_float(
                env_interval, "CONSOLEWARDEN_POLL_INTERVAL"
            )

        env_crash_dir = os.environ.get("CONSOLEWARDEN_CRASH_DIR")
        if env_crash_dir:
            config.crash_dir = Path(env_crash_dir)

        return config

    def _apply_file(self, path: Path) -> None:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError("Config YAML must be a mapping")

        if "executable" in data:
            self.executable = Path(str(data["executable"]))
        if "default_port" in data:
            self.default_port = _port(data["default_port"], "default_port")
        if "port_poll_interval" in data:
            self.port_poll_interval = _positive_float(
                data["port_poll_interval"], "port_poll_interval"
            )
        if "bind_timeout" in data:
            self.bind_timeout = _positive_float(data["bind_timeout"], "bind_timeout")
        if "kill_timeout" in data:
            self.kill_timeout = _positive_float(data["kill_timeout"], "kill_timeout")
        if "relay_host" in data:
            self.relay_host = _loopback_host(data["relay_host"])
        if "child_flags" in data:
            flags = data["child_flags"]
            if isinstance(flags, str):
                flags = flags.split()
            self.child_flags = tuple(str(f) for f in flags)
        if "crash_dir" in data:
            self.crash_dir = Path(str(data["crash_dir"]))


def parse_port(value: str) -> int:
    """Parse an unsigned 16-bit port number written in ASCII digits."""
    text = value.strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidPort(value)
    port = int(text)
    if port > 65535:
        raise InvalidPort(value)
    return port


def _port(value: object, key: str) -> int:
    try:
        return parse_port(str(value))
    except InvalidPort:
        raise ConfigError(f"{key} must be a port number, got {value!r}") from None


def _loopback_host(value: object) -> str:
    host = str(value)
    if host == "localhost":
        return host
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        raise ConfigError(f"relay_host must be an IP address, got {value!r}") from None
    if not address.is_loopback:
        raise ConfigError(f"relay_host must be a loopback address, got {host}")
    return host


def _positive_float(value: object, key: str) -> float:
    try:
        number = float(str(value))
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{key} must be positive, got {number}")
    return number
