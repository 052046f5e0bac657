# Task board server configuration
# Defaults below, overridden by config/taskboard.yaml, then TASKBOARD_* env vars,
# then CLI args.

import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import List, Optional, Dict, Any

CONFIG_PATH = Path(__file__).parent.parent / "config" / "taskboard.yaml"

# Session writers are OS threads, so only the threading server is supported
ASYNC_MODES = ("threading",)


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer: {value!r}")
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer: {value!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive")
    return value


@dataclass
class ServerConfig:
    """Runtime configuration for the task board server."""

    # Network
    host: str = "127.0.0.1"
    port: int = 3000
    cors_allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    async_mode: str = "threading"

    # Logging
    log_level: str = "INFO"

    # Initial board (YAML, {todo: [...], inProgress: [...], done: [...]})
    seed_path: Optional[str] = None

    # Validation
    max_attachment_bytes: int = 5 * 1024 * 1024

    # Undelivered messages a session may hold before it is detached
    max_pending_messages: int = 1000

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "ServerConfig":
        """Override fields from TASKBOARD_* environment variables."""
        env = os.environ if environ is None else environ

        if env.get("TASKBOARD_HOST"):
            self.host = env["TASKBOARD_HOST"]
        if env.get("TASKBOARD_PORT"):
            try:
                self.port = int(env["TASKBOARD_PORT"])
            except ValueError:
                raise ConfigError(f"TASKBOARD_PORT must be an integer: {env['TASKBOARD_PORT']!r}") from None
        if env.get("TASKBOARD_CORS_ORIGINS"):
            self.cors_allowed_origins = [
                o.strip() for o in env["TASKBOARD_CORS_ORIGINS"].split(",") if o.strip()
            ]
        if env.get("TASKBOARD_ASYNC_MODE"):
            self.async_mode = env["TASKBOARD_ASYNC_MODE"]
        if env.get("TASKBOARD_LOG_LEVEL"):
            self.log_level = env["TASKBOARD_LOG_LEVEL"]
        if env.get("TASKBOARD_SEED"):
            self.seed_path = env["TASKBOARD_SEED"]
        return self

    def validate(self) -> "ServerConfig":
        try:
            self.port = int(self.port)
        except (TypeError, ValueError):
            raise ConfigError(f"port must be an integer: {self.port!r}") from None
        if not (0 < self.port < 65536):
            raise ConfigError(f"port out of range: {self.port}")
        self.max_attachment_bytes = _positive_int("max_attachment_bytes", self.max_attachment_bytes)
        self.max_pending_messages = _positive_int("max_pending_messages", self.max_pending_messages)
        if self.async_mode not in ASYNC_MODES:
            raise ConfigError(
                f"async_mode must be one of {', '.join(ASYNC_MODES)}: {self.async_mode!r}"
            )
        if isinstance(self.cors_allowed_origins, str):
            self.cors_allowed_origins = [self.cors_allowed_origins]
        self.log_level = str(self.log_level).upper()
        if self.seed_path:
            self.seed_path = str(Path(self.seed_path).expanduser())
        return self

    def load_seed(self) -> Optional[Dict[str, Any]]:
        """Read the seed board, or None when no seed is configured."""
        if not self.seed_path:
            return None
        path = Path(self.seed_path)
        if not path.exists():
            raise ConfigError(f"Seed file not found: {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Seed file must contain a mapping of columns: {path}")
        return data

    @classmethod
    def load(cls, path: Optional[str] = None,
             environ: Optional[Dict[str, str]] = None) -> "ServerConfig":
        """Load config from YAML file, falling back to defaults, then apply env."""
        env = os.environ if environ is None else environ
        if path is None and env.get("TASKBOARD_CONFIG"):
            path = env["TASKBOARD_CONFIG"]
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                known = {f.name for f in fields(cls)}
                cfg = cls(**{k: v for k, v in data.items() if k in known})
            except (yaml.YAMLError, TypeError, AttributeError):
                cfg = cls()
        else:
            cfg = cls()
        return cfg.apply_env(env).validate()
