"""
Configuration management for saptune.

Supports:
- TOML config files
- SAPTUNE_CONFIG environment variable
- Command-line overrides
- Defaults matching a standard SUSE installation

Priority (highest to lowest):
1. Command-line arguments
2. Config file (explicit, $SAPTUNE_CONFIG, or first found in search paths)
3. Defaults
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

CONFIG_ENV_VAR = "SAPTUNE_CONFIG"

# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path("/etc/saptune/saptune.toml"),
    Path.home() / ".config" / "saptune" / "config.toml",
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class PathsConfig:
    """File system locations."""
    state_file: str = "/var/lib/saptune/state.json"
    extra_sheets: str = "/etc/saptune/extra/"   # Third-party tuning sheets
    sysconfig_dir: str = "/etc/sysconfig"       # saptune-note-<ID> customisations
    log_file: str = "/var/log/tuned/tuned.log"


@dataclass
class LockConfig:
    """State file locking."""
    timeout: float = 10.0
    poll_interval: float = 0.1


@dataclass
class ParameterConfig:
    """System parameter access."""
    read_timeout: float = 5.0


@dataclass
class DaemonConfig:
    """Services saptune coordinates with."""
    tuned_service: str = "tuned.service"
    sapconf_service: str = "sapconf.service"
    profile: str = "saptune"
    profile_file: str = "/etc/tuned/active_profile"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class Config:
    """Main configuration container."""
    paths: PathsConfig = field(default_factory=PathsConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    parameters: ParameterConfig = field(default_factory=ParameterConfig)
    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load configuration from file.

        Args:
            config_path: Explicit path to config file. If None, uses
                $SAPTUNE_CONFIG or searches default locations.

        Returns:
            Config instance with loaded values
        """
        config = cls()

        config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        return config

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Find config file in default locations."""
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load config from TOML file."""
        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        # Paths
        if "paths" in data:
            paths = data["paths"]
            config.paths = PathsConfig(
                state_file=paths.get("state_file", config.paths.state_file),
                extra_sheets=paths.get("extra_sheets", config.paths.extra_sheets),
                sysconfig_dir=paths.get("sysconfig_dir", config.paths.sysconfig_dir),
                log_file=paths.get("log_file", config.paths.log_file),
            )

        # Lock
        if "lock" in data:
            lock = data["lock"]
            config.lock = LockConfig(
                timeout=float(lock.get("timeout", config.lock.timeout)),
                poll_interval=float(lock.get("poll_interval", config.lock.poll_interval)),
            )

        # Parameters
        if "parameters" in data:
            params = data["parameters"]
            config.parameters = ParameterConfig(
                read_timeout=float(params.get("read_timeout", config.parameters.read_timeout)),
            )

        # Daemon
        if "daemon" in data:
            daemon = data["daemon"]
            config.daemon = DaemonConfig(
                tuned_service=daemon.get("tuned_service", config.daemon.tuned_service),
                sapconf_service=daemon.get("sapconf_service", config.daemon.sapconf_service),
                profile=daemon.get("profile", config.daemon.profile),
                profile_file=daemon.get("profile_file", config.daemon.profile_file),
            )

        # Logging
        if "logging" in data:
            config.logging = LoggingConfig(
                level=str(data["logging"].get("level", config.logging.level)).upper(),
            )

        return config

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping config file values).
        """
        if getattr(args, "state_file", None):
            self.paths.state_file = args.state_file
        if getattr(args, "extra_sheets", None):
            self.paths.extra_sheets = args.extra_sheets
        if getattr(args, "log_file", None):
            self.paths.log_file = args.log_file
        if getattr(args, "verbose", None):
            self.logging.level = "DEBUG"

        return self

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.paths.state_file:
            errors.append("State file path is required")
        if self.lock.timeout < 0:
            errors.append("Lock timeout must not be negative")
        if self.lock.poll_interval <= 0:
            errors.append("Lock poll interval must be positive")
        if self.parameters.read_timeout <= 0:
            errors.append("Parameter read timeout must be positive")
        if self.logging.level not in LOG_LEVELS:
            errors.append(f"Logging level must be one of {', '.join(LOG_LEVELS)}")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"State: {self.paths.state_file}")
        lines.append(f"Extra tuning sheets: {self.paths.extra_sheets}")
        lines.append(f"Log: {self.paths.log_file} ({self.logging.level})")
        lines.append(f"Lock timeout: {self.lock.timeout}s, read timeout: {self.parameters.read_timeout}s")
        lines.append(f"Daemon: {self.daemon.tuned_service} (profile {self.daemon.profile})")

        return "\n".join(lines)
