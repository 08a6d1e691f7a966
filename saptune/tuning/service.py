"""
ServiceController - systemd services and the tuned profile.

Provides:
- Service enable/start and disable/stop (systemctl)
- Running check (systemctl is-active)
- tuned active profile (read/write of tuned's active_profile file)
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..protocol.errors import ServiceError

logger = logging.getLogger(__name__)


@dataclass
class ServiceConfig:
    """Configuration for service controller."""
    systemctl: str = "systemctl"
    profile_file: str = "/etc/tuned/active_profile"
    command_timeout: int = 60  # seconds


class ServiceController:
    """
    Controls the services saptune coordinates with (tuned, sapconf).
    """

    def __init__(self, config: ServiceConfig = None):
        self.config = config or ServiceConfig()

    def _run_command(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a systemctl command."""
        cmd = [self.config.systemctl] + args
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=check,
                timeout=self.config.command_timeout,
            )
        except subprocess.CalledProcessError as e:
            raise ServiceError(
                f"Command '{' '.join(cmd)}' failed: {(e.stderr or e.stdout or '').strip()}"
            ) from e
        except (subprocess.TimeoutExpired, OSError) as e:
            raise ServiceError(f"Command '{' '.join(cmd)}' failed: {e}") from e

    def enable_start(self, service: str) -> None:
        """Enable and start a service."""
        self._run_command(["enable", service])
        self._run_command(["start", service])
        logger.info("Service %s enabled and started", service)

    def disable_stop(self, service: str) -> None:
        """Disable and stop a service."""
        self._run_command(["disable", service])
        self._run_command(["stop", service])
        logger.info("Service %s disabled and stopped", service)

    def status(self, service: str) -> str:
        """Get service status."""
        try:
            result = self._run_command(["is-active", service], check=False)
        except ServiceError as e:
            logger.debug("Cannot query %s: %s", service, e)
            return "unknown"
        return result.stdout.strip()

    def is_running(self, service: str) -> bool:
        """Check if service is running."""
        return self.status(service) == "active"

    def get_tuned_profile(self) -> str:
        """Name of the active tuned profile, empty if none."""
        try:
            return Path(self.config.profile_file).read_text().strip()
        except OSError:
            return ""

    def write_tuned_profile(self, profile: str) -> None:
        """Make ``profile`` the active tuned profile."""
        path = Path(self.config.profile_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(profile + "\n")
        except OSError as e:
            raise ServiceError(f"Failed to write tuned profile to {path}: {e}") from e
        logger.info("tuned profile set to %s", profile)
