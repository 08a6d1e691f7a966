"""
Mock service controller for CLI tests.
"""

from typing import List, Optional, Set

from saptune.protocol.errors import ServiceError


class MockServiceController:
    """Records service calls instead of running systemctl."""

    def __init__(self, running: Optional[Set[str]] = None, profile: str = ""):
        self.running: Set[str] = set(running or ())
        self.profile = profile
        self.calls: List[str] = []
        self.failing: Set[str] = set()

    def _check(self, call: str, service: str) -> None:
        self.calls.append(f"{call} {service}")
        if service in self.failing:
            raise ServiceError(f"Command 'systemctl {call} {service}' failed: unit not found")

    def enable_start(self, service: str) -> None:
        self._check("enable_start", service)
        self.running.add(service)

    def disable_stop(self, service: str) -> None:
        self._check("disable_stop", service)
        self.running.discard(service)

    def is_running(self, service: str) -> bool:
        return service in self.running

    def get_tuned_profile(self) -> str:
        return self.profile

    def write_tuned_profile(self, profile: str) -> None:
        self.profile = profile
