"""
SolutionCatalog - Solutions per platform key.

A platform key is the machine architecture, suffixed with ``_PC`` when the
kernel offers the page cache limit (see discovery.system).
"""

from typing import Dict, List, Optional, Tuple

from ..protocol.errors import NotFoundError, UnsupportedPlatformError

Solution = Tuple[str, ...]

_NETWEAVER = ("1275776", "1984787")
_HANA = ("1275776", "1984787", "2205917")
_BOBJ = ("1275776", "1984787", "SUSE-GUIDE-01", "SUSE-GUIDE-02")
_ASE = ("1275776", "1984787", "1680803", "Block")


def _platform_solutions(pagecache: bool) -> Dict[str, Solution]:
    app_server = _NETWEAVER + ("1557506",) if pagecache else _NETWEAVER
    return {
        "BOBJ": _BOBJ,
        "HANA": _HANA,
        "MAXDB": app_server,
        "NETWEAVER": app_server,
        "S4HANA-APPSERVER": app_server,
        "S4HANA-DBSERVER": _HANA,
        "SAP-ASE": _ASE,
    }


def builtin_solutions() -> Dict[str, Dict[str, Solution]]:
    """Built-in solutions keyed by platform key, then solution name."""
    solutions = {}
    for arch in ("x86_64", "ppc64le"):
        solutions[arch] = _platform_solutions(pagecache=False)
        solutions[arch + "_PC"] = _platform_solutions(pagecache=True)
    # ASE is not certified on POWER
    for key in ("ppc64le", "ppc64le_PC"):
        del solutions[key]["SAP-ASE"]
    return solutions


class SolutionCatalog:
    """
    Read-only solution lookup bound to one platform key.
    """

    def __init__(self, solutions: Dict[str, Dict[str, Solution]], platform_key: str):
        self._all = {key: dict(sols) for key, sols in solutions.items()}
        self.platform_key = platform_key

    @classmethod
    def builtin(cls, platform_key: str) -> "SolutionCatalog":
        return cls(builtin_solutions(), platform_key)

    @property
    def supported(self) -> bool:
        return self.platform_key in self._all

    def ensure_supported(self) -> None:
        if not self.supported:
            raise UnsupportedPlatformError(
                f"The system architecture ({self.platform_key}) is not supported.",
                platform_key=self.platform_key,
            )

    def get(self, name: str) -> Solution:
        """
        Note IDs of a solution on this platform.

        Raises:
            NotFoundError: No platform knows the solution
            UnsupportedPlatformError: Only other platforms define it
        """
        platform_solutions = self._all.get(self.platform_key, {})
        if name in platform_solutions:
            return platform_solutions[name]

        if any(name in sols for sols in self._all.values()):
            raise UnsupportedPlatformError(
                f'Solution "{name}" is not available on platform {self.platform_key}.',
                platform_key=self.platform_key,
            )
        raise NotFoundError(
            f'Solution "{name}" is not recognised by saptune.\n'
            f'Run "saptune solution list" for a complete list of supported solutions.'
        )

    def sorted_names(self, platform_key: Optional[str] = None) -> List[str]:
        return sorted(self._all.get(platform_key or self.platform_key, {}))

    def __contains__(self, name: object) -> bool:
        return name in self._all.get(self.platform_key, {})
