"""
Note model.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Tuple

from .parameters import Parameter, ExpectedValue


@dataclass(frozen=True)
class Note:
    """A named bundle of parameter settings. Immutable once loaded."""
    id: str
    name: str
    parameters: Tuple[Parameter, ...] = field(default_factory=tuple)
    internal: bool = False              # Helper notes hidden from listings

    def with_overrides(self, overrides: Dict[str, ExpectedValue]) -> "Note":
        """Copy with expected values replaced, keyed by parameter name."""
        if not overrides:
            return self
        parameters = tuple(
            p.with_expected(overrides[p.name]) if p.name in overrides else p
            for p in self.parameters
        )
        return replace(self, parameters=parameters)
