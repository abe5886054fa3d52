"""
Deterministic identifiers for tracked story elements.

Counters live inside the serialized discovery state, so a restored tracker
keeps issuing the same sequence it would have issued without the restart.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class IdSequence:
    """Monotonic per-prefix counters ("theme-1", "theme-2", "thread-1", ...)."""
    counters: Dict[str, int] = field(default_factory=dict)

    def next(self, prefix: str) -> str:
        value = self.counters.get(prefix, 0) + 1
        self.counters[prefix] = value
        return f"{prefix}-{value}"

    def peek(self, prefix: str) -> int:
        return self.counters.get(prefix, 0)

    def to_dict(self) -> Dict[str, int]:
        return dict(self.counters)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "IdSequence":
        return cls(counters={str(k): int(v) for k, v in (data or {}).items()})
