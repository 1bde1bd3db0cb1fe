"""
Status tiers - classify an overall score into a label.

Levels (default):
- excellent: 90+
- functional: 75-89
- limited: 60-74
- inadequate: below 60
"""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from labaudit.errors import AuditDefinitionError


@dataclass(frozen=True)
class Tier:
    """One row of a tier table."""
    min_score: int
    label: str


class TierTable:
    """Fixed threshold table; classification is a pure function of the score."""
    
    def __init__(self, tiers: Iterable[Tuple[int, str]], source: str = "<tiers>"):
        rows = sorted((Tier(int(m), label) for m, label in tiers), key=lambda t: t.min_score, reverse=True)
        if not rows:
            raise AuditDefinitionError(source, "Tier table is empty")
        if rows[-1].min_score > 0:
            raise AuditDefinitionError(source, f"Lowest tier starts at {rows[-1].min_score}, expected 0")
        self.tiers: List[Tier] = rows
    
    def classify(self, score: int) -> str:
        for tier in self.tiers:
            if score >= tier.min_score:
                return tier.label
        return self.tiers[-1].label


DEFAULT_TIERS = TierTable([
    (90, "excellent"),
    (75, "functional"),
    (60, "limited"),
    (0, "inadequate"),
])
