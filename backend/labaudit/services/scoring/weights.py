"""
Weight tables - map each check name to its integer weight.

Weights are combined by normalizing over the actual sum, so a table that does
not add up to 100 still yields a proper weighted average. Such tables are
accepted but logged, since most audits are written to sum to exactly 100.
"""

from typing import Dict, Iterable, Tuple

from labaudit.errors import AuditDefinitionError
from labaudit.logger import logger


class WeightTable:
    """Ordered mapping of check name -> weight."""
    
    def __init__(self, weights: Iterable[Tuple[str, int]], source: str = "<weights>"):
        self._weights: Dict[str, int] = {}
        for name, weight in weights:
            if name in self._weights:
                raise AuditDefinitionError(source, f"Duplicate check name: {name}")
            if weight < 0:
                raise AuditDefinitionError(source, f"Negative weight for {name}: {weight}")
            self._weights[name] = weight
        
        if self.total == 0:
            raise AuditDefinitionError(source, "Weights sum to 0")
        
        if self.total != 100:
            logger.warning(f"{source}: weights sum to {self.total}, normalizing by the actual sum")
    
    @property
    def total(self) -> int:
        return sum(self._weights.values())
    
    def get(self, name: str) -> int:
        return self._weights.get(name, 0)
    
    def __contains__(self, name: str) -> bool:
        return name in self._weights
    
    def __iter__(self):
        return iter(self._weights.items())
    
    def __len__(self) -> int:
        return len(self._weights)
    
    def as_dict(self) -> Dict[str, int]:
        return dict(self._weights)
