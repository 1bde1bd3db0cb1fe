from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

CRITICAL = "critical"
WARNING = "warning"
INFO = "info"


@dataclass(frozen=True)
class Finding:
    """Human-readable observation produced by a check."""
    message: str
    severity: str = WARNING  # critical, warning, info
    
    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a single check (0-100)."""
    name: str
    score: int
    findings: List[Finding] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: float = 0.0
    
    @property
    def critical_count(self) -> int:
        return sum(1 for f in self.findings if f.severity == CRITICAL)


@dataclass(frozen=True)
class Recommendation:
    """Follow-up action for a check scoring below its threshold."""
    priority: str  # critical, high, medium
    check: str
    message: str


@dataclass
class AuditReport:
    """Complete result of one audit run."""
    audit: str
    title: str
    category: str
    target: str
    overall_score: int
    status_tier: str
    passed: bool
    pass_threshold: int
    results: List[CheckResult] = field(default_factory=list)
    weights: dict = field(default_factory=dict)
    recommendations: List[Recommendation] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    
    @property
    def critical_count(self) -> int:
        return sum(r.critical_count for r in self.results)
