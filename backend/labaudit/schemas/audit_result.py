"""
Pydantic schemas for audit reports (API responses and JSON artifacts).
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from labaudit.services.scoring.engine import round_half_up
from labaudit.services.scoring.models import AuditReport


class FindingOut(BaseModel):
    """Single finding."""
    message: str
    severity: str  # critical, warning, info (custom checks may add their own)


class CheckResultOut(BaseModel):
    """Individual check result."""
    name: str
    score: int
    weight: int
    findings: list[FindingOut] = []
    error: Optional[str] = None
    duration_ms: float = 0


class RecommendationOut(BaseModel):
    priority: str  # critical, high, medium
    check: str
    message: str


class AuditReportOut(BaseModel):
    """Complete audit report."""
    # Identification
    audit: str
    title: str
    category: str
    target: str
    
    # Outcome
    overall_score: int = Field(..., ge=0, le=100)
    status_tier: str
    passed: bool
    pass_threshold: int
    critical_findings: int = 0
    
    # Timestamps
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0
    
    # Details
    checks: list[CheckResultOut] = []
    recommendations: list[RecommendationOut] = []
    
    @classmethod
    def from_report(cls, report: AuditReport) -> "AuditReportOut":
        return cls(
            audit=report.audit,
            title=report.title,
            category=report.category,
            target=report.target,
            overall_score=report.overall_score,
            status_tier=report.status_tier,
            passed=report.passed,
            pass_threshold=report.pass_threshold,
            critical_findings=report.critical_count,
            started_at=report.started_at,
            completed_at=report.completed_at,
            duration_seconds=report.duration_seconds,
            checks=[
                CheckResultOut(
                    name=r.name,
                    score=round_half_up(r.score),
                    weight=report.weights.get(r.name, 0),
                    findings=[FindingOut(message=f.message, severity=f.severity) for f in r.findings],
                    error=r.error,
                    duration_ms=r.duration_ms
                )
                for r in report.results
            ],
            recommendations=[
                RecommendationOut(priority=rec.priority, check=rec.check, message=rec.message)
                for rec in report.recommendations
            ]
        )
