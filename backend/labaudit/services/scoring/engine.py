"""
Scoring Engine - combines check sub-scores into one overall score.

Coordinates:
- Weighted average normalized by the actual weight sum
- Clamping to 0-100
- Status tier classification
- Pass/fail decision (score threshold, optional critical-finding budget)
- Recommendations for weak checks
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from labaudit.services.scoring.models import CheckResult, Recommendation
from labaudit.services.scoring.tiers import DEFAULT_TIERS, TierTable
from labaudit.services.scoring.weights import WeightTable
from labaudit.logger import logger


@dataclass(frozen=True)
class RecommendationRule:
    """Recommendation attached to a check definition."""
    message: str
    priority: str = "high"
    below: int = 80


@dataclass
class EngineResult:
    """Aggregated outcome of a run."""
    overall: int
    tier: str
    passed: bool
    critical_count: int
    recommendations: List[Recommendation] = field(default_factory=list)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, like JavaScript's Math.round."""
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


class ScoringEngine:
    """Main scoring orchestrator."""
    
    def __init__(self, tiers: TierTable = DEFAULT_TIERS):
        self.tiers = tiers
    
    def overall_score(self, results: List[CheckResult], weights: WeightTable) -> int:
        """Weighted average of sub-scores, rounded half-up and clamped to 0-100."""
        by_name = {r.name: r for r in results}
        
        for name in by_name:
            if name not in weights:
                logger.warning(f"Check {name} has no weight, ignored in overall score")
        
        weighted_sum = 0.0
        for name, weight in weights:
            result = by_name.get(name)
            if result is None:
                logger.warning(f"Weighted check {name} produced no result, scoring 0")
                continue
            weighted_sum += result.score * weight
        
        return clamp(round_half_up(weighted_sum / weights.total))
    
    def recommendations(
        self,
        results: List[CheckResult],
        rules: Dict[str, RecommendationRule]
    ) -> List[Recommendation]:
        recs = []
        for result in results:
            rule = rules.get(result.name)
            if rule and result.score < rule.below:
                recs.append(Recommendation(priority=rule.priority, check=result.name, message=rule.message))
        return recs
    
    def score(
        self,
        results: List[CheckResult],
        weights: WeightTable,
        pass_threshold: int,
        max_critical: Optional[int] = None,
        rules: Optional[Dict[str, RecommendationRule]] = None
    ) -> EngineResult:
        """Aggregate all check results.
        
        Returns:
            EngineResult with overall score, tier, and pass/fail
        """
        overall = self.overall_score(results, weights)
        tier = self.tiers.classify(overall)
        critical_count = sum(r.critical_count for r in results)
        
        passed = overall >= pass_threshold
        if max_critical is not None and critical_count > max_critical:
            passed = False
        
        logger.info(
            f"Overall={overall} tier={tier} critical={critical_count} "
            f"threshold={pass_threshold} passed={passed}"
        )
        
        return EngineResult(
            overall=overall,
            tier=tier,
            passed=passed,
            critical_count=critical_count,
            recommendations=self.recommendations(results, rules or {})
        )
