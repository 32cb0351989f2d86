"""Map scores to risk buckets and canned explanations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import HeuristicScore, RiskLevel, SuspicionAnalysis, WarningLevel

# Keyed by (risk level, external verdict). None means no external signal was considered.
EXPLANATIONS: dict[tuple[RiskLevel, Optional[bool]], str] = {
    (RiskLevel.HIGH, None): (
        "This link shows several strong signs of phishing or fraud. "
        "Do not open it or enter any personal information."
    ),
    (RiskLevel.MEDIUM, None): (
        "This link has some suspicious characteristics. "
        "Verify the sender before opening it."
    ),
    (RiskLevel.LOW, None): "No significant warning signs were found in this link.",
    (RiskLevel.HIGH, True): (
        "Both pattern analysis and external threat intelligence flag this link as dangerous."
    ),
    (RiskLevel.HIGH, False): (
        "Pattern analysis flags this link as dangerous even though external "
        "services have not reported it yet. New phishing sites are often unlisted."
    ),
    (RiskLevel.MEDIUM, True): (
        "External threat intelligence reports risk for this link and it has "
        "some suspicious characteristics."
    ),
    (RiskLevel.MEDIUM, False): (
        "External services report no threats, but the link has some suspicious "
        "characteristics. Proceed with caution."
    ),
    (RiskLevel.LOW, True): (
        "The link looks ordinary, but external threat intelligence reports risk for it."
    ),
    (RiskLevel.LOW, False): (
        "No significant warning signs were found and external services report no threats."
    ),
}

_WARNING_FOR_RISK = {
    RiskLevel.LOW: WarningLevel.SAFE,
    RiskLevel.MEDIUM: WarningLevel.WARNING,
    RiskLevel.HIGH: WarningLevel.DANGER,
}


@dataclass(frozen=True)
class RiskThresholds:
    """Score cut-offs; a score equal to a threshold falls into the higher bucket."""

    high: int = 50
    medium: int = 25

    def __post_init__(self):
        if not 0 <= self.medium <= self.high <= 100:
            raise ValueError(
                f"Thresholds must satisfy 0 <= medium <= high <= 100 "
                f"(got medium={self.medium}, high={self.high})"
            )


class RiskClassifier:
    """Buckets scores into low/medium/high."""

    def __init__(
        self,
        heuristic: Optional[RiskThresholds] = None,
        combined: Optional[RiskThresholds] = None,
    ):
        self.heuristic = heuristic or RiskThresholds(high=50, medium=25)
        self.combined = combined or RiskThresholds(high=40, medium=20)

    def risk_level(self, score: int, combined: bool = False) -> RiskLevel:
        thresholds = self.combined if combined else self.heuristic
        if score >= thresholds.high:
            return RiskLevel.HIGH
        if score >= thresholds.medium:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    @staticmethod
    def warning_level_for(risk_level: RiskLevel) -> WarningLevel:
        return _WARNING_FOR_RISK[risk_level]

    @staticmethod
    def explain(risk_level: RiskLevel, external_risky: Optional[bool] = None) -> str:
        return EXPLANATIONS[(risk_level, external_risky)]

    def analyze(
        self, heuristic: HeuristicScore, external_risky: Optional[bool] = None
    ) -> SuspicionAnalysis:
        level = self.risk_level(heuristic.score)
        return SuspicionAnalysis(
            score=heuristic.score,
            factors=heuristic.factors,
            risk_level=level,
            explanation=self.explain(level, external_risky),
        )

    def is_suspicious(self, score: int) -> bool:
        return score >= self.heuristic.medium
