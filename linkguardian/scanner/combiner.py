"""Fuse the heuristic analysis with external reputation signals into a Verdict."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..intel.signals import ExternalSignal
from ..utils.domains import ParsedTarget
from .classifier import RiskClassifier
from .models import RiskLevel, SuspicionAnalysis, Verdict, WarningLevel

logger = logging.getLogger(__name__)

DEGRADED_MODE_NOTICE = (
    "External verification unavailable: this verdict is based on pattern analysis only"
)

RECOMMENDATIONS = {
    WarningLevel.DANGER: "Recommendation: Do not open this link or enter any personal information.",
    WarningLevel.WARNING: "Recommendation: Proceed with caution and verify the source first.",
    WarningLevel.SAFE: "Recommendation: No action needed, but stay alert for unexpected requests.",
}

_SEVERITY_LABELS = {
    WarningLevel.DANGER: "high risk",
    WarningLevel.WARNING: "moderate risk",
    WarningLevel.SAFE: "low risk",
}


@dataclass(frozen=True)
class CombinerWeights:
    """Weights for the weighted mean of signal risks and the heuristic score.

    Signals are ranked by risk (highest first); the i-th ranked signal gets
    ``signal_weights[i]`` and any extra signals reuse the last weight.
    """

    signal_weights: tuple[float, ...] = (0.40, 0.35)
    heuristic_weight: float = 0.25

    def __post_init__(self):
        if not self.signal_weights:
            raise ValueError("At least one signal weight is required")
        if any(w < 0 for w in self.signal_weights) or self.heuristic_weight < 0:
            raise ValueError("Weights must be non-negative")

    def weight_for(self, rank: int) -> float:
        return self.signal_weights[min(rank, len(self.signal_weights) - 1)]

    @classmethod
    def from_list(cls, values: Sequence[float]) -> "CombinerWeights":
        """Build from a flat list where the last value is the heuristic weight."""
        values = [float(v) for v in values]
        if len(values) < 2:
            raise ValueError("Need at least one signal weight and a heuristic weight")
        return cls(signal_weights=tuple(values[:-1]), heuristic_weight=values[-1])


@dataclass(frozen=True)
class CombinerPolicy:
    """Thresholds used to judge individual signals and the safety ceiling."""

    high_risk_score: int = 75
    suspicious_risk_score: int = 50
    danger_detection_ratio: float = 0.10
    safety_ceiling: int = 25


class VerdictCombiner:
    """Pure function object: (analysis, signals) -> Verdict."""

    def __init__(
        self,
        classifier: Optional[RiskClassifier] = None,
        weights: Optional[CombinerWeights] = None,
        policy: Optional[CombinerPolicy] = None,
    ):
        self.classifier = classifier or RiskClassifier()
        self.weights = weights or CombinerWeights()
        self.policy = policy or CombinerPolicy()

    @staticmethod
    def signal_risk(signal: ExternalSignal) -> Optional[float]:
        """Risk of a single signal on a 0-100 scale, or None when unknown."""
        if signal.risk_score is not None:
            return float(signal.risk_score)
        ratio = signal.detection_ratio
        if ratio is not None:
            return ratio * 100
        return None

    def signal_severity(self, signal: ExternalSignal) -> WarningLevel:
        if not signal.available:
            return WarningLevel.SAFE

        ratio = signal.detection_ratio
        if (
            signal.phishing
            or signal.malware
            or (signal.risk_score is not None and signal.risk_score >= self.policy.high_risk_score)
            or (ratio is not None and ratio >= self.policy.danger_detection_ratio)
        ):
            return WarningLevel.DANGER

        if (
            signal.suspicious
            or signal.spamming
            or (
                signal.risk_score is not None
                and signal.risk_score >= self.policy.suspicious_risk_score
            )
            or (signal.positives is not None and signal.positives > 0)
        ):
            return WarningLevel.WARNING

        return WarningLevel.SAFE

    def flags_risk(self, signals: Sequence[ExternalSignal]) -> bool:
        return any(
            self.signal_severity(signal) != WarningLevel.SAFE
            for signal in signals
            if signal.available
        )

    def combined_score(self, analysis: SuspicionAnalysis, signals: Sequence[ExternalSignal]) -> int:
        risks = [
            risk
            for risk in (self.signal_risk(s) for s in signals if s.available)
            if risk is not None
        ]
        if not risks:
            return analysis.score

        risks.sort(reverse=True)
        total = analysis.score * self.weights.heuristic_weight
        weight_sum = self.weights.heuristic_weight
        for rank, risk in enumerate(risks):
            weight = self.weights.weight_for(rank)
            total += risk * weight
            weight_sum += weight

        if weight_sum <= 0:
            return analysis.score
        return max(0, min(100, round(total / weight_sum)))

    def combine(
        self,
        target: ParsedTarget,
        analysis: SuspicionAnalysis,
        signals: Sequence[ExternalSignal] = (),
        timestamp: Optional[datetime] = None,
    ) -> Verdict:
        """Build the final verdict for one submission."""
        signals = tuple(signals)
        available = [s for s in signals if s.available]
        degraded = not available

        score = self.combined_score(analysis, signals)
        score_level = self.classifier.risk_level(score, combined=bool(available))
        severities = [self.signal_severity(s) for s in available]

        warning_level = WarningLevel.most_severe(
            self.classifier.warning_level_for(score_level),
            self.classifier.warning_level_for(analysis.risk_level),
            *severities,
        )

        external_alarm = any(
            s.phishing
            or s.malware
            or (s.risk_score is not None and s.risk_score >= self.policy.high_risk_score)
            for s in available
        )
        any_detection = any((s.positives or 0) > 0 for s in available)
        is_safe = (
            not external_alarm
            and not any_detection
            and analysis.risk_level == RiskLevel.LOW
            and score < self.policy.safety_ceiling
            and warning_level == WarningLevel.SAFE
        )

        summaries = [self._summarize_signal(s) for s in available]
        factors: list[str] = []
        if degraded:
            factors.append(DEGRADED_MODE_NOTICE)
            if signals:
                logger.debug(
                    "All %d external sources unavailable for %s",
                    len(signals),
                    target.normalized_input,
                )
        factors.extend(summaries)
        factors.extend(analysis.factors)
        factors.append(RECOMMENDATIONS[warning_level])

        threat_details = self._render_details(
            analysis=analysis,
            score=score,
            warning_level=warning_level,
            summaries=summaries,
            degraded=degraded,
        )

        return Verdict(
            url=target.raw.strip(),
            kind=target.kind,
            is_safe=is_safe,
            warning_level=warning_level,
            risk_score=score,
            heuristic_score=analysis.score,
            heuristic_risk_level=analysis.risk_level,
            contributing_factors=tuple(factors),
            threat_details=threat_details,
            phishing=any(bool(s.phishing) for s in available),
            suspicious=any(bool(s.suspicious) for s in available),
            spamming=any(bool(s.spamming) for s in available),
            domain_age=self._first_domain_age(available),
            country=self._first_country(available),
            degraded=degraded,
            signals=signals,
            timestamp=timestamp or datetime.now(),
        )

    def _summarize_signal(self, signal: ExternalSignal) -> str:
        parts = []
        if signal.risk_score is not None:
            parts.append(f"risk score {signal.risk_score}/100")
        if signal.positives is not None and signal.total:
            parts.append(f"{signal.positives}/{signal.total} engines flagged")
        if not parts:
            parts.append("no score reported")

        flags = [
            name
            for name, value in (
                ("phishing", signal.phishing),
                ("malware", signal.malware),
                ("suspicious", signal.suspicious),
                ("spamming", signal.spamming),
            )
            if value
        ]
        if flags:
            parts.append(f"flags: {', '.join(flags)}")
        if signal.domain_age_days is not None:
            parts.append(f"domain age {signal.domain_age_days} days")
        if signal.country_code:
            parts.append(f"country {signal.country_code}")

        label = _SEVERITY_LABELS[self.signal_severity(signal)]
        return f"{signal.service} ({label}): {'; '.join(parts)}"

    def _render_details(
        self,
        analysis: SuspicionAnalysis,
        score: int,
        warning_level: WarningLevel,
        summaries: list[str],
        degraded: bool,
    ) -> str:
        lines = []
        if degraded:
            lines.append(DEGRADED_MODE_NOTICE)
        if summaries:
            lines.append("External intelligence:")
            lines.extend(f"  - {summary}" for summary in summaries)
        lines.append(f"Overall assessment: {warning_level.value.upper()} (risk score {score}/100)")
        lines.append(
            f"Pattern analysis: {analysis.score}/100 ({analysis.risk_level.value} risk). "
            f"{analysis.explanation}"
        )
        if analysis.factors:
            lines.append("Contributing factors:")
            lines.extend(f"  - {factor}" for factor in analysis.factors)
        lines.append(RECOMMENDATIONS[warning_level])
        return "\n".join(lines)

    @staticmethod
    def _first_domain_age(signals: Sequence[ExternalSignal]) -> str:
        for signal in signals:
            if signal.domain_age_days is not None:
                return f"{signal.domain_age_days} days"
        return "Unknown"

    @staticmethod
    def _first_country(signals: Sequence[ExternalSignal]) -> str:
        for signal in signals:
            if signal.country_code:
                return signal.country_code
        return "Unknown"
