"""Scanner data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..intel.signals import ExternalSignal
from ..utils.domains import TargetKind


class RiskLevel(str, Enum):
    """Heuristic risk bucket."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WarningLevel(str, Enum):
    """User-facing severity of a verdict."""

    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def most_severe(cls, *levels: "WarningLevel") -> "WarningLevel":
        return max(levels, key=lambda level: level.severity, default=cls.SAFE)


_SEVERITY = {
    WarningLevel.SAFE: 0,
    WarningLevel.WARNING: 1,
    WarningLevel.DANGER: 2,
}


@dataclass(frozen=True)
class HeuristicScore:
    """Raw output of the heuristic rule battery."""

    score: int
    factors: tuple[str, ...] = ()
    trusted_domain: bool = False
    denylisted: bool = False


@dataclass(frozen=True)
class SuspicionAnalysis:
    """Heuristic score with its risk bucket and canned explanation."""

    score: int
    factors: tuple[str, ...]
    risk_level: RiskLevel
    explanation: str

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "factors": list(self.factors),
            "riskLevel": self.risk_level.value,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class Verdict:
    """Final verdict for one submission."""

    url: str
    kind: TargetKind
    is_safe: bool
    warning_level: WarningLevel
    risk_score: int
    heuristic_score: int
    heuristic_risk_level: RiskLevel
    contributing_factors: tuple[str, ...]
    threat_details: str
    phishing: bool = False
    suspicious: bool = False
    spamming: bool = False
    domain_age: str = "Unknown"
    country: str = "Unknown"
    degraded: bool = False
    signals: tuple[ExternalSignal, ...] = ()
    timestamp: datetime = field(default_factory=datetime.now, compare=False)

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "isSafe": self.is_safe,
            "type": self.kind.value,
            "warningLevel": self.warning_level.value,
            "riskScore": self.risk_score,
            "heuristicScore": self.heuristic_score,
            "heuristicRiskLevel": self.heuristic_risk_level.value,
            "factors": list(self.contributing_factors),
            "threatDetails": self.threat_details,
            "phishing": self.phishing,
            "suspicious": self.suspicious,
            "spamming": self.spamming,
            "domainAge": self.domain_age,
            "country": self.country,
            "degraded": self.degraded,
            "signals": [signal.to_dict() for signal in self.signals],
            "timestamp": self.timestamp.isoformat(),
        }
