"""Link and email scanning for LinkGuardian."""

from .classifier import RiskClassifier, RiskThresholds
from .combiner import CombinerPolicy, CombinerWeights, VerdictCombiner
from .models import HeuristicScore, RiskLevel, SuspicionAnalysis, Verdict, WarningLevel
from .pipeline import LinkScanner, ScanStage
from .scorer import HeuristicScorer

__all__ = [
    "CombinerPolicy",
    "CombinerWeights",
    "HeuristicScore",
    "HeuristicScorer",
    "LinkScanner",
    "RiskClassifier",
    "RiskLevel",
    "RiskThresholds",
    "ScanStage",
    "SuspicionAnalysis",
    "Verdict",
    "VerdictCombiner",
    "WarningLevel",
]
