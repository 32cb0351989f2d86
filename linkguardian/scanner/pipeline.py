"""Scan pipeline: normalize, score, gather external signals, combine, cache."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from ..cache import VerdictCache
from ..intel.external_intel import SignalGatherer, create_gatherer
from ..intel.signals import ExternalSignal
from ..utils.domains import parse_target
from .classifier import RiskClassifier, RiskThresholds
from .combiner import CombinerPolicy, CombinerWeights, VerdictCombiner
from .models import SuspicionAnalysis, Verdict
from .scorer import HeuristicScorer

logger = logging.getLogger(__name__)

_BULK_SPLIT_RE = re.compile(r"[\n,\s]+")


class ScanStage(str, Enum):
    """Progress of a single scan."""

    IDLE = "idle"
    NORMALIZING = "normalizing"
    SCORING = "scoring"
    AWAITING_EXTERNAL_SIGNALS = "awaiting_external_signals"
    COMBINING = "combining"
    DONE = "done"


def split_bulk_input(text: str) -> list[str]:
    """Split pasted text into individual submissions."""
    return [item for item in _BULK_SPLIT_RE.split(text or "") if item.strip()]


class LinkScanner:
    """Turns a raw submission into exactly one Verdict."""

    def __init__(
        self,
        scorer: Optional[HeuristicScorer] = None,
        classifier: Optional[RiskClassifier] = None,
        combiner: Optional[VerdictCombiner] = None,
        gatherer: Optional[SignalGatherer] = None,
        cache: Optional[VerdictCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.scorer = scorer or HeuristicScorer()
        self.classifier = classifier or RiskClassifier()
        self.combiner = combiner or VerdictCombiner(self.classifier)
        self.gatherer = gatherer
        self.cache = cache if cache is not None else VerdictCache()
        self.clock = clock or datetime.now

    @classmethod
    def from_config(cls, config) -> "LinkScanner":
        """Build a scanner wired to the configured thresholds, weights and sources."""
        scorer = HeuristicScorer(
            url_shorteners=config.url_shorteners,
            suspicious_tlds=config.suspicious_tlds,
            phishing_keywords=config.phishing_keywords,
            free_hosting=config.free_hosting,
            brands=config.brands,
            known_safe_domains=config.known_safe_domains,
            known_malicious_domains=config.known_malicious_domains,
            substitutions=config.substitutions,
        )
        classifier = RiskClassifier(
            heuristic=RiskThresholds(
                high=config.risk_high_threshold, medium=config.risk_medium_threshold
            ),
            combined=RiskThresholds(
                high=config.combined_high_threshold, medium=config.combined_medium_threshold
            ),
        )
        combiner = VerdictCombiner(
            classifier,
            weights=CombinerWeights.from_list(config.combiner_weights),
            policy=CombinerPolicy(safety_ceiling=config.safety_ceiling),
        )
        return cls(
            scorer=scorer,
            classifier=classifier,
            combiner=combiner,
            gatherer=create_gatherer(config),
        )

    @property
    def signal_source_names(self) -> list[str]:
        return self.gatherer.source_names if self.gatherer else []

    def _enter(self, stage: ScanStage, key: str) -> ScanStage:
        logger.debug(f"Scan {key!r}: {stage.value}")
        return stage

    def analyze_heuristics(self, raw: str) -> SuspicionAnalysis:
        """Heuristic-only analysis; no I/O and no caching."""
        target = parse_target(raw)
        return self.classifier.analyze(self.scorer.score(target))

    async def score_target(self, raw: str) -> Verdict:
        """Scan one submission, reusing the session cache."""
        target = parse_target(raw)
        key = target.normalized_input

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key!r}")
            return cached

        self._enter(ScanStage.IDLE, key)
        self._enter(ScanStage.NORMALIZING, key)
        logger.debug(f"Classified {key!r} as {target.kind.value} on {target.domain}")

        self._enter(ScanStage.SCORING, key)
        heuristic = self.scorer.score(target)

        signals: list[ExternalSignal] = []
        if self.gatherer is not None:
            self._enter(ScanStage.AWAITING_EXTERNAL_SIGNALS, key)
            signals = await self.gatherer.gather(target)

        self._enter(ScanStage.COMBINING, key)
        external_risky: Optional[bool] = None
        if any(signal.available for signal in signals):
            external_risky = self.combiner.flags_risk(signals)
            if external_risky and heuristic.trusted_domain:
                # Trusted-domain discount does not apply once a service reports risk.
                heuristic = self.scorer.score(target, external_risk=True)

        analysis = self.classifier.analyze(heuristic, external_risky)
        verdict = self.combiner.combine(target, analysis, signals, timestamp=self.clock())

        self.cache.set(key, verdict)
        self._enter(ScanStage.DONE, key)
        logger.info(
            f"Scanned {key!r}: {verdict.warning_level.value} "
            f"(risk {verdict.risk_score}, heuristic {verdict.heuristic_score})"
        )
        return verdict

    async def check_bulk(self, text: str, limit: int = 50) -> list[Verdict]:
        """Check every submission in pasted text, one after another."""
        items = split_bulk_input(text)
        if len(items) > limit:
            logger.info(f"Bulk check truncated from {len(items)} to {limit} items")
            items = items[:limit]

        verdicts: list[Verdict] = []
        for item in items:
            try:
                verdicts.append(await self.score_target(item))
            except Exception as e:
                logger.warning(f"Bulk check failed for {item!r}: {e}")
        return verdicts
