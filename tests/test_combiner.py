"""Tests for combining heuristic and external signals into verdicts."""

from datetime import datetime

import pytest

from linkguardian.intel.signals import ExternalSignal
from linkguardian.scanner.classifier import RiskClassifier
from linkguardian.scanner.combiner import (
    DEGRADED_MODE_NOTICE,
    RECOMMENDATIONS,
    CombinerPolicy,
    CombinerWeights,
    VerdictCombiner,
)
from linkguardian.scanner.models import HeuristicScore, WarningLevel
from linkguardian.utils.domains import parse_target

WHEN = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture
def combiner():
    return VerdictCombiner(RiskClassifier())


def analysis_for(score, factors=()):
    return RiskClassifier().analyze(HeuristicScore(score=score, factors=tuple(factors)))


def ipqs(**kwargs):
    return ExternalSignal(service="IPQS", **kwargs)


def vt(positives, total=70):
    return ExternalSignal(service="VirusTotal", positives=positives, total=total)


class TestSignalSeverity:
    @pytest.mark.parametrize(
        "signal,expected",
        [
            (ipqs(phishing=True, risk_score=0), WarningLevel.DANGER),
            (ipqs(malware=True), WarningLevel.DANGER),
            (ipqs(risk_score=75), WarningLevel.DANGER),
            (vt(7), WarningLevel.DANGER),
            (ipqs(suspicious=True, risk_score=10), WarningLevel.WARNING),
            (ipqs(spamming=True), WarningLevel.WARNING),
            (ipqs(risk_score=50), WarningLevel.WARNING),
            (vt(1), WarningLevel.WARNING),
            (ipqs(risk_score=49), WarningLevel.SAFE),
            (vt(0), WarningLevel.SAFE),
            (ipqs(), WarningLevel.SAFE),
            (ExternalSignal.unavailable("IPQS", "Timeout"), WarningLevel.SAFE),
        ],
    )
    def test_severity(self, combiner, signal, expected):
        assert combiner.signal_severity(signal) == expected

    def test_signal_risk(self, combiner):
        assert combiner.signal_risk(ipqs(risk_score=80)) == 80
        assert combiner.signal_risk(vt(7)) == pytest.approx(10.0)
        assert combiner.signal_risk(ipqs(phishing=True)) is None

    def test_flags_risk_ignores_unavailable(self, combiner):
        assert not combiner.flags_risk([ExternalSignal.unavailable("IPQS", "x"), vt(0)])
        assert combiner.flags_risk([vt(0), ipqs(spamming=True)])


class TestCombinedScore:
    def test_no_signals_uses_heuristic(self, combiner):
        assert combiner.combined_score(analysis_for(42), []) == 42

    def test_weighted_mean(self, combiner):
        score = combiner.combined_score(analysis_for(30), [vt(3), ipqs(risk_score=80)])
        # 80*0.40 + 4.29*0.35 + 30*0.25
        assert score == 41

    def test_rank_order_not_input_order(self, combiner):
        signals = [ipqs(risk_score=80), vt(3)]
        assert combiner.combined_score(analysis_for(30), signals) == combiner.combined_score(
            analysis_for(30), list(reversed(signals))
        )

    def test_last_weight_repeats(self, combiner):
        signals = [
            ExternalSignal(service="a", risk_score=90),
            ExternalSignal(service="b", risk_score=60),
            ExternalSignal(service="c", risk_score=30),
        ]
        assert combiner.combined_score(analysis_for(0), signals) == 50

    def test_signals_without_risk_are_ignored(self, combiner):
        assert combiner.combined_score(analysis_for(30), [ipqs(phishing=True)]) == 30

    def test_alternative_weights(self):
        combiner = VerdictCombiner(weights=CombinerWeights.from_list([0.5, 0.3, 0.2]))
        assert combiner.weights.signal_weights == (0.5, 0.3)
        assert combiner.combined_score(analysis_for(0), [ipqs(risk_score=70)]) == 50


class TestCombine:
    def test_heuristic_only_is_degraded(self, combiner):
        target = parse_target("http://bit.ly/abc123")
        verdict = combiner.combine(target, analysis_for(35, ["URL shortener: +25 points"]), [], WHEN)

        assert verdict.degraded
        assert verdict.contributing_factors[0] == DEGRADED_MODE_NOTICE
        assert verdict.threat_details.splitlines()[0] == DEGRADED_MODE_NOTICE
        assert verdict.warning_level == WarningLevel.WARNING
        assert not verdict.is_safe
        assert verdict.risk_score == 35
        assert verdict.timestamp == WHEN

    def test_all_sources_failed_is_degraded(self, combiner):
        target = parse_target("example.org")
        signals = [ExternalSignal.unavailable("IPQS", "Timeout"), ExternalSignal.unavailable("VirusTotal", "No report")]
        verdict = combiner.combine(target, analysis_for(0), signals, WHEN)

        assert verdict.degraded
        assert verdict.is_safe
        assert verdict.warning_level == WarningLevel.SAFE
        assert verdict.signals == tuple(signals)
        assert "External verification unavailable" in verdict.threat_details

    def test_phishing_signal_forces_danger(self, combiner):
        target = parse_target("https://example.org")
        verdict = combiner.combine(target, analysis_for(0), [ipqs(phishing=True, risk_score=10)], WHEN)

        assert verdict.warning_level == WarningLevel.DANGER
        assert not verdict.is_safe
        assert verdict.phishing
        assert not verdict.degraded

    def test_single_detection_is_not_safe(self, combiner):
        target = parse_target("https://example.org")
        verdict = combiner.combine(target, analysis_for(0), [ipqs(risk_score=0), vt(1)], WHEN)
        assert verdict.warning_level == WarningLevel.WARNING
        assert not verdict.is_safe

    def test_clean_signals_are_safe(self, combiner):
        target = parse_target("https://example.org")
        signals = [ipqs(risk_score=10, domain_age_days=900, country_code="US"), vt(0)]
        verdict = combiner.combine(target, analysis_for(0), signals, WHEN)

        assert verdict.is_safe
        assert verdict.warning_level == WarningLevel.SAFE
        assert verdict.risk_score == 4
        assert verdict.domain_age == "900 days"
        assert verdict.country == "US"
        assert DEGRADED_MODE_NOTICE not in verdict.contributing_factors

    def test_heuristic_high_wins_over_clean_signals(self, combiner):
        target = parse_target("http://gooogle-secure-login.tk")
        verdict = combiner.combine(target, analysis_for(90), [ipqs(risk_score=0), vt(0)], WHEN)
        assert verdict.warning_level == WarningLevel.DANGER
        assert not verdict.is_safe

    def test_safety_ceiling(self):
        combiner = VerdictCombiner(policy=CombinerPolicy(safety_ceiling=5))
        target = parse_target("https://example.org")
        verdict = combiner.combine(target, analysis_for(10), [ipqs(risk_score=10)], WHEN)
        assert verdict.warning_level == WarningLevel.SAFE
        assert not verdict.is_safe

    def test_factor_order(self, combiner):
        target = parse_target("https://example.org")
        verdict = combiner.combine(
            target, analysis_for(10, ["Heuristic: +10 points"]), [ipqs(risk_score=10)], WHEN
        )
        factors = verdict.contributing_factors
        assert factors[0].startswith("IPQS (low risk): risk score 10/100")
        assert factors[1] == "Heuristic: +10 points"
        assert factors[-1] == RECOMMENDATIONS[verdict.warning_level]

    def test_threat_details_follow_factor_order(self, combiner):
        target = parse_target("https://example.org")
        verdict = combiner.combine(
            target, analysis_for(10, ["Heuristic: +10 points"]), [ipqs(risk_score=10)], WHEN
        )
        lines = verdict.threat_details.splitlines()
        assert lines[0] == "External intelligence:"
        assert lines[1].startswith("  - IPQS (low risk)")
        assert lines.index("  - Heuristic: +10 points") > lines.index("Contributing factors:")
        assert lines[-1] == RECOMMENDATIONS[verdict.warning_level]

    def test_signal_summary_includes_flags_and_metadata(self, combiner):
        target = parse_target("https://example.org")
        signal = ipqs(risk_score=85, phishing=True, suspicious=True, domain_age_days=30, country_code="RU")
        verdict = combiner.combine(target, analysis_for(0), [signal], WHEN)
        assert (
            "IPQS (high risk): risk score 85/100; flags: phishing, suspicious; "
            "domain age 30 days; country RU"
        ) in verdict.contributing_factors

    def test_to_dict_contract(self, combiner):
        verdict = combiner.combine(parse_target("user@example.org"), analysis_for(0), [], WHEN)
        data = verdict.to_dict()
        for key in (
            "url",
            "isSafe",
            "type",
            "warningLevel",
            "riskScore",
            "heuristicScore",
            "heuristicRiskLevel",
            "factors",
            "threatDetails",
            "phishing",
            "suspicious",
            "spamming",
            "domainAge",
            "country",
            "degraded",
            "timestamp",
        ):
            assert key in data
        assert data["type"] == "email"
        assert data["timestamp"] == WHEN.isoformat()
