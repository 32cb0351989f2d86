"""Deterministic stand-ins for the reputation services (demo mode).

A scenario is picked from the character-code sum of the input, so the same
submission always gets the same simulated answer.
"""

from __future__ import annotations

from ..utils.domains import ParsedTarget
from .external_intel import SignalSource
from .signals import ExternalSignal

IPQS_SCENARIOS = [
    {
        "risk_score": 15,
        "phishing": False,
        "suspicious": False,
        "spamming": False,
        "domain_age_days": 365 * 3,
        "country_code": "US",
    },
    {
        "risk_score": 85,
        "phishing": True,
        "suspicious": True,
        "spamming": False,
        "domain_age_days": 30,
        "country_code": "RU",
    },
    {
        "risk_score": 65,
        "phishing": False,
        "suspicious": True,
        "spamming": True,
        "domain_age_days": 120,
        "country_code": "CN",
    },
]

VIRUSTOTAL_SCENARIOS = [
    {"positives": 0, "total": 70},
    {"positives": 3, "total": 70},
    {"positives": 15, "total": 70},
]


def char_code_sum(text: str) -> int:
    return sum(ord(char) for char in text)


class SimulatedIPQSSource(SignalSource):
    """Scenario keyed on the domain."""

    name = "IPQS (simulated)"

    async def fetch(self, target: ParsedTarget) -> ExternalSignal:
        scenario = IPQS_SCENARIOS[char_code_sum(target.domain) % len(IPQS_SCENARIOS)]
        return ExternalSignal(service=self.name, **scenario)


class SimulatedVirusTotalSource(SignalSource):
    """Scenario keyed on the normalized input."""

    name = "VirusTotal (simulated)"

    async def fetch(self, target: ParsedTarget) -> ExternalSignal:
        index = char_code_sum(target.normalized_input) % len(VIRUSTOTAL_SCENARIOS)
        return ExternalSignal(service=self.name, **VIRUSTOTAL_SCENARIOS[index])
