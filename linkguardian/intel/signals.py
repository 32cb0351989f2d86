"""External threat-intelligence signal record."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional


def _opt_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _age_in_days(timestamp: Any) -> Optional[int]:
    """Whole days elapsed since a Unix timestamp (None when unknown)."""
    seconds = _opt_int(timestamp)
    if not seconds or seconds < 0:
        return None
    return max(0, int((time.time() - seconds) // 86400))


def _opt_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.upper() == "N/A":
        return None
    return text


@dataclass(frozen=True)
class ExternalSignal:
    """Result from one reputation service.

    Every field other than ``service`` and ``available`` is optional: ``None``
    means the service did not say, which is never the same as "no risk".
    """

    service: str
    available: bool = True
    risk_score: Optional[int] = None  # 0-100
    positives: Optional[int] = None  # engines flagging the target
    total: Optional[int] = None  # engines consulted
    phishing: Optional[bool] = None
    suspicious: Optional[bool] = None
    spamming: Optional[bool] = None
    malware: Optional[bool] = None
    domain_age_days: Optional[int] = None
    country_code: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def unavailable(cls, service: str, reason: str) -> "ExternalSignal":
        return cls(service=service, available=False, error=reason)

    @property
    def detection_ratio(self) -> Optional[float]:
        if self.positives is None or not self.total:
            return None
        return self.positives / self.total

    @classmethod
    def from_ipqs(cls, payload: dict, service: str = "IPQS") -> "ExternalSignal":
        """Parse an IPQualityScore URL response."""
        if not isinstance(payload, dict):
            return cls.unavailable(service, "Malformed payload")
        if payload.get("success") is False:
            return cls.unavailable(service, _opt_str(payload.get("message")) or "Request unsuccessful")

        risk_score = _opt_int(payload.get("risk_score"))
        if risk_score is not None:
            risk_score = max(0, min(100, risk_score))

        domain_age = payload.get("domain_age")
        if isinstance(domain_age, dict):
            # IPQS reports domain_age as {"human": ..., "timestamp": ..., "iso": ...}
            domain_age = _age_in_days(domain_age.get("timestamp"))

        return cls(
            service=service,
            risk_score=risk_score,
            phishing=_opt_bool(payload.get("phishing")),
            suspicious=_opt_bool(payload.get("suspicious")),
            spamming=_opt_bool(payload.get("spamming")),
            malware=_opt_bool(payload.get("malware")),
            domain_age_days=_opt_int(domain_age),
            country_code=_opt_str(payload.get("country_code")),
        )

    @classmethod
    def from_virustotal_stats(cls, stats: dict, service: str = "VirusTotal") -> "ExternalSignal":
        """Parse a VirusTotal ``last_analysis_stats`` block."""
        if not isinstance(stats, dict) or not stats:
            return cls.unavailable(service, "Missing analysis stats")

        counts = {key: _opt_int(value) or 0 for key, value in stats.items()}
        malicious = counts.get("malicious", 0)
        suspicious = counts.get("suspicious", 0)
        total = sum(counts.values())
        if total <= 0:
            return cls.unavailable(service, "No engines reported")

        return cls(
            service=service,
            positives=malicious,
            total=total,
            suspicious=suspicious > 0,
        )

    def to_dict(self) -> dict:
        return {
            "service": self.service,
            "available": self.available,
            "risk_score": self.risk_score,
            "positives": self.positives,
            "total": self.total,
            "phishing": self.phishing,
            "suspicious": self.suspicious,
            "spamming": self.spamming,
            "malware": self.malware,
            "domain_age": self.domain_age_days,
            "country_code": self.country_code,
            "error": self.error,
        }
