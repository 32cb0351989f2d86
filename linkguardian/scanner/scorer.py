"""Heuristic suspicion scoring for URLs and email addresses."""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Iterable, Optional

import idna
from rapidfuzz import fuzz

from ..utils.domains import (
    ParsedTarget,
    TargetKind,
    host_matches,
    is_ipv4_host,
    split_host,
    url_path,
)
from . import rules
from .models import HeuristicScore

logger = logging.getLogger(__name__)

_IPV4_URL_RE = re.compile(
    r"^(?:[a-z][a-z0-9+.\-]*://)?(?:[^@/\s]*@)?\d{1,3}(?:\.\d{1,3}){3}(?=$|[:/?#])"
)
_ENCODED_RE = re.compile(r"%[0-9a-f]{2}", re.IGNORECASE)
_HEX_RUN_RE = re.compile(r"[0-9a-f]{8,}", re.IGNORECASE)
_REPEATED_RE = re.compile(r"(.{2,})\1{2,}")
_CONSONANT_RE = re.compile(r"[bcdfghjklmnpqrstvwxyz]", re.IGNORECASE)
_VOWEL_RE = re.compile(r"[aeiou]", re.IGNORECASE)


def has_random_pattern(text: str) -> bool:
    """Check if a domain label looks machine-generated."""
    if _HEX_RUN_RE.search(text):
        return True

    consonants = len(_CONSONANT_RE.findall(text))
    vowels = len(_VOWEL_RE.findall(text))
    if consonants > vowels * 3 and len(text) > 8:
        return True

    return bool(_REPEATED_RE.search(text))


class HeuristicScorer:
    """Scores a submission for phishing likelihood based on pattern checks."""

    # Characters from other scripts that render like Latin letters
    HOMOGLYPHS = {
        "а": "a",  # Cyrillic а
        "е": "e",  # Cyrillic е
        "о": "o",  # Cyrillic о
        "р": "p",  # Cyrillic р
        "с": "c",  # Cyrillic с
        "у": "y",  # Cyrillic у
        "х": "x",  # Cyrillic х
        "ѕ": "s",  # Cyrillic ѕ
        "і": "i",  # Cyrillic і
        "ј": "j",  # Cyrillic ј
        "ԁ": "d",  # Cyrillic ԁ
        "ɡ": "g",  # Latin script g
        "ο": "o",  # Greek omicron
        "α": "a",  # Greek alpha
        "ո": "n",  # Armenian ո
        "ս": "u",  # Armenian ս
    }

    def __init__(
        self,
        *,
        url_shorteners: Optional[Iterable[str]] = None,
        suspicious_tlds: Optional[dict[str, int]] = None,
        phishing_keywords: Optional[Iterable[str]] = None,
        free_hosting: Optional[Iterable[str]] = None,
        brands: Optional[Iterable[str]] = None,
        suspicious_extensions: Optional[Iterable[str]] = None,
        social_engineering_phrases: Optional[Iterable[str]] = None,
        crypto_terms: Optional[Iterable[str]] = None,
        known_safe_domains: Optional[Iterable[str]] = None,
        known_malicious_domains: Optional[Iterable[str]] = None,
        substitutions: Optional[dict[str, str]] = None,
        keyword_cap: int = 30,
        typosquat_ratio: int = 88,
    ):
        self.url_shorteners = [s.lower() for s in (url_shorteners or rules.URL_SHORTENERS)]
        self.suspicious_tlds = {
            (tld if tld.startswith(".") else f".{tld}").lower(): int(points)
            for tld, points in (suspicious_tlds or rules.SUSPICIOUS_TLDS).items()
        }
        self.phishing_keywords = [k.lower() for k in (phishing_keywords or rules.PHISHING_KEYWORDS)]
        self.free_hosting = [p.lower() for p in (free_hosting or rules.FREE_HOSTING_PLATFORMS)]
        self.brands = [b.lower() for b in (brands or rules.BRANDS)]
        self.suspicious_extensions = [
            e.lower().lstrip(".") for e in (suspicious_extensions or rules.SUSPICIOUS_EXTENSIONS)
        ]
        self.social_engineering_phrases = [
            p.lower() for p in (social_engineering_phrases or rules.SOCIAL_ENGINEERING_PHRASES)
        ]
        self.crypto_terms = [t.lower() for t in (crypto_terms or rules.CRYPTO_SCAM_TERMS)]
        self.known_safe_domains = {
            d.lower() for d in (known_safe_domains if known_safe_domains is not None else rules.KNOWN_SAFE_DOMAINS)
        }
        self.known_malicious_domains = {
            d.lower()
            for d in (
                known_malicious_domains
                if known_malicious_domains is not None
                else rules.KNOWN_MALICIOUS_DOMAINS
            )
        }
        self.substitutions = substitutions or dict(rules.SUBSTITUTIONS)
        self.keyword_cap = keyword_cap
        self.typosquat_ratio = typosquat_ratio

        self._shortener_patterns = [
            (s, re.compile(rf"(?:^|[/@.]){re.escape(s)}(?=$|[/:?#])")) for s in self.url_shorteners
        ]
        self._extension_re = re.compile(
            rf"\.(?:{'|'.join(re.escape(e) for e in self.suspicious_extensions)})$"
        )
        # "1" reads as either "l" or "i", so try both spellings.
        self._leet_tables = [
            str.maketrans({**self.substitutions, "1": "l"}),
            str.maketrans({**self.substitutions, "1": "i"}),
        ]

    def score(self, target: ParsedTarget, external_risk: bool = False) -> HeuristicScore:
        """Run every rule against the submission and total the points."""
        raw_lower = target.raw.strip().lower()
        host = target.domain
        structured = not target.parse_failed and not is_ipv4_host(host)
        if structured:
            subdomains, label, _ = split_host(host)
        else:
            subdomains, label = [], ""

        score = 0
        factors: list[str] = []

        def apply(result: tuple[int, list[str]]) -> None:
            nonlocal score
            points, reasons = result
            score += points
            factors.extend(reasons)

        apply(self._check_shortener(raw_lower))
        apply(self._check_ip_host(raw_lower))
        if structured:
            apply(self._check_tld(host))
            apply(self._check_subdomain_count(subdomains))
            apply(self._check_random_labels(label, subdomains))
        apply(self._check_keywords(raw_lower))
        apply(self._check_free_hosting(host))
        apply(self._check_encoding(raw_lower))
        apply(self._check_length(raw_lower))
        if structured:
            apply(self._check_digits(host))
            apply(self._check_typosquatting(host, label))
        if target.kind == TargetKind.LINK:
            apply(self._check_file_extension(target.normalized_input))
        apply(self._check_social_engineering(raw_lower))
        apply(self._check_crypto_terms(raw_lower))
        if not target.parse_failed:
            apply(self._check_homograph(host))
            apply(self._check_plain_http(raw_lower, host))
            apply(self._check_idn(host))

        denylisted = self._is_denylisted(host)
        if denylisted:
            apply((60, ["Known malicious domain: +60 points"]))

        trusted = self._trusted_domain(host)
        if trusted:
            if external_risk:
                factors.append(
                    f"Known domain ({trusted}), but external intelligence reports risk: +0 points"
                )
            else:
                apply((-25, [f"Known trusted domain ({trusted}): -25 points"]))

        clamped = max(0, min(score, 100))
        if clamped != score:
            logger.debug("Heuristic total %s for %s clamped to %s", score, host, clamped)

        return HeuristicScore(
            score=clamped,
            factors=tuple(factors),
            trusted_domain=bool(trusted),
            denylisted=denylisted,
        )

    def _check_shortener(self, raw: str) -> tuple[int, list[str]]:
        for shortener, pattern in self._shortener_patterns:
            if pattern.search(raw):
                return 25, [f"URL shortener detected ({shortener}): +25 points"]
        return 0, []

    def _check_ip_host(self, raw: str) -> tuple[int, list[str]]:
        if _IPV4_URL_RE.match(raw):
            return 35, ["IP address instead of domain: +35 points"]
        return 0, []

    def _check_tld(self, host: str) -> tuple[int, list[str]]:
        if "." not in host:
            return 0, []
        tld = f".{host.rsplit('.', 1)[-1]}"
        points = self.suspicious_tlds.get(tld, 0)
        if points > 0:
            return points, [f"Suspicious TLD ({tld}): +{points} points"]
        return 0, []

    def _check_subdomain_count(self, subdomains: list[str]) -> tuple[int, list[str]]:
        if len(subdomains) > 3:
            points = min(len(subdomains) * 5, 25)
            return points, [f"Too many subdomains ({len(subdomains)}): +{points} points"]
        return 0, []

    def _check_random_labels(self, label: str, subdomains: list[str]) -> tuple[int, list[str]]:
        score = 0
        reasons = []

        if label and has_random_pattern(label):
            score += 20
            reasons.append("Random-looking domain pattern: +20 points")

        for subdomain in subdomains:
            if has_random_pattern(subdomain):
                score += 15
                reasons.append(f"Random-looking subdomain ({subdomain}): +15 points")

        return score, reasons

    def _check_keywords(self, raw: str) -> tuple[int, list[str]]:
        found = [keyword for keyword in self.phishing_keywords if keyword in raw]
        if not found:
            return 0, []
        points = min(len(found) * 10, self.keyword_cap)
        return points, [f"Phishing keywords ({', '.join(found)}): +{points} points"]

    def _check_free_hosting(self, host: str) -> tuple[int, list[str]]:
        for platform in self.free_hosting:
            if host_matches(host, platform):
                return 15, [f"Free hosting platform ({platform}): +15 points"]
        return 0, []

    def _check_encoding(self, raw: str) -> tuple[int, list[str]]:
        if _ENCODED_RE.search(raw):
            return 12, ["URL-encoded characters: +12 points"]
        return 0, []

    def _check_length(self, raw: str) -> tuple[int, list[str]]:
        if len(raw) > 200:
            return 10, [f"Very long URL ({len(raw)} characters): +10 points"]
        if len(raw) > 100:
            return 4, [f"Long URL ({len(raw)} characters): +4 points"]
        return 0, []

    def _check_digits(self, host: str) -> tuple[int, list[str]]:
        digits = sum(1 for char in host if char.isdigit())
        if digits > 3:
            return 10, [f"Many digits in domain ({digits}): +10 points"]
        if digits > 1:
            return 5, [f"Multiple digits in domain ({digits}): +5 points"]
        return 0, []

    def _check_typosquatting(self, host: str, label: str) -> tuple[int, list[str]]:
        """Check for look-alike spellings of popular brands."""
        for brand in self.brands:
            variant = self._digit_variant(host, brand)
            if not variant and brand not in host:
                variant = self._substitution_variant(host, brand) or self._near_miss(label, brand)
            if variant:
                return 35, [f"Possible typosquatting of '{brand}' ({variant}): +35 points"]
        return 0, []

    def _digit_variant(self, host: str, brand: str) -> Optional[str]:
        pattern = re.compile(rf"{re.escape(brand)}\d+")
        for part in host.split("."):
            if pattern.fullmatch(part):
                return part
        return None

    def _substitution_variant(self, host: str, brand: str) -> Optional[str]:
        for table in self._leet_tables:
            normalized = host.translate(table)
            if normalized != host and brand in normalized:
                return f"{host} -> {normalized}"
        return None

    def _near_miss(self, label: str, brand: str) -> Optional[str]:
        if len(brand) < 5 or not label:
            return None
        for token in re.split(r"[-_]", label):
            if len(token) < 4 or token == brand:
                continue
            ratio = fuzz.ratio(brand, token)
            if ratio >= self.typosquat_ratio:
                return f"{token}, {ratio:.0f}% similar"
        return None

    def _check_file_extension(self, normalized_input: str) -> tuple[int, list[str]]:
        path = url_path(normalized_input).lower()
        match = self._extension_re.search(path)
        if match:
            return 30, [f"Suspicious file extension ({match.group(0)}): +30 points"]
        return 0, []

    def _check_social_engineering(self, raw: str) -> tuple[int, list[str]]:
        text = re.sub(r"[-_+]", " ", raw.replace("%20", " "))
        found = [phrase for phrase in self.social_engineering_phrases if phrase in text]
        if found:
            return 25, [f"Social engineering language ({', '.join(found)}): +25 points"]
        return 0, []

    def _check_crypto_terms(self, raw: str) -> tuple[int, list[str]]:
        score = 0
        reasons = []
        for term in self.crypto_terms:
            if term in raw:
                score += 15
                reasons.append(f"Cryptocurrency scam term ({term}): +15 points")
        return score, reasons

    def _check_homograph(self, host: str) -> tuple[int, list[str]]:
        """Check for look-alike characters from non-Latin scripts."""
        # Punycode hosts are decoded so the characters behind them can be inspected.
        candidate = host
        if "xn--" in host:
            try:
                candidate = idna.decode(host)
            except (idna.IDNAError, UnicodeError):
                candidate = host

        if candidate.isascii():
            return 0, []

        normalized = self._normalize_homoglyphs(candidate)
        if normalized == candidate:
            return 0, []
        return 30, [f"Non-Latin look-alike characters ({candidate} resembles {normalized}): +30 points"]

    def _normalize_homoglyphs(self, text: str) -> str:
        """Replace homoglyphs with their Latin equivalents."""
        result = []
        for char in text:
            if char in self.HOMOGLYPHS:
                result.append(self.HOMOGLYPHS[char])
            else:
                result.append(unicodedata.normalize("NFKC", char))
        return "".join(result)

    def _check_plain_http(self, raw: str, host: str) -> tuple[int, list[str]]:
        if raw.startswith("http://") and host not in rules.LOOPBACK_HOSTS:
            return 10, ["Unencrypted HTTP connection: +10 points"]
        return 0, []

    def _check_idn(self, host: str) -> tuple[int, list[str]]:
        if any(label.startswith("xn--") for label in host.split(".")):
            return 20, ["Internationalized domain (punycode): +20 points"]
        return 0, []

    def _is_denylisted(self, host: str) -> bool:
        return any(host_matches(host, d) for d in self.known_malicious_domains)

    def _trusted_domain(self, host: str) -> Optional[str]:
        bare = host[4:] if host.startswith("www.") else host
        return bare if bare in self.known_safe_domains else None
