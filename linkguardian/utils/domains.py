"""Input normalization: classify a raw submission and extract its domain."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

import tldextract

UNKNOWN_DOMAIN = "unknown"

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
_IPV4_RE = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")

# Bundled public suffix snapshot only; scanning must never touch the network.
_extract = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)


class TargetKind(str, Enum):
    """What the user submitted."""

    EMAIL = "email"
    LINK = "link"


@dataclass(frozen=True)
class ParsedTarget:
    """A classified submission."""

    raw: str
    kind: TargetKind
    domain: str
    normalized_input: str

    @property
    def parse_failed(self) -> bool:
        return self.domain == UNKNOWN_DOMAIN


def normalize_input(value: str) -> str:
    """
    Normalize a submission into its cache key.

    - Trim surrounding whitespace
    - Lowercase
    - Strip trailing slashes
    """
    return (value or "").strip().lower().rstrip("/")


def has_scheme(value: str) -> bool:
    return bool(_SCHEME_RE.match((value or "").strip()))


def ensure_url(value: str) -> str:
    """Prefix http:// when the value has no scheme (parsing only)."""
    raw = (value or "").strip()
    if not raw or has_scheme(raw):
        return raw
    return f"http://{raw}"


def is_email(value: str) -> bool:
    return "@" in value and "." in value and not has_scheme(value)


def extract_hostname(value: str) -> str:
    """Best-effort hostname of a URL-ish string, or UNKNOWN_DOMAIN."""
    candidate = ensure_url(normalize_input(value))
    try:
        host = urlparse(candidate).hostname
    except ValueError:
        return UNKNOWN_DOMAIN
    host = (host or "").strip(".")
    return host or UNKNOWN_DOMAIN


def url_path(value: str) -> str:
    """Path component of a URL-ish string ("" when it cannot be parsed)."""
    try:
        return urlparse(ensure_url(normalize_input(value))).path or ""
    except ValueError:
        return ""


def parse_target(value: str) -> ParsedTarget:
    """Classify a raw submission as an email or link and extract its domain."""
    raw = value or ""
    normalized = normalize_input(raw)

    if is_email(raw):
        domain = normalized.rsplit("@", 1)[-1].strip() or UNKNOWN_DOMAIN
        return ParsedTarget(
            raw=raw,
            kind=TargetKind.EMAIL,
            domain=domain,
            normalized_input=normalized,
        )

    return ParsedTarget(
        raw=raw,
        kind=TargetKind.LINK,
        domain=extract_hostname(normalized) if normalized else UNKNOWN_DOMAIN,
        normalized_input=normalized,
    )


def is_ipv4_host(host: str) -> bool:
    return bool(_IPV4_RE.match(host or ""))


def split_host(host: str) -> tuple[list[str], str, str]:
    """Split a hostname into (subdomain labels, registrable label, suffix)."""
    extracted = _extract(host or "")
    subdomains = [label for label in extracted.subdomain.split(".") if label]
    return subdomains, extracted.domain, extracted.suffix


def host_matches(host: str, domain: str) -> bool:
    """True when host is domain itself or one of its subdomains."""
    host = (host or "").lower()
    domain = domain.lower()
    return host == domain or host.endswith(f".{domain}")
