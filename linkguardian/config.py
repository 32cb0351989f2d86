"""Configuration management for LinkGuardian."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

import yaml
from dotenv import load_dotenv

from .scanner import rules
from .utils.domains import UNKNOWN_DOMAIN, extract_hostname

logger = logging.getLogger(__name__)

DEFAULT_COMBINER_WEIGHTS: list[float] = [0.40, 0.35, 0.25]


def _canonical_host(value: str) -> str:
    """Hostname of a list entry, without a leading www."""
    host = extract_hostname(value)
    if host == UNKNOWN_DOMAIN:
        return value
    return host[4:] if host.startswith("www.") else host


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # HTTP service
    server_host: str = "127.0.0.1"
    server_port: int = 8080

    # External intelligence API keys (optional; heuristic-only without them)
    ipqs_api_key: str = ""
    virustotal_api_key: str = ""  # Free tier: 4 req/min, 500/day
    simulate_external_signals: bool = False
    external_timeout: float = 15.0

    # Risk thresholds (heuristic-only and with external signals)
    risk_high_threshold: int = 50
    risk_medium_threshold: int = 25
    combined_high_threshold: int = 40
    combined_medium_threshold: int = 20

    # Last value is the heuristic weight; the rest are per-signal weights by rank.
    combiner_weights: list[float] = field(default_factory=lambda: list(DEFAULT_COMBINER_WEIGHTS))
    safety_ceiling: int = 25

    bulk_check_limit: int = 50

    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # Loaded lists
    allowlist: Set[str] = field(default_factory=set)
    denylist: Set[str] = field(default_factory=set)

    # Heuristics (override via config/heuristics.yaml)
    url_shorteners: list[str] = field(default_factory=lambda: list(rules.URL_SHORTENERS))
    suspicious_tlds: dict[str, int] = field(default_factory=lambda: dict(rules.SUSPICIOUS_TLDS))
    phishing_keywords: list[str] = field(default_factory=lambda: list(rules.PHISHING_KEYWORDS))
    free_hosting: list[str] = field(default_factory=lambda: list(rules.FREE_HOSTING_PLATFORMS))
    brands: list[str] = field(default_factory=lambda: list(rules.BRANDS))
    substitutions: dict[str, str] = field(default_factory=lambda: dict(rules.SUBSTITUTIONS))

    def __post_init__(self):
        """Normalize paths and load list files."""
        self.config_dir = Path(self.config_dir)
        self._load_lists()

    def _load_lists(self):
        """Load allowlist and denylist from config files."""
        allowlist_path = self.config_dir / "allowlist.txt"
        denylist_path = self.config_dir / "denylist.txt"

        if allowlist_path.exists():
            self.allowlist = {
                _canonical_host(item) for item in self._load_list_file(allowlist_path)
            }
        if denylist_path.exists():
            self.denylist = {
                _canonical_host(item) for item in self._load_list_file(denylist_path)
            }

    @staticmethod
    def _load_list_file(path: Path) -> Set[str]:
        """Load a list file, ignoring comments and empty lines."""
        items = set()
        with open(path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    items.add(line.lower())
        return items

    @property
    def known_safe_domains(self) -> Set[str]:
        return set(rules.KNOWN_SAFE_DOMAINS) | self.allowlist

    @property
    def known_malicious_domains(self) -> Set[str]:
        return set(rules.KNOWN_MALICIOUS_DOMAINS) | self.denylist


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: top level must be a mapping")
        return {}

    def _coerce_strings(raw) -> Optional[list[str]]:
        if not isinstance(raw, list):
            return None
        items = [str(item).strip().lower() for item in raw if str(item or "").strip()]
        return items or None

    def _coerce_tld_weights(raw) -> Optional[dict[str, int]]:
        items: dict[str, int] = {}
        for entry in raw or []:
            if not isinstance(entry, dict):
                continue
            tld = str(entry.get("tld") or "").strip().lower()
            try:
                points = int(entry.get("points"))
            except (TypeError, ValueError):
                continue
            if tld:
                items[tld if tld.startswith(".") else f".{tld}"] = points
        return items or None

    def _coerce_substitutions(raw) -> Optional[dict[str, str]]:
        if not isinstance(raw, dict):
            return None
        items = {
            str(k): str(v).lower()
            for k, v in raw.items()
            if len(str(k)) == 1 and str(v or "").strip()
        }
        return items or None

    link_cfg = data.get("link", {}) or {}
    if not isinstance(link_cfg, dict):
        link_cfg = {}

    overrides = {
        "url_shorteners": _coerce_strings(link_cfg.get("url_shorteners")),
        "suspicious_tlds": _coerce_tld_weights(link_cfg.get("suspicious_tlds")),
        "phishing_keywords": _coerce_strings(link_cfg.get("phishing_keywords")),
        "free_hosting": _coerce_strings(link_cfg.get("free_hosting")),
        "brands": _coerce_strings(link_cfg.get("brands")),
        "substitutions": _coerce_substitutions(link_cfg.get("substitutions")),
    }
    return {key: value for key, value in overrides.items() if value is not None}


def _parse_weights(raw: str) -> list[float]:
    try:
        weights = [float(w.strip()) for w in raw.split(",") if w.strip()]
    except ValueError:
        logger.warning(f"Invalid COMBINER_WEIGHTS {raw!r}; using defaults")
        return list(DEFAULT_COMBINER_WEIGHTS)
    return weights or list(DEFAULT_COMBINER_WEIGHTS)


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    return Config(
        server_host=os.getenv("SERVER_HOST", "127.0.0.1"),
        server_port=int(os.getenv("SERVER_PORT", "8080")),
        ipqs_api_key=os.getenv("IPQS_API_KEY", ""),
        virustotal_api_key=os.getenv("VIRUSTOTAL_API_KEY", ""),
        simulate_external_signals=_env_bool("SIMULATE_EXTERNAL_SIGNALS"),
        external_timeout=float(os.getenv("EXTERNAL_TIMEOUT", "15")),
        risk_high_threshold=int(os.getenv("RISK_HIGH_THRESHOLD", "50")),
        risk_medium_threshold=int(os.getenv("RISK_MEDIUM_THRESHOLD", "25")),
        combined_high_threshold=int(os.getenv("COMBINED_HIGH_THRESHOLD", "40")),
        combined_medium_threshold=int(os.getenv("COMBINED_MEDIUM_THRESHOLD", "20")),
        combiner_weights=_parse_weights(os.getenv("COMBINER_WEIGHTS", "0.40,0.35,0.25")),
        safety_ceiling=int(os.getenv("SAFETY_CEILING", "25")),
        bulk_check_limit=int(os.getenv("BULK_CHECK_LIMIT", "50")),
        config_dir=config_dir,
        **heuristics,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []

    if not 0 < config.server_port < 65536:
        errors.append(f"SERVER_PORT must be between 1 and 65535 (got {config.server_port})")

    for name, high, medium in (
        ("RISK", config.risk_high_threshold, config.risk_medium_threshold),
        ("COMBINED", config.combined_high_threshold, config.combined_medium_threshold),
    ):
        if not 0 <= medium <= high <= 100:
            errors.append(
                f"{name}_MEDIUM_THRESHOLD <= {name}_HIGH_THRESHOLD must hold within 0-100 "
                f"(got {medium}, {high})"
            )

    if len(config.combiner_weights) < 2:
        errors.append("COMBINER_WEIGHTS needs at least one signal weight and a heuristic weight")
    elif any(w < 0 for w in config.combiner_weights) or sum(config.combiner_weights) <= 0:
        errors.append("COMBINER_WEIGHTS must be non-negative with a positive sum")

    if not 0 <= config.safety_ceiling <= 100:
        errors.append(f"SAFETY_CEILING must be between 0 and 100 (got {config.safety_ceiling})")
    if config.external_timeout <= 0:
        errors.append("EXTERNAL_TIMEOUT must be positive")
    if config.bulk_check_limit < 1:
        errors.append("BULK_CHECK_LIMIT must be at least 1")

    if not (config.ipqs_api_key or config.virustotal_api_key or config.simulate_external_signals):
        # Scanning still works, verdicts are flagged as heuristic-only.
        logger.info("No IPQS_API_KEY or VIRUSTOTAL_API_KEY configured; external verification disabled")

    return errors
