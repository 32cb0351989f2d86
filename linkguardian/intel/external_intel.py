"""
External threat intelligence sources.

Queries reputation services for a submitted link:
- IPQualityScore: URL risk score, phishing/spam flags, domain age, country
- VirusTotal: URL report with engine detection counts

Every source reports through ExternalSignal. Failures (timeouts, HTTP errors,
malformed payloads, missing reports) become unavailable signals and are never
raised to the caller.
"""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from ..utils.domains import ParsedTarget, ensure_url
from .signals import ExternalSignal

logger = logging.getLogger(__name__)

IPQS_URL_ENDPOINT = "https://ipqualityscore.com/api/json/url/{key}/{url}"
VIRUSTOTAL_URL_ENDPOINT = "https://www.virustotal.com/api/v3/urls/{url_id}"


class SignalSource(ABC):
    """One reputation service."""

    name: str = "unknown"

    @abstractmethod
    async def fetch(self, target: ParsedTarget) -> ExternalSignal:
        """Query the service for a target."""


class IPQSSource(SignalSource):
    """IPQualityScore malicious URL scanner API."""

    name = "IPQS"

    def __init__(self, api_key: str, strictness: int = 2, timeout: float = 15.0):
        self.api_key = api_key
        self.strictness = strictness
        self.timeout = timeout

    async def fetch(self, target: ParsedTarget) -> ExternalSignal:
        url = IPQS_URL_ENDPOINT.format(
            key=quote(self.api_key, safe=""),
            url=quote(ensure_url(target.raw), safe=""),
        )
        params = {"strictness": str(self.strictness)}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        logger.debug(f"IPQS returned HTTP {resp.status} for {target.domain}")
                        return ExternalSignal.unavailable(self.name, f"HTTP {resp.status}")
                    data = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            logger.debug(f"IPQS timeout for {target.domain}")
            return ExternalSignal.unavailable(self.name, "Timeout")
        except (aiohttp.ClientError, ValueError) as e:
            logger.debug(f"IPQS error for {target.domain}: {e}")
            return ExternalSignal.unavailable(self.name, str(e) or type(e).__name__)

        signal = ExternalSignal.from_ipqs(data, service=self.name)
        if signal.available:
            logger.debug(f"IPQS: {target.domain} risk={signal.risk_score} phishing={signal.phishing}")
        return signal


def virustotal_url_id(url: str) -> str:
    """URL identifier used by the VirusTotal v3 API (unpadded urlsafe base64)."""
    return base64.urlsafe_b64encode(url.encode()).decode().strip("=")


class VirusTotalSource(SignalSource):
    """VirusTotal v3 URL report lookup.

    Only existing reports are read; no new analysis is submitted. A missing
    report (404) is unavailable rather than clean.
    """

    name = "VirusTotal"

    def __init__(self, api_key: str, timeout: float = 15.0):
        self.api_key = api_key
        self.timeout = timeout

    async def fetch(self, target: ParsedTarget) -> ExternalSignal:
        url = VIRUSTOTAL_URL_ENDPOINT.format(url_id=virustotal_url_id(ensure_url(target.raw)))
        headers = {"x-apikey": self.api_key}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status == 404:
                        # URL never analysed
                        return ExternalSignal.unavailable(self.name, "No report")
                    if resp.status == 429:
                        logger.warning("VirusTotal rate limit exceeded")
                        return ExternalSignal.unavailable(self.name, "Rate limited")
                    if resp.status != 200:
                        return ExternalSignal.unavailable(self.name, f"HTTP {resp.status}")
                    data = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            logger.debug(f"VirusTotal timeout for {target.domain}")
            return ExternalSignal.unavailable(self.name, "Timeout")
        except (aiohttp.ClientError, ValueError) as e:
            logger.debug(f"VirusTotal error for {target.domain}: {e}")
            return ExternalSignal.unavailable(self.name, str(e) or type(e).__name__)

        if not isinstance(data, dict):
            return ExternalSignal.unavailable(self.name, "Malformed payload")
        attrs = (data.get("data") or {}).get("attributes") or {}
        signal = ExternalSignal.from_virustotal_stats(
            attrs.get("last_analysis_stats") or {}, service=self.name
        )
        if signal.available:
            logger.debug(
                f"VirusTotal: {target.domain} = {signal.positives}/{signal.total} malicious"
            )
        return signal


class SignalGatherer:
    """Queries every configured source concurrently and settles all of them."""

    def __init__(self, sources: Sequence[SignalSource], timeout: float = 15.0):
        self.sources = list(sources)
        self.timeout = timeout

    @property
    def source_names(self) -> List[str]:
        return [source.name for source in self.sources]

    async def _fetch_one(self, source: SignalSource, target: ParsedTarget) -> ExternalSignal:
        try:
            return await asyncio.wait_for(source.fetch(target), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{source.name} did not answer within {self.timeout}s")
            return ExternalSignal.unavailable(source.name, "Timeout")

    async def gather(self, target: ParsedTarget) -> List[ExternalSignal]:
        """Fan out to all sources; one failing source never affects the others."""
        if not self.sources:
            return []

        results = await asyncio.gather(
            *(self._fetch_one(source, target) for source in self.sources),
            return_exceptions=True,
        )

        signals: List[ExternalSignal] = []
        for source, result in zip(self.sources, results):
            if isinstance(result, ExternalSignal):
                signals.append(result)
            elif isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning(f"{source.name} failed for {target.domain}: {result}")
                signals.append(
                    ExternalSignal.unavailable(source.name, str(result) or type(result).__name__)
                )
            else:
                signals.append(ExternalSignal.unavailable(source.name, "Malformed result"))
        return signals


def build_signal_sources(config) -> List[SignalSource]:
    """Create sources for the configured API keys (or the simulated pair)."""
    from .simulated import SimulatedIPQSSource, SimulatedVirusTotalSource

    if config.simulate_external_signals:
        logger.info("Using simulated external signal sources")
        return [SimulatedIPQSSource(), SimulatedVirusTotalSource()]

    sources: List[SignalSource] = []
    if config.ipqs_api_key:
        sources.append(IPQSSource(config.ipqs_api_key, timeout=config.external_timeout))
    if config.virustotal_api_key:
        sources.append(VirusTotalSource(config.virustotal_api_key, timeout=config.external_timeout))

    if not sources:
        logger.info("No external signal sources configured; running heuristic-only")
    return sources


def create_gatherer(config) -> Optional[SignalGatherer]:
    sources = build_signal_sources(config)
    if not sources:
        return None
    return SignalGatherer(sources, timeout=config.external_timeout)
