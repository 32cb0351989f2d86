"""JSON API for LinkGuardian."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from aiohttp import web

from ..scanner.pipeline import LinkScanner
from ..utils.domains import is_email

logger = logging.getLogger(__name__)

MAX_INPUT_LENGTH = 2048
FALLBACK_MESSAGE = "Analysis could not be completed. Treat this link with caution."

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def fallback_verdict(raw: str) -> dict:
    """Body returned when a scan fails unexpectedly."""
    return {
        "url": raw,
        "isSafe": False,
        "type": "email" if is_email(raw) else "link",
        "warningLevel": "warning",
        "riskScore": 50,
        "heuristicScore": None,
        "heuristicRiskLevel": None,
        "factors": [FALLBACK_MESSAGE],
        "threatDetails": FALLBACK_MESSAGE,
        "phishing": False,
        "suspicious": True,
        "spamming": False,
        "domainAge": "Unknown",
        "country": "Unknown",
        "degraded": True,
        "timestamp": datetime.now().isoformat(),
    }


@web.middleware
async def cors_middleware(request: web.Request, handler):
    """Attach CORS headers to every response and answer preflight requests."""
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


class ScanApi:
    """Request handlers bound to one scanner."""

    def __init__(self, scanner: LinkScanner, bulk_check_limit: int = 50):
        self.scanner = scanner
        self.bulk_check_limit = bulk_check_limit

    async def _read_input(
        self, request: web.Request, max_length: int = MAX_INPUT_LENGTH
    ) -> tuple[Optional[str], Optional[web.Response]]:
        try:
            data = await request.json()
        except ValueError:
            return None, web.json_response({"error": "Invalid JSON payload"}, status=400)
        if not isinstance(data, dict):
            return None, web.json_response({"error": "Invalid JSON payload"}, status=400)

        raw = data.get("input")
        if not isinstance(raw, str) or not raw.strip():
            return None, web.json_response({"error": "input is required"}, status=400)
        if len(raw) > max_length:
            return None, web.json_response({"error": "input is too long"}, status=400)
        return raw.strip(), None

    async def check_link(self, request: web.Request) -> web.Response:
        """Scan a single link or email address."""
        raw, error = await self._read_input(request)
        if error is not None:
            return error

        try:
            verdict = await self.scanner.score_target(raw)
        except Exception as exc:
            logger.exception(f"Scan failed for {raw!r}: {exc}")
            return web.json_response(fallback_verdict(raw), status=500)
        return web.json_response(verdict.to_dict())

    async def bulk_check(self, request: web.Request) -> web.Response:
        """Scan every link in a pasted block of text."""
        raw, error = await self._read_input(
            request, max_length=MAX_INPUT_LENGTH * self.bulk_check_limit
        )
        if error is not None:
            return error

        verdicts = await self.scanner.check_bulk(raw, limit=self.bulk_check_limit)
        return web.json_response(
            {"results": [v.to_dict() for v in verdicts], "count": len(verdicts)}
        )

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "ok",
                "cache_entries": len(self.scanner.cache),
                "signal_sources": self.scanner.signal_source_names,
            }
        )

    async def preflight(self, request: web.Request) -> web.Response:
        return web.Response(status=204, headers=CORS_HEADERS)


def create_app(scanner: LinkScanner, config=None) -> web.Application:
    """Build the aiohttp application around a scanner."""
    api = ScanApi(scanner, bulk_check_limit=getattr(config, "bulk_check_limit", 50))

    app = web.Application(middlewares=[cors_middleware])
    app.router.add_post("/api/v1/check-link", api.check_link)
    app.router.add_post("/api/v1/bulk-check", api.bulk_check)
    app.router.add_route("OPTIONS", "/api/v1/check-link", api.preflight)
    app.router.add_route("OPTIONS", "/api/v1/bulk-check", api.preflight)
    app.router.add_get("/healthz", api.health)
    return app


class ScanServer:
    """Runs the JSON API on a TCP site."""

    def __init__(self, scanner: LinkScanner, config):
        self.scanner = scanner
        self.config = config
        self.host = config.server_host
        self.port = config.server_port
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    async def start(self):
        """Start the API server."""
        app = create_app(self.scanner, self.config)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Scan API listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the API server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None
