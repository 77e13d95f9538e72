"""Best-effort connectivity probe for flaky webhook backends.

``probe`` never raises and never gates submission. It does report a
distinct negative signal (``reachable=False``) so callers can warn early.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    url: str
    reachable: bool
    detail: str = ""


def ping_candidates(url: str) -> list[str]:
    """Common ping endpoint patterns for an n8n webhook URL."""
    candidates = []
    if "/webhook/" in url:
        candidates.append(url.replace("/webhook/", "/ping/"))
        candidates.append(url.replace("/webhook/", "/health/"))
    candidates.append(f"{url}/ping")
    candidates.append(f"{url}/health")
    return candidates


async def probe(url: str, http_client: httpx.AsyncClient, timeout: float = 5.0) -> ProbeResult:
    """Try an OPTIONS preflight, then GET on the ping patterns."""
    try:
        await http_client.request("OPTIONS", url, headers={"Accept": "*/*"}, timeout=timeout)
        # Any response means the host is reachable
        return ProbeResult(url=url, reachable=True, detail="OPTIONS answered")
    except httpx.HTTPError as e:
        logger.debug("OPTIONS probe failed for %s: %s", url, e)

    for candidate in ping_candidates(url):
        try:
            response = await http_client.get(candidate, headers={"Accept": "*/*"}, timeout=timeout)
        except httpx.HTTPError:
            continue
        if response.is_success:
            return ProbeResult(url=url, reachable=True, detail=f"GET {candidate} answered")

    logger.warning("Connectivity probe failed for %s; proceeding anyway", url)
    return ProbeResult(url=url, reachable=False, detail="backend did not answer any probe")
