from __future__ import annotations
"""NeoAI — workspace entry point.

Configures logging and wires the orchestrator with its collaborators:
one shared httpx client, the history store (opened on entry, closed on
exit) and the media volume.

Usage:
    async with open_workspace() as orchestrator:
        job = await orchestrator.run("brief-to-images", {"prompt": "retro car"})
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from neoai.config import Settings, get_settings
from neoai.services.dispatcher import JobDispatcher, JobOrchestrator, WarningCallback
from neoai.services.history import HistoryStore
from neoai.services.media_store import MediaStore
from neoai.services.prompt_enhancer import PromptEnhancer
from neoai.services.status_poller import ProgressCallback, Sleeper

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging the same way for every entry point."""
    s = settings or get_settings()
    level = logging.DEBUG if s.DEBUG else getattr(logging, s.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def open_workspace(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleeper = asyncio.sleep,
    on_progress: ProgressCallback | None = None,
    on_warning: WarningCallback | None = None,
) -> AsyncIterator[JobOrchestrator]:
    """Workspace lifespan: open history on entry, flush/close everything on exit."""
    s = settings or get_settings()
    logger.info("%s workspace starting (history=%s)", s.APP_NAME, s.HISTORY_DIR)

    history = HistoryStore(s.HISTORY_DIR, s.HISTORY_STORE_NAME).open()
    client = httpx.AsyncClient(timeout=s.HTTP_TIMEOUT, transport=transport, follow_redirects=True)
    try:
        dispatcher = JobDispatcher(
            client,
            settings=s,
            on_progress=on_progress,
            on_warning=on_warning,
        )
        yield JobOrchestrator(
            dispatcher,
            history,
            media_store=MediaStore(s.MEDIA_VOLUME),
            enhancer=PromptEnhancer(client, s.PROMPT_ENHANCE_WEBHOOK_URL),
            sleep=sleep,
            on_progress=on_progress,
        )
    finally:
        await client.aclose()
        history.close()
        logger.info("%s workspace closed", s.APP_NAME)
