"""Drive a browser tab to a URL and capture it as an A4 PDF."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from . import config
from .browser import BrowserHandle
from .errors import RenderError

logger = logging.getLogger(__name__)

PDF_OPTIONS = {
    "format": "A4",
    "print_background": True,
    "margin": {"top": "0mm", "right": "0mm", "bottom": "0mm", "left": "0mm"},
}


class PageRenderer:
    """Navigate, wait for quiescence plus a fixed grace delay, print to PDF.

    The grace delay is a blunt wait for client-side content to paint; treat
    ``grace_delay_ms`` as a tunable rather than a guarantee.
    """

    def __init__(
        self,
        *,
        timeout_ms: int = config.PDF_NAVIGATION_TIMEOUT_MS,
        grace_delay_ms: int = config.PDF_RENDER_GRACE_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.grace_delay_ms = grace_delay_ms
        self._sleep = sleep

    async def render(self, handle: BrowserHandle, url: str, timeout_ms: Optional[int] = None) -> bytes:
        timeout = self.timeout_ms if timeout_ms is None else timeout_ms
        page = handle.page

        try:
            response = await page.goto(url, wait_until="networkidle", timeout=timeout)
        except PlaywrightTimeoutError as exc:
            raise RenderError(
                f"Timed out after {timeout}ms waiting for {url} to finish loading", url=url
            ) from exc
        except PlaywrightError as exc:
            raise RenderError(f"Navigation to {url} failed: {exc}", url=url) from exc

        if response is not None and response.status >= 400:
            raise RenderError(f"Page {url} answered with HTTP {response.status}", url=url)

        if self.grace_delay_ms > 0:
            await self._sleep(self.grace_delay_ms / 1000)

        try:
            pdf = await page.pdf(**PDF_OPTIONS)
        except PlaywrightError as exc:
            raise RenderError(f"PDF capture of {url} failed: {exc}", url=url) from exc

        if not pdf:
            raise RenderError(f"PDF capture of {url} produced no output", url=url)

        logger.info("Captured %s bytes of PDF from %s", len(pdf), url)
        return pdf


__all__ = ["PageRenderer", "PDF_OPTIONS"]
