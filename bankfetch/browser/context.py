"""Browser session management with Playwright.

Each provider owns exactly one ``BrowserSession`` for the span of a login
through logout. Sessions are never shared between relationships.
"""

from typing import Any

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

logger = structlog.get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class BrowserSession:
    """A Playwright Chromium browser with one isolated context.

    Usage:
        session = BrowserSession(headless=True)
        await session.start()
        try:
            page = await session.new_page()
            # ... use page ...
        finally:
            await session.close()

    or ``async with BrowserSession(...) as session:``.
    """

    def __init__(
        self,
        headless: bool = True,
        slow_mo_ms: int = 0,
        timeout_ms: int = 30000,
        locale: str = "en-AU",
    ) -> None:
        self.headless = headless
        self.slow_mo_ms = slow_mo_ms
        self.timeout_ms = timeout_ms
        self.locale = locale
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @property
    def is_open(self) -> bool:
        return self._context is not None

    async def start(self) -> None:
        """Launch Playwright, the browser and a fresh context.

        Anything already launched is torn down again if a later step fails.

        Raises:
            RuntimeError: If the browser fails to launch.
        """
        if self.is_open:
            logger.debug("browser_session_already_started")
            return

        try:
            logger.debug(
                "launching_browser",
                headless=self.headless,
                slow_mo_ms=self.slow_mo_ms,
            )
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                slow_mo=self.slow_mo_ms,
                args=["--disable-blink-features=AutomationControlled"],
            )
            self._context = await self._browser.new_context(
                accept_downloads=True,
                locale=self.locale,
                viewport={"width": 1920, "height": 1080},
                user_agent=USER_AGENT,
            )
            self._context.set_default_timeout(self.timeout_ms)
            logger.debug("browser_session_started")

        except Exception as e:
            logger.error("browser_launch_failed", error=str(e))
            await self.close()
            raise RuntimeError(f"Failed to launch browser: {e}") from e

    async def new_page(self) -> Page:
        """Open a new page in the session's context.

        Raises:
            RuntimeError: If the session has not been started.
        """
        if not self.is_open:
            raise RuntimeError("Browser session is not started")
        return await self._context.new_page()

    async def close(self) -> None:
        """Release the context, browser and Playwright.

        Safe to call repeatedly and on a partially started session. Close
        errors are logged, never raised.
        """
        for attr, closer in (
            ("_context", "close"),
            ("_browser", "close"),
            ("_playwright", "stop"),
        ):
            resource = getattr(self, attr)
            if resource is None:
                continue
            try:
                await getattr(resource, closer)()
            except Exception as e:
                logger.warning("browser_resource_close_failed", resource=attr.lstrip("_"), error=str(e))
            finally:
                setattr(self, attr, None)

        logger.debug("browser_session_closed")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
