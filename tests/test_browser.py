"""Tests for the Playwright browser session lifecycle."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bankfetch.browser import context as browser_context
from bankfetch.browser import BrowserSession


@pytest.fixture
def playwright(monkeypatch):
    """Patch ``async_playwright`` with mocks for Playwright, browser and context."""
    pw = MagicMock()
    pw.stop = AsyncMock()
    browser = MagicMock()
    browser.close = AsyncMock()
    context = MagicMock()
    context.close = AsyncMock()
    context.new_page = AsyncMock(return_value="page")
    pw.chromium.launch = AsyncMock(return_value=browser)
    browser.new_context = AsyncMock(return_value=context)

    starter = MagicMock()
    starter.start = AsyncMock(return_value=pw)
    monkeypatch.setattr(browser_context, "async_playwright", lambda: starter)

    pw.browser = browser
    pw.context = context
    return pw


@pytest.mark.asyncio
async def test_new_page_requires_start():
    session = BrowserSession()

    assert not session.is_open
    with pytest.raises(RuntimeError, match="not started"):
        await session.new_page()


@pytest.mark.asyncio
async def test_session_opens_and_closes(playwright):
    async with BrowserSession(headless=False, timeout_ms=5000) as session:
        assert session.is_open
        assert await session.new_page() == "page"

    assert not session.is_open
    playwright.chromium.launch.assert_awaited_once()
    assert playwright.chromium.launch.await_args.kwargs["headless"] is False
    playwright.context.set_default_timeout.assert_called_once_with(5000)
    playwright.context.close.assert_awaited_once()
    playwright.browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()

    await session.close()
    playwright.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_launch_failure_releases_playwright(playwright):
    playwright.chromium.launch.side_effect = Exception("Executable doesn't exist")
    session = BrowserSession()

    with pytest.raises(RuntimeError, match="Failed to launch browser"):
        await session.start()

    assert not session.is_open
    playwright.stop.assert_awaited_once()
