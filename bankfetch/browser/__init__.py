"""Browser automation support for providers.

Providers drive institutions' web banking through Playwright; this module
owns launching and tearing down the browser behind each session.
"""

from bankfetch.browser.context import BrowserSession

__all__ = [
    "BrowserSession",
]
