"""Open URLs in the user's browser without blocking the event loop."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from typing import Optional

logger = logging.getLogger(__name__)


def open_url(url: str, browser: Optional[str] = None) -> bool:
    """Open *url* in *browser* (or the default browser).

    Returns:
        ``True`` when a browser accepted the URL, ``False`` when none could
        be launched. Callers fall back to printing the URL.
    """
    try:
        controller = webbrowser.get(browser) if browser else webbrowser.get()
        return bool(controller.open(url))
    except webbrowser.Error as exc:
        logger.debug("cannot open browser: %s", exc)
        return False


async def open_url_async(url: str, browser: Optional[str] = None) -> bool:
    """Run :func:`open_url` on a worker thread."""
    return await asyncio.to_thread(open_url, url, browser)
