import asyncio
import logging
from pathlib import Path
from typing import Callable, Union

from playwright.async_api import async_playwright

logger = logging.getLogger("reel_metrics")

INSTRUCTIONS = (
    "1) Log in to Facebook in the browser window that just opened.\n"
    "2) Open one of the tracked reels and check that the real counters are visible.\n"
    "3) Come back here and press ENTER to save the session."
)


async def save_session(out_path: Union[str, Path], wait_for_user: Callable[[str], str] = input) -> Path:
    """
    Opens a headed browser on facebook.com, lets the user log in by hand and
    stores the resulting cookies/localStorage as a Playwright storage state.
    """
    out = Path(out_path).resolve()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=False)
        context = await browser.new_context(locale="fr-FR")
        page = await context.new_page()

        print(INSTRUCTIONS)
        await page.goto("https://www.facebook.com/", wait_until="domcontentloaded", timeout=60000)

        # input() blocks, keep the event loop free while the user logs in.
        await asyncio.to_thread(wait_for_user, "")

        await context.storage_state(path=str(out))
        logger.info(f"Session saved: {out}")

        await context.close()
        await browser.close()
    return out
