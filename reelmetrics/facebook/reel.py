import re
from pathlib import Path
from typing import Optional, Union

from playwright.async_api import Error as PlaywrightError

from ..errors import FetchError
from ..models import ExtractionMode, PageSnapshot
from .base import FacebookBaseFetcher
from .urls import pick_source_url, post_id_from_url

NAVIGATION_TIMEOUT_MS = 60000


class FacebookReelFetcher(FacebookBaseFetcher):

    async def fetch(
        self,
        url: str,
        mode: ExtractionMode = "direct",
        settle_seconds: float = 5.0,
        debug_dir: Optional[Union[str, Path]] = None,
        **kwargs,
    ) -> PageSnapshot:
        if not self.page:
            raise FetchError("Browser not initialized")

        target = pick_source_url(url, mode)
        self.logger.info(f"Navigating to {target} ({mode})...")
        try:
            await self.page.goto(target, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)
        except PlaywrightError as e:
            raise FetchError(f"Navigation failed for {target}: {e}") from e

        # Counters are rendered client-side after the first paint.
        await self.page.wait_for_timeout(settle_seconds * 1000)

        restriction_msg = self.check_restricted()
        if restriction_msg:
            raise FetchError(restriction_msg)

        try:
            text = await self.page.evaluate("() => (document.body && document.body.innerText) || ''")
            markup = await self.page.content()
        except PlaywrightError as e:
            raise FetchError(f"Could not read page content for {target}: {e}") from e

        if debug_dir is not None:
            self._dump_debug(url, str(text or ""), markup, Path(debug_dir))

        return PageSnapshot(input_url=url, scraped_url=target, text=str(text or ""), markup=markup or "")

    def _dump_debug(self, url: str, text: str, markup: str, debug_dir: Path) -> None:
        """Writes debug-<id>.txt / debug-<id>.html so heuristics can be replayed offline."""
        post_id = post_id_from_url(url) or self.task_id
        safe = re.sub(r"[^a-zA-Z0-9_-]", "", post_id)
        debug_dir.mkdir(parents=True, exist_ok=True)
        (debug_dir / f"debug-{safe}.txt").write_text(text, encoding="utf-8")
        (debug_dir / f"debug-{safe}.html").write_text(markup, encoding="utf-8")
        self.logger.info(f"Debug dump written to {debug_dir / f'debug-{safe}'}.(txt|html)")
