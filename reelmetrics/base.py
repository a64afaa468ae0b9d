import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import BrowserContext, Page, async_playwright
from playwright_stealth import Stealth

from .models import ExtractionMode, PageSnapshot

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"


class BaseFetcher(ABC):
    def __init__(self, task_id: str, logger: logging.Logger):
        self.task_id = task_id
        self.logger = logger
        self.playwright: Any = None
        self.browser: Any = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.storage_state: Optional[str] = None

    @abstractmethod
    async def fetch(self, url: str, mode: ExtractionMode = "direct", **kwargs) -> PageSnapshot:
        """Navigates to one post and returns its visible text and markup."""
        pass

    async def inject_cookies(self):
        """Site-specific session cookies; nothing to do by default."""
        pass

    async def setup_browser(
        self,
        headless: bool = True,
        storage_state: Optional[str] = None,
        locale: str = "fr-FR",
        proxy_server: Optional[str] = None,
        user_agent: Optional[str] = None,
    ):
        """Standard browser setup with stealth, optional saved session and proxy."""
        self.logger.info(f"Setting up browser (headless={headless})...")

        self.playwright = await async_playwright().start()

        browser_args = [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-accelerated-2d-canvas",
            "--disable-gpu"
        ]

        launch_kwargs: Dict[str, Any] = {
            "headless": headless,
            "args": browser_args
        }
        if proxy_server:
            launch_kwargs["proxy"] = {"server": proxy_server}

        self.browser = await self.playwright.chromium.launch(**launch_kwargs)

        context_kwargs: Dict[str, Any] = {
            "locale": locale,
            "user_agent": user_agent or DEFAULT_USER_AGENT,
        }
        if storage_state and Path(storage_state).exists():
            context_kwargs["storage_state"] = storage_state
            self.storage_state = storage_state
            self.logger.info(f"Using saved session: {storage_state}")
        elif storage_state:
            self.logger.warning(f"Session file {storage_state} not found, continuing without it.")

        self.context = await self.browser.new_context(**context_kwargs)
        self.page = await self.context.new_page()
        await Stealth().apply_stealth_async(self.page)
        self.logger.info("Browser and page ready with stealth.")

    async def close(self):
        """Cleanup browser resources."""
        if self.page:
            await self.page.close()
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()
        self.logger.info("Browser closed.")
