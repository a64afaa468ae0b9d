import os

import pytest

# Run history stays off in tests unless a test wires its own engine.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("WEBHOOK_URL", None)

from reelmetrics.base import BaseFetcher  # noqa: E402
from reelmetrics.facebook.urls import pick_source_url  # noqa: E402
from reelmetrics.models import PageSnapshot  # noqa: E402


class FakeFetcher(BaseFetcher):
    """Serves canned (text, markup) pairs instead of driving a browser."""

    def __init__(self, task_id, logger, pages):
        super().__init__(task_id, logger)
        self.pages = pages
        self.fetched = []
        self.setup_kwargs = None
        self.closed = False

    async def setup_browser(self, headless=True, storage_state=None, **kwargs):
        self.setup_kwargs = {"headless": headless, "storage_state": storage_state}

    async def fetch(self, url, mode="direct", **kwargs):
        self.fetched.append((url, mode))
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        text, markup = page
        return PageSnapshot(input_url=url, scraped_url=pick_source_url(url, mode), text=text, markup=markup)

    async def close(self):
        self.closed = True


@pytest.fixture
def fetcher_factory():
    """Returns a builder: pages dict -> factory usable as ``fetcher_factory``."""

    def build(pages):
        created = []

        def factory(task_id, logger):
            fetcher = FakeFetcher(task_id, logger, pages)
            created.append(fetcher)
            return fetcher

        factory.created = created
        return factory

    return build
