import asyncio
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from . import config
from .base import BaseFetcher
from .facebook.reel import FacebookReelFetcher
from .facebook.text import extract_metrics
from .facebook.urls import dedupe_urls
from .models import (
    ExtractionInput,
    ExtractionMode,
    RunOutput,
    ScrapeReport,
    ScrapeRow,
    ScrapeTotals,
    TrackedPost,
)
from .reconcile import build_run_output, fresh_likes_by_url
from .storage import load_previous, write_run_output

logger = logging.getLogger("reel_metrics")

FetcherFactory = Callable[[str, logging.Logger], BaseFetcher]
PostTask = Tuple[str, Callable[[], Awaitable[ScrapeRow]]]


class TaskLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra.get('task_id', 'unknown')}] {msg}", kwargs


async def scrape_one(
    fetcher: BaseFetcher,
    url: str,
    mode: ExtractionMode = "direct",
    settle_seconds: float = config.SETTLE_SECONDS,
    debug_dir: Optional[Union[str, Path]] = None,
) -> ScrapeRow:
    snapshot = await fetcher.fetch(url, mode=mode, settle_seconds=settle_seconds, debug_dir=debug_dir)
    metrics = extract_metrics(ExtractionInput(text=snapshot.text, markup=snapshot.markup, mode=mode))
    return ScrapeRow(
        inputUrl=url,
        scrapedUrl=snapshot.scraped_url,
        likes=metrics.likes,
        comments=metrics.comments,
        shares=metrics.shares,
    )


async def _run_task(task: PostTask, task_logger: logging.LoggerAdapter) -> ScrapeRow:
    url, run = task
    try:
        row = await run()
        task_logger.info(f"[OK] {url} likes={row.likes} comments={row.comments} shares={row.shares}")
        return row
    except Exception as e:
        task_logger.error(f"[ERR] {url} -> {e}")
        return ScrapeRow(inputUrl=url, error=str(e) or e.__class__.__name__)


async def run_post_tasks(
    tasks: Sequence[PostTask],
    task_logger: logging.LoggerAdapter,
    concurrent: bool = False,
) -> List[ScrapeRow]:
    """
    Runs independent per-post tasks, one row each, in task order. A failing
    post becomes an error row and never stops the others.
    """
    if concurrent:
        return list(await asyncio.gather(*(_run_task(t, task_logger) for t in tasks)))
    rows = []
    for t in tasks:
        rows.append(await _run_task(t, task_logger))
    return rows


def summarize(rows: Iterable[ScrapeRow]) -> ScrapeReport:
    rows = list(rows)
    totals = ScrapeTotals()
    for row in rows:
        totals.likes += row.likes or 0
        totals.comments += row.comments or 0
        totals.shares += row.shares or 0
    return ScrapeReport(results=rows, totals=totals)


async def scrape_urls(
    urls: Iterable[str],
    mode: ExtractionMode = "direct",
    headless: bool = True,
    storage_state: Optional[str] = None,
    debug_dir: Optional[Union[str, Path]] = None,
    settle_seconds: float = config.SETTLE_SECONDS,
    fetcher_factory: FetcherFactory = FacebookReelFetcher,
    task_id: Optional[str] = None,
) -> ScrapeReport:
    """Scrapes every URL with one browser session and returns the per-URL rows."""
    task_id = task_id or str(uuid.uuid4())
    task_logger = TaskLogger(logger, {"task_id": task_id})
    targets = dedupe_urls(list(urls))
    task_logger.info(f"Scraping {len(targets)} URL(s) in {mode} mode")

    fetcher = fetcher_factory(task_id, task_logger)
    try:
        await fetcher.setup_browser(headless=headless, storage_state=storage_state)
        await fetcher.inject_cookies()

        def make_task(url: str) -> PostTask:
            return url, lambda: scrape_one(fetcher, url, mode, settle_seconds, debug_dir)

        # All tasks share the fetcher's single page, so they run one after another.
        rows = await run_post_tasks([make_task(u) for u in targets], task_logger)
    finally:
        await fetcher.close()

    report = summarize(rows)
    task_logger.info(
        f"Totals -> likes: {report.totals.likes}, comments: {report.totals.comments}, shares: {report.totals.shares}"
    )
    return report


async def generate_metrics(
    out_path: Union[str, Path] = config.METRICS_FILE,
    headless: bool = True,
    storage_state: Optional[str] = config.FB_STORAGE_STATE,
    posts: Sequence[TrackedPost] = config.TRACKED_POSTS,
    baseline: Mapping[str, int] = config.BASELINE_LIKES,
    fetcher_factory: FetcherFactory = FacebookReelFetcher,
    task_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RunOutput:
    """
    Scrapes the tracked reels, stabilizes likes against the previous metrics
    file and the baseline, then replaces the metrics file with the new run.
    """
    previous = load_previous(out_path)
    report = await scrape_urls(
        [p.url for p in posts],
        mode="direct",
        headless=headless,
        storage_state=storage_state,
        fetcher_factory=fetcher_factory,
        task_id=task_id,
    )
    run = build_run_output(posts, fresh_likes_by_url(report), previous, baseline, now=now)
    written = write_run_output(out_path, run)
    logger.info(f"metrics file updated: {written} (total likes: {run.totals.likes})")
    return run
