import asyncio
import json
import logging
from datetime import datetime, timezone
from types import MappingProxyType

from reelmetrics.errors import FetchError
from reelmetrics.models import ScrapeRow, TrackedPost
from reelmetrics.runner import TaskLogger, generate_metrics, run_post_tasks, scrape_urls

U1 = "https://www.facebook.com/reel/1"
U2 = "https://www.facebook.com/reel/2"
U3 = "https://www.facebook.com/reel/3"

PLUGIN_HTML = '{"reaction_count":"15","comment_count":"4","share_count":"2"}'


def test_scrape_urls_rows_and_totals(fetcher_factory):
    factory = fetcher_factory({
        U1: ("1 234 commentaires\n56 partages\n789 j'aime", ""),
        U2: FetchError("Blocked: redirected to https://www.facebook.com/login.php"),
        U3: ("Suivre\n227\n14\n9", ""),
    })

    report = asyncio.run(scrape_urls(
        [U1, U2, U1, U3],
        mode="direct",
        headless=True,
        storage_state="fb-session.json",
        fetcher_factory=factory,
        settle_seconds=0,
    ))

    assert [r.input_url for r in report.results] == [U1, U2, U3]
    first, failed, third = report.results
    assert (first.likes, first.comments, first.shares) == (789, 1234, 56)
    assert first.scraped_url == U1
    assert failed.error == "Blocked: redirected to https://www.facebook.com/login.php"
    assert (third.likes, third.comments, third.shares) == (227, 14, 9)
    assert report.totals.model_dump() == {"likes": 1016, "comments": 1248, "shares": 65}

    fetcher = factory.created[0]
    assert fetcher.closed
    assert fetcher.setup_kwargs == {"headless": True, "storage_state": "fb-session.json"}
    assert fetcher.fetched == [(U1, "direct"), (U2, "direct"), (U3, "direct")]


def test_scrape_urls_embed_mode_reads_markup(fetcher_factory):
    factory = fetcher_factory({U1: ("", PLUGIN_HTML)})

    report = asyncio.run(scrape_urls([U1], mode="embed", fetcher_factory=factory, settle_seconds=0))

    row = report.results[0]
    assert row.scraped_url.startswith("https://www.facebook.com/plugins/video.php?")
    assert (row.likes, row.comments, row.shares) == (15, 4, 2)


def test_direct_mode_ignores_markup(fetcher_factory):
    factory = fetcher_factory({U1: ("", PLUGIN_HTML)})

    report = asyncio.run(scrape_urls([U1], mode="direct", fetcher_factory=factory, settle_seconds=0))

    assert report.results[0].to_json_dict() == {
        "inputUrl": U1,
        "scrapedUrl": U1,
        "likes": None,
        "comments": None,
        "shares": None,
    }


def test_report_json_shape(fetcher_factory):
    factory = fetcher_factory({U1: FetchError("timeout")})

    report = asyncio.run(scrape_urls([U1], fetcher_factory=factory, settle_seconds=0))

    assert report.to_json_dict() == {
        "results": [{"inputUrl": U1, "error": "timeout"}],
        "totals": {"likes": 0, "comments": 0, "shares": 0},
    }


def test_run_post_tasks_concurrently_keeps_order_and_isolates_failures():
    async def ok():
        await asyncio.sleep(0.01)
        return ScrapeRow(inputUrl="a", likes=1)

    async def bad():
        raise RuntimeError("nope")

    task_logger = TaskLogger(logging.getLogger("test"), {"task_id": "t"})
    rows = asyncio.run(run_post_tasks([("a", ok), ("b", bad)], task_logger, concurrent=True))

    assert rows[0].likes == 1
    assert rows[1].input_url == "b"
    assert rows[1].error == "nope"


def test_generate_metrics_reconciles_and_writes(tmp_path, fetcher_factory):
    out = tmp_path / "metrics.json"
    out.write_text(json.dumps({
        "updatedAt": "2026-01-01T00:00:00Z",
        "videos": [{"id": 2, "title": "B", "url": U2, "likes": 40}],
        "totals": {"likes": 40},
    }), encoding="utf-8")
    posts = (
        TrackedPost(id=1, title="A", url=U1),
        TrackedPost(id=2, title="B", url=U2),
        TrackedPost(id=3, title="C", url=U3),
    )
    factory = fetcher_factory({
        U1: ("789 j'aime", ""),
        U2: ("", ""),
        U3: FetchError("Navigation failed"),
    })
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    run = asyncio.run(generate_metrics(
        out,
        posts=posts,
        baseline=MappingProxyType({U3: 272}),
        fetcher_factory=factory,
        now=now,
    ))

    assert [v.likes for v in run.videos] == [789, 40, 272]
    assert run.totals.likes == 1101
    written = json.loads(out.read_text(encoding="utf-8"))
    assert written == run.to_json_dict()
    assert written["updatedAt"] == "2026-03-01T12:00:00Z"
