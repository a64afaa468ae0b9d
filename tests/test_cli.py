import json

import pytest

from reelmetrics import cli
from reelmetrics.models import ScrapeReport, ScrapeRow, ScrapeTotals


def _report():
    return ScrapeReport(
        results=[
            ScrapeRow(inputUrl="https://www.facebook.com/reel/1", scrapedUrl="https://www.facebook.com/reel/1", likes=5),
            ScrapeRow(inputUrl="https://www.facebook.com/reel/2", error="timeout"),
        ],
        totals=ScrapeTotals(likes=5),
    )


def test_scrape_without_urls_is_usage_error():
    with pytest.raises(SystemExit) as exc:
        cli.main(["scrape"])
    assert exc.value.code == 2


def test_scrape_json_output(monkeypatch, capsys, tmp_path):
    seen = {}

    async def fake_scrape(urls, **kwargs):
        seen["urls"] = urls
        seen.update(kwargs)
        return _report()

    monkeypatch.setattr(cli, "scrape_urls", fake_scrape)
    url_file = tmp_path / "urls.txt"
    url_file.write_text("https://www.facebook.com/reel/2\nhttps://example.com/skip\n", encoding="utf-8")

    code = cli.main([
        "scrape", "--url", "https://www.facebook.com/reel/1}", "--urls", str(url_file),
        "--source", "plugin", "--json", "--headless",
    ])

    assert code == 0
    assert seen["urls"] == ["https://www.facebook.com/reel/1", "https://www.facebook.com/reel/2"]
    assert seen["mode"] == "embed"
    assert seen["headless"] is True
    assert seen["debug_dir"] is None
    out = json.loads(capsys.readouterr().out)
    assert out["results"][1] == {"inputUrl": "https://www.facebook.com/reel/2", "error": "timeout"}
    assert out["totals"] == {"likes": 5, "comments": 0, "shares": 0}


def test_scrape_table_output_with_hint(monkeypatch, capsys):
    async def fake_scrape(urls, **kwargs):
        return ScrapeReport(results=[ScrapeRow(inputUrl=urls[0], scrapedUrl=urls[0])])

    monkeypatch.setattr(cli, "scrape_urls", fake_scrape)

    code = cli.main(["scrape", "--url", "https://www.facebook.com/reel/1"])

    out = capsys.readouterr().out
    assert code == 0
    assert "N/A" in out
    assert "Totals -> likes: 0, comments: 0, shares: 0" in out
    assert "Hint:" in out


def test_format_table_columns():
    table = cli.format_table(_report())
    lines = table.splitlines()
    assert lines[0].split() == ["url", "likes", "comments", "shares", "error"]
    assert "timeout" in lines[3]
    assert lines[2].split()[1:4] == ["5", "N/A", "N/A"]


def test_all_missing():
    assert not cli.all_missing(_report())
    assert not cli.all_missing(ScrapeReport())
    assert cli.all_missing(ScrapeReport(results=[ScrapeRow(inputUrl="u", error="x")]))
