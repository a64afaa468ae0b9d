import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import config
from .errors import ReelMetricsError
from .facebook.urls import extract_urls_from_text, normalize_mode, sanitize_url
from .models import ScrapeReport
from .runner import generate_metrics, scrape_urls


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reelmetrics",
        description="Track likes, comments and shares of Facebook reels.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape = subparsers.add_parser(
        "scrape",
        help="Scrape counters for the given reel/post/video URLs.",
    )
    scrape.add_argument("--url", action="append", default=[], help="URL to scrape (repeatable).")
    scrape.add_argument("--urls", help="Text file containing URLs (any layout, one per line is fine).")
    scrape.add_argument(
        "--source",
        choices=("direct", "embed", "plugin"),
        default="direct",
        help="direct: open the page itself; embed/plugin: open the embeddable video player.",
    )
    scrape.add_argument("--json", action="store_true", help="Print the JSON report instead of a table.")
    scrape.add_argument("--headless", action=argparse.BooleanOptionalAction, default=False)
    scrape.add_argument("--storage-state", default=config.FB_STORAGE_STATE, help="Saved session file.")
    scrape.add_argument("--debug", action="store_true", help="Dump page text and HTML per URL.")
    scrape.add_argument("--debug-dir", default=config.DEBUG_DIR)
    scrape.set_defaults(_handler=_cmd_scrape)

    generate = subparsers.add_parser(
        "generate",
        help="Scrape the tracked reels and update the metrics file.",
    )
    generate.add_argument("--out", default=config.METRICS_FILE, help="Metrics JSON file to update.")
    generate.add_argument("--headless", action=argparse.BooleanOptionalAction, default=False)
    generate.add_argument("--storage-state", default=config.FB_STORAGE_STATE, help="Saved session file.")
    generate.set_defaults(_handler=_cmd_generate)

    session = subparsers.add_parser(
        "save-session",
        help="Log in by hand and save the browser session for later runs.",
    )
    session.add_argument("out", nargs="?", default="fb-session.json")
    session.set_defaults(_handler=_cmd_save_session)

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=config.HOST)
    serve.add_argument("--port", type=int, default=config.PORT)
    serve.set_defaults(_handler=_cmd_serve)

    return parser


def _collect_urls(args: argparse.Namespace) -> List[str]:
    urls = [sanitize_url(u) for u in args.url]
    if args.urls:
        urls.extend(extract_urls_from_text(Path(args.urls).read_text(encoding="utf-8")))
    return urls


def _na(value: Optional[int]) -> str:
    return "N/A" if value is None else str(value)


def format_table(report: ScrapeReport) -> str:
    headers = ("url", "likes", "comments", "shares", "error")
    rows = [
        (r.input_url, _na(r.likes), _na(r.comments), _na(r.shares), r.error or "")
        for r in report.results
    ]
    widths = [max(len(h), *(len(row[i]) for row in rows)) if rows else len(h) for i, h in enumerate(headers)]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths))]
    lines.append("  ".join("-" * w for w in widths))
    lines.extend("  ".join(c.ljust(w) for c, w in zip(row, widths)) for row in rows)
    return "\n".join(lines)


def all_missing(report: ScrapeReport) -> bool:
    return bool(report.results) and all(
        r.likes is None and r.comments is None and r.shares is None for r in report.results
    )


def _cmd_scrape(args: argparse.Namespace) -> int:
    urls = _collect_urls(args)
    if not urls:
        args._parser.error("provide at least one --url or a --urls file")
    mode = normalize_mode(args.source)
    report = asyncio.run(scrape_urls(
        urls,
        mode=mode,
        headless=args.headless,
        storage_state=args.storage_state,
        debug_dir=args.debug_dir if args.debug else None,
    ))

    if args.json:
        print(json.dumps(report.to_json_dict(), indent=2, ensure_ascii=False))
        return 0

    print("\nResults:")
    print(format_table(report))
    t = report.totals
    print(f"Totals -> likes: {t.likes}, comments: {t.comments}, shares: {t.shares}")
    if all_missing(report) and mode == "direct":
        print("\nHint: if Facebook asks for login/consent, run `save-session` first "
              "or relaunch with --no-headless and log in in the opened tab.")
    return 0


def _cmd_generate(args: argparse.Namespace) -> int:
    run = asyncio.run(generate_metrics(args.out, headless=args.headless, storage_state=args.storage_state))
    print(f"metrics file updated: {Path(args.out).resolve()}")
    print(f"total likes: {run.totals.likes}")
    return 0


def _cmd_save_session(args: argparse.Namespace) -> int:
    from .facebook.session import save_session

    out = asyncio.run(save_session(args.out))
    print(f"Session saved: {out}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("main:app", host=args.host, port=args.port)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    parser = _build_parser()
    args = parser.parse_args(argv)
    args._parser = parser
    try:
        return int(args._handler(args))
    except (ReelMetricsError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
