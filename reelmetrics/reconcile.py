from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

from .models import LikesTotals, PostRecord, RunOutput, ScrapeReport, TrackedPost


def reconcile_likes(
    fresh_likes: Optional[int],
    prior_likes: Optional[int],
    baseline_likes: Optional[int],
) -> Optional[int]:
    """Fresh value, else last run's value, else the hardcoded baseline."""
    for candidate in (fresh_likes, prior_likes, baseline_likes):
        if candidate is not None:
            return candidate
    return None


def prior_likes_by_url(prior: Optional[RunOutput]) -> Dict[str, Optional[int]]:
    if prior is None:
        return {}
    return {video.url: video.likes for video in prior.videos}


def fresh_likes_by_url(report: ScrapeReport) -> Dict[str, Optional[int]]:
    # Failed rows are left out so the fallback chain takes over for them.
    return {row.input_url: row.likes for row in report.results if not row.is_error}


def total_likes(records: Iterable[PostRecord]) -> int:
    return sum(r.likes for r in records if r.likes is not None)


def build_run_output(
    posts: Iterable[TrackedPost],
    fresh_by_url: Mapping[str, Optional[int]],
    prior: Optional[RunOutput],
    baseline: Mapping[str, int],
    now: Optional[datetime] = None,
) -> RunOutput:
    """
    Builds this run's summary. ``prior`` and ``baseline`` are only read; the
    returned RunOutput is a new object meant to replace the previous one.
    """
    prior_by_url = prior_likes_by_url(prior)
    videos: List[PostRecord] = []
    for post in posts:
        likes = reconcile_likes(
            fresh_by_url.get(post.url),
            prior_by_url.get(post.url),
            baseline.get(post.url),
        )
        videos.append(PostRecord(id=post.id, title=post.title, url=post.url, likes=likes))

    stamp = (now or datetime.now(timezone.utc)).isoformat().replace("+00:00", "Z")
    return RunOutput(
        updatedAt=stamp,
        videos=videos,
        totals=LikesTotals(likes=total_likes(videos)),
    )
