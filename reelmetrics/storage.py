import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from .errors import StorageError
from .models import LikesTotals, PostRecord, RunOutput

logger = logging.getLogger("reel_metrics")

PathLike = Union[str, Path]


def _clean_likes(value: Any) -> Optional[int]:
    # bool is an int subclass; a stray true/false is not a count.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _clean_video(index: int, v: Any) -> Optional[Dict[str, Any]]:
    # Only the URL is needed to look prior likes up; id and title are cosmetic.
    if not isinstance(v, dict) or not isinstance(v.get("url"), str):
        return None
    vid = v.get("id")
    title = v.get("title")
    return {
        "id": vid if isinstance(vid, int) and not isinstance(vid, bool) else index,
        "title": title if isinstance(title, str) else "",
        "url": v["url"],
        "likes": _clean_likes(v.get("likes")),
    }


def load_previous(path: PathLike) -> Optional[RunOutput]:
    """
    Reads the previous metrics file. A missing or unreadable file is not an
    error: the run simply has no history to fall back on. Entries without a
    URL are skipped one by one so a single bad record keeps the rest usable.
    """
    p = Path(path)
    if not p.exists():
        return None
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable metrics file {p}: {e}")
        return None

    if not isinstance(raw, dict):
        logger.warning(f"Ignoring metrics file {p}: top-level value is not an object")
        return None

    entries = raw.get("videos")
    if not isinstance(entries, list):
        entries = []
    videos: List[PostRecord] = []
    for index, v in enumerate(entries, start=1):
        cleaned = _clean_video(index, v)
        if cleaned is None:
            logger.warning(f"Skipping metrics entry #{index} in {p}: no usable url")
            continue
        try:
            videos.append(PostRecord.model_validate(cleaned))
        except ValidationError as e:
            logger.warning(f"Skipping metrics entry #{index} in {p}: {e.error_count()} validation errors")

    updated_at = raw.get("updatedAt")
    return RunOutput(
        updated_at=updated_at if isinstance(updated_at, str) else "",
        videos=videos,
        # Recomputed rather than trusted.
        totals=LikesTotals(likes=sum(v.likes or 0 for v in videos)),
    )


def write_run_output(path: PathLike, run: RunOutput) -> Path:
    p = Path(path)
    tmp = p.with_name(p.name + ".tmp")
    payload = json.dumps(run.to_json_dict(), indent=2, ensure_ascii=False)
    try:
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(payload, encoding="utf-8")
        os.replace(tmp, p)
    except OSError as e:
        raise StorageError(f"Could not write metrics file {p}: {e}") from e
    return p
