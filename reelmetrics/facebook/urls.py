import re
from typing import List, Optional
from urllib.parse import quote, urlsplit

from ..models import ExtractionMode

PLUGIN_PATH = "/plugins/video.php"

_URL_RE = re.compile(r"https?://[^\s\"'<>()]+", re.IGNORECASE)
_FACEBOOK_URL_RE = re.compile(r"^https?://(www\.)?facebook\.com/", re.IGNORECASE)


def sanitize_url(s: Optional[str]) -> str:
    """Trims stray brackets left over when URLs are pasted from JSON or markdown."""
    s = str(s or "").strip()
    s = re.sub(r"[\\}\]]+$", "", s)
    return re.sub(r"^[{\[(]+", "", s)


def extract_urls_from_text(data: str) -> List[str]:
    """Every facebook.com URL found in free text, in order of appearance."""
    urls = (sanitize_url(u) for u in _URL_RE.findall(data or ""))
    return [u for u in urls if _FACEBOOK_URL_RE.match(u)]


def to_plugin_url(raw_url: str) -> str:
    url = sanitize_url(raw_url)
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    if "facebook.com" in parts.netloc and parts.path.startswith(PLUGIN_PATH):
        return url
    href = quote(url, safe="!*'()")
    return f"https://www.facebook.com{PLUGIN_PATH}?height=476&href={href}&show_text=false&width=267&t=0"


def to_direct_url(raw_url: str) -> str:
    return sanitize_url(raw_url)


def pick_source_url(input_url: str, mode: ExtractionMode) -> str:
    if mode == "embed":
        return to_plugin_url(input_url)
    return to_direct_url(input_url)


def normalize_mode(source: Optional[str]) -> ExtractionMode:
    # "plugin" is the older name of the embed mode.
    if str(source or "").strip().lower() in ("embed", "plugin"):
        return "embed"
    return "direct"


def post_id_from_url(url: str) -> Optional[str]:
    m = re.search(r"/(?:reel|videos?)/(\d+)", url or "", re.IGNORECASE)
    return m.group(1) if m else None


def dedupe_urls(urls: List[str]) -> List[str]:
    seen = set()
    out = []
    for u in urls:
        if u and u not in seen:
            seen.add(u)
            out.append(u)
    return out
