import math
import re
import unicodedata
from typing import Dict, List, Optional, Pattern, Tuple

from ..models import MetricTriple

# A count as Facebook renders it: "12", "1 234", "1,2 k", "3.4M".
# Whitespace only joins digit groups of exactly three ("1 234"), so "450 12 3"
# stays three separate tokens.
NUMBER_TOKEN = r"(?<![\d.,])\d+(?:[.,]\d+)*(?:[^\S\n]\d{3}(?!\d))*(?:[^\S\n]?[km](?![a-z]))?"
NUMBER_RE = re.compile(NUMBER_TOKEN, re.IGNORECASE)

_MULTIPLIERS = {"k": 1000, "m": 1000000}

MARKUP_ALIASES: Dict[str, Tuple[str, ...]] = {
    "likes": ("reaction_count", "feedback_reaction_count", "like_count"),
    "comments": ("comment_count", "total_comment_count"),
    "shares": ("share_count", "total_share_count"),
}


def _alias_pattern(key: str) -> Pattern[str]:
    return re.compile(r'"%s"\s*:\s*"?(\d[\d.,kKmM]*)"?' % re.escape(key), re.IGNORECASE)


_MARKUP_PATTERNS: Dict[str, Tuple[Pattern[str], ...]] = {
    field: tuple(_alias_pattern(key) for key in keys)
    for field, keys in MARKUP_ALIASES.items()
}


def normalize_count(value: Optional[str]) -> Optional[int]:
    """
    Parses a locale-formatted count into an integer.

    Whitespace is dropped (French thousands separator), the first comma is read
    as a decimal point and a trailing k/m multiplies by a thousand/million.
    Anything that is not a number afterwards gives None.
    """
    if value is None:
        return None
    s = re.sub(r"\s+", "", str(value)).replace(",", ".", 1).lower()
    mult = 1
    if s.endswith(("k", "m")):
        mult = _MULTIPLIERS[s[-1]]
        s = s[:-1]
    if not s or "_" in s:
        return None
    try:
        num = float(s)
    except ValueError:
        return None
    value = num * mult
    # A huge mantissa times k/m overflows to inf.
    if not math.isfinite(value) or value < 0:
        return None
    # Halves round up.
    return int(math.floor(value + 0.5))


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def numbers_in(line: str) -> List[int]:
    """All counts on a line, left to right, unparseable tokens dropped."""
    found = []
    for m in NUMBER_RE.finditer(line):
        n = normalize_count(m.group(0))
        if n is not None:
            found.append(n)
    return found


def last_number(line: str) -> Optional[int]:
    tokens = NUMBER_RE.findall(line)
    if not tokens:
        return None
    return normalize_count(tokens[-1])


def is_bare_number(line: str) -> bool:
    return NUMBER_RE.fullmatch(line) is not None


def parse_metrics_from_html(html: str) -> MetricTriple:
    """
    Reads counters from the GraphQL-ish JSON fragments Facebook inlines in
    <script> payloads. Aliases are tried in priority order per field; the first
    one carrying a usable number wins.
    """
    found: Dict[str, Optional[int]] = {}
    for field, patterns in _MARKUP_PATTERNS.items():
        found[field] = None
        if not html:
            continue
        for pat in patterns:
            # All occurrences in document order, until one normalizes.
            for m in pat.finditer(html):
                n = normalize_count(m.group(1))
                if n is not None:
                    found[field] = n
                    break
            if found[field] is not None:
                break
    return MetricTriple(**found)


def merge_metrics(primary: MetricTriple, secondary: MetricTriple) -> MetricTriple:
    return MetricTriple(
        likes=primary.likes if primary.likes is not None else secondary.likes,
        comments=primary.comments if primary.comments is not None else secondary.comments,
        shares=primary.shares if primary.shares is not None else secondary.shares,
    )
