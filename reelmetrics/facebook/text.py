import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Pattern, Tuple

from ..models import METRIC_FIELDS, ExtractionInput, MetricTriple
from .utils import (
    NUMBER_TOKEN,
    is_bare_number,
    last_number,
    merge_metrics,
    normalize_count,
    numbers_in,
    parse_metrics_from_html,
    strip_diacritics,
)

# Keyword families, matched against accent-stripped lower-case lines.
COMMENTS_KEYWORDS = r"commentaires?|comments?"
SHARES_KEYWORDS = r"partages?|shares?"
LIKES_KEYWORDS = r"j['’]?aime|likes?|reactions?"

STATS_LINE_RE = re.compile(f"(?:{COMMENTS_KEYWORDS}|{SHARES_KEYWORDS})")
LIKES_LINE_RE = re.compile(f"(?:{LIKES_KEYWORDS})")

# "<number> <label>" on the same line, label after the number.
LABEL_PATTERNS: Dict[str, Pattern[str]] = {
    "comments": re.compile(f"({NUMBER_TOKEN})[^\\S\\n]+(?:{COMMENTS_KEYWORDS})", re.IGNORECASE),
    "shares": re.compile(f"({NUMBER_TOKEN})[^\\S\\n]+(?:{SHARES_KEYWORDS})", re.IGNORECASE),
    "likes": re.compile(f"({NUMBER_TOKEN})[^\\S\\n]+(?:{LIKES_KEYWORDS})", re.IGNORECASE),
}


@dataclass(frozen=True)
class PageLines:
    """Visible page text split into clean lines plus a keyword-matching copy."""

    lines: Tuple[str, ...]
    normalized: Tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> "PageLines":
        cleaned = []
        for raw in (text or "").split("\n"):
            line = re.sub(r"\s+", " ", raw).strip()
            if line:
                cleaned.append(line)
        normalized = tuple(strip_diacritics(line).lower() for line in cleaned)
        return cls(lines=tuple(cleaned), normalized=normalized)

    def first_index(self, pattern: Pattern[str]) -> Optional[int]:
        for i, line in enumerate(self.normalized):
            if pattern.search(line):
                return i
        return None


PartialMetrics = Dict[str, Optional[int]]
TextStrategy = Callable[[PageLines], PartialMetrics]


def label_anywhere(page: PageLines) -> PartialMetrics:
    """A count directly followed by its label, e.g. "12 commentaires"."""
    full = "\n".join(page.normalized)
    found: PartialMetrics = {}
    for field, pat in LABEL_PATTERNS.items():
        m = pat.search(full)
        if m:
            found[field] = normalize_count(m.group(1))
    return found


def stats_line(page: PageLines) -> PartialMetrics:
    """
    Positional read of the first line mentioning comments or shares.

    Three counts map to likes/comments/shares, two counts to comments/shares.
    Any other amount is too ambiguous to assign.
    """
    idx = page.first_index(STATS_LINE_RE)
    if idx is None:
        return {}
    nums = numbers_in(page.lines[idx])
    if len(nums) == 3:
        return dict(zip(METRIC_FIELDS, nums))
    if len(nums) == 2:
        return {"comments": nums[0], "shares": nums[1]}
    return {}


def likes_from_previous_line(page: PageLines) -> PartialMetrics:
    # The reaction counter usually sits right above the stats line.
    idx = page.first_index(STATS_LINE_RE)
    if not idx:
        return {}
    return {"likes": last_number(page.lines[idx - 1])}


def likes_from_own_line(page: PageLines) -> PartialMetrics:
    idx = page.first_index(LIKES_LINE_RE)
    if idx is None:
        return {}
    return {"likes": last_number(page.lines[idx])}


def bare_number_triple(page: PageLines) -> PartialMetrics:
    """
    Direct reel pages can render the counters as three standalone numeric lines.
    The first such run of three lines is taken, whatever follows it.
    """
    lines = page.lines
    for i in range(len(lines) - 2):
        window = lines[i:i + 3]
        if not all(is_bare_number(line) for line in window):
            continue
        nums = [normalize_count(line) for line in window]
        if all(n is not None for n in nums):
            return dict(zip(METRIC_FIELDS, nums))
    return {}


# Most specific first; a later strategy never overwrites an earlier value.
TEXT_STRATEGIES: Tuple[TextStrategy, ...] = (
    label_anywhere,
    stats_line,
    likes_from_previous_line,
    likes_from_own_line,
    bare_number_triple,
)


def apply_strategies(page: PageLines, strategies: Tuple[TextStrategy, ...] = TEXT_STRATEGIES) -> MetricTriple:
    found: PartialMetrics = {field: None for field in METRIC_FIELDS}
    for strategy in strategies:
        if all(found[field] is not None for field in METRIC_FIELDS):
            break
        for field, value in strategy(page).items():
            if found.get(field) is None and value is not None:
                found[field] = value
    return MetricTriple(**found)


def parse_metrics_from_text(text: str) -> MetricTriple:
    return apply_strategies(PageLines.from_text(text))


def extract_metrics(page: ExtractionInput) -> MetricTriple:
    """
    Text heuristics first; in embed mode the inline JSON counters fill the gaps.
    Direct pages carry too many unrelated script blobs for the markup scan.
    """
    by_text = parse_metrics_from_text(page.text)
    if page.mode == "embed":
        by_html = parse_metrics_from_html(page.markup)
    else:
        by_html = MetricTriple()
    return merge_metrics(by_text, by_html)
