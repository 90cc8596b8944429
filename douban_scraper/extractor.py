"""Field extraction from Douban subject pages.

Every field has an ordered list of regex patterns; the first one that matches
wins. Each field is probed independently through safe_extract(), so a missing
or malformed field falls back to its default without touching the others.
"""

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .models import PARTIAL_MESSAGE, DetailsResult, DoubanDetails, placeholder_title

logger = logging.getLogger("douban_scraper")

T = TypeVar("T")

TITLE_PATTERNS = [
    re.compile(r'<h1[^>]*>[\s\S]*?<span[^>]*property="v:itemreviewed"[^>]*>([^<]+)</span>'),
    re.compile(r"<title>([^<]+)\s*\(豆瓣\)</title>"),
]

POSTER_PATTERNS = [
    re.compile(r'<a[^>]*class="nbgnbg"[^>]*>[\s\S]*?<img[^>]*src="([^"]+)"'),
    re.compile(r'<img[^>]*class="[^"]*"[^>]*src="(https?://[^"]*doubanio[^"]*)"'),
    re.compile(r'<img[^>]*src="(https?://[^"]*doubanio[^"]*)"[^>]*>'),
]

RATE_PATTERNS = [
    re.compile(r'<strong[^>]*class="ll rating_num"[^>]*property="v:average">([^<]+)</strong>'),
    re.compile(r'<span[^>]*class="rating_num">([^<]+)</span>'),
    re.compile(r'property="v:average">([^<]+)</[^>]*>'),
]

YEAR_PATTERNS = [
    re.compile(r'<span[^>]*class="year">\(([^)]+)\)</span>'),
    re.compile(r"(\d{4})"),
    re.compile(r"<span[^>]*>\((\d{4})\)</span>"),
]

GENRE_PATTERN = re.compile(r'<span[^>]*property="v:genre">([^<]+)</span>')

COUNTRY_PATTERNS = [
    re.compile(r'<span[^>]*class="pl">制片国家/地区:</span>\s*([^<\n]+)'),
    re.compile(r'<span[^>]*class="pl">国家/地区:</span>\s*([^<\n]+)'),
]

LANGUAGE_PATTERNS = [
    re.compile(r'<span[^>]*class="pl">语言:</span>\s*([^<\n]+)'),
]

FIRST_AIRED_PATTERNS = [
    re.compile(r'<span\s+class="pl">首播:</span>\s*<span[^>]*property="v:initialReleaseDate"[^>]*content="([^"]*)"'),
    re.compile(r'<span\s+class="pl">上映日期:</span>\s*<span[^>]*property="v:initialReleaseDate"[^>]*content="([^"]*)"'),
    re.compile(r'property="v:initialReleaseDate"[^>]*content="([^"]*)"'),
]

EPISODES_PATTERNS = [re.compile(r'<span[^>]*class="pl">集数:</span>\s*([^<\n]+)')]
EPISODE_LENGTH_PATTERNS = [re.compile(r'<span[^>]*class="pl">单集片长:</span>\s*([^<\n]+)')]
MOVIE_DURATION_PATTERNS = [re.compile(r'<span[^>]*class="pl">片长:</span>\s*([^<\n]+)')]

SUMMARY_PATTERNS = [
    re.compile(r'<span[^>]*class="all hidden">([^<]+)</span>'),
    re.compile(r'<span[^>]*property="v:summary"[^>]*>([^<]+)</span>'),
    re.compile(r'<div[^>]*class="related-info"[\s\S]*?<p>([^<]+)</p>'),
    re.compile(r'<div[^>]*class="intro">[\s\S]*?<p>([^<]+)</p>'),
]

LINK_TEXT_PATTERN = re.compile(r"<a[^>]*>([^<]+)</a>")
LIST_DELIMITERS = re.compile(r"[/、,]")
FIRST_NUMBER = re.compile(r"(\d+)")
WHITESPACE_RUN = re.compile(r"\s+")


def staff_pattern(label: str) -> re.Pattern:
    return re.compile(
        rf"""<span\s+class=['"]pl['"]>{label}</span>:\s*<span\s+class=['"]attrs['"]>(.*?)</span>""",
        re.DOTALL,
    )


DIRECTOR_PATTERN = staff_pattern("导演")
SCREENWRITER_PATTERN = staff_pattern("编剧")
CAST_PATTERN = staff_pattern("主演")


def first_match(patterns: Sequence[re.Pattern], text: str) -> Optional[str]:
    """Return group 1 of the first pattern that matches, or None."""
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def safe_extract(name: str, probe: Callable[[], Optional[T]], default: T) -> T:
    """Run one field probe; a miss (None) or any error yields the default."""
    try:
        result = probe()
    except Exception as e:
        logger.warning(f"[parse] {name}: failed - {e}")
        return default

    if result is None:
        logger.debug(f"[parse] {name}: not found, using default")
        return default

    logger.debug(f"[parse] {name}: ok")
    return result


def split_list(text: str) -> List[str]:
    """Split a delimited blob like "中国大陆 / 中国香港" into trimmed parts."""
    return [part.strip() for part in LIST_DELIMITERS.split(text.strip()) if part.strip()]


def parse_first_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    match = FIRST_NUMBER.search(text.strip())
    return int(match.group(1)) if match else None


class DetailExtractor:
    """Extracts a DoubanDetails record from raw subject page HTML."""

    def extract(self, html: str, douban_id: str) -> DetailsResult:
        logger.info(f"[parse] Start id={douban_id}, html length={len(html or '')}")
        try:
            details = self._extract_fields(html, douban_id)
        except Exception as e:
            logger.exception(f"[parse] Fatal error for id={douban_id}: {e}")
            return DetailsResult(data=DoubanDetails.empty(douban_id), message=PARTIAL_MESSAGE)

        logger.info(f"[parse] Done: {details.title}")
        return DetailsResult(data=details)

    def _extract_fields(self, html: str, douban_id: str) -> DoubanDetails:
        episode_length, movie_duration = safe_extract(
            "duration", lambda: self.durations(html), (None, None))

        return DoubanDetails(
            id=douban_id,
            title=safe_extract("title", lambda: self.title(html), placeholder_title(douban_id)),
            poster=safe_extract("poster", lambda: self.poster(html), ""),
            rate=safe_extract("rate", lambda: self.rate(html), ""),
            year=safe_extract("year", lambda: self.year(html), ""),
            directors=safe_extract("directors", lambda: self.staff(html, DIRECTOR_PATTERN), []),
            screenwriters=safe_extract("screenwriters", lambda: self.staff(html, SCREENWRITER_PATTERN), []),
            cast=safe_extract("cast", lambda: self.staff(html, CAST_PATTERN), []),
            genres=safe_extract("genres", lambda: self.genres(html), []),
            countries=safe_extract("countries", lambda: self.delimited(html, COUNTRY_PATTERNS), []),
            languages=safe_extract("languages", lambda: self.delimited(html, LANGUAGE_PATTERNS), []),
            episodes=safe_extract("episodes", lambda: parse_first_int(first_match(EPISODES_PATTERNS, html)), None),
            episode_length=episode_length,
            movie_duration=movie_duration,
            first_aired=safe_extract("first_aired", lambda: first_match(FIRST_AIRED_PATTERNS, html), ""),
            plot_summary=safe_extract("plot_summary", lambda: self.plot_summary(html), ""),
        )

    # Field probes. Each returns None when nothing matched.

    def title(self, html: str) -> Optional[str]:
        value = first_match(TITLE_PATTERNS, html)
        return value.strip() if value is not None else None

    def poster(self, html: str) -> Optional[str]:
        value = first_match(POSTER_PATTERNS, html)
        if not value:
            return None
        return re.sub(r"^http:", "https:", value)

    def rate(self, html: str) -> Optional[str]:
        value = first_match(RATE_PATTERNS, html)
        return value.strip() if value is not None else None

    def year(self, html: str) -> Optional[str]:
        return first_match(YEAR_PATTERNS, html)

    def staff(self, html: str, pattern: re.Pattern) -> Optional[List[str]]:
        block = pattern.search(html)
        if not block:
            return None
        names = (name.strip() for name in LINK_TEXT_PATTERN.findall(block.group(1)))
        return [name for name in names if name]

    def genres(self, html: str) -> List[str]:
        return [g.strip() for g in GENRE_PATTERN.findall(html) if g.strip()]

    def delimited(self, html: str, patterns: Sequence[re.Pattern]) -> Optional[List[str]]:
        value = first_match(patterns, html)
        return split_list(value) if value is not None else None

    def durations(self, html: str) -> Tuple[Optional[int], Optional[int]]:
        episode_length = parse_first_int(first_match(EPISODE_LENGTH_PATTERNS, html))
        if episode_length is not None:
            return episode_length, None
        return None, parse_first_int(first_match(MOVIE_DURATION_PATTERNS, html))

    def plot_summary(self, html: str) -> Optional[str]:
        value = first_match(SUMMARY_PATTERNS, html)
        if value is None:
            return None
        return WHITESPACE_RUN.sub(" ", value.strip())
