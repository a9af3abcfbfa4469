"""Brand signals pulled out of raw HTML: candidate colors and plain text.

Colors are ranked by where they were found. CSS custom properties named
like brand tokens come first, then colors used in the page header, footer
and inline SVGs (usually the logo), then whatever is most frequent across
the whole document.
"""
import re
import logging
from collections import Counter
from dataclasses import dataclass

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

MAX_CANDIDATE_COLORS = 15
TOP_GLOBAL_COLORS = 5

# Blacks, whites and grays that show up on every site and say nothing about the brand
NEUTRAL_COLORS = frozenset({
    "#000000", "#0a0a0a", "#111111", "#121212", "#1a1a1a", "#222222",
    "#333333", "#444444", "#555555", "#666666", "#777777", "#888888",
    "#999999", "#aaaaaa", "#bbbbbb", "#cccccc", "#d9d9d9", "#dddddd",
    "#e0e0e0", "#e5e5e5", "#eeeeee", "#f0f0f0", "#f5f5f5", "#f8f8f8",
    "#f9f9f9", "#fafafa", "#fefefe", "#ffffff",
})

HEX_COLOR_RE = re.compile(r"#[0-9a-fA-F]{6}(?![0-9a-zA-Z])")
CSS_BRAND_VAR_RE = re.compile(
    r"--[\w-]*(?:color|primary|brand|main|accent)[\w-]*\s*:\s*(#[0-9a-fA-F]{6})(?![0-9a-zA-Z])",
    re.IGNORECASE,
)

TEXT_SKIP_TAGS = ("script", "style", "noscript")

# html.parser closes an unclosed region at end of document, so require the real closing tag
CLOSING_TAG_RES = {
    "header": re.compile(r"</header\s*>", re.IGNORECASE),
    "footer": re.compile(r"</footer\s*>", re.IGNORECASE),
}


@dataclass(frozen=True)
class PageText:
    text: str
    title: str


def _hex_colors(markup: str) -> list[str]:
    return [m.lower() for m in HEX_COLOR_RE.findall(markup)]


def _structural_colors(soup: BeautifulSoup, html: str) -> list[str]:
    """Colors from the first header, the first footer, then every svg in order.

    A header or footer that is never closed in the markup contributes nothing.
    """
    colors: list[str] = []
    for name in ("header", "footer"):
        if not CLOSING_TAG_RES[name].search(html):
            continue
        tag = soup.find(name)
        if tag is not None:
            colors.extend(_hex_colors(str(tag)))
    for svg in soup.find_all("svg"):
        colors.extend(_hex_colors(str(svg)))
    return colors


def extract_colors(html: str) -> list[str]:
    """Rank candidate brand colors found in `html`.

    Returns at most MAX_CANDIDATE_COLORS lowercase `#rrggbb` strings, without
    duplicates or neutral colors. An empty list means no usable color.
    """
    all_colors = _hex_colors(html)
    if not all_colors:
        return []

    css_brand_colors = [c.lower() for c in CSS_BRAND_VAR_RE.findall(html)]
    priority_colors = _structural_colors(BeautifulSoup(html, "html.parser"), html)

    counts = Counter(c for c in all_colors if c not in NEUTRAL_COLORS)
    # Counter.most_common keeps first-seen order for ties
    top_global_colors = [c for c, _ in counts.most_common(TOP_GLOBAL_COLORS)]

    ranked: list[str] = []
    seen: set[str] = set()
    for color in css_brand_colors + priority_colors + top_global_colors:
        if color in NEUTRAL_COLORS or color in seen:
            continue
        seen.add(color)
        ranked.append(color)
        if len(ranked) == MAX_CANDIDATE_COLORS:
            break

    logger.info(
        f"[colors] {len(all_colors)} hex tokens -> {len(ranked)} candidates "
        f"(css vars={len(css_brand_colors)}, structural={len(priority_colors)})"
    )
    return ranked


def normalize_page(html: str) -> PageText:
    """Strip markup down to a single-spaced text blob and pull out the <title>."""
    soup = BeautifulSoup(html or "", "html.parser")

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    for tag in soup.find_all(TEXT_SKIP_TAGS):
        tag.decompose()

    text = re.sub(r"\s+", " ", soup.get_text(" ")).strip()
    return PageText(text=text, title=title)
