from __future__ import annotations

from typing import Any, Iterable, Sequence

from mcpm.regions.naming import resolved_display_title
from mcpm.regions.records import RegionRecord

CHARS_PER_PAGE = 256
DEFAULT_AUTHOR = "Admin"
LORE_DIRECTORY_NAME = "lore-books"
PARAGRAPH_BREAK = "\n\n"
LINE_BREAK = "\n"


def _cut_index(chunk: str, chars_per_page: int) -> int:
    # Paragraph and line breaks only count when they leave at least half a page.
    floor = chars_per_page // 2
    for separator in (PARAGRAPH_BREAK, LINE_BREAK):
        index = chunk.rfind(separator)
        if index >= floor:
            return index + len(separator)
    index = max(chunk.rfind(" "), chunk.rfind("\t"))
    if index > 0:
        return index + 1
    return chars_per_page


def _auto_pages(text: str, chars_per_page: int) -> list[str]:
    pages: list[str] = []
    remaining = text
    while len(remaining) > chars_per_page:
        cut = _cut_index(remaining[: chars_per_page + 1], chars_per_page)
        page = remaining[:cut].strip()
        if page:
            pages.append(page)
        remaining = remaining[cut:].lstrip()
    if remaining:
        pages.append(remaining)
    return pages


def _anchored_pages(text: str, anchors: Sequence[str]) -> list[str] | None:
    pages: list[str] = []
    position = 0
    matched = False
    for anchor in anchors:
        if not anchor:
            continue
        index = text.find(anchor, position)
        if index < 0:
            continue
        end = index + len(anchor)
        page = text[position:end].strip()
        if page:
            pages.append(page)
        position = end
        matched = True
    if not matched:
        return None
    rest = text[position:].strip()
    if rest:
        pages.append(rest)
    return pages


def paginate(text: str, anchors: Sequence[str] = (), chars_per_page: int = CHARS_PER_PAGE) -> list[str]:
    """Split ``text`` into book pages.

    Each anchor is a substring that ends a page; anchors are searched in order
    from the end of the previous match and unmatched ones are skipped. If any
    anchor matches, the anchored split is used as-is, regardless of page size.
    Otherwise pages are cut at about ``chars_per_page`` characters, preferring
    paragraph breaks, then line breaks, then whitespace.
    """
    if chars_per_page < 1:
        raise ValueError("chars_per_page must be >= 1")
    trimmed = text.strip()
    if not trimmed:
        return []
    anchored = _anchored_pages(trimmed, anchors)
    if anchored is not None:
        return anchored
    return _auto_pages(trimmed, chars_per_page)


def generate_lore_books(
    regions: Iterable[RegionRecord],
    author: str = DEFAULT_AUTHOR,
) -> dict[str, dict[str, Any]]:
    books: dict[str, dict[str, Any]] = {}
    described = sorted(
        (record for record in regions if record.is_active and record.description and record.description.strip()),
        key=lambda record: (record.id, record.world),
    )
    for record in described:
        if record.id in books:
            continue
        books[record.id] = {
            "title": resolved_display_title(record),
            "author": author,
            "pages": paginate(record.description or "", record.lore_book_anchors),
        }
    return books


def lore_book_filename(region_id: str) -> str:
    return f"{region_id}.yml"
