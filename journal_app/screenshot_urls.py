"""Helpers for the comma-separated screenshot URL column."""

from typing import Iterable, List, Optional


def split_screenshot_urls(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [url.strip() for url in value.split(',') if url.strip()]


def join_screenshot_urls(urls: Iterable[Optional[str]]) -> str:
    """Trim, drop blanks and de-duplicate, keeping first-seen order"""
    seen = {}
    for url in urls:
        normalized = str(url if url is not None else '').strip()
        if normalized:
            seen.setdefault(normalized, None)
    return ','.join(seen)


def merge_screenshot_urls(existing: Optional[str], incoming: Iterable[Optional[str]]) -> str:
    return join_screenshot_urls(split_screenshot_urls(existing) + list(incoming))


def first_screenshot_url(value: Optional[str]) -> Optional[str]:
    urls = split_screenshot_urls(value)
    return urls[0] if urls else None
