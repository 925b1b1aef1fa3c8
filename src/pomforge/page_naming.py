from __future__ import annotations

import re
from urllib.parse import urlsplit

from .selector_rules import strip_non_alphanumeric

PAGE_SUFFIX = "Page"
DEFAULT_PAGE_NAME = "HomePage"

_MAX_SEGMENT_LENGTH = 30
_MAX_BASE_LENGTH = 20
_MAX_TITLE_FALLBACK_LENGTH = 15
_TITLE_WORD_LIMIT = 3


def derive_page_name(url: str, title: str) -> str:
    try:
        path = _parse_path(url)
    except ValueError:
        base = strip_non_alphanumeric(title)[:_MAX_TITLE_FALLBACK_LENGTH]
        return f"{base}{PAGE_SUFFIX}" if base else DEFAULT_PAGE_NAME

    base = _name_from_path(path) or _name_from_title(title)
    if not base:
        return DEFAULT_PAGE_NAME
    base = base[:_MAX_BASE_LENGTH]
    if not base.endswith(PAGE_SUFFIX):
        base += PAGE_SUFFIX
    return base


def _parse_path(url: str) -> str:
    parts = urlsplit(url.strip())
    if not parts.scheme:
        raise ValueError(f"Not an absolute URL: {url!r}")
    return parts.path


def _name_from_path(path: str) -> str:
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return ""
    last = segments[-1]
    if last.isdigit() or len(last) >= _MAX_SEGMENT_LENGTH:
        return ""
    cleaned = strip_non_alphanumeric(last)
    if not cleaned or not cleaned[0].isalpha():
        return ""
    return cleaned[0].upper() + cleaned[1:]


def _name_from_title(title: str) -> str:
    if not title:
        return ""
    head = re.split(r"[-|]", title, maxsplit=1)[0].strip()
    head = re.sub(r"[^a-zA-Z0-9\s]", "", head)
    words = [word for word in head.split() if word[0].isalpha()]
    return "".join(word[0].upper() + word[1:] for word in words[:_TITLE_WORD_LIMIT])
