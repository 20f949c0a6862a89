"""Classify raw image payloads from request bodies."""

import re
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse

ACCEPTED_INLINE_SUBTYPES = ("png", "jpeg", "jpg", "gif", "webp")

_INLINE_IMAGE_RE = re.compile(
    r"^data:image/(?P<subtype>" + "|".join(ACCEPTED_INLINE_SUBTYPES) + r");base64,"
)


@dataclass(frozen=True)
class UrlImage:
    """A reference to an image hosted elsewhere."""

    url: str


@dataclass(frozen=True)
class InlineImage:
    """A base64 data URI carrying the image itself."""

    data_uri: str
    subtype: str


@dataclass(frozen=True)
class InvalidImage:
    """Neither an absolute URL nor an accepted data URI."""

    raw: str


ImagePayload = Union[UrlImage, InlineImage, InvalidImage]


def is_absolute_url(value: str) -> bool:
    """Scheme plus network location, e.g. https://host/path."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc) and not any(c.isspace() for c in value)


def classify(raw: Optional[str]) -> Optional[ImagePayload]:
    """Return None for an absent image, otherwise the payload variant.

    Data URIs are checked first since some parsers also accept them as URLs.
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        return InvalidImage(repr(raw))
    if raw.strip() == "":
        return None

    match = _INLINE_IMAGE_RE.match(raw)
    if match:
        return InlineImage(data_uri=raw, subtype=match.group("subtype"))
    if is_absolute_url(raw):
        return UrlImage(url=raw)
    return InvalidImage(raw)
