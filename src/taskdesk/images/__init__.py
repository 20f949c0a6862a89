"""Image payload handling."""

from taskdesk.images.classifier import (
    ImagePayload,
    InlineImage,
    InvalidImage,
    UrlImage,
    classify,
)
from taskdesk.images.normalizer import ImageNormalizer
from taskdesk.images.store import (
    CloudinaryImageStore,
    ImageStore,
    ImageStoreError,
    get_image_store,
)

__all__ = [
    "CloudinaryImageStore",
    "ImageNormalizer",
    "ImagePayload",
    "ImageStore",
    "ImageStoreError",
    "InlineImage",
    "InvalidImage",
    "UrlImage",
    "classify",
    "get_image_store",
]
