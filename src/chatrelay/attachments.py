"""Deterministic selection of one size from a multi-resolution photo."""

from __future__ import annotations

from collections.abc import Sequence

from .telegram.api_models import PhotoSize


def resolve_variant_index(length: int, offset: int) -> int:
    """Map a signed offset onto `[0, length - 1]`; negative counts from the end."""
    index = offset if offset >= 0 else length + offset
    return max(0, min(index, length - 1))


def find_photo_file_id(photos: Sequence[PhotoSize], offset: int) -> str:
    return photos[resolve_variant_index(len(photos), offset)].file_id
