"""
Merge engine for partial extractions and photo curation.

Data for one listing arrives in pieces (a voice note, a text correction,
a shared pin). merge_fields folds each piece into what we already know:
present incoming values win, absent ones never erase.
"""
import os
from typing import Optional, TypeVar

from pydantic import BaseModel

from listing_capture.models.record import ProcessedPhoto

PHOTO_MAX_PER_CATEGORY = int(os.getenv("PHOTO_MAX_PER_CATEGORY", "2"))
PHOTO_MAX_TOTAL = int(os.getenv("PHOTO_MAX_TOTAL", "10"))

M = TypeVar("M", bound=BaseModel)


def _union(existing: list, incoming: list) -> list:
    merged = list(existing)
    for item in incoming:
        if item not in merged:
            merged.append(item)
    return merged


def merge_fields(existing: Optional[M], incoming: Optional[M]) -> Optional[M]:
    """Structural deep merge of two field trees of the same model type.

    Per field:
    - incoming None        -> keep existing
    - incoming sub-model   -> recurse (missing existing group counts as empty)
    - incoming list        -> union, first-seen order
    - anything else        -> incoming overwrites

    Neither argument is mutated.
    """
    if incoming is None:
        return existing
    if existing is None:
        existing = type(incoming)() if _all_optional(type(incoming)) else None
        if existing is None:
            return incoming.model_copy(deep=True)

    values = {}
    for name in type(existing).model_fields:
        old = getattr(existing, name)
        new = getattr(incoming, name)

        if new is None:
            values[name] = old
        elif isinstance(new, BaseModel):
            values[name] = merge_fields(old, new)
        elif isinstance(new, list):
            values[name] = _union(old or [], new)
        else:
            values[name] = new

    return type(existing).model_validate(values)


def _all_optional(model: type[BaseModel]) -> bool:
    return all(not f.is_required() for f in model.model_fields.values())


def select_photos(
    photos: list[ProcessedPhoto],
    max_per_category: int = PHOTO_MAX_PER_CATEGORY,
    max_total: int = PHOTO_MAX_TOTAL,
) -> list[ProcessedPhoto]:
    """Curate photos: best first, at most max_per_category per category, max_total overall.

    sorted() is stable, so on equal scores a photo already in the list
    stays ahead of a later arrival. A reference is kept once, so a
    redelivered photo cannot take a second slot.
    """
    per_category: dict[str, int] = {}
    seen = set()
    selected = []

    for photo in sorted(photos, key=lambda p: p.score, reverse=True):
        if len(selected) >= max_total:
            break
        if photo.reference in seen:
            continue
        seen.add(photo.reference)
        count = per_category.get(photo.category, 0)
        if count >= max_per_category:
            continue
        per_category[photo.category] = count + 1
        selected.append(photo)

    return selected
