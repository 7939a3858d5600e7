"""Vendor accumulator.

Merges newly parsed vendors into the accumulated result set: dedup by
normalized name, stable ids, descending rating order.
"""

import re
from typing import Any, Iterable

import structlog
from pydantic import ValidationError

from backend.api.schemas import Vendor

logger = structlog.get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalization_key(name: str) -> str:
    """Lowercase the name and drop every non-alphanumeric character.

    >>> normalization_key("Acme Co.")
    'acmeco'
    """
    return _NON_ALNUM.sub("", (name or "").lower())


def coerce_vendor(raw: Any) -> Vendor | None:
    """Turn a decoded vendor object into a Vendor, or None if unusable."""
    if isinstance(raw, Vendor):
        return raw
    if not isinstance(raw, dict):
        logger.warning("vendors.skip_non_object", type=type(raw).__name__)
        return None
    try:
        vendor = Vendor.model_validate(raw)
    except ValidationError as e:
        logger.warning("vendors.skip_invalid", error=str(e))
        return None
    if not normalization_key(vendor.name):
        logger.warning("vendors.skip_unnamed", name=vendor.name)
        return None
    return vendor


def _with_id(vendor: Vendor) -> Vendor:
    if vendor.id:
        return vendor
    return vendor.model_copy(update={"id": normalization_key(vendor.name)})


def sort_by_rating(vendors: list[Vendor]) -> list[Vendor]:
    """Stable sort, highest rating first; unrated vendors count as 0."""
    return sorted(vendors, key=lambda v: v.rating or 0, reverse=True)


def merge(existing: Iterable[Vendor], new_vendors: Iterable[Any]) -> list[Vendor]:
    """Merge new vendors into an existing set without duplicates.

    A new vendor is kept only if the normalization key of its name is not
    already taken, either by an existing vendor or by one accepted earlier in
    the same batch. Keys are recomputed from names on every call. The whole
    result is re-sorted by rating. Neither input is mutated.

    Args:
        existing: The accumulated vendor set.
        new_vendors: Vendors (or raw decoded dicts) from the latest reply.

    Returns:
        A new list: existing vendors followed by accepted new ones, sorted.
    """
    merged = [_with_id(v) for v in existing]
    seen = {normalization_key(v.name) for v in merged}

    added = 0
    for raw in new_vendors:
        vendor = coerce_vendor(raw)
        if vendor is None:
            continue
        key = normalization_key(vendor.name)
        if key in seen:
            continue
        seen.add(key)
        merged.append(_with_id(vendor))
        added += 1

    logger.debug("vendors.merged", added=added, total=len(merged))
    return sort_by_rating(merged)
