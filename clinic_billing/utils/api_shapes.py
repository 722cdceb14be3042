"""Shared API response envelopes."""
from __future__ import annotations
import time
from typing import Any


def success(data: Any, **meta) -> dict:
    return {"status": "success", "data": data, "meta": meta or None, "timestamp": time.time()}


def pagination(page: int, page_size: int, total_items: int) -> dict:
    total_pages = max(1, -(-total_items // page_size)) if page_size else 1
    return {
        "page": page,
        "page_size": page_size,
        "total_items": total_items,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }
