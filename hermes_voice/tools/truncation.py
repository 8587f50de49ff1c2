"""
Result-size governance for tool outputs.

Applied uniformly after any handler succeeds: large item arrays are cut to
the first page, long strings are cut to a character budget. Truncation is
data shaping, not an error.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

MAX_RESULT_ITEMS = 100
MAX_RESULT_CHARS = 50_000

# Checked in this order; the first oversized one wins
TRUNCATABLE_FIELDS = ("files", "folders", "entries", "results")


@dataclass
class TruncationOutcome:
    value: Any
    truncated: bool = False
    field: Optional[str] = None
    total_items: Optional[int] = None
    shown_items: Optional[int] = None
    total_pages: Optional[int] = None
    notice: Optional[str] = None


def _items_notice(field: str, shown: int, total: int) -> str:
    return (
        f"Showing the first {shown} of {total} {field}. "
        "The result was truncated. Use a narrower query to see the rest: "
        "a specific folder with get_folder_tree, a filter or limit/offset with "
        "list_vault_files, or a more specific search term."
    )


def _chars_notice(max_chars: int, total: int) -> str:
    return (
        f"\n\n[TRUNCATED: showing the first {max_chars} of {total} characters. "
        "Search for specific content or work on a smaller section.]"
    )


def truncate_result(
    result: Any,
    max_items: int = MAX_RESULT_ITEMS,
    max_chars: int = MAX_RESULT_CHARS,
) -> TruncationOutcome:
    """
    Shape an oversized tool result.

    Dict results with an oversized item array get the first ``max_items``
    items plus ``truncated``/``totalItems``/``shownItems``/``currentPage``/
    ``totalPages``/``truncationNotice`` keys. ``currentPage`` is always 1:
    there is no way to request later pages through this layer.

    String results longer than ``max_chars`` keep their prefix with a notice
    appended. Anything else passes through untouched.
    """
    if isinstance(result, dict):
        for field in TRUNCATABLE_FIELDS:
            items = result.get(field)
            if not isinstance(items, list) or len(items) <= max_items:
                continue
            total = len(items)
            total_pages = math.ceil(total / max_items)
            notice = _items_notice(field, max_items, total)
            shaped = dict(result)
            shaped[field] = items[:max_items]
            shaped.update({
                "truncated": True,
                "totalItems": total,
                "shownItems": max_items,
                "currentPage": 1,
                "totalPages": total_pages,
                "truncationNotice": notice,
            })
            return TruncationOutcome(
                value=shaped,
                truncated=True,
                field=field,
                total_items=total,
                shown_items=max_items,
                total_pages=total_pages,
                notice=notice,
            )
        return TruncationOutcome(value=result)

    if isinstance(result, str) and len(result) > max_chars:
        notice = _chars_notice(max_chars, len(result))
        return TruncationOutcome(
            value=result[:max_chars] + notice,
            truncated=True,
            notice=notice.strip(),
        )

    return TruncationOutcome(value=result)
