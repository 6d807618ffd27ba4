# core/numbering.py

"""
DOCUMENT NUMBER SEQUENCES

Formats:
- daily:    <CODE>-YYYYMMDD-NNNN   (production orders, visitors)
- monthly:  <CODE>YYYYMMNNNN       (quotations, invoices, POs, movements)
- item:     <NAME6>NNN             (inventory item codes)

Rules:
- The caller passes a queryset already scoped to one company.
- The next suffix is one past the highest suffix already issued under the
  same prefix, so numbers stay monotonic even after a document is removed.
- No atomic counter: two concurrent creators can race. The unique
  constraint on each number column is the backstop (IntegrityError -> 409).
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from django.utils import timezone

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def _today() -> date:
    return timezone.localdate()


def next_number(*, queryset, field: str, prefix: str, width: int = 4) -> str:
    highest = 0
    issued = queryset.filter(**{f"{field}__startswith": prefix}).values_list(
        field, flat=True
    )
    for number in issued:
        suffix = (number or "")[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{prefix}{highest + 1:0{width}d}"


def daily_number(
    *, queryset, field: str, code: str, on: Optional[date] = None, width: int = 4
) -> str:
    on = on or _today()
    prefix = f"{code}-{on:%Y%m%d}-"
    return next_number(queryset=queryset, field=field, prefix=prefix, width=width)


def monthly_number(
    *, queryset, field: str, code: str, on: Optional[date] = None, width: int = 4
) -> str:
    on = on or _today()
    prefix = f"{code}{on:%Y%m}"
    return next_number(queryset=queryset, field=field, prefix=prefix, width=width)


def item_code_prefix(name: str) -> str:
    cleaned = _NON_ALNUM.sub("", name or "").upper()
    return cleaned[:6] or "ITEM"


def item_code(*, queryset, field: str, name: str) -> str:
    return next_number(
        queryset=queryset, field=field, prefix=item_code_prefix(name), width=3
    )
