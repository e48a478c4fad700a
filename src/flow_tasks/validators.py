from __future__ import annotations

import re

_DUE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DUE_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z?$")


def is_date_only(value: str) -> bool:
    return bool(_DUE_DATE_RE.match(value))


def validate_due_date(value: str, field_name: str) -> str:
    value = value.strip()
    if not (_DUE_DATE_RE.match(value) or _DUE_DATETIME_RE.match(value)):
        raise ValueError(f"{field_name} must be YYYY-MM-DD or YYYY-MM-DDTHH:mm:ss[Z]")
    return value
