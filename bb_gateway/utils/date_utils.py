"""Date normalization for the statement API (DDMMYYYY query parameters)"""

import re
from datetime import date, datetime, timezone
from typing import Optional, Union

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DOTTED_DATE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")
_COMPACT_DATE = re.compile(r"^\d{8}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_date(value: Union[str, date, None]) -> Optional[str]:
    """
    Convert a date to the upstream DDMMYYYY form.

    Accepts YYYY-MM-DD, DD.MM.YYYY, an already compact DDMMYYYY string, or a
    date instance. Unrecognized strings are returned unchanged. None and empty
    strings mean "not supplied" and yield None.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value.strftime("%d%m%Y")

    text = value.strip()
    if not text:
        return None
    if _COMPACT_DATE.match(text):
        return text

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = match.groups()
        return f"{day}{month}{year}"

    match = _DOTTED_DATE.match(text)
    if match:
        day, month, year = match.groups()
        return f"{day}{month}{year}"

    return value
