"""
Query Engine - Sort Comparator.

Pure, stable ordering of trade records by one field.

- Strings compare case-insensitively, numbers numerically
- Mixed types: numbers rank before strings, anything else is
  compared by its string form
- Missing values (None, empty text, NaN) come first in both
  directions
- Unknown field: input order unchanged
- Unknown direction: desc
"""

import logging
import math
from datetime import date, datetime
from typing import Any, List, Optional, Sequence, Tuple

from journal.criteria import SortConfig, SortDirection, SortField
from journal.models import TradeRecord

from .fields import sort_accessor
from .filters import ensure_records


logger = logging.getLogger(__name__)


_NUMBER_RANK = 0
_TEXT_RANK = 1
_OTHER_RANK = 2


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def sort_key(value: Any) -> Tuple[int, Any]:
    """Comparable key for a present value."""
    if isinstance(value, (int, float)):
        return (_NUMBER_RANK, float(value))
    if isinstance(value, str):
        return (_TEXT_RANK, value.casefold())
    if isinstance(value, (datetime, date)):
        return (_TEXT_RANK, value.isoformat())
    return (_OTHER_RANK, str(value))


def sort_records(
    records: Sequence[TradeRecord],
    field: Any,
    direction: Any = SortDirection.DESC,
) -> List[TradeRecord]:
    """
    New list of records ordered by field.

    Args:
        records: Sequence of TradeRecord
        field: SortField or field name
        direction: asc or desc (anything else means desc)

    Raises:
        InvalidRecordsError: If records is not a sequence of TradeRecord
    """
    ensure_records(records)
    read = sort_accessor(field)
    if read is None:
        if field:
            logger.debug(f"Unknown sort field {field!r}, keeping input order")
        return list(records)

    descending = SortDirection.parse(direction) is SortDirection.DESC

    missing: List[TradeRecord] = []
    present: List[Tuple[Tuple[int, Any], TradeRecord]] = []
    for record in records:
        value = read(record)
        if _is_missing(value):
            missing.append(record)
        else:
            present.append((sort_key(value), record))

    # list.sort keeps equal keys in input order even with reverse=True
    present.sort(key=lambda item: item[0], reverse=descending)
    return missing + [record for _, record in present]


def apply_sort_config(records: Sequence[TradeRecord], config: Optional[SortConfig]) -> List[TradeRecord]:
    """sort_records driven by a SortConfig; None keeps input order."""
    if config is None:
        ensure_records(records)
        return list(records)
    return sort_records(records, config.field, config.direction)


def resolve_sort(field: Any, direction: Any = None) -> Optional[SortConfig]:
    """SortConfig for a field/direction pair, or None for an unknown field."""
    sort_field = SortField.parse(field)
    if sort_field is None:
        return None
    return SortConfig(field=sort_field, direction=SortDirection.parse(direction))


__all__ = [
    "sort_key",
    "sort_records",
    "apply_sort_config",
    "resolve_sort",
]
