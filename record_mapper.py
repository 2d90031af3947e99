"""
Record mapping for parsed spreadsheet rows.

Turns a header row and its data rows into canonical material records and
keeps only the rows that carry a usable purchase price and tax rate.
"""
import logging
import numbers
from itertools import islice
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from materials_mapping import PURCHASE_PRICE, TAX_RATE

logger = logging.getLogger(__name__)

# Only the leading rows of a sheet are ever mapped
MAX_ROWS = 10

REQUIRED_FIELDS = (PURCHASE_PRICE, TAX_RATE)

Converter = Callable[[str, Any], Any]


def is_missing(value: Any) -> bool:
    """True when coercion produced no value (absent or unparseable cell)."""
    return value is None


def is_zero(value: Any) -> bool:
    """True when the value is the number zero; strings and bools never are."""
    return (
        isinstance(value, numbers.Number)
        and not isinstance(value, bool)
        and value == 0
    )


def is_retained(record: Mapping[str, Any]) -> bool:
    """
    Decide whether a mapped record belongs in the output.

    Both the purchase price and the tax rate must be present, non-null and
    non-zero.
    """
    for field in REQUIRED_FIELDS:
        if field not in record:
            return False
        value = record[field]
        if is_missing(value) or is_zero(value):
            return False
    return True


def map_row(
    headers: Sequence[Any],
    row: Optional[Sequence[Any]],
    mapping_table: Mapping[str, str],
    convert: Converter,
) -> Dict[str, Any]:
    """
    Map a single data row onto canonical fields.

    Columns are visited left to right; a column whose header is not in the
    table is skipped. A row shorter than the header passes None for the
    missing cells. When convert raises, the field is set to None.
    """
    row = row or ()
    record: Dict[str, Any] = {}
    for index, header in enumerate(headers):
        if header is None:
            continue
        field = mapping_table.get(str(header))
        if not field:
            continue
        raw = row[index] if index < len(row) else None
        try:
            record[field] = convert(field, raw)
        except Exception as e:
            logger.debug(
                f"Could not convert value for {field}",
                extra={"field": field, "raw_value": repr(raw), "error": str(e)}
            )
            record[field] = None
    return record


def map_rows(
    headers: Optional[Sequence[Any]],
    rows: Sequence[Optional[Sequence[Any]]],
    mapping_table: Mapping[str, str],
    convert: Converter,
) -> List[Dict[str, Any]]:
    """
    Map and filter spreadsheet rows.

    Args:
        headers: Header row of the sheet
        rows: Data rows following the header
        mapping_table: Header label to canonical field name
        convert: Callable (field, raw_value) -> coerced value

    Returns:
        Retained records in sheet order, at most MAX_ROWS of them. An empty
        or missing header row yields an empty list.
    """
    if not headers:
        return []

    records = [map_row(headers, row, mapping_table, convert) for row in islice(rows or (), MAX_ROWS)]
    return [record for record in records if is_retained(record)]
