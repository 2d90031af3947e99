"""
Field mapping table for material price sheets.

Maps the Chinese header labels used in supplier spreadsheets to the canonical
record fields, and coerces raw cell values per field kind.
"""
import json
import logging
import math
import numbers
import re
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from pydantic import BaseModel, ConfigDict, model_validator

logger = logging.getLogger(__name__)

PURCHASE_PRICE = "purchasePrice"
TAX_RATE = "taxRate"

DEFAULT_FIELD_MAPPING: Mapping[str, str] = MappingProxyType({
    "产品编码": "productCode",
    "产品名称": "productName",
    "采购价": PURCHASE_PRICE,
    "税点": TAX_RATE,
    "不含税采购价": "purchasePriceExclTax",
})

NUMBER_FIELDS: FrozenSet[str] = frozenset({
    PURCHASE_PRICE,
    TAX_RATE,
    "purchasePriceExclTax",
})

# Currency marks and thousands separators stripped before parsing a number
_NUMBER_NOISE = re.compile(r"[¥￥$€£,，\s]|元|RMB|CNY", re.IGNORECASE)
_PERCENT_SIGNS = ("%", "％")


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, float) and math.isnan(raw))


def _plain_number(value: float):
    return int(value) if value.is_integer() else value


def to_number(raw: Any) -> Optional[float]:
    """
    Parse a raw cell as a number.

    Accepts ints, floats and numeric strings such as " ¥1,200.50 " or "13%".
    A trailing percent sign divides the value by 100.

    Args:
        raw: Cell value as read from the sheet

    Returns:
        int or float, or None when the cell is empty or not a number
    """
    if _is_blank(raw) or isinstance(raw, bool):
        return None

    if isinstance(raw, numbers.Real):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        scale = 1.0
        if text.endswith(_PERCENT_SIGNS):
            text = text[:-1]
            scale = 100.0
        text = _NUMBER_NOISE.sub("", text)
        if not text:
            return None
        try:
            value = float(text) / scale
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(value):
        return None
    return _plain_number(value)


def to_text(raw: Any) -> Optional[str]:
    """Render a raw cell as trimmed text; integral floats lose their '.0'."""
    if _is_blank(raw):
        return None
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw).strip()


def convert_value(field: str, raw: Any, number_fields: FrozenSet[str] = NUMBER_FIELDS) -> Any:
    """
    Coerce a raw cell value for a canonical field.

    Args:
        field: Canonical field name
        raw: Cell value, None when the row has no cell for the column
        number_fields: Fields parsed as numbers; every other field is text

    Returns:
        Number, string or None
    """
    if field in number_fields:
        return to_number(raw)
    return to_text(raw)


class MaterialsMapping(BaseModel):
    """
    Immutable header-to-field table plus the set of numeric fields.

    Attributes:
        field_mapping: Header label (exact match) to canonical field name
        number_fields: Canonical fields coerced as numbers
    """
    model_config = ConfigDict(frozen=True)

    field_mapping: Dict[str, str]
    number_fields: FrozenSet[str] = frozenset()

    @model_validator(mode="after")
    def _number_fields_are_mapped(self) -> "MaterialsMapping":
        unknown = set(self.number_fields) - set(self.field_mapping.values())
        if unknown:
            raise ValueError(f"number_fields not present in field_mapping: {sorted(unknown)}")
        return self

    @property
    def table(self) -> Mapping[str, str]:
        return MappingProxyType(self.field_mapping)

    @property
    def headers(self):
        return list(self.field_mapping)

    def converter(self) -> Callable[[str, Any], Any]:
        number_fields = self.number_fields

        def convert(field: str, raw: Any) -> Any:
            return convert_value(field, raw, number_fields)

        return convert


DEFAULT_MAPPING = MaterialsMapping(
    field_mapping=dict(DEFAULT_FIELD_MAPPING),
    number_fields=NUMBER_FIELDS,
)


def load_mapping(path: Optional[str] = None) -> MaterialsMapping:
    """
    Load the mapping table used for the lifetime of the process.

    Args:
        path: JSON file with "field_mapping" and "number_fields" keys;
            None selects the built-in material table

    Returns:
        MaterialsMapping

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON or fails validation
    """
    if path is None:
        return DEFAULT_MAPPING

    logger.info(f"Loading field mapping from {path}")
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    mapping = MaterialsMapping.model_validate(raw)
    if PURCHASE_PRICE not in mapping.number_fields or TAX_RATE not in mapping.number_fields:
        logger.warning(
            "Loaded mapping does not treat purchasePrice and taxRate as numbers; "
            "rows may never pass the retention filter"
        )
    return mapping
