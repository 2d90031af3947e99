import pytest
from unittest.mock import MagicMock

from materials_mapping import DEFAULT_MAPPING, convert_value
from record_mapper import (
    MAX_ROWS,
    is_missing,
    is_retained,
    is_zero,
    map_row,
    map_rows,
)

HEADERS = ["产品编码", "产品名称", "采购价", "税点"]


@pytest.fixture
def table():
    """
    Fixture providing the built-in header-to-field table.

    Returns:
        Mapping[str, str]: Read-only mapping table
    """
    return DEFAULT_MAPPING.table


@pytest.fixture
def convert():
    """
    Fixture providing the built-in value converter.

    Returns:
        Callable: convert(field, raw_value)
    """
    return DEFAULT_MAPPING.converter()


@pytest.fixture
def valid_rows():
    """
    Fixture providing twelve rows that all pass the retention filter.

    Returns:
        list: Data rows
    """
    return [[f"P{i}", f"Item {i}", 10 + i, 0.13] for i in range(12)]


class TestRetentionPredicates:
    """
    Tests for is_missing, is_zero and is_retained.
    """

    @pytest.mark.parametrize(
        "value, expected",
        [(None, True), (0, False), ("", False), (1.5, False)],
        ids=["none", "zero", "empty-string", "number"]
    )
    def test_is_missing(self, value, expected):
        assert is_missing(value) is expected

    @pytest.mark.parametrize(
        "value, expected",
        [(0, True), (0.0, True), (-0.0, True), ("0", False), (False, False), (None, False), (0.01, False)],
        ids=["int-zero", "float-zero", "negative-zero", "string-zero", "bool-false", "none", "small-number"]
    )
    def test_is_zero(self, value, expected):
        """
        Test that only numeric zero counts as zero.

        Args:
            value: Candidate value
            expected: Whether it should be treated as zero
        """
        assert is_zero(value) is expected

    def test_record_with_price_and_rate_is_retained(self):
        assert is_retained({"purchasePrice": 10, "taxRate": 0.13})

    @pytest.mark.parametrize(
        "record",
        [
            {"purchasePrice": None, "taxRate": 0.13},
            {"purchasePrice": 10, "taxRate": None},
            {"purchasePrice": 0, "taxRate": 0.13},
            {"purchasePrice": 10, "taxRate": 0},
            {"taxRate": 0.13},
            {"purchasePrice": 10},
            {},
        ],
        ids=["price-null", "rate-null", "price-zero", "rate-zero", "price-absent", "rate-absent", "empty"]
    )
    def test_record_without_usable_price_or_rate_is_dropped(self, record):
        assert not is_retained(record)


class TestMapRow:
    """
    Tests for map_row.
    """

    def test_unmapped_headers_are_skipped(self, table, convert):
        """
        Test that headers missing from the table never produce keys.
        """
        record = map_row(["产品编码", "备注", "采购价"], ["A1", "note", 5], table, convert)

        assert record == {"productCode": "A1", "purchasePrice": 5}

    def test_short_row_passes_none_for_missing_cells(self, table):
        """
        Test that cells beyond the end of a short row reach convert as None.
        """
        convert = MagicMock(side_effect=lambda field, raw: raw)

        record = map_row(HEADERS, ["A1"], table, convert)

        assert record == {
            "productCode": "A1",
            "productName": None,
            "purchasePrice": None,
            "taxRate": None,
        }
        convert.assert_any_call("taxRate", None)

    def test_none_row_is_treated_as_empty(self, table, convert):
        record = map_row(HEADERS, None, table, convert)

        assert all(value is None for value in record.values())

    def test_none_header_cells_are_skipped(self, table, convert):
        record = map_row([None, "采购价"], ["x", 3], table, convert)

        assert record == {"purchasePrice": 3}

    def test_rightmost_duplicate_column_wins(self, table, convert):
        """
        Test that two columns mapped to the same field leave the later value.
        """
        record = map_row(["采购价", "采购价"], [5, 7], table, convert)

        assert record == {"purchasePrice": 7}

    def test_failing_convert_sets_field_to_none(self, table):
        """
        Test that an exception from convert is contained to its field.
        """
        def convert(field, raw):
            if field == "purchasePrice":
                raise ValueError("bad price")
            return raw

        record = map_row(HEADERS, ["A1", "Widget", 10, 0.13], table, convert)

        assert record["purchasePrice"] is None
        assert record["taxRate"] == 0.13


class TestMapRows:
    """
    Tests for map_rows.
    """

    def test_reference_scenario(self, table, convert):
        """
        Test the mixed scenario: one valid row, one missing price, one zero rate.
        """
        rows = [
            ["A1", "Widget", 10, 0.13],
            ["A2", "Gadget", "", 0.1],
            ["A3", "Gizmo", 5, 0],
        ]

        result = map_rows(HEADERS, rows, table, convert)

        assert result == [
            {"productCode": "A1", "productName": "Widget", "purchasePrice": 10, "taxRate": 0.13}
        ]

    @pytest.mark.parametrize("headers", [[], None], ids=["empty-list", "none"])
    def test_empty_header_row_processes_no_rows(self, headers, table):
        """
        Test that without a header row nothing is converted.

        Args:
            headers: Empty or missing header row
        """
        convert = MagicMock()

        result = map_rows(headers, [["A1", "Widget", 10, 0.13]], table, convert)

        assert result == []
        convert.assert_not_called()

    def test_only_first_ten_rows_are_considered(self, table, convert, valid_rows):
        """
        Test that rows beyond the tenth are never mapped.

        Args:
            valid_rows: Fixture with twelve valid rows
        """
        result = map_rows(HEADERS, valid_rows, table, convert)

        assert len(result) == MAX_ROWS == 10
        assert [record["productCode"] for record in result] == [f"P{i}" for i in range(10)]

    def test_rows_after_window_are_not_converted(self, table, valid_rows):
        seen = []

        def convert(field, raw):
            seen.append(raw)
            return convert_value(field, raw)

        map_rows(HEADERS, valid_rows, table, convert)

        assert "P10" not in seen
        assert "P11" not in seen

    def test_string_zero_tax_rate_is_excluded(self, table, convert):
        """
        Test that a "0" cell coerces to 0 before the filter and is dropped.
        """
        result = map_rows(HEADERS, [["A1", "Widget", "10", "0"]], table, convert)

        assert result == []

    def test_unparseable_tax_rate_is_excluded(self, table, convert):
        result = map_rows(HEADERS, [["A1", "Widget", 10, "n/a"]], table, convert)

        assert result == []

    def test_dropped_rows_inside_window_do_not_pull_in_later_rows(self, table, convert, valid_rows):
        """
        Test that the ten-row window is applied before filtering.
        """
        rows = [["X", "bad", 0, 0.13]] * 5 + valid_rows

        result = map_rows(HEADERS, rows, table, convert)

        assert len(result) == 5
        assert result[-1]["productCode"] == "P4"

    def test_output_keeps_sheet_order(self, table, convert):
        rows = [
            ["B", "second", 2, 0.1],
            ["A", "first", 1, 0.1],
        ]

        result = map_rows(HEADERS, rows, table, convert)

        assert [record["productCode"] for record in result] == ["B", "A"]

    def test_mapping_is_idempotent(self, table, convert, valid_rows):
        """
        Test that repeated calls with the same input give the same output.
        """
        first = map_rows(HEADERS, valid_rows, table, convert)
        second = map_rows(HEADERS, valid_rows, table, convert)

        assert first == second
        assert valid_rows[0] == ["P0", "Item 0", 10, 0.13]

    def test_header_without_required_fields_yields_nothing(self, table, convert):
        result = map_rows(["产品编码", "产品名称"], [["A1", "Widget"]], table, convert)

        assert result == []

    def test_output_bounded_by_row_count(self, table, convert, valid_rows):
        result = map_rows(HEADERS, valid_rows[:3], table, convert)

        assert len(result) <= min(MAX_ROWS, 3)
