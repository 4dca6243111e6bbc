"""
Parser for SKU mapping interchange files.

Reads the CSV written by the export (or a hand-edited copy, or an Excel
sheet with the same columns) and groups rows by standard SKU.

Expected columns, in order:
    StandardSKU, StandardDescription, VariationSKU, VariationSource, CustomerName|CustomerID

Exports add a trailing CustomerID column; when a header cell is named
CustomerID the customer is read from there, otherwise from the fifth field.
"""

import csv
import re
from dataclasses import dataclass, field
from io import BytesIO, StringIO
from pathlib import Path
from typing import Optional
import structlog

import pandas as pd

from exceptions import MappingFileFormatError, UnsupportedFileTypeError

logger = structlog.get_logger(__name__)

MIN_FIELDS = 5
CUSTOMER_FIELD = 4
CUSTOMER_ID_HEADER = "customerid"
DEFAULT_SOURCE = "File Import"

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}

# Spreadsheets hand ids back as "12" or "12.0"
_CUSTOMER_ID = re.compile(r"^\d+(?:\.0+)?$")


@dataclass
class VariationRow:
    """One variation line from the file."""
    row: int
    variation_sku: str
    source: str
    customer_id: int


@dataclass
class MappingGroup:
    """All rows sharing a standard SKU, in file order."""
    standard_sku: str
    standard_description: str
    variations: list[VariationRow] = field(default_factory=list)


@dataclass
class SkippedRow:
    """Row dropped by the row rules."""
    row: int
    reason: str


@dataclass
class MappingFileParseResult:
    """Result of parsing a mapping file."""
    groups: list[MappingGroup] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)

    @property
    def rows_parsed(self) -> int:
        """Rows that made it into a group."""
        return sum(len(g.variations) for g in self.groups)

    @property
    def has_data(self) -> bool:
        return len(self.groups) > 0


def _parse_customer_id(value: str) -> Optional[int]:
    if not _CUSTOMER_ID.match(value):
        return None
    customer_id = int(value.split(".")[0])
    return customer_id if customer_id >= 1 else None


def _read_csv_rows(content: bytes) -> list[list[str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.error("mapping_csv_decode_failed", error=str(e))
        raise MappingFileFormatError(
            message="File is not valid UTF-8 text",
            details={"original_error": str(e)}
        )

    try:
        return [row for row in csv.reader(StringIO(text))]
    except csv.Error as e:
        logger.error("mapping_csv_read_failed", error=str(e))
        raise MappingFileFormatError(
            message="Failed to read CSV file",
            details={"original_error": str(e)}
        )


def _read_excel_rows(content: bytes) -> list[list[str]]:
    try:
        df = pd.read_excel(
            BytesIO(content),
            sheet_name=0,
            header=None,
            dtype=str,
            engine="openpyxl"
        )
    except Exception as e:
        logger.error("mapping_excel_read_failed", error=str(e))
        raise MappingFileFormatError(
            message="Failed to read Excel file",
            details={"original_error": str(e)}
        )

    df = df.fillna("")
    return [[str(cell) for cell in row] for row in df.itertuples(index=False)]


def _customer_column(header: list[str]) -> int:
    for index, cell in enumerate(header):
        if cell.strip().lower() == CUSTOMER_ID_HEADER:
            return index
    return CUSTOMER_FIELD


def parse_mapping_rows(rows: list[list[str]]) -> MappingFileParseResult:
    """
    Apply the header check and row rules to already tokenized rows.

    Row numbers are 1-based and count the header as row 1.

    Raises:
        MappingFileFormatError: If the header lacks StandardSKU or VariationSKU
    """
    # Blank lines carry no row
    numbered = [(i + 1, row) for i, row in enumerate(rows) if any(c.strip() for c in row)]

    if not numbered:
        raise MappingFileFormatError(message="File is empty")

    _, header = numbered[0]
    joined = ",".join(header).lower()
    if "standardsku" not in joined or "variationsku" not in joined:
        raise MappingFileFormatError(
            message="Header must contain StandardSKU and VariationSKU columns",
            details={"header": header}
        )

    customer_col = _customer_column(header)
    result = MappingFileParseResult()
    groups: dict[str, MappingGroup] = {}

    for row_num, row in numbered[1:]:
        if len(row) < MIN_FIELDS or len(row) <= customer_col:
            result.skipped.append(SkippedRow(row_num, "too few fields"))
            continue

        cells = [c.strip() for c in row]
        standard_sku = cells[0]
        variation_sku = cells[2]
        customer_raw = cells[customer_col]

        if not standard_sku or not variation_sku or not customer_raw:
            result.skipped.append(SkippedRow(row_num, "missing required field"))
            continue

        customer_id = _parse_customer_id(customer_raw)
        if customer_id is None:
            result.skipped.append(SkippedRow(row_num, f"invalid customer id '{customer_raw}'"))
            continue

        group = groups.get(standard_sku)
        if group is None:
            group = MappingGroup(standard_sku=standard_sku, standard_description=cells[1])
            groups[standard_sku] = group
            result.groups.append(group)
        elif not group.standard_description and cells[1]:
            group.standard_description = cells[1]

        group.variations.append(VariationRow(
            row=row_num,
            variation_sku=variation_sku,
            source=cells[3] or DEFAULT_SOURCE,
            customer_id=customer_id,
        ))

    for skipped in result.skipped:
        logger.debug("mapping_row_skipped", row=skipped.row, reason=skipped.reason)

    logger.info(
        "mapping_file_parsed",
        groups=len(result.groups),
        rows=result.rows_parsed,
        skipped=len(result.skipped)
    )
    return result


def parse_mapping_file(filename: str, content: bytes) -> MappingFileParseResult:
    """
    Parse an uploaded mapping file.

    Args:
        filename: Original upload name, used to pick CSV or Excel
        content: Raw file bytes

    Returns:
        MappingFileParseResult with groups in first-seen order

    Raises:
        UnsupportedFileTypeError: If the extension is not CSV or Excel
        MappingFileFormatError: If the file can't be read or the header is wrong
    """
    extension = Path(filename or "").suffix.lower()
    logger.info("parsing_mapping_file", filename=filename, size=len(content))

    if extension in CSV_EXTENSIONS:
        rows = _read_csv_rows(content)
    elif extension in EXCEL_EXTENSIONS:
        rows = _read_excel_rows(content)
    else:
        raise UnsupportedFileTypeError(filename)

    return parse_mapping_rows(rows)
