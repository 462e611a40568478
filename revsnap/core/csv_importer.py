"""Catalog import from CSV and Excel files."""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import BinaryIO

import pandas as pd

from .exceptions import ValidationError
from .models import ImportResult, ProductInput

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
SUPPORTED_EXTENSIONS = CSV_EXTENSIONS | EXCEL_EXTENSIONS


class CsvValidationError(ValidationError):
    """Raised when a catalog file cannot be read or lacks required columns."""

    def __init__(self, message: str, missing_headers: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_headers = missing_headers or []


@dataclass
class CatalogRow:
    """Parsed catalog row."""

    row_number: int
    name: str
    current_price: Decimal
    cost: Decimal
    units_sold: int
    category: str
    warnings: list[str] = field(default_factory=list)

    @property
    def is_priceable(self) -> bool:
        return self.current_price > 0 and self.cost > 0

    def to_input(self) -> ProductInput:
        return ProductInput(
            name=self.name,
            current_price=self.current_price,
            cost=self.cost,
            units_sold=self.units_sold,
            category=self.category,
        )


class CatalogImporter:
    """Imports product catalogs, recognizing columns by loose header names."""

    REQUIRED_FIELDS = {
        "name": "Product Name",
        "current_price": "Current Price",
        "cost": "Cost",
    }

    def __init__(self, default_units_sold: int = 100, default_category: str = "General") -> None:
        self.default_units_sold = default_units_sold
        self.default_category = default_category

    @staticmethod
    def match_header(header: str) -> str | None:
        """Get the field a header maps to, if any."""
        h = header.strip().lower()
        if "product" in h and "name" in h:
            return "name"
        if "price" in h and "cost" not in h:
            return "current_price"
        if "cost" in h or "cogs" in h:
            return "cost"
        if "units" in h or "quantity" in h:
            return "units_sold"
        if "category" in h:
            return "category"
        return None

    def map_headers(self, headers: list[str]) -> dict[str, str]:
        """Map field names to the first header that matches each.

        Raises CsvValidationError when name, price or cost has no column.
        """
        mapping: dict[str, str] = {}
        for header in headers:
            if header is None:
                continue
            field_name = self.match_header(str(header))
            if field_name and field_name not in mapping:
                mapping[field_name] = header

        missing = [label for key, label in self.REQUIRED_FIELDS.items() if key not in mapping]
        if missing:
            raise CsvValidationError(
                "CSV must contain columns: Product Name, Current Price, and Cost",
                missing_headers=missing,
            )
        return mapping

    def parse_decimal(self, value: str, row_num: int, field_name: str) -> tuple[Decimal, str | None]:
        """Parse a decimal value, returning the value and any error."""
        if not value or value.strip() == "":
            return Decimal("0"), f"Row {row_num}: {field_name} is empty, using 0"

        try:
            # Remove currency symbols and whitespace
            cleaned = value.strip().replace("$", "").replace(",", "").replace(" ", "")
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0"), f"Row {row_num}: Invalid {field_name} value '{value}', using 0"
        if not parsed.is_finite():
            return Decimal("0"), f"Row {row_num}: Invalid {field_name} value '{value}', using 0"
        return parsed, None

    def parse_int(self, value: str, row_num: int, field_name: str, default: int) -> tuple[int, str | None]:
        """Parse an integer value, returning the value and any error."""
        if not value or value.strip() == "":
            return default, None

        try:
            parsed = int(Decimal(value.strip().replace(",", "")))
        except (InvalidOperation, ValueError, OverflowError):
            return default, f"Row {row_num}: Invalid {field_name} value '{value}', using {default}"
        if parsed < 0:
            return default, f"Row {row_num}: {field_name} cannot be negative, using {default}"
        return parsed, None

    def parse_row(self, row: dict[str, str], mapping: dict[str, str], index: int) -> CatalogRow:
        """Parse a single data row; index is 1-based over data rows."""
        warnings: list[str] = []

        def cell(field_name: str) -> str:
            header = mapping.get(field_name)
            value = row.get(header) if header is not None else None
            return "" if value is None else str(value)

        name = cell("name").strip() or f"Product {index}"

        price, err = self.parse_decimal(cell("current_price"), index, "price")
        if err:
            warnings.append(err)
        cost, err = self.parse_decimal(cell("cost"), index, "cost")
        if err:
            warnings.append(err)
        units, err = self.parse_int(cell("units_sold"), index, "units", self.default_units_sold)
        if err:
            warnings.append(err)

        category = cell("category").strip() or self.default_category

        return CatalogRow(
            row_number=index,
            name=name,
            current_price=price,
            cost=cost,
            units_sold=units,
            category=category,
            warnings=warnings,
        )

    def read_rows(self, data: bytes, filename: str) -> tuple[list[str], list[dict[str, str]]]:
        """Read headers and rows from raw file content."""
        suffix = Path(filename).suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            raise CsvValidationError(
                f"Unsupported file type '{suffix or filename}'. Upload a CSV or Excel file"
            )

        if suffix in CSV_EXTENSIONS:
            try:
                text = data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise CsvValidationError(f"CSV file is not valid UTF-8: {e}") from e
            reader = csv.DictReader(io.StringIO(text, newline=""))
            if not reader.fieldnames:
                raise CsvValidationError("CSV file is empty or has no headers")
            return list(reader.fieldnames), list(reader)

        try:
            df = pd.read_excel(io.BytesIO(data), dtype=str)
        except (ValueError, OSError, zipfile.BadZipFile) as e:
            raise CsvValidationError(f"Could not read spreadsheet: {e}") from e
        if len(df.columns) == 0:
            raise CsvValidationError("Spreadsheet is empty or has no headers")
        df = df.fillna("")
        headers = [str(c) for c in df.columns]
        df.columns = headers
        return headers, df.to_dict(orient="records")

    def import_bytes(self, data: bytes, filename: str) -> tuple[list[ProductInput], ImportResult]:
        """Import catalog content and return priceable products.

        Returns tuple of (products, import_result).
        """
        headers, rows = self.read_rows(data, filename)
        mapping = self.map_headers(headers)

        products: list[ProductInput] = []
        result = ImportResult()

        for index, row in enumerate(rows, start=1):
            parsed = self.parse_row(row, mapping, index)
            result.warnings.extend(parsed.warnings)

            if not parsed.is_priceable:
                result.warnings.append(
                    f"Row {index}: skipping {parsed.name}, price and cost must be greater than 0"
                )
                result.items_skipped += 1
                continue

            products.append(parsed.to_input())
            result.items_imported += 1

        result.success = not result.errors
        logger.info(
            f"Read {result.items_imported} products from {filename} "
            f"({result.items_skipped} skipped)"
        )
        return products, result

    def import_stream(self, stream: BinaryIO, filename: str) -> tuple[list[ProductInput], ImportResult]:
        """Import an uploaded file object."""
        return self.import_bytes(stream.read(), filename)

    def import_file(self, file_path: str | Path) -> tuple[list[ProductInput], ImportResult]:
        """Import a catalog file from disk."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return self.import_bytes(path.read_bytes(), path.name)
