"""Bulk import of marketplace references from CSV or Excel exports."""

from __future__ import annotations

import logging
import re
import zipfile
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd
from pydantic import BaseModel, Field, ValidationError

from src.db.repository import StoreError

from .models import ImportResult, MarketplaceReference

if TYPE_CHECKING:
    from src.db.repository import CatalogRepository

    from .config import Settings

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_ROWS = 10_000
SUPPORTED_SUFFIXES = (".csv", ".xlsx")

# Characters stripped before parsing a number: currency, percent, separators
NUMBER_NOISE = re.compile(r"[¥$%,\s]")


class ReferenceImportError(Exception):
    """The file as a whole cannot be imported."""


class ReferenceRow(BaseModel):
    """One validated row of a reference export."""

    asin: str = Field(pattern=r"^[A-Z0-9]{10}$")
    amazon_name: str | None = None
    amazon_price: int | None = Field(default=None, ge=0)
    monthly_sales: int | None = Field(default=None, ge=0)
    fee_rate: int | None = Field(default=None, ge=0, le=100)
    fba_fee: int | None = Field(default=None, ge=0)
    jan_code: str | None = None
    image_url: str | None = None
    product_url: str | None = None


def _parse_number(value: Any) -> Decimal | None:
    if value is None:
        return None
    text = NUMBER_NOISE.sub("", str(value))
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_integer(value: Any) -> int | None:
    """Parse a number, dropping the fractional part (floor)."""
    number = _parse_number(value)
    if number is None:
        return None
    return int(number.to_integral_value(rounding=ROUND_FLOOR))


def parse_integer_rounded(value: Any) -> int | None:
    """Parse a number rounded to the nearest integer, halves up."""
    number = _parse_number(value)
    if number is None:
        return None
    return int(number.to_integral_value(rounding=ROUND_HALF_UP))


def _text(value: Any) -> str | None:
    if value is None:
        return None
    # Excel hands back codes like EANs as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


class ReferenceImporter:
    """Creates marketplace references from a seller-tool export.

    Columns are positional and the first row is a header:
    0 image, 1 Amazon URL, 2 brand, 3 name, 4 ASIN, 5 monthly sales,
    6 buy-box price, 7 referral fee %, 8 FBA fee, 9 EAN.
    """

    def __init__(self, repository: CatalogRepository, settings: Settings) -> None:
        self.repository = repository
        self.default_fee_rate = settings.profit.default_fee_rate
        self.default_fulfillment_fee = settings.profit.default_fulfillment_fee

    def read_rows(self, file_path: str | Path) -> list[tuple[int, list[Any]]]:
        """Read data rows (header excluded) with empty cells as None.

        Returns:
            (row number in the file, cells) pairs; the header is row 1 and
            blank rows are left out without renumbering the rest

        Raises:
            FileNotFoundError: If the file does not exist
            ReferenceImportError: If the file is too large, too long, unreadable
                or of an unsupported type
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        suffix = path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise ReferenceImportError(
                f"Unsupported file type '{suffix}', expected one of: {', '.join(SUPPORTED_SUFFIXES)}"
            )
        if path.stat().st_size > MAX_FILE_SIZE:
            raise ReferenceImportError(f"File is larger than {MAX_FILE_SIZE // (1024 * 1024)}MB")

        try:
            if suffix == ".csv":
                frame = pd.read_csv(
                    path,
                    header=None,
                    dtype=str,
                    keep_default_na=False,
                    encoding="utf-8-sig",
                    skip_blank_lines=False,
                )
            else:
                frame = pd.read_excel(path, header=None, dtype=object, engine="openpyxl")
        except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ReferenceImportError(f"Cannot read {path.name}: {e}") from e
        except (ValueError, KeyError, zipfile.BadZipFile) as e:
            raise ReferenceImportError(f"Cannot read {path.name} as a workbook: {e}") from e

        frame = frame.iloc[1:]
        if len(frame) > MAX_ROWS:
            raise ReferenceImportError(f"File has {len(frame)} rows, the limit is {MAX_ROWS}")

        rows = []
        for row_number, values in enumerate(frame.itertuples(index=False, name=None), start=2):
            row = [None if pd.isna(value) or value == "" else value for value in values]
            if any(value is not None for value in row):
                rows.append((row_number, row))
        return rows

    def parse_row(self, row: list[Any]) -> MarketplaceReference:
        """Validate one data row.

        Raises:
            ValueError: If the row does not validate
        """

        def cell(index: int) -> Any:
            return row[index] if index < len(row) else None

        try:
            validated = ReferenceRow(
                asin=(_text(cell(4)) or "").upper(),
                amazon_name=_text(cell(3)),
                amazon_price=parse_integer(cell(6)),
                monthly_sales=parse_integer(cell(5)),
                fee_rate=parse_integer_rounded(cell(7)),
                fba_fee=parse_integer(cell(8)),
                jan_code=_text(cell(9)),
                image_url=_text(cell(0)),
                product_url=_text(cell(1)),
            )
        except ValidationError as e:
            messages = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
            raise ValueError(", ".join(messages)) from None

        return MarketplaceReference(
            asin=validated.asin,
            amazon_name=validated.amazon_name,
            # A zero price or sales figure means "unknown" in these exports
            amazon_price=Decimal(validated.amazon_price) if validated.amazon_price else None,
            monthly_sales=validated.monthly_sales or None,
            fee_rate=(
                Decimal(validated.fee_rate)
                if validated.fee_rate is not None
                else self.default_fee_rate
            ),
            fba_fee=(
                Decimal(validated.fba_fee)
                if validated.fba_fee is not None
                else self.default_fulfillment_fee
            ),
            jan_code=validated.jan_code,
            image_url=validated.image_url,
            product_url=validated.product_url,
        )

    def import_file(self, file_path: str | Path) -> ImportResult:
        """Import a reference export, skipping codes that already exist.

        Row problems are collected as (row number, message), numbered as in
        the file with the header as row 1.
        """
        result = ImportResult()
        try:
            rows = self.read_rows(file_path)
        except ReferenceImportError as e:
            result.errors.append((0, str(e)))
            return result

        parsed: list[MarketplaceReference] = []
        seen: set[str] = set()
        for row_number, row in rows:
            try:
                reference = self.parse_row(row)
            except ValueError as e:
                result.errors.append((row_number, str(e)))
                continue
            if reference.asin in seen:
                result.items_skipped += 1
                continue
            seen.add(reference.asin)
            parsed.append(reference)

        if not parsed:
            result.success = not result.errors
            return result

        try:
            existing = self.repository.get_existing_asins(seen)
            new_references = [ref for ref in parsed if ref.asin not in existing]
            result.items_skipped += len(parsed) - len(new_references)
            if new_references:
                self.repository.insert_references(new_references)
            result.items_imported = len(new_references)
        except StoreError as e:
            result.errors.append((0, f"Failed to save references: {e}"))
            return result

        result.success = not result.errors
        logger.info(
            f"Imported {result.items_imported} references from {Path(file_path).name}, "
            f"skipped {result.items_skipped}, {result.error_count} errors"
        )
        return result
