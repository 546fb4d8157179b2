import io
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Dict, List

import pandas as pd
from pydantic import ValidationError

from finboard.core.errors import FinboardError, ValidationFailed
from finboard.repositories.base import FinanceRepository
from finboard.schemas.category import CategoryResponse
from finboard.schemas.imports import ImportResult
from finboard.schemas.transaction import TransactionCreate

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("title", "amount", "category", "date")
MAX_REPORTED_ERRORS = 5

_AMOUNT_JUNK = re.compile(r"[^0-9.-]")


def parse_amount(value: str) -> Decimal:
    """Strip currency symbols and separators: '$1,234.50' -> 1234.50."""
    cleaned = _AMOUNT_JUNK.sub("", value or "")
    try:
        return Decimal(cleaned).quantize(Decimal("0.01"))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}")


def read_transactions_csv(content: bytes) -> pd.DataFrame:
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise ValidationFailed("Could not read the CSV file", details={"reason": str(exc)})

    df.columns = [str(column).strip().lower() for column in df.columns]
    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValidationFailed("CSV file is missing required columns", details={"missing": missing})
    if "notes" not in df.columns:
        df["notes"] = ""

    df = df.apply(lambda column: column.str.strip())
    # Rows that are entirely empty after trimming
    return df[(df != "").any(axis=1)]


def import_transactions(repo: FinanceRepository, content: bytes) -> ImportResult:
    df = read_transactions_csv(content)
    categories: Dict[str, CategoryResponse] = {cat.name.lower(): cat for cat in repo.list_categories()}

    succeeded = 0
    errors: List[str] = []
    for row in df.to_dict(orient="records"):
        title = row["title"]
        category = categories.get(row["category"].lower())
        if category is None:
            errors.append(f'Category "{row["category"]}" not found for transaction "{title}"')
            continue

        try:
            amount = parse_amount(row["amount"])
        except ValueError:
            errors.append(f'Invalid amount "{row["amount"]}" for transaction "{title}"')
            continue

        parsed_date = pd.to_datetime(row["date"], errors="coerce")
        if pd.isna(parsed_date):
            errors.append(f'Invalid date "{row["date"]}" for transaction "{title}"')
            continue

        try:
            data = TransactionCreate(
                title=title,
                amount=amount,
                category_id=category.id,
                transaction_date=parsed_date.date(),
                notes=row["notes"] or None,
            )
            repo.create_transaction(data)
            succeeded += 1
        except ValidationError as exc:
            message = exc.errors()[0]["msg"]
            errors.append(f'Invalid row for transaction "{title}": {message}')
        except FinboardError as exc:
            errors.append(f'Failed to import transaction "{title}": {exc.message}')

    failed = len(errors)
    logger.info("CSV import for user %s: %d imported, %d failed", repo.user_id, succeeded, failed)
    return ImportResult(
        success=succeeded,
        failed=failed,
        total=succeeded + failed,
        errors=errors[:MAX_REPORTED_ERRORS],
    )
