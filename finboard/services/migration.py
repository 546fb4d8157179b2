"""Copy one user's data from the relational store into Firestore.

Record ids are preserved so category references on transactions and
budget goals stay valid in the target store.
"""
import logging
from typing import Callable, List

from finboard.core.errors import FinboardError, NotFoundError
from finboard.models import DatabaseBackend
from finboard.repositories.document import DocumentRepository
from finboard.repositories.relational import RelationalRepository
from finboard.schemas.database import MigrationDetails, MigrationResult

logger = logging.getLogger(__name__)


def _copy_all(records: List, write: Callable, label: str, errors: List[str]) -> int:
    copied = 0
    for record in records:
        try:
            write(record)
            copied += 1
        except FinboardError as exc:
            logger.error("Failed to migrate %s %s: %s", label, record.id, exc)
            errors.append(f"{label} {record.id}: {exc}")
    return copied


def migrate_to_document(source: RelationalRepository, target: DocumentRepository) -> MigrationResult:
    details = MigrationDetails()
    counts = {"profile": 0, "categories": 0, "transactions": 0, "budget_goals": 0}
    errors: List[str] = []

    try:
        try:
            profile = source.get_profile()
        except NotFoundError:
            profile = None
        categories = source.list_categories()
        transactions = source.list_transactions_between(None, None)
        goals = source.list_budget_goals()
    except FinboardError as exc:
        logger.error("Migration for user %s could not read the relational store: %s", source.user_id, exc)
        return MigrationResult(
            success=False,
            message="Data migration failed",
            details=details,
            counts=counts,
            errors=[exc.message],
        )

    if profile is None:
        details.profile = "No profile to migrate"
    else:
        counts["profile"] = _copy_all([profile], target.put_profile, "profile", errors)
        details.profile = "Profile migrated" if counts["profile"] else "Profile migration failed"

    counts["categories"] = _copy_all(categories, target.put_category, "category", errors)
    details.categories = f"Migrated {counts['categories']} of {len(categories)} categories"

    counts["transactions"] = _copy_all(transactions, target.put_transaction, "transaction", errors)
    details.transactions = f"Migrated {counts['transactions']} of {len(transactions)} transactions"

    counts["budget_goals"] = _copy_all(goals, target.put_budget_goal, "budget goal", errors)
    details.budget_goals = f"Migrated {counts['budget_goals']} of {len(goals)} budget goals"

    if errors:
        message = f"Data migration completed with {len(errors)} error(s)"
    else:
        message = "Data migration completed successfully"
    logger.info("Migration for user %s: %s %s", source.user_id, message, counts)
    return MigrationResult(
        success=True,
        message=message,
        details=details,
        counts=counts,
        errors=errors,
        backend=DatabaseBackend.DOCUMENT,
    )
