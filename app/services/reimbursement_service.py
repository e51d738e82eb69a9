"""Persistence steps of a reimbursement submission.

These functions run on the request's session. None of them commits or rolls
back the submission transaction: they report what happened and the caller
(``reimbursement_submission.submit_reimbursement``) decides.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import func, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.master_data import CostCenter, Department, ExpenseCategory, Project
from app.models.reimbursement import (
    Reimbursement,
    ReimbursementAttachment,
    ReimbursementItem,
    ReimbursementItemStatus,
)
from app.schemas.reimbursement import (
    ReimbursementAttachmentResponse,
    ReimbursementItemCreate,
    ReimbursementItemResponse,
    ReimbursementResponse,
)
from app.services.attachment_storage import StoredFile
from app.services.reimbursement_payload import parse_amount

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for "relation does not exist"
UNDEFINED_TABLE_SQLSTATE = "42P01"

TOTAL_TOLERANCE = Decimal("0.01")

REQUIRED_FIELDS_MESSAGE = "Expense type, amount, and date are required for each item"


def is_missing_table_error(exc: BaseException) -> bool:
    """True when the database reports that a table does not exist."""
    orig = getattr(exc, "orig", None) or exc
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNDEFINED_TABLE_SQLSTATE:
        return True
    # SQLite has no SQLSTATE codes
    return "no such table" in str(orig).lower()


class TableCapabilities:
    """Answers "does this table exist?" once per table for one pipeline run."""

    def __init__(self, db: Session):
        self._db = db
        self._known: Dict[str, bool] = {}

    def has_table(self, table_name: str) -> bool:
        if table_name not in self._known:
            self._known[table_name] = inspect(self._db.connection()).has_table(table_name)
            if not self._known[table_name]:
                logger.debug(f"Table {table_name} not present, related writes are skipped")
        return self._known[table_name]

    @property
    def attachments_enabled(self) -> bool:
        return self.has_table(ReimbursementAttachment.__tablename__)


@dataclass
class ItemOutcome:
    success: bool
    item_id: Optional[int] = None
    error: Optional[str] = None
    item_index: Optional[int] = None

    @classmethod
    def failure(cls, error: str, item_index: int) -> "ItemOutcome":
        return cls(success=False, error=error, item_index=item_index)


@dataclass
class ReimbursementDetails:
    reimbursement: Optional[Dict[str, Any]] = None
    items: List[Dict[str, Any]] = field(default_factory=list)
    attachments: List[Dict[str, Any]] = field(default_factory=list)


def _first_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", str(error))


def process_reimbursement_item(
    db: Session,
    reimbursement_id: int,
    item: Any,
    item_index: int,
    item_files_map: Dict[int, List[StoredFile]],
    user_id: int,
    capabilities: TableCapabilities,
) -> ItemOutcome:
    """Validate and insert one line item plus the receipts uploaded for it."""
    if not isinstance(item, dict):
        item = {}

    if not item.get("expense_type") or not item.get("amount") or not item.get("expense_date"):
        return ItemOutcome.failure(f"{REQUIRED_FIELDS_MESSAGE} (item {item_index + 1})", item_index)

    amount = parse_amount(item["amount"])
    if amount is None or amount <= 0:
        return ItemOutcome.failure(
            f"Invalid amount for item: {item['amount']}. Amount must be a positive number.",
            item_index,
        )

    try:
        item_data = ReimbursementItemCreate.model_validate({**item, "amount": amount})
    except ValidationError as e:
        return ItemOutcome.failure(
            f"Invalid details for item {item_index + 1}: {_first_validation_error(e)}",
            item_index,
        )

    reimbursement_item = ReimbursementItem(
        reimbursement_id=reimbursement_id,
        status=ReimbursementItemStatus.PENDING,
        **item_data.model_dump(),
    )
    db.add(reimbursement_item)
    db.flush()

    _save_item_attachments(
        db,
        reimbursement_id,
        reimbursement_item.id,
        item_files_map.get(item_index) or [],
        user_id,
        capabilities,
    )

    return ItemOutcome(success=True, item_id=reimbursement_item.id, item_index=item_index)


def _save_item_attachments(
    db: Session,
    reimbursement_id: int,
    item_id: int,
    files: List[StoredFile],
    user_id: int,
    capabilities: TableCapabilities,
) -> None:
    """Best effort: a failed receipt insert never fails the item."""
    if not files or not capabilities.attachments_enabled:
        return

    for stored in files:
        try:
            # Savepoint keeps a failed insert from aborting the whole transaction
            with db.begin_nested():
                db.add(ReimbursementAttachment(
                    reimbursement_id=reimbursement_id,
                    reimbursement_item_id=item_id,
                    file_name=stored.original_name,
                    file_path=stored.path,
                    file_size=stored.size,
                    file_type=stored.content_type,
                    uploaded_by=user_id,
                ))
        except SQLAlchemyError as e:
            if not is_missing_table_error(e):
                logger.warning(f"Error saving item attachment {stored.original_name}: {e}")


def process_all_items(
    db: Session,
    reimbursement_id: int,
    items: List[Any],
    item_files_map: Dict[int, List[StoredFile]],
    user_id: int,
    capabilities: TableCapabilities,
) -> ItemOutcome:
    """Persist items in submission order, stopping at the first failure."""
    outcome = ItemOutcome(success=True)
    for index, item in enumerate(items):
        outcome = process_reimbursement_item(
            db, reimbursement_id, item, index, item_files_map, user_id, capabilities
        )
        if not outcome.success:
            logger.info(f"Reimbursement {reimbursement_id}: item {index + 1} rejected: {outcome.error}")
            return outcome
    return outcome


def recalculate_and_update_total(db: Session, reimbursement_id: int, total_amount: Decimal) -> Decimal:
    """Re-sum persisted item amounts and correct the stored total when it drifted."""
    recalculated = (
        db.query(func.coalesce(func.sum(ReimbursementItem.amount), 0))
        .filter(ReimbursementItem.reimbursement_id == reimbursement_id)
        .scalar()
    )
    final_total = Decimal(str(recalculated or 0)).quantize(TOTAL_TOLERANCE)

    if abs(final_total - Decimal(str(total_amount))) > TOTAL_TOLERANCE:
        logger.info(
            f"Reimbursement {reimbursement_id}: total {total_amount} differs from items sum "
            f"{final_total}, updating"
        )
        db.query(Reimbursement).filter(Reimbursement.id == reimbursement_id).update(
            {
                Reimbursement.total_amount: final_total,
                Reimbursement.updated_at: func.now(),
            },
            synchronize_session=False,
        )
        db.commit()

    return final_total


def _column_values(obj) -> Dict[str, Any]:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def serialize_reimbursement(reimbursement: Reimbursement, **lookups) -> Dict[str, Any]:
    data = _column_values(reimbursement)
    data.update(lookups)
    return ReimbursementResponse.model_validate(data).model_dump()


def fetch_reimbursement_with_details(
    db: Session,
    reimbursement_id: int,
    capabilities: Optional[TableCapabilities] = None,
) -> ReimbursementDetails:
    """Header with lookup names, items with category names, and attachments.

    Degrades instead of raising: a failed header/items read returns an empty
    result, a failed attachments read returns no attachments.
    """
    capabilities = capabilities or TableCapabilities(db)

    try:
        row = (
            db.query(
                Reimbursement,
                Department.name.label("department_name"),
                CostCenter.name.label("cost_center_name"),
                Project.name.label("project_name"),
            )
            .outerjoin(Department, Reimbursement.department_id == Department.id)
            .outerjoin(CostCenter, Reimbursement.cost_center_id == CostCenter.id)
            .outerjoin(Project, Reimbursement.project_id == Project.id)
            .filter(Reimbursement.id == reimbursement_id)
            .first()
        )

        item_rows = (
            db.query(ReimbursementItem, ExpenseCategory.name.label("expense_category_name"))
            .outerjoin(ExpenseCategory, ReimbursementItem.expense_category_id == ExpenseCategory.id)
            .filter(ReimbursementItem.reimbursement_id == reimbursement_id)
            .order_by(ReimbursementItem.id)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Error fetching joined data for reimbursement {reimbursement_id}, returning basic data: {e}")
        return ReimbursementDetails()

    details = ReimbursementDetails()
    if row is not None:
        reimbursement, department_name, cost_center_name, project_name = row
        details.reimbursement = serialize_reimbursement(
            reimbursement,
            department_name=department_name,
            cost_center_name=cost_center_name,
            project_name=project_name,
        )

    for item, category_name in item_rows:
        item_data = _column_values(item)
        item_data["expense_category_name"] = category_name
        details.items.append(ReimbursementItemResponse.model_validate(item_data).model_dump())

    try:
        if capabilities.attachments_enabled:
            attachments = (
                db.query(ReimbursementAttachment)
                .filter(ReimbursementAttachment.reimbursement_id == reimbursement_id)
                .order_by(ReimbursementAttachment.id)
                .all()
            )
            details.attachments = [
                ReimbursementAttachmentResponse.model_validate(a).model_dump() for a in attachments
            ]
    except SQLAlchemyError as e:
        db.rollback()
        if not is_missing_table_error(e):
            logger.warning(f"Error fetching attachments for reimbursement {reimbursement_id}: {e}")

    return details
