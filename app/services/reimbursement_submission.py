"""Transactional submission of a reimbursement claim.

Begin -> validate -> insert header -> persist items -> commit -> reconcile
total -> assemble details. Every rollback of the submission transaction
happens in this module.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.models.reimbursement import Reimbursement
from app.schemas.reimbursement import ReimbursementHeader
from app.services.attachment_storage import StoredFile, organize_item_files
from app.services.reimbursement_payload import (
    RequestEnvelope,
    calculate_total_amount,
    determine_reimbursement_status,
    parse_request_data,
    validate_items,
)
from app.services.reimbursement_service import (
    TableCapabilities,
    fetch_reimbursement_with_details,
    is_missing_table_error,
    process_all_items,
    recalculate_and_update_total,
    serialize_reimbursement,
)

logger = logging.getLogger(__name__)

SCHEMA_NOT_INITIALIZED_MESSAGE = "Database tables not initialized. Please restart the server."
CREATE_FAILED_MESSAGE = "Failed to create reimbursement"


@dataclass
class SubmissionResult:
    status_code: int
    body: Dict[str, Any]

    @property
    def success(self) -> bool:
        return self.status_code == 200


def _failure(status_code: int, message: str, error: Optional[str] = None) -> SubmissionResult:
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return SubmissionResult(status_code=status_code, body=body)


def _reject(db: Session, message: str) -> SubmissionResult:
    db.rollback()
    return _failure(400, message)


def submit_reimbursement(
    db: Session,
    envelope: RequestEnvelope,
    files: Optional[List[StoredFile]],
    user_id: int,
) -> SubmissionResult:
    """Turn one submission into a claim, its items and their attachments, atomically."""
    try:
        request_data = parse_request_data(envelope)

        items_validation = validate_items(request_data.items)
        if not items_validation.valid:
            return _reject(db, items_validation.error)

        amount_calculation = calculate_total_amount(request_data.items)
        if not amount_calculation.valid:
            return _reject(db, amount_calculation.error)
        total_amount = amount_calculation.total

        try:
            reimbursement_status = determine_reimbursement_status(request_data.status)
        except (ValueError, TypeError):
            return _reject(db, f"Invalid status: {request_data.status}")

        try:
            header = ReimbursementHeader.model_validate(request_data.header_fields())
        except ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ()))
            return _reject(db, f"Invalid value for {field_name}: {first.get('msg')}")

        reimbursement = Reimbursement(
            user_id=user_id,
            total_amount=total_amount,
            status=reimbursement_status,
            **header.model_dump(),
        )
        db.add(reimbursement)
        db.flush()
        db.refresh(reimbursement)
        reimbursement_id = reimbursement.id
        inserted_row = serialize_reimbursement(reimbursement)

        capabilities = TableCapabilities(db)
        item_files_map = organize_item_files(files)

        outcome = process_all_items(
            db, reimbursement_id, request_data.items, item_files_map, user_id, capabilities
        )
        if not outcome.success:
            return _reject(db, outcome.error)

        db.commit()
        logger.info(
            f"Reimbursement {reimbursement_id} created for user {user_id} "
            f"({len(request_data.items)} items, status '{reimbursement_status.value}')"
        )
    except Exception as e:
        db.rollback()
        if is_missing_table_error(e):
            logger.error(f"Reimbursement tables missing: {e}")
            return _failure(503, SCHEMA_NOT_INITIALIZED_MESSAGE)
        logger.exception(f"Error creating reimbursement for user {user_id}")
        return _failure(500, CREATE_FAILED_MESSAGE, error=str(e))

    # The claim is committed from here on; later failures only degrade the response
    final_total: Decimal = total_amount
    try:
        final_total = recalculate_and_update_total(db, reimbursement_id, total_amount)
    except Exception as e:
        db.rollback()
        logger.error(f"Total reconciliation failed for reimbursement {reimbursement_id}: {e}")

    details = fetch_reimbursement_with_details(db, reimbursement_id, capabilities)
    header_data = details.reimbursement or {**inserted_row, "total_amount": final_total}

    return SubmissionResult(
        status_code=200,
        body={
            "success": True,
            "data": {
                **header_data,
                "items": details.items,
                "attachments": details.attachments,
            },
        },
    )
