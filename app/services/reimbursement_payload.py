"""Normalization and up-front validation of a reimbursement submission.

Nothing in here touches the database: these checks run before the claim
header is written, so a failure never leaves rows behind.
"""
import json
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Union

from app.models.reimbursement import ClaimStatus

logger = logging.getLogger(__name__)

# Multipart submissions carry the JSON payload as a string under this field
SERIALIZED_FIELD = "data"

SUBMITTED_INTENT = "submitted"

ITEMS_REQUIRED_MESSAGE = "At least one reimbursement item is required"
TOTAL_NOT_POSITIVE_MESSAGE = "Total amount must be greater than 0"
TOTAL_TOO_LARGE_MESSAGE = "Total amount exceeds the maximum of 99999999.99"

# Amounts are stored as NUMERIC(10, 2)
AMOUNT_QUANTUM = Decimal("0.01")
AMOUNT_LIMIT = Decimal(10) ** 8


@dataclass(frozen=True)
class RawPayload:
    """Body already holds the structured payload (JSON request)."""
    body: Mapping[str, Any]


@dataclass(frozen=True)
class SerializedPayload:
    """Payload serialized as a string next to the file parts (multipart request)."""
    text: str
    body: Mapping[str, Any]


RequestEnvelope = Union[RawPayload, SerializedPayload]


@dataclass
class ReimbursementRequest:
    department_id: Any = None
    cost_center_id: Any = None
    project_id: Any = None
    description: Any = None
    status: Any = None
    items: Any = None

    @classmethod
    def from_mapping(cls, body: Mapping[str, Any]) -> "ReimbursementRequest":
        return cls(
            department_id=body.get("department_id"),
            cost_center_id=body.get("cost_center_id"),
            project_id=body.get("project_id"),
            description=body.get("description"),
            status=body.get("status"),
            items=body.get("items"),
        )

    def header_fields(self) -> Dict[str, Any]:
        return {
            "department_id": self.department_id,
            "cost_center_id": self.cost_center_id,
            "project_id": self.project_id,
            "description": self.description,
        }


@dataclass
class ValidationResult:
    valid: bool
    total: Optional[Decimal] = None
    error: Optional[str] = None


def envelope_from_body(body: Mapping[str, Any]) -> RequestEnvelope:
    """Tag the transport body once, so later stages never probe its shape."""
    serialized = body.get(SERIALIZED_FIELD)
    if isinstance(serialized, str):
        return SerializedPayload(text=serialized, body=body)
    return RawPayload(body=body)


def parse_request_data(envelope: RequestEnvelope) -> ReimbursementRequest:
    """Resolve the envelope into a single request record. Never raises."""
    if isinstance(envelope, SerializedPayload):
        try:
            parsed = json.loads(envelope.text)
        except ValueError as e:
            logger.warning(f"Failed to parse request data, using raw body: {e}")
            return ReimbursementRequest.from_mapping(envelope.body)

        if not isinstance(parsed, dict):
            logger.warning(
                f"Request data is a {type(parsed).__name__}, not an object; using raw body"
            )
            return ReimbursementRequest.from_mapping(envelope.body)

        return ReimbursementRequest.from_mapping(parsed)

    return ReimbursementRequest.from_mapping(envelope.body)


def parse_amount(value: Any) -> Optional[Decimal]:
    """Coerce a declared amount to Decimal rounded to cents.

    None when it is not a finite number or does not fit NUMERIC(10, 2).
    """
    if isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount.copy_abs() >= AMOUNT_LIMIT:
        return None
    amount = amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)
    if amount.copy_abs() >= AMOUNT_LIMIT:
        return None
    return amount


def validate_items(items: Any) -> ValidationResult:
    if not isinstance(items, list) or len(items) == 0:
        return ValidationResult(valid=False, error=ITEMS_REQUIRED_MESSAGE)
    return ValidationResult(valid=True)


def calculate_total_amount(items: List[Any]) -> ValidationResult:
    """Sum the declared amounts.

    Amounts are rounded to cents first. A missing, zero or sub-cent amount
    counts as 0 here; the item persister rejects it later. Negative,
    non-numeric or oversized amounts fail the whole batch.
    """
    total = Decimal("0")
    for item in items:
        declared = item.get("amount") if isinstance(item, dict) else None
        amount = parse_amount(declared or 0)
        if amount is None or amount < 0:
            return ValidationResult(valid=False, error=f"Invalid amount for item: {declared}")
        total += amount

    if total <= 0:
        return ValidationResult(valid=False, error=TOTAL_NOT_POSITIVE_MESSAGE)
    if total >= AMOUNT_LIMIT:
        return ValidationResult(valid=False, error=TOTAL_TOO_LARGE_MESSAGE)

    return ValidationResult(valid=True, total=total)


def determine_reimbursement_status(status: Any) -> ClaimStatus:
    """Translate the client's draft/submit intent into the stored status.

    Raises ValueError for values outside ClaimStatus.
    """
    if isinstance(status, ClaimStatus):
        return status
    if status is None or status == "":
        return ClaimStatus.DRAFT
    if status == SUBMITTED_INTENT:
        return ClaimStatus.PENDING_APPROVAL
    return ClaimStatus(status)
