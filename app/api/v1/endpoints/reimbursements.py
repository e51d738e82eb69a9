from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Tuple
import logging

from app.core.deps import CurrentUser, get_current_user
from app.db.database import get_db
from app.services.attachment_storage import discard_uploads, store_uploads
from app.services.reimbursement_payload import envelope_from_body
from app.services.reimbursement_submission import submit_reimbursement

router = APIRouter()
logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


async def read_submission(request: Request) -> Tuple[Dict[str, Any], List[Tuple[str, Any]]]:
    """Split the inbound body into plain fields and uploaded file parts."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        fields: Dict[str, Any] = {}
        parts: List[Tuple[str, Any]] = []
        for key, value in form.multi_items():
            if isinstance(value, str):
                fields[key] = value
            else:
                parts.append((key, value))
        return fields, parts

    try:
        body = await request.json()
    except ValueError:
        logger.warning(f"Unreadable reimbursement body (content-type: {content_type or 'none'})")
        return {}, []

    return (body if isinstance(body, dict) else {}), []


@router.post("/")
async def create_reimbursement(
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Submit a reimbursement claim with its line items.

    - **data**: JSON string with department_id, cost_center_id, project_id,
      description, status ("draft" or "submitted") and items
    - **item_<N>_attachments**: receipt files for the item at position N
    - A plain JSON body with the same fields is accepted when there are no files
    """
    fields, parts = await read_submission(request)
    stored_files = await store_uploads(parts)

    result = submit_reimbursement(db, envelope_from_body(fields), stored_files, current_user.id)
    if not result.success:
        discard_uploads(stored_files)

    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.body))
