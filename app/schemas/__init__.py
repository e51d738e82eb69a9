from .reimbursement import (
    ReimbursementHeader,
    ReimbursementItemCreate,
    ReimbursementItemResponse,
    ReimbursementAttachmentResponse,
    ReimbursementResponse,
)
