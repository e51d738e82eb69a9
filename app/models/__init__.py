from .base import BaseModel
from .master_data import Department, CostCenter, Project, ExpenseCategory
from .reimbursement import (
    ClaimStatus,
    ReimbursementItemStatus,
    Reimbursement,
    ReimbursementItem,
    ReimbursementAttachment,
)
