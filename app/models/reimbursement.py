from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric, Text, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.database import Base
from app.models.base import BaseModel
import enum


class ClaimStatus(enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ReimbursementItemStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class Reimbursement(BaseModel):
    __tablename__ = "reimbursements"

    # Acting user comes from the identity provider, users live outside this service
    user_id = Column(Integer, nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"))
    cost_center_id = Column(Integer, ForeignKey("cost_centers.id"))
    project_id = Column(Integer, ForeignKey("projects.id"))
    request_date = Column(Date, server_default=func.current_date())
    status = Column(
        Enum(ClaimStatus, values_callable=lambda obj: [e.value for e in obj], native_enum=False, length=50),
        default=ClaimStatus.DRAFT,
        index=True,
    )
    total_amount = Column(Numeric(10, 2), default=0)
    description = Column(Text)

    # Relationships
    department = relationship("Department")
    cost_center = relationship("CostCenter")
    project = relationship("Project")
    items = relationship("ReimbursementItem", back_populates="reimbursement", cascade="all, delete-orphan")


class ReimbursementItem(BaseModel):
    __tablename__ = "reimbursement_items"

    reimbursement_id = Column(Integer, ForeignKey("reimbursements.id", ondelete="CASCADE"), nullable=False, index=True)
    expense_category_id = Column(Integer, ForeignKey("expense_categories.id"))
    expense_type = Column(String(50), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text)
    expense_date = Column(Date, nullable=False)

    # Category specific fields, carried through as submitted
    meal_type = Column(String(50))
    people_count = Column(Integer)
    travel_purpose = Column(String(255))
    lodging_city = Column(String(255))

    status = Column(
        Enum(ReimbursementItemStatus, values_callable=lambda obj: [e.value for e in obj], native_enum=False, length=50),
        default=ReimbursementItemStatus.PENDING,
    )

    # Relationships
    reimbursement = relationship("Reimbursement", back_populates="items")
    expense_category = relationship("ExpenseCategory")


class ReimbursementAttachment(Base):
    """Receipt uploaded against a single line item. Rows are never updated."""
    __tablename__ = "reimbursement_attachments"

    id = Column(Integer, primary_key=True, index=True)
    reimbursement_id = Column(Integer, ForeignKey("reimbursements.id", ondelete="CASCADE"), nullable=False, index=True)
    reimbursement_item_id = Column(Integer, ForeignKey("reimbursement_items.id", ondelete="CASCADE"), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer)
    file_type = Column(String(100))
    uploaded_by = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
