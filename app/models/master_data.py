from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, Date
from app.models.base import BaseModel

# Lookup tables referenced by reimbursements. They are maintained by the
# master-data admin screens; this service only reads their names.


class Department(BaseModel):
    __tablename__ = "departments"

    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True)
    description = Column(Text)
    status = Column(String(20), default="active")


class CostCenter(BaseModel):
    __tablename__ = "cost_centers"

    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True)
    description = Column(Text)
    budget = Column(Numeric(12, 2))
    department_id = Column(Integer, ForeignKey("departments.id"))
    status = Column(String(20), default="active")


class Project(BaseModel):
    __tablename__ = "projects"

    name = Column(String(255), nullable=False)
    code = Column(String(50), unique=True)
    description = Column(Text)
    start_date = Column(Date)
    end_date = Column(Date)
    status = Column(String(20), default="active")


class ExpenseCategory(BaseModel):
    __tablename__ = "expense_categories"

    name = Column(String(100), nullable=False)
    code = Column(String(50), unique=True)
    description = Column(Text)
