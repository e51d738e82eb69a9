# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import reimbursements

# Create main API router
api_router = APIRouter()

api_router.include_router(
    reimbursements.router,
    prefix="/reimbursements",
    tags=["reimbursements"]
)
