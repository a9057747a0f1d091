"""
Main API router.
"""

from fastapi import APIRouter
from tally.api import reports, transactions

api_router = APIRouter()

api_router.include_router(transactions.router)
api_router.include_router(reports.router)
