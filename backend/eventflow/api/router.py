"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from eventflow.api.routes import auth, events, tickets, bookings, payments

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(tickets.router)
api_router.include_router(bookings.router)
api_router.include_router(payments.router)
