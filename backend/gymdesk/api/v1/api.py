from fastapi import APIRouter
from gymdesk.api.v1.endpoints import (
    auth,
    users,
    customers,
    payments,
    whatsapp,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(whatsapp.router, prefix="/whatsapp", tags=["whatsapp"])
