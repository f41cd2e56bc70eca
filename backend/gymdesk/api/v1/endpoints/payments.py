from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from gymdesk.core.database import get_db
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.payment import (
    PaymentCreate,
    PaymentDetailResponse,
    PaymentsReportRequest,
    PaymentsReportResponse,
)
from gymdesk.services import payment_service

router = APIRouter()


@router.post("/", response_model=PaymentDetailResponse, status_code=201)
async def record_payment(
    payment: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record a manual payment"""
    db_payment = payment_service.record_payment(
        db,
        customer_id=payment.customer_id,
        staff_user_id=payment.user_id or current_user.id,
        paid_amount=payment.paid_amount,
        balance=payment.balance,
        discount=payment.discount,
        date=payment.date,
    )
    return PaymentDetailResponse.from_payment(db_payment)


@router.get("/", response_model=List[PaymentDetailResponse])
async def list_payments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """All payments, newest first"""
    return [PaymentDetailResponse.from_payment(p) for p in payment_service.list_payments(db)]


@router.post("/report", response_model=PaymentsReportResponse)
async def get_payments_report(
    request: PaymentsReportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Payments in a date range with totals, optionally filtered by customer name or phone"""
    report = payment_service.payments_report(
        db,
        request.start_date,
        request.end_date,
        customer_name=request.customer_name,
        phone=request.phone,
    )
    return PaymentsReportResponse(
        payments=[PaymentDetailResponse.from_payment(p) for p in report["payments"]],
        totals=report["totals"],
        period=report["period"],
    )
