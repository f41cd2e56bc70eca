from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from gymdesk.schemas.customer import CustomerResponse, NotificationOutcome


class PaymentCreate(BaseModel):
    customer_id: int
    user_id: Optional[int] = None  # defaults to the logged-in staff user
    paid_amount: float
    discount: float = 0
    balance: float
    date: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    customer_id: int
    user_id: int
    paid_amount: float
    discount: float
    balance: float
    date: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentDetailResponse(PaymentResponse):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_image: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def from_payment(cls, payment) -> "PaymentDetailResponse":
        return cls(
            id=payment.id,
            customer_id=payment.customer_id,
            user_id=payment.user_id,
            paid_amount=payment.paid_amount,
            discount=payment.discount,
            balance=payment.balance,
            date=payment.date,
            created_at=payment.created_at,
            customer_name=payment.customer.name if payment.customer else None,
            customer_phone=payment.customer.phone if payment.customer else None,
            customer_image=payment.customer.image if payment.customer else None,
            username=payment.user.username if payment.user else None,
        )


class PaymentsReportRequest(BaseModel):
    start_date: str
    end_date: str
    customer_name: Optional[str] = None
    phone: Optional[str] = None


class PaymentTotals(BaseModel):
    total_paid: float
    total_discount: float
    total_balance: float
    total_payments: int
    total_customers: int


class ReportPeriod(BaseModel):
    start_date: datetime
    end_date: datetime


class PaymentsReportResponse(BaseModel):
    payments: List[PaymentDetailResponse]
    totals: PaymentTotals
    period: ReportPeriod


class RenewResponse(BaseModel):
    success: bool = True
    message: str = "Customer renewed successfully"
    customer: CustomerResponse
    payment: PaymentResponse
    notification: Optional[NotificationOutcome] = None


class BatchRenewItemResult(BaseModel):
    customer_id: int
    success: bool
    customer: Optional[CustomerResponse] = None
    payment: Optional[PaymentResponse] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    notification: Optional[NotificationOutcome] = None


class BatchRenewResponse(BaseModel):
    results: List[BatchRenewItemResult]
    succeeded: int
    failed: int
