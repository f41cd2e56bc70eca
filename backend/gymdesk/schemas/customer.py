from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from gymdesk.models.customer import GenderEnum, MembershipStatusEnum


class CustomerCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    gender: str
    register_date: str  # YYYY-MM-DD or ISO datetime
    expire_date: Optional[str] = None
    fee: float


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    register_date: Optional[str] = None
    expire_date: Optional[str] = None
    fee: Optional[float] = None
    balance: Optional[float] = None
    is_active: Optional[bool] = None


class CustomerResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str]
    gender: GenderEnum
    register_date: datetime
    expire_date: Optional[datetime]
    fee: float
    balance: float
    is_active: bool
    image: Optional[str] = None
    status: MembershipStatusEnum
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_customer(cls, customer, now: Optional[datetime] = None) -> "CustomerResponse":
        from gymdesk.services.membership_service import membership_status

        return cls(
            id=customer.id,
            name=customer.name,
            phone=customer.phone,
            gender=customer.gender,
            register_date=customer.register_date,
            expire_date=customer.expire_date,
            fee=customer.fee,
            balance=customer.balance or 0,
            is_active=bool(customer.is_active),
            image=customer.image,
            status=membership_status(customer, now=now),
            created_at=customer.created_at,
            updated_at=customer.updated_at,
        )


class CustomerFilters(BaseModel):
    search: Optional[str] = None
    status: Optional[str] = None  # active, expired, expiringSoon, all
    gender: Optional[str] = None  # male, female, all
    order: str = "newest"  # newest, oldest, name


class PaginationInfo(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool


class CustomerListResponse(BaseModel):
    items: List[CustomerResponse]
    pagination: PaginationInfo


class CustomerStatsResponse(BaseModel):
    total: int
    active: int
    expiring_soon: int
    expired: int
    new_this_month: int


class CustomerImageResponse(BaseModel):
    customer: CustomerResponse
    image_updated: bool
    message: str


class NotificationOutcome(BaseModel):
    sent: bool
    error: Optional[str] = None


class CustomerCreateResponse(CustomerResponse):
    notification: Optional[NotificationOutcome] = None


class RenewRequest(BaseModel):
    expire_date: str
    paid_amount: float
    user_id: Optional[int] = None  # defaults to the logged-in staff user
    notify: bool = False


class BatchRenewRequest(BaseModel):
    customer_ids: List[int] = Field(..., min_length=1)
    expire_date: Optional[str] = None  # when omitted, extend by `months`
    months: int = Field(1, ge=1, le=24)
    paid_amount: Optional[float] = None  # when omitted, charge each customer's fee
    notify: bool = False
