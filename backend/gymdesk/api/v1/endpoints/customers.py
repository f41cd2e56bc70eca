from typing import Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session
from gymdesk.core.database import get_db
from gymdesk.core.exceptions import UpstreamError
from gymdesk.core.logging_config import get_logger
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.customer import (
    BatchRenewRequest,
    CustomerCreate,
    CustomerCreateResponse,
    CustomerFilters,
    CustomerImageResponse,
    CustomerListResponse,
    CustomerResponse,
    CustomerStatsResponse,
    CustomerUpdate,
    RenewRequest,
)
from gymdesk.schemas.payment import BatchRenewResponse, PaymentResponse, RenewResponse
from gymdesk.services import customer_service, media_service, payment_service, renewal_service
from gymdesk.services.whatsapp_service import TemplateTypeEnum, notify_customer

logger = get_logger("customers")

router = APIRouter()


@router.post("/", response_model=CustomerCreateResponse, status_code=201)
async def create_customer(
    customer: CustomerCreate,
    send_welcome: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Register a new customer, optionally sending the welcome message"""
    db_customer = customer_service.create_customer(db, customer)
    response = CustomerCreateResponse(**CustomerResponse.from_customer(db_customer).model_dump())
    if send_welcome:
        response.notification = notify_customer(db_customer, TemplateTypeEnum.WELCOME)
    return response


@router.get("/", response_model=CustomerListResponse)
async def list_customers(
    search: Optional[str] = None,
    status: Optional[str] = None,
    gender: Optional[str] = None,
    order: str = "newest",
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    limit: Optional[str] = None,  # Keep for backward compatibility
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List customers filtered by search term, membership status and gender"""
    filters = CustomerFilters(search=search, status=status, gender=gender, order=order)
    result = customer_service.list_customers(db, filters, page=page, page_size=page_size or limit)
    return CustomerListResponse(
        items=[CustomerResponse.from_customer(c) for c in result.items],
        pagination=result.pagination(),
    )


@router.get("/stats", response_model=CustomerStatsResponse)
async def get_customer_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Customer counts per membership status"""
    return customer_service.customer_stats(db)


@router.post("/renew-batch", response_model=BatchRenewResponse)
def renew_customers(
    request: BatchRenewRequest,
    current_user: User = Depends(get_current_user)
):
    """Renew several customers; each one succeeds or fails on its own"""
    results = renewal_service.renew_customers(
        request.customer_ids,
        staff_user_id=current_user.id,
        expire_date=request.expire_date,
        months=request.months,
        paid_amount=request.paid_amount,
        notify=request.notify,
    )
    succeeded = sum(1 for r in results if r.success)
    return BatchRenewResponse(results=results, succeeded=succeeded, failed=len(results) - succeeded)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get customer by ID"""
    return CustomerResponse.from_customer(customer_service.get_customer(db, customer_id))


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_update: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update customer"""
    customer = customer_service.update_customer(db, customer_id, customer_update)
    return CustomerResponse.from_customer(customer)


@router.delete("/{customer_id}", status_code=204)
async def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete customer and their payment history"""
    image = customer_service.get_customer(db, customer_id).image
    customer_service.delete_customer(db, customer_id)
    media_service.delete_image(image)
    return None


@router.post("/{customer_id}/image", response_model=CustomerImageResponse)
async def upload_customer_image(
    customer_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Upload a customer photo. If storage fails the previous photo is kept."""
    customer = customer_service.get_customer(db, customer_id)
    content = await file.read()
    media_service.validate_image(file.content_type, file.filename, len(content))

    try:
        url = media_service.store_image(content, file.filename)
    except UpstreamError as e:
        logger.warning(
            f"Image upload failed for customer {customer_id}, keeping previous image",
            extra={"customer_id": customer_id, "error": e.detail},
        )
        return CustomerImageResponse(
            customer=CustomerResponse.from_customer(customer),
            image_updated=False,
            message="Image upload failed; previous image kept",
        )

    old_image = customer.image
    customer = customer_service.set_customer_image(db, customer_id, url)
    media_service.delete_image(old_image)
    return CustomerImageResponse(
        customer=CustomerResponse.from_customer(customer),
        image_updated=True,
        message="Image uploaded successfully",
    )


@router.post("/{customer_id}/renew", response_model=RenewResponse)
async def renew_customer(
    customer_id: int,
    request: RenewRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Renew a membership and record its payment"""
    staff_user_id = request.user_id or current_user.id
    result = renewal_service.renew_customer(
        db, customer_id, request.expire_date, request.paid_amount, staff_user_id
    )
    notification = None
    if request.notify:
        notification = notify_customer(
            result.customer,
            TemplateTypeEnum.RENEWAL_CONFIRMATION,
            extra={"fee": result.payment.paid_amount},
        )
    return RenewResponse(
        customer=CustomerResponse.from_customer(result.customer),
        payment=PaymentResponse.model_validate(result.payment),
        notification=notification,
    )


@router.get("/{customer_id}/payments")
async def list_customer_payments(
    customer_id: int,
    page: Optional[str] = None,
    page_size: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Payment history of one customer, newest first"""
    result = payment_service.list_customer_payments(db, customer_id, page=page, page_size=page_size)
    return {
        "items": [PaymentResponse.model_validate(p) for p in result.items],
        "pagination": result.pagination(),
    }
