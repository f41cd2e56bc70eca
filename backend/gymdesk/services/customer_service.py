"""
Customer records: CRUD plus the filtered, paginated customer listing.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gymdesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.core.pagination import Page, clamp_page_params, paginate
from gymdesk.core.validators import (
    clean_phone,
    parse_amount,
    parse_date,
    parse_enum,
    require_text,
    to_naive_utc,
)
from gymdesk.models.customer import Customer, GenderEnum, MembershipStatusEnum
from gymdesk.schemas.customer import CustomerCreate, CustomerFilters, CustomerUpdate
from gymdesk.services.membership_service import expiring_soon_window

logger = get_logger("customer_service")

ORDERINGS = {
    "newest": (Customer.register_date.desc(), Customer.id.desc()),
    "oldest": (Customer.register_date.asc(), Customer.id.asc()),
    "name": (Customer.name.asc(), Customer.id.asc()),
}


def _phone_taken(db: Session, phone: Optional[str], exclude_id: Optional[int] = None) -> bool:
    if not phone:
        return False
    query = db.query(Customer.id).filter(Customer.phone == phone)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def _commit_customer(db: Session, customer: Customer) -> Customer:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Customer write rejected by constraint: {e.orig}")
        raise ConflictError("Phone number already exists") from e
    db.refresh(customer)
    return customer


def get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(db: Session, data: CustomerCreate) -> Customer:
    """Register a new customer. Every input is validated before the insert."""
    name = require_text(data.name, "name")
    gender = parse_enum(GenderEnum, data.gender, "gender")
    register_date = parse_date(data.register_date, "register date")
    expire_date = parse_date(data.expire_date, "expire date", required=False)
    fee = parse_amount(data.fee, "fee")
    phone = clean_phone(data.phone)

    if _phone_taken(db, phone):
        raise ConflictError("Phone number already exists")

    customer = Customer(
        name=name,
        phone=phone,
        gender=gender,
        register_date=register_date,
        expire_date=expire_date,
        fee=fee,
        balance=0,
        is_active=True,
    )
    db.add(customer)
    customer = _commit_customer(db, customer)
    logger.info(f"Customer created: id={customer.id}", extra={"customer_id": customer.id})
    return customer


def update_customer(db: Session, customer_id: int, data: CustomerUpdate) -> Customer:
    """Apply the fields present in ``data``; absent fields are left untouched."""
    customer = get_customer(db, customer_id)
    update_data = data.model_dump(exclude_unset=True)

    changes = {}
    if "name" in update_data:
        changes["name"] = require_text(update_data["name"], "name")
    if "phone" in update_data:
        changes["phone"] = clean_phone(update_data["phone"])
        if _phone_taken(db, changes["phone"], exclude_id=customer.id):
            raise ConflictError("Phone number already exists")
    if "gender" in update_data:
        changes["gender"] = parse_enum(GenderEnum, update_data["gender"], "gender")
    if "register_date" in update_data:
        changes["register_date"] = parse_date(update_data["register_date"], "register date")
    if "expire_date" in update_data:
        changes["expire_date"] = parse_date(update_data["expire_date"], "expire date", required=False)
    if "fee" in update_data:
        changes["fee"] = parse_amount(update_data["fee"], "fee")
    if "balance" in update_data:
        changes["balance"] = parse_amount(update_data["balance"], "balance")
    if "is_active" in update_data:
        if update_data["is_active"] is None:
            raise ValidationError("is_active must be true or false")
        changes["is_active"] = update_data["is_active"]

    for field, value in changes.items():
        setattr(customer, field, value)
    customer.updated_at = datetime.utcnow()
    return _commit_customer(db, customer)


def set_customer_image(db: Session, customer_id: int, image_url: str) -> Customer:
    customer = get_customer(db, customer_id)
    customer.image = image_url
    customer.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(customer)
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    """Delete a customer together with their payment history."""
    customer = get_customer(db, customer_id)
    db.delete(customer)
    db.commit()
    logger.info(f"Customer deleted: id={customer_id}", extra={"customer_id": customer_id})


def status_clause(status: MembershipStatusEnum, today: datetime, horizon_end: datetime):
    """SQL predicate equivalent to ``membership_status(...) == status``."""
    if status == MembershipStatusEnum.EXPIRED:
        return or_(
            Customer.is_active.is_(False),
            Customer.expire_date.is_(None),
            Customer.expire_date < today,
        )
    if status == MembershipStatusEnum.EXPIRING_SOON:
        return and_(
            Customer.is_active.is_(True),
            Customer.expire_date >= today,
            Customer.expire_date <= horizon_end,
        )
    return and_(
        Customer.is_active.is_(True),
        Customer.expire_date > horizon_end,
    )


def build_customer_filters(
    filters: CustomerFilters,
    now: Optional[datetime] = None,
    horizon_days: Optional[int] = None,
) -> list:
    """Translate request filters into a list of SQLAlchemy predicates."""
    today, horizon_end = expiring_soon_window(now, horizon_days)
    clauses = []

    search = (filters.search or "").strip()
    if search:
        clauses.append(or_(
            Customer.name.contains(search, autoescape=True),
            Customer.phone.contains(search, autoescape=True),
        ))

    try:
        status = MembershipStatusEnum.normalize(filters.status)
    except ValueError:
        raise ValidationError(f"Invalid status filter: {filters.status!r}")
    if status is not None:
        clauses.append(status_clause(status, today, horizon_end))

    gender = (filters.gender or "").strip().lower()
    if gender and gender != "all":
        clauses.append(Customer.gender == parse_enum(GenderEnum, gender, "gender"))

    return clauses


def list_customers(
    db: Session,
    filters: Optional[CustomerFilters] = None,
    page=1,
    page_size=None,
    now: Optional[datetime] = None,
    horizon_days: Optional[int] = None,
) -> Page:
    """
    Filtered, ordered and paginated customer listing.

    ``page`` and ``page_size`` may be raw request values; they are clamped to
    at least 1 and fall back to defaults when not numeric.
    """
    filters = filters or CustomerFilters()
    page, page_size = clamp_page_params(page, page_size)

    ordering = ORDERINGS.get((filters.order or "newest").lower())
    if ordering is None:
        raise ValidationError(f"Invalid order: {filters.order!r}. Allowed: {', '.join(ORDERINGS)}")

    query = db.query(Customer).filter(*build_customer_filters(filters, now, horizon_days))
    return paginate(query.order_by(*ordering), page, page_size)


def customer_stats(db: Session, now: Optional[datetime] = None, horizon_days: Optional[int] = None) -> dict:
    """Counts per membership status plus registrations in the current month."""
    now = to_naive_utc(now) if now is not None else datetime.utcnow()
    today, horizon_end = expiring_soon_window(now, horizon_days)
    month_start = today.replace(day=1)

    def count(*clauses) -> int:
        return db.query(func.count(Customer.id)).filter(*clauses).scalar() or 0

    return {
        "total": count(),
        "active": count(status_clause(MembershipStatusEnum.ACTIVE, today, horizon_end)),
        "expiring_soon": count(status_clause(MembershipStatusEnum.EXPIRING_SOON, today, horizon_end)),
        "expired": count(status_clause(MembershipStatusEnum.EXPIRED, today, horizon_end)),
        "new_this_month": count(Customer.register_date >= month_start, Customer.register_date <= now),
    }
