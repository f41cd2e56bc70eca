"""
Payment entry, per-customer history and the date-range payments report.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from gymdesk.core.exceptions import NotFoundError, ValidationError
from gymdesk.core.logging_config import get_logger
from gymdesk.core.pagination import Page, clamp_page_params, paginate
from gymdesk.core.validators import parse_amount, parse_date
from gymdesk.models.customer import Customer
from gymdesk.models.payment import Payment
from gymdesk.models.user import User

logger = get_logger("payment_service")

CUSTOMER_HISTORY_PAGE_SIZE = 5


def record_payment(
    db: Session,
    customer_id: int,
    staff_user_id: int,
    paid_amount,
    balance,
    discount=0,
    date=None,
) -> Payment:
    """Record a manual payment. The customer's own balance is not modified."""
    amount = parse_amount(paid_amount, "paid amount")
    discount_amount = parse_amount(discount, "discount", required=False) or Decimal("0.00")
    balance_amount = parse_amount(balance, "balance")
    payment_date = parse_date(date, "payment date", required=False) or datetime.utcnow()

    if not db.query(Customer.id).filter(Customer.id == customer_id).first():
        raise NotFoundError("Customer not found")
    if not db.query(User.id).filter(User.id == staff_user_id).first():
        raise NotFoundError("Staff user not found")

    payment = Payment(
        customer_id=customer_id,
        user_id=staff_user_id,
        paid_amount=amount,
        discount=discount_amount,
        balance=balance_amount,
        date=payment_date,
    )
    db.add(payment)
    try:
        db.commit()
    except IntegrityError as e:
        # Customer or user deleted between the checks and the insert
        db.rollback()
        raise NotFoundError("Customer or user not found") from e
    db.refresh(payment)
    logger.info(
        f"Payment recorded: id={payment.id} customer_id={customer_id}",
        extra={"payment_id": payment.id, "customer_id": customer_id, "user_id": staff_user_id},
    )
    return payment


def list_customer_payments(db: Session, customer_id: int, page=1, page_size=None) -> Page:
    if not db.query(Customer.id).filter(Customer.id == customer_id).first():
        raise NotFoundError("Customer not found")
    page, page_size = clamp_page_params(page, page_size, default_page_size=CUSTOMER_HISTORY_PAGE_SIZE)
    query = (
        db.query(Payment)
        .filter(Payment.customer_id == customer_id)
        .order_by(Payment.date.desc(), Payment.id.desc())
    )
    return paginate(query, page, page_size)


def _with_relations(query):
    return query.options(joinedload(Payment.customer), joinedload(Payment.user))


def list_payments(db: Session):
    return _with_relations(db.query(Payment)).order_by(Payment.date.desc(), Payment.id.desc()).all()


def payments_report(
    db: Session,
    start_date,
    end_date,
    customer_name: Optional[str] = None,
    phone: Optional[str] = None,
) -> dict:
    """
    Payments between two dates (both inclusive) with totals.

    A date-only ``end_date`` covers that entire day.
    """
    start = parse_date(start_date, "start date")
    end = parse_date(end_date, "end date", end_of_day=True)
    if start > end:
        raise ValidationError("start date must not be after end date")

    query = db.query(Payment).filter(Payment.date >= start, Payment.date <= end)
    customer_name = (customer_name or "").strip()
    phone = (phone or "").strip()
    if customer_name or phone:
        query = query.join(Customer, Payment.customer_id == Customer.id)
        if customer_name:
            query = query.filter(Customer.name.contains(customer_name, autoescape=True))
        if phone:
            query = query.filter(Customer.phone.contains(phone, autoescape=True))

    totals_row = query.with_entities(
        func.coalesce(func.sum(Payment.paid_amount), 0).label("total_paid"),
        func.coalesce(func.sum(Payment.discount), 0).label("total_discount"),
        func.coalesce(func.sum(Payment.balance), 0).label("total_balance"),
        func.count(Payment.id).label("total_payments"),
        func.count(func.distinct(Payment.customer_id)).label("total_customers"),
    ).one()

    payments = _with_relations(query).order_by(Payment.date.desc(), Payment.id.desc()).all()

    return {
        "payments": payments,
        "totals": {
            "total_paid": float(totals_row.total_paid or 0),
            "total_discount": float(totals_row.total_discount or 0),
            "total_balance": float(totals_row.total_balance or 0),
            "total_payments": totals_row.total_payments or 0,
            "total_customers": totals_row.total_customers or 0,
        },
        "period": {"start_date": start, "end_date": end},
    }
