"""
Membership renewal.

A renewal moves a customer's expiry date, marks them active and appends a
payment row. Both writes happen in one transaction: a customer is never left
active without the payment that renewed them.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from gymdesk.core.config import settings
from gymdesk.core.database import SessionLocal
from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.exceptions import GymDeskError, NotFoundError, UpstreamError
from gymdesk.core.logging_config import get_logger
from gymdesk.core.validators import parse_amount, parse_date
from gymdesk.models.customer import Customer
from gymdesk.models.payment import Payment
from gymdesk.schemas.customer import CustomerResponse
from gymdesk.schemas.payment import BatchRenewItemResult, PaymentResponse
from gymdesk.services.whatsapp_service import TemplateTypeEnum, notify_customer

logger = get_logger("renewal_service")


class RenewalResult:
    """Customer and payment rows produced by one renewal."""
    __slots__ = ("customer", "payment")

    def __init__(self, customer: Customer, payment: Payment):
        self.customer = customer
        self.payment = payment


def renew_customer(
    db: Session,
    customer_id: int,
    new_expire_date,
    paid_amount,
    staff_user_id: int,
) -> RenewalResult:
    """
    Renew a membership and record the payment for it.

    The payment's ``balance`` is the customer's balance before the renewal and
    its ``discount`` is always 0. Past expiry dates are accepted.

    Raises:
        ValidationError: unparseable date or invalid amount (nothing written)
        NotFoundError: unknown customer, or unknown staff user (rolled back)
        UpstreamError: database locked or unavailable
    """
    expire_date = parse_date(new_expire_date, "expire date")
    amount = parse_amount(paid_amount, "paid amount")

    try:
        customer = db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError("Customer not found")

        balance_snapshot = customer.balance or 0
        now = datetime.utcnow()

        with db_transaction(db, operation=f"Renewal of customer {customer_id}"):
            customer.expire_date = expire_date
            customer.is_active = True
            customer.updated_at = now

            payment = Payment(
                customer_id=customer.id,
                user_id=staff_user_id,
                paid_amount=amount,
                discount=0,
                balance=balance_snapshot,
                date=now,
            )
            db.add(payment)
            db.flush()
    except IntegrityError as e:
        # Payment foreign key: staff user unknown, or customer deleted meanwhile
        logger.warning(
            f"Renewal of customer {customer_id} rejected: {e.orig}",
            extra={"customer_id": customer_id, "user_id": staff_user_id},
        )
        raise NotFoundError("Customer or user not found") from e
    except OperationalError as e:
        logger.error(f"Database unavailable while renewing customer {customer_id}: {e}", exc_info=True)
        raise UpstreamError("Database unavailable") from e

    db.refresh(customer)
    db.refresh(payment)
    logger.info(
        f"Customer {customer_id} renewed until {expire_date.date()}",
        extra={"customer_id": customer_id, "payment_id": payment.id, "user_id": staff_user_id},
    )
    return RenewalResult(customer, payment)


def next_expire_date(customer: Customer, months: int = 1, now: Optional[datetime] = None) -> datetime:
    """Extend from the current expiry, or from now if that already passed."""
    now = now or datetime.utcnow()
    base = customer.expire_date if customer.expire_date and customer.expire_date > now else now
    return base + relativedelta(months=months)


def _renew_one(
    session_factory: Callable[[], Session],
    customer_id: int,
    expire_date,
    months: int,
    paid_amount,
    staff_user_id: int,
    notify: bool,
) -> BatchRenewItemResult:
    db = session_factory()
    try:
        if expire_date is None or paid_amount is None:
            customer = db.query(Customer).filter(Customer.id == customer_id).first()
            if not customer:
                raise NotFoundError("Customer not found")
            if expire_date is None:
                expire_date = next_expire_date(customer, months)
            if paid_amount is None:
                paid_amount = customer.fee

        result = renew_customer(db, customer_id, expire_date, paid_amount, staff_user_id)

        notification = None
        if notify:
            notification = notify_customer(result.customer, TemplateTypeEnum.RENEWAL_CONFIRMATION)

        return BatchRenewItemResult(
            customer_id=customer_id,
            success=True,
            customer=CustomerResponse.from_customer(result.customer),
            payment=PaymentResponse.model_validate(result.payment),
            notification=notification,
        )
    except GymDeskError as e:
        return BatchRenewItemResult(
            customer_id=customer_id,
            success=False,
            error=e.detail,
            status_code=e.status_code,
        )
    except Exception:
        logger.error(f"Unexpected error renewing customer {customer_id}", exc_info=True)
        return BatchRenewItemResult(
            customer_id=customer_id,
            success=False,
            error="Failed to renew customer",
            status_code=500,
        )
    finally:
        db.close()


def renew_customers(
    customer_ids: List[int],
    staff_user_id: int,
    expire_date=None,
    months: int = 1,
    paid_amount=None,
    notify: bool = False,
    session_factory: Callable[[], Session] = SessionLocal,
    max_workers: Optional[int] = None,
) -> List[BatchRenewItemResult]:
    """
    Renew several customers independently.

    Each customer gets its own session and transaction, so one failure never
    reverts another customer's renewal. Outcomes are returned in request
    order, one per distinct customer id.
    """
    unique_ids = list(dict.fromkeys(customer_ids))
    if not unique_ids:
        return []

    workers = max(1, min(max_workers or settings.RENEWAL_BATCH_WORKERS, len(unique_ids)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="renewal") as pool:
        futures = [
            pool.submit(
                _renew_one,
                session_factory,
                customer_id,
                expire_date,
                months,
                paid_amount,
                staff_user_id,
                notify,
            )
            for customer_id in unique_ids
        ]
        results = [future.result() for future in futures]

    failed = sum(1 for r in results if not r.success)
    logger.info(
        f"Batch renewal finished: {len(results) - failed} succeeded, {failed} failed",
        extra={"user_id": staff_user_id, "customer_ids": unique_ids},
    )
    return results
