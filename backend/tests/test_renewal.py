"""
Tests for single and batch membership renewal.
"""
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from gymdesk.core.exceptions import NotFoundError, UpstreamError, ValidationError
from gymdesk.models import Customer, Payment
from gymdesk.services import renewal_service
from gymdesk.services.renewal_service import next_expire_date, renew_customer, renew_customers


def payment_count(db_session, customer_id):
    return db_session.query(Payment).filter(Payment.customer_id == customer_id).count()


@pytest.mark.renewal
class TestRenewCustomer:
    def test_renew_updates_customer_and_records_payment(self, db_session, make_customer, staff_user):
        customer = make_customer(expire_date=datetime(2024, 1, 1), is_active=False)

        result = renew_customer(db_session, customer.id, "2025-03-01", 30, staff_user.id)

        assert result.customer.expire_date == datetime(2025, 3, 1)
        assert result.customer.is_active is True
        assert result.payment.paid_amount == Decimal("30.00")
        assert result.payment.discount == 0
        assert result.payment.customer_id == customer.id
        assert result.payment.user_id == staff_user.id
        assert payment_count(db_session, customer.id) == 1

    def test_payment_balance_is_customer_balance_before_renewal(self, db_session, make_customer, staff_user):
        customer = make_customer(balance=15)

        result = renew_customer(db_session, customer.id, "2025-03-01", 30, staff_user.id)

        assert result.payment.balance == Decimal("15.00")
        assert result.customer.balance == Decimal("15.00")

    def test_each_renewal_adds_exactly_one_payment(self, db_session, make_customer, staff_user):
        customer = make_customer()
        renew_customer(db_session, customer.id, "2025-03-01", 30, staff_user.id)
        renew_customer(db_session, customer.id, "2025-04-01", 30, staff_user.id)
        assert payment_count(db_session, customer.id) == 2

    def test_backdated_expiry_is_accepted(self, db_session, make_customer, staff_user):
        customer = make_customer()
        result = renew_customer(db_session, customer.id, "2020-01-01", 0, staff_user.id)
        assert result.customer.expire_date == datetime(2020, 1, 1)

    def test_iso_datetime_input(self, db_session, make_customer, staff_user):
        customer = make_customer()
        result = renew_customer(db_session, customer.id, "2025-03-01T10:30:00Z", 30, staff_user.id)
        assert result.customer.expire_date == datetime(2025, 3, 1, 10, 30)

    def test_unknown_customer(self, db_session, staff_user):
        with pytest.raises(NotFoundError):
            renew_customer(db_session, 99999, "2025-03-01", 30, staff_user.id)

    @pytest.mark.parametrize("expire_date,amount", [
        ("not-a-date", 30),
        ("", 30),
        ("2025-03-01", -5),
        ("2025-03-01", "abc"),
        ("2025-03-01", float("nan")),
        ("2025-03-01", None),
        ("2025-03-01", 1e30),
        ("2025-03-01", "100000000"),
    ])
    def test_invalid_input_writes_nothing(self, db_session, make_customer, staff_user, expire_date, amount):
        customer = make_customer(expire_date=datetime(2024, 1, 1))

        with pytest.raises(ValidationError):
            renew_customer(db_session, customer.id, expire_date, amount, staff_user.id)

        db_session.expire_all()
        assert db_session.get(Customer, customer.id).expire_date == datetime(2024, 1, 1)
        assert payment_count(db_session, customer.id) == 0

    def test_failed_payment_insert_leaves_customer_unchanged(self, db_session, make_customer):
        customer = make_customer(expire_date=datetime(2024, 1, 1), is_active=False)

        # No such staff user: the payment insert violates its foreign key
        with pytest.raises(NotFoundError) as exc_info:
            renew_customer(db_session, customer.id, "2025-03-01", 30, 424242)
        assert exc_info.value.detail == "Customer or user not found"

        db_session.expire_all()
        reloaded = db_session.get(Customer, customer.id)
        assert reloaded.expire_date == datetime(2024, 1, 1)
        assert reloaded.is_active is False
        assert payment_count(db_session, customer.id) == 0

    def test_locked_database_on_lookup_is_upstream_error(self, db_session, make_customer, staff_user, monkeypatch):
        customer = make_customer()

        def locked(*args, **kwargs):
            raise OperationalError("SELECT customers", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "query", locked)

        with pytest.raises(UpstreamError):
            renew_customer(db_session, customer.id, "2025-03-01", 30, staff_user.id)


@pytest.mark.renewal
class TestNextExpireDate:
    def test_extends_from_future_expiry(self, make_customer):
        customer = make_customer(expire_date=datetime(2030, 1, 31))
        assert next_expire_date(customer, 1, now=datetime(2029, 12, 1)) == datetime(2030, 2, 28)

    def test_extends_from_now_when_already_expired(self, make_customer):
        customer = make_customer(expire_date=datetime(2020, 1, 1))
        now = datetime(2024, 6, 1, 9, 0)
        assert next_expire_date(customer, 3, now=now) == datetime(2024, 9, 1, 9, 0)

    def test_extends_from_now_when_no_expiry(self, make_customer):
        customer = make_customer(expire_date=None)
        now = datetime(2024, 6, 1)
        assert next_expire_date(customer, 1, now=now) == datetime(2024, 7, 1)


@pytest.mark.renewal
class TestRenewCustomers:
    def test_valid_and_missing_customer_are_independent(self, db_session, make_customer, staff_user):
        customer = make_customer(expire_date=datetime(2024, 1, 1))

        results = renew_customers([customer.id, 99999], staff_user.id, expire_date="2025-03-01", paid_amount=30)

        assert [r.customer_id for r in results] == [customer.id, 99999]
        assert results[0].success is True
        assert results[0].payment.paid_amount == 30
        assert results[1].success is False
        assert results[1].status_code == 404
        assert results[1].error == "Customer not found"

        db_session.expire_all()
        assert db_session.get(Customer, customer.id).expire_date == datetime(2025, 3, 1)
        assert payment_count(db_session, customer.id) == 1

    def test_duplicate_ids_renew_once(self, db_session, make_customer, staff_user):
        customer = make_customer()

        results = renew_customers([customer.id, customer.id], staff_user.id, expire_date="2025-03-01", paid_amount=30)

        assert len(results) == 1
        assert payment_count(db_session, customer.id) == 1

    def test_defaults_extend_by_months_and_charge_fee(self, db_session, make_customer, staff_user):
        customer = make_customer(expire_date=datetime(2099, 1, 15), fee=45)

        results = renew_customers([customer.id], staff_user.id, months=2)

        assert results[0].success is True
        assert results[0].customer.expire_date == datetime(2099, 3, 15)
        assert results[0].payment.paid_amount == 45

    def test_many_customers_in_parallel(self, db_session, make_customer, staff_user):
        customers = [make_customer() for _ in range(8)]
        ids = [c.id for c in customers]

        results = renew_customers(ids, staff_user.id, expire_date="2025-03-01", paid_amount=30, max_workers=4)

        assert [r.customer_id for r in results] == ids
        assert all(r.success for r in results)
        assert db_session.query(Payment).count() == 8

    def test_invalid_amount_fails_every_item(self, make_customer, staff_user):
        customer = make_customer()
        results = renew_customers([customer.id], staff_user.id, expire_date="2025-03-01", paid_amount=-1)
        assert results[0].success is False
        assert results[0].status_code == 400

    def test_notification_failure_keeps_renewal(self, db_session, make_customer, staff_user, monkeypatch):
        customer = make_customer()
        monkeypatch.setattr(
            renewal_service,
            "notify_customer",
            lambda *args, **kwargs: {"sent": False, "error": "Failed to send WhatsApp message"},
        )

        results = renew_customers([customer.id], staff_user.id, expire_date="2025-03-01", paid_amount=30, notify=True)

        assert results[0].success is True
        assert results[0].notification.sent is False
        assert payment_count(db_session, customer.id) == 1

    def test_empty_request(self, staff_user):
        assert renew_customers([], staff_user.id) == []
