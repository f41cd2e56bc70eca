"""
Tests for the WhatsApp gateway adapter.
"""
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests

from gymdesk.core.config import settings
from gymdesk.core.exceptions import DispatchError, ValidationError
from gymdesk.services import whatsapp_service
from gymdesk.services.whatsapp_service import (
    TemplateTypeEnum,
    format_phone_number,
    honorific,
    notify_customer,
    render_message,
    send_message,
)


@pytest.fixture
def gateway_enabled(monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_ENABLED", True)
    monkeypatch.setattr(settings, "WHATSAPP_TOKEN", "token-123")
    monkeypatch.setattr(settings, "WHATSAPP_INSTANCE_ID", "instance-1")


def gateway_response(ok=True, status_code=200, body=None):
    response = Mock(ok=ok, status_code=status_code)
    response.json.return_value = body if body is not None else {"status": "success"}
    return response


@pytest.mark.whatsapp
class TestPhoneFormatting:
    @pytest.mark.parametrize("raw,expected", [
        ("0634567890", "252634567890"),
        ("252634567890", "252634567890"),
        ("634567890", "252634567890"),
        ("+252 63-456 7890", "252634567890"),
        ("(063) 456 7890", "252634567890"),
    ])
    def test_format(self, raw, expected):
        assert format_phone_number(raw) == expected

    def test_custom_country_code(self):
        assert format_phone_number("0712345678", country_code="254") == "254712345678"

    @pytest.mark.parametrize("raw", ["", "   ", "abc", None])
    def test_no_digits(self, raw):
        with pytest.raises(ValidationError):
            format_phone_number(raw)


@pytest.mark.whatsapp
class TestTemplates:
    def test_honorific(self):
        assert honorific("male") == "Mudane"
        assert honorific("MALE") == "Mudane"
        assert honorific("female") == "Marwo"
        assert honorific(None) == "Marwo"

    def test_welcome(self):
        message = render_message("welcome", {"name": "Ayaan", "gender": "female", "register_date": datetime(2024, 5, 1)})
        assert "*Marwo, Ayaan,*" in message
        assert "2024-05-01" in message
        assert settings.GYM_NAME.upper() in message

    def test_payment_reminder(self):
        message = render_message(TemplateTypeEnum.PAYMENT_REMINDER, {"name": "Omar", "gender": "male"})
        assert "Mudane Omar" in message
        assert "Ogaysiiska Lacag Bixinta" in message

    def test_renewal_confirmation(self):
        message = render_message(
            "renewal", {"name": "Omar", "gender": "male", "fee": 30, "expire_date": datetime(2025, 3, 1)}
        )
        assert "Mahadsanid Mudane Omar" in message
        assert "$30" in message
        assert "2025-03-01" in message

    def test_renewal_without_expiry(self):
        message = render_message("renewalConfirmation", {"name": "Omar", "gender": "male", "fee": 30})
        assert "1 bil gudahood" in message

    def test_unknown_template(self):
        with pytest.raises(ValidationError):
            render_message("birthday", {"name": "Omar"})


@pytest.mark.whatsapp
class TestSendMessage:
    def test_success(self, gateway_enabled, monkeypatch):
        fake_get = Mock(return_value=gateway_response(body={"status": "success", "id": "m1"}))
        monkeypatch.setattr(whatsapp_service.requests, "get", fake_get)

        result = send_message("0634567890", "welcome", {"name": "Ayaan", "gender": "female"})

        assert result == {"success": True, "provider_response": {"status": "success", "id": "m1"}}
        _, kwargs = fake_get.call_args
        assert kwargs["params"]["jid"] == "252634567890@s.whatsapp.net"
        assert kwargs["params"]["token"] == "token-123"
        assert kwargs["params"]["instance_id"] == "instance-1"
        assert "Ayaan" in kwargs["params"]["msg"]
        assert kwargs["timeout"] == 10.0

    def test_success_flag_body(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(
            whatsapp_service.requests, "get", Mock(return_value=gateway_response(body={"success": True}))
        )
        assert send_message("0634567890", "welcome", {"name": "Ayaan"})["success"] is True

    def test_timeout(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(whatsapp_service.requests, "get", Mock(side_effect=requests.exceptions.Timeout()))
        with pytest.raises(DispatchError) as exc_info:
            send_message("0634567890", "welcome", {"name": "Ayaan"})
        assert "timeout" in exc_info.value.detail.lower()

    def test_connection_error(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(
            whatsapp_service.requests, "get", Mock(side_effect=requests.exceptions.ConnectionError("refused"))
        )
        with pytest.raises(DispatchError):
            send_message("0634567890", "welcome", {"name": "Ayaan"})

    def test_non_json_response(self, gateway_enabled, monkeypatch):
        response = Mock(ok=True, status_code=200)
        response.json.side_effect = ValueError("Expecting value")
        monkeypatch.setattr(whatsapp_service.requests, "get", Mock(return_value=response))
        with pytest.raises(DispatchError) as exc_info:
            send_message("0634567890", "welcome", {"name": "Ayaan"})
        assert "non-JSON" in exc_info.value.detail

    def test_provider_reports_failure(self, gateway_enabled, monkeypatch):
        body = {"status": "error", "message": "instance not connected"}
        monkeypatch.setattr(whatsapp_service.requests, "get", Mock(return_value=gateway_response(body=body)))
        with pytest.raises(DispatchError) as exc_info:
            send_message("0634567890", "welcome", {"name": "Ayaan"})
        assert "instance not connected" in exc_info.value.detail

    def test_http_error_with_success_body_is_failure(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(
            whatsapp_service.requests, "get", Mock(return_value=gateway_response(ok=False, status_code=500))
        )
        with pytest.raises(DispatchError):
            send_message("0634567890", "welcome", {"name": "Ayaan"})

    def test_disabled_gateway(self, monkeypatch):
        monkeypatch.setattr(settings, "WHATSAPP_ENABLED", False)
        fake_get = Mock()
        monkeypatch.setattr(whatsapp_service.requests, "get", fake_get)
        with pytest.raises(DispatchError):
            send_message("0634567890", "welcome", {"name": "Ayaan"})
        fake_get.assert_not_called()

    def test_missing_credentials(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(settings, "WHATSAPP_TOKEN", "")
        with pytest.raises(DispatchError):
            send_message("0634567890", "welcome", {"name": "Ayaan"})

    def test_missing_phone_is_validation_error(self, gateway_enabled):
        with pytest.raises(ValidationError):
            send_message("", "welcome", {"name": "Ayaan"})


@pytest.mark.whatsapp
class TestNotifyCustomer:
    def customer(self, phone="0634567890"):
        return SimpleNamespace(
            id=1,
            name="Ayaan",
            phone=phone,
            gender=SimpleNamespace(value="female"),
            fee=30,
            register_date=datetime(2024, 5, 1),
            expire_date=datetime(2024, 6, 1),
        )

    def test_sent(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(whatsapp_service.requests, "get", Mock(return_value=gateway_response()))
        assert notify_customer(self.customer(), TemplateTypeEnum.WELCOME) == {"sent": True, "error": None}

    def test_failure_is_reported_not_raised(self, gateway_enabled, monkeypatch):
        monkeypatch.setattr(whatsapp_service.requests, "get", Mock(side_effect=requests.exceptions.Timeout()))
        outcome = notify_customer(self.customer(), TemplateTypeEnum.RENEWAL_CONFIRMATION)
        assert outcome["sent"] is False
        assert outcome["error"]

    def test_no_phone(self):
        outcome = notify_customer(self.customer(phone=None), TemplateTypeEnum.WELCOME)
        assert outcome == {"sent": False, "error": "Customer has no phone number"}

    def test_extra_overrides_template_data(self, gateway_enabled, monkeypatch):
        fake_get = Mock(return_value=gateway_response())
        monkeypatch.setattr(whatsapp_service.requests, "get", fake_get)
        notify_customer(self.customer(), TemplateTypeEnum.RENEWAL_CONFIRMATION, extra={"fee": 55})
        assert "$55" in fake_get.call_args.kwargs["params"]["msg"]
