"""
WhatsApp notifications through the Bawa send-text gateway.

``send_message`` raises ``DispatchError`` on any gateway failure;
``notify_customer`` is the soft variant used by the membership workflows,
where a failed message must never undo a registration or renewal.
"""
import enum
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from gymdesk.core.config import settings
from gymdesk.core.exceptions import DispatchError, ValidationError
from gymdesk.core.logging_config import get_logger

logger = get_logger("whatsapp_service")


class TemplateTypeEnum(str, enum.Enum):
    WELCOME = "welcome"
    PAYMENT_REMINDER = "paymentReminder"
    RENEWAL_CONFIRMATION = "renewalConfirmation"

    @classmethod
    def normalize(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            value_lower = value.strip().lower()
            mapping = {
                'welcome': cls.WELCOME,
                'paymentreminder': cls.PAYMENT_REMINDER,
                'payment_reminder': cls.PAYMENT_REMINDER,
                'payment': cls.PAYMENT_REMINDER,
                'renewalconfirmation': cls.RENEWAL_CONFIRMATION,
                'renewal_confirmation': cls.RENEWAL_CONFIRMATION,
                'renewal': cls.RENEWAL_CONFIRMATION,
            }
            if value_lower in mapping:
                return mapping[value_lower]
        raise ValidationError(f"Invalid message type: {value!r}")


def format_phone_number(phone: str, country_code: Optional[str] = None) -> str:
    """
    Normalise a phone number to international digits.

    Non-digits are stripped; a leading 0 is replaced by the country code, a
    number already starting with the country code is kept, anything else gets
    the country code prepended.
    """
    country_code = country_code or settings.WHATSAPP_COUNTRY_CODE
    digits = ''.join(filter(str.isdigit, phone or ""))
    if not digits:
        raise ValidationError("Phone number is required")

    if digits.startswith('0'):
        return country_code + digits[1:]
    if digits.startswith(country_code):
        return digits
    return country_code + digits


def honorific(gender: Optional[str]) -> str:
    return "Mudane" if (gender or "").strip().lower() == "male" else "Marwo"


def _format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    return str(value) if value else ""


def render_message(template_type, data: Dict[str, Any]) -> str:
    """Build the message body for a template from customer data."""
    template_type = TemplateTypeEnum.normalize(template_type)
    title = honorific(data.get("gender"))
    name = data.get("name") or ""
    gym = settings.GYM_NAME

    if template_type == TemplateTypeEnum.WELCOME:
        return (
            f"*{title}, {name},*\n\n"
            f"Kusoo Dhawoow {gym.upper()}.\n\n"
            f"*Taariikhda Diiwaan Gelinta:* {_format_date(data.get('register_date'))}\n\n"
            f"Farxad gaar ah ayay noo tahay in aad kamid noqoto Bahda {gym}."
        )
    if template_type == TemplateTypeEnum.PAYMENT_REMINDER:
        return (
            f"*Ogaysiiska Lacag Bixinta!*\n\n"
            f"{title} {name},\n\n"
            f"Waxa ay gaadhay wakhtigii ay kaa dhici lahayd lacagta Subscription-ka ee Bisha, "
            f"fadlan dib u cusboonaysii mar kale."
        )
    expire = _format_date(data.get("expire_date")) or "1 bil gudahood"
    fee = data.get("fee")
    fee_text = f"${float(fee):g}" if fee is not None else "-"
    return (
        f"*Mahadsanid {title} {name}!*\n\n"
        f"Waxaad si buuxda u cusboonaysiisay Subscription-ka {gym}.\n\n"
        f"*Macluumaadka Cusboonaysiinta:*\n"
        f"Lacagta: {fee_text}\n"
        f"Taariikhda Dhamaadka: {expire}\n\n"
        f"Waad ku mahadsan tahay inaad kamid tahay Bahda {gym}!"
    )


def send_message(phone: str, template_type, template_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Send a templated WhatsApp message.

    Returns:
        ``{"success": True, "provider_response": <gateway JSON>}``

    Raises:
        ValidationError: missing phone or unknown template
        DispatchError: gateway disabled, unreachable, slow, or reporting failure
    """
    template_type = TemplateTypeEnum.normalize(template_type)
    formatted_phone = format_phone_number(phone)
    message = render_message(template_type, template_data)

    if not settings.WHATSAPP_ENABLED:
        raise DispatchError("WhatsApp is disabled in settings")
    if not settings.WHATSAPP_TOKEN or not settings.WHATSAPP_INSTANCE_ID:
        raise DispatchError("WhatsApp gateway credentials not configured")

    params = {
        "token": settings.WHATSAPP_TOKEN,
        "instance_id": settings.WHATSAPP_INSTANCE_ID,
        "jid": f"{formatted_phone}@s.whatsapp.net",
        "msg": message,
    }
    headers = {
        "Accept": "application/json",
        "User-Agent": f"{settings.APP_NAME}/1.0",
    }

    try:
        response = requests.get(
            settings.WHATSAPP_API_URL,
            params=params,
            headers=headers,
            timeout=settings.WHATSAPP_TIMEOUT,
        )
    except requests.exceptions.Timeout as e:
        raise DispatchError("Request timeout - WhatsApp gateway took too long to respond") from e
    except requests.exceptions.RequestException as e:
        raise DispatchError(f"Network error while contacting WhatsApp gateway: {e}") from e

    try:
        response_data = response.json()
    except ValueError as e:
        raise DispatchError(
            f"WhatsApp gateway returned a non-JSON response (HTTP {response.status_code})"
        ) from e

    if not isinstance(response_data, dict):
        raise DispatchError(f"Unexpected WhatsApp gateway response: {response_data!r}")

    if response.ok and (response_data.get("status") == "success" or response_data.get("success")):
        logger.info(
            f"WhatsApp {template_type.value} sent to {formatted_phone}",
            extra={"phone": formatted_phone, "template_type": template_type.value},
        )
        return {"success": True, "provider_response": response_data}

    reason = (
        response_data.get("message")
        or response_data.get("error")
        or f"HTTP {response.status_code}"
    )
    raise DispatchError(f"WhatsApp gateway rejected message: {reason}")


def notify_customer(customer, template_type, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Send a template to a customer without ever raising.

    Returns ``{"sent": bool, "error": str | None}`` so callers can report a
    partial success next to an otherwise successful operation.
    """
    if not customer.phone:
        return {"sent": False, "error": "Customer has no phone number"}

    data = {
        "name": customer.name,
        "gender": customer.gender.value if hasattr(customer.gender, "value") else customer.gender,
        "fee": customer.fee,
        "register_date": customer.register_date,
        "expire_date": customer.expire_date,
    }
    if extra:
        data.update(extra)

    try:
        send_message(customer.phone, template_type, data)
        return {"sent": True, "error": None}
    except (DispatchError, ValidationError) as e:
        logger.warning(
            f"WhatsApp notification failed for customer {customer.id}: {e.detail}",
            extra={"customer_id": customer.id, "template_type": str(template_type)},
        )
        return {"sent": False, "error": e.detail}
