from pydantic import BaseModel
from typing import Any, Optional


class WhatsAppSendRequest(BaseModel):
    phone: str
    message_type: str  # welcome, paymentReminder, renewalConfirmation
    name: str
    gender: Optional[str] = None
    fee: Optional[float] = None
    register_date: Optional[str] = None
    expire_date: Optional[str] = None


class WhatsAppSendResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
