from fastapi import APIRouter, Depends
from gymdesk.models.user import User
from gymdesk.api.v1.endpoints.auth import get_current_user
from gymdesk.schemas.notification import WhatsAppSendRequest, WhatsAppSendResponse
from gymdesk.services import whatsapp_service

router = APIRouter()


@router.post("/send", response_model=WhatsAppSendResponse)
def send_whatsapp(
    request: WhatsAppSendRequest,
    current_user: User = Depends(get_current_user)
):
    """Send a templated WhatsApp message. Gateway failures return 502."""
    result = whatsapp_service.send_message(
        request.phone,
        request.message_type,
        request.model_dump(exclude={"phone", "message_type"}),
    )
    return WhatsAppSendResponse(
        success=True,
        message="WhatsApp message sent successfully",
        data=result["provider_response"],
    )
