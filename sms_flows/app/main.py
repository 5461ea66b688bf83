import logging

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.responses import Response
from pydantic import ValidationError
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from ..config import settings
from ..services.conversation import ConversationService
from ..state.models import InboundMessage
from .dependencies import get_conversation_service, get_cookie_name
from .schemas import ConversationRead, HistoryItem, TwilioInboundSms

logger = logging.getLogger(__name__)

app = FastAPI(title="SMS Flows")


def _empty_twiml() -> Response:
    # Replies go out through the REST API; the webhook answers with no TwiML verbs
    return Response(content=str(MessagingResponse()), media_type="application/xml")


async def verify_twilio_signature(request: Request):
    if not settings.VALIDATE_TWILIO_SIGNATURE:
        return
    form = await request.form()
    validator = RequestValidator(settings.TWILIO_AUTH_TOKEN or "")
    signature = request.headers.get("X-Twilio-Signature", "")
    if not validator.validate(str(request.url), dict(form), signature):
        logger.warning("Rejected webhook call with an invalid Twilio signature")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")


# --- Endpoints ---

@app.post("/sms", dependencies=[Depends(verify_twilio_signature)])
async def receive_sms(
    request: Request,
    service: ConversationService = Depends(get_conversation_service),
    cookie_name: str = Depends(get_cookie_name),
):
    """Twilio's incoming-message webhook."""
    form = await request.form()
    try:
        payload = TwilioInboundSms(**dict(form))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors())

    inbound = InboundMessage(body=payload.Body, sender=payload.From)
    result = await service.handle_inbound(inbound, request.cookies.get(cookie_name))

    response = _empty_twiml()
    if result.completed:
        response.delete_cookie(cookie_name)
    elif result.cookie:
        response.set_cookie(cookie_name, result.cookie, httponly=True)
    return response


@app.get("/conversations/{sender}", response_model=ConversationRead)
def get_conversation(
    sender: str,
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Retrieves the persisted state of a conversation.
    Only server-side stores can answer; cookie state lives with the client.
    """
    state = service.get_conversation(sender)
    if not state:
        raise HTTPException(status_code=404, detail="Conversation not found")

    # "dto" stands for Data Transfer Object.
    history_dto = [
        HistoryItem(
            flow_name=entry.flow_name,
            action_name=entry.action_name,
            context=entry.context,
        )
        for entry in state.interaction_history
    ]

    return ConversationRead(
        sender=state.sender,
        interaction_id=state.interaction_id,
        status="COMPLETED" if state.is_complete else "IN_PROGRESS",
        active_flow=state.active_flow,
        position=state.position,
        history=history_dto,
        debug=state.model_dump(mode="json"),
    )


@app.delete("/conversations/{sender}", status_code=status.HTTP_204_NO_CONTENT)
def reset_conversation(
    sender: str,
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Forgets a conversation so the sender's next message starts over.
    Returns 204 No Content.
    """
    service.reset_conversation(sender)

    # For 204, we must explicitly return a Response object with no content
    return Response(status_code=status.HTTP_204_NO_CONTENT)
