"""FastAPI routes for the chat relay."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from chat_relay.core.chat_service import ChatService
from chat_relay.models.schemas import ChatRequest, ChatResponse

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger(__name__)


def get_chat_service(request: Request) -> ChatService:
    """ChatService built in the app lifespan (shares one HTTP client across requests)."""
    return request.app.state.chat_service


@router.post("/message", response_model=ChatResponse)
async def send_message(req: ChatRequest, service: ChatService = Depends(get_chat_service)) -> ChatResponse:
    """Send a message. Omit conversationId for the first message; pass it back for follow-ups."""
    if not req.message or not req.message.strip():
        raise HTTPException(status_code=400, detail="Message must not be empty")
    try:
        return await service.handle_message(
            req.message,
            restaurant_code=req.restaurant_code,
            conversation_id=req.conversation_id,
            user_id=req.user_id,
        )
    except Exception:
        logger.exception("Error processing message (conversation_id=%r)", req.conversation_id)
        raise HTTPException(status_code=500, detail="Error processing the message")


@router.get("/health")
def health() -> dict:
    """Health check."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "Chat Relay API",
    }
