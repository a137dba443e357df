"""API request and response models. Field names are camelCase on the wire (web client contract)."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str = Field(..., description="User message")
    conversation_id: str | None = Field(
        None, alias="conversationId", description="Conversation id from a previous reply; omit to start one"
    )
    user_id: str | None = Field(None, alias="userId", description="Anonymous user id; generated when omitted")
    restaurant_code: str | None = Field(
        None, alias="restaurantCode", description="Tenant code; the configured default when omitted"
    )


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str = Field(..., description="Assistant reply")
    conversation_id: str = Field("", alias="conversationId", description="Use for follow-up messages; may be empty")
    user_id: str = Field(..., alias="userId")
    timestamp: datetime
    is_first_message: bool = Field(..., alias="isFirstMessage")
