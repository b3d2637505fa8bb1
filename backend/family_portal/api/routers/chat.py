from fastapi import APIRouter, Depends
from family_portal.api.deps import get_conversation_gateway, get_current_user
from family_portal.models.user import User
from family_portal.schemas.conversation import ChatIn
from family_portal.services.chat import ConversationGateway

router = APIRouter(tags=["chat"])

@router.post("/chat")
async def chat(
    body: ChatIn,
    user: User = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """
    Run one chat turn (non-streaming).

    Args:
        body: Request body containing:
            - messages: [{role, content}] context for the model
            - conversationId: str | None (omit to start a new conversation)
            - model: str | None (optional model override)

    Returns:
        dict: success + data with reply, conversationId and token usage

    Error codes:
        - QUOTA_REQUESTS_EXCEEDED / QUOTA_TOKENS_EXCEEDED (429)
        - CONVERSATION_NOT_FOUND (404)
        - BACKEND_NOT_CONFIGURED (500)
        - UPSTREAM_ERROR (500): model call failed, message embedded
    """
    result = await gateway.start_or_continue_turn(
        user,
        str(body.conversationId) if body.conversationId else None,
        [m.model_dump() for m in body.messages],
        model=body.model,
    )
    return {
        "success": True,
        "data": {
            "reply": result.text,
            "conversationId": result.conversation_id,
            "usage": result.usage.to_dict(),
        },
    }
