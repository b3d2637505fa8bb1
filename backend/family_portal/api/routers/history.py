import uuid
from fastapi import APIRouter, Depends
from family_portal.api.deps import get_conversation_gateway, get_current_user
from family_portal.models.conversation import Conversation
from family_portal.models.message import Message
from family_portal.models.user import User
from family_portal.schemas.conversation import ConversationItem, ConversationTitleIn, MessageOut
from family_portal.services.chat import ConversationGateway

router = APIRouter(prefix="/history", tags=["history"])

def _conversation_out(c: Conversation) -> dict:
    return ConversationItem(
        id=str(c.id),
        title=c.title,
        createdAt=c.created_at.isoformat(),
    ).model_dump()

def _message_out(m: Message) -> dict:
    return MessageOut(role=m.role, content=m.content, createdAt=m.created_at.isoformat()).model_dump()

# ===== Routes =====
@router.get("", response_model=dict)
async def list_conversations(
    user: User = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """
    List the authenticated user's conversations, newest first.

    Returns:
        dict: Response containing:
            - success: bool (always True)
            - data: dict with conversations: [{id, title, createdAt}]

    Raises:
        Unauthorized (401): If user is not authenticated
    """
    rows = await gateway.list_conversations(user)
    return {"success": True, "data": {"conversations": [_conversation_out(c) for c in rows]}}

@router.get("/{cid}", response_model=dict)
async def get_conversation_detail(
    cid: uuid.UUID,
    user: User = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """
    Get one conversation with all of its messages in order.

    Raises:
        Unauthorized (401): If user is not authenticated
        NotFound (404): If conversation not found or doesn't belong to user
    """
    c, messages = await gateway.get_conversation(user, cid)
    return {
        "success": True,
        "data": {
            "conversation": _conversation_out(c),
            "messages": [_message_out(m) for m in messages],
        },
    }

@router.post("/{cid}/rename", response_model=dict)
async def rename_conversation(
    cid: uuid.UUID,
    body: ConversationTitleIn,
    user: User = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """
    Set the title of a conversation. Empty titles become "Untitled chat";
    titles are trimmed and limited to 80 characters.

    Raises:
        Unauthorized (401): If user is not authenticated
        NotFound (404): If conversation not found or doesn't belong to user
    """
    c = await gateway.rename(user, cid, body.title)
    return {"success": True, "data": {"id": str(c.id), "title": c.title}}

@router.delete("/{cid}", response_model=dict)
async def delete_conversation(
    cid: uuid.UUID,
    user: User = Depends(get_current_user),
    gateway: ConversationGateway = Depends(get_conversation_gateway),
):
    """
    Delete a conversation and all its messages.

    Deleting an unknown conversation, or someone else's, is a no-op that
    still reports success.
    """
    await gateway.delete(user, cid)
    return {"success": True, "data": {"id": str(cid), "deleted": True}}
