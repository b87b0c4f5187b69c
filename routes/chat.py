from fastapi import APIRouter, Depends, HTTPException

from controllers.message import (
    count_unread,
    delete_message,
    format_message,
    get_messages,
    get_participant_request,
    mark_messages_read,
    send_message,
)
from core.auth import get_current_user, require_roles
from database.database import get_db
from models.user import UserRole
from schema.chat import SendMessageRequest
from utils.errors import internal_error

router = APIRouter()

participant_only = require_roles(UserRole.PATIENT, UserRole.VOLUNTEER)


@router.post("")
async def send(
    req: SendMessageRequest,
    user=Depends(participant_only),
    db=Depends(get_db),
):
    try:
        message = send_message(
            request_id=req.request_id,
            content=req.content,
            sender_role=req.sender_role,
            user=user,
            db=db,
        )
        return {
            "success": True,
            "msg": "Message sent successfully",
            "data": format_message(message),
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("sending message", e)


@router.get("/unread/count")
async def unread_count(
    user=Depends(participant_only),
    db=Depends(get_db),
):
    try:
        return {"success": True, "data": {"unreadCount": count_unread(user, db)}}
    except Exception as e:
        raise internal_error("fetching unread count", e)


@router.get("/{request_id}")
async def list_messages(
    request_id: str,
    user=Depends(participant_only),
    db=Depends(get_db),
):
    try:
        request = get_participant_request(request_id, user, db)
        messages = get_messages(request, db)
        read_ids = set(mark_messages_read(request, user, db))
        data = []
        for message in messages:
            formatted = format_message(message)
            formatted["isRead"] = formatted["isRead"] or message.message_id in read_ids
            data.append(formatted)
        return {"success": True, "data": data}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("fetching messages", e)


@router.patch("/{request_id}/read")
async def mark_read(
    request_id: str,
    user=Depends(participant_only),
    db=Depends(get_db),
):
    try:
        request = get_participant_request(request_id, user, db)
        read_ids = mark_messages_read(request, user, db)
        return {
            "success": True,
            "msg": "Messages marked as read",
            "data": {"markedCount": len(read_ids)},
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("marking messages as read", e)


@router.delete("/{message_id}")
async def remove_message(
    message_id: str,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        delete_message(message_id, user, db)
        return {"success": True, "msg": "Message deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("deleting message", e)
