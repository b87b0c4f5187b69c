import uuid
from typing import List

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload

from models.patient_request import PatientRequest, RequestStatus
from models.request_message import RequestMessage
from models.user import User, UserRole
from utils.state import State
from utils.timestamps import utc_now

MAX_MESSAGE_LENGTH = 2000


def counterpart_role(role: str) -> str:
    if role == UserRole.PATIENT.value:
        return UserRole.VOLUNTEER.value
    return UserRole.PATIENT.value


def format_message(message: RequestMessage) -> dict:
    return {
        "id": message.message_id,
        "requestId": message.request_id,
        "content": message.content,
        "senderId": message.sender_id,
        "senderName": message.sender.name if message.sender else None,
        "senderRole": message.sender_role,
        "createdAt": message.time_created,
        "isRead": message.is_read,
    }


def validate_message_content(content: str) -> str:
    """Shared shape check for every entry point that posts a ticket message."""
    if content is None or not content.strip():
        raise HTTPException(status_code=400, detail="Message content cannot be empty")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Message is too long. Maximum {MAX_MESSAGE_LENGTH} characters allowed.",
        )
    return content.strip()


def get_participant_request(request_id: str, user: User, db: Session) -> PatientRequest:
    """
    Load a ticket the caller takes part in.

    Patients must own the ticket, volunteers must be the assigned volunteer;
    nobody else can see its thread.
    """
    request = (
        db.query(PatientRequest).filter(PatientRequest.request_id == request_id).first()
    )
    if not request:
        raise HTTPException(status_code=404, detail="Patient request not found")
    if user.role == UserRole.PATIENT.value and request.patient_id == user.user_id:
        return request
    if user.role == UserRole.VOLUNTEER.value and request.volunteer_id == user.user_id:
        return request
    raise HTTPException(
        status_code=403, detail="You can only access messages for your own requests"
    )


def send_message(
    request_id: str, content: str, sender_role: str, user: User, db: Session
) -> RequestMessage:
    content = validate_message_content(content)
    if sender_role != user.role:
        raise HTTPException(
            status_code=403,
            detail=f"{user.role.capitalize()}s can only send messages as {user.role}",
        )

    request = (
        db.query(PatientRequest).filter(PatientRequest.request_id == request_id).first()
    )
    if not request:
        raise HTTPException(status_code=404, detail="Patient request not found")

    if user.role == UserRole.PATIENT.value:
        if request.patient_id != user.user_id:
            raise HTTPException(
                status_code=403,
                detail="You can only send messages for your own requests",
            )
        if not request.volunteer_id:
            raise HTTPException(
                status_code=400,
                detail="No volunteer assigned yet. Please wait for a volunteer to take your request.",
            )
    elif user.role == UserRole.VOLUNTEER.value:
        if request.volunteer_id != user.user_id:
            raise HTTPException(
                status_code=403,
                detail="You can only send messages for requests assigned to you",
            )
    else:
        raise HTTPException(
            status_code=403, detail="Only patients or volunteers can send messages"
        )

    if request.status == RequestStatus.CANCELLED.value:
        raise HTTPException(
            status_code=400, detail="Cannot send messages for cancelled requests"
        )

    message = RequestMessage(
        message_id=str(uuid.uuid4()),
        request_id=request.request_id,
        sender_id=user.user_id,
        sender_role=sender_role,
        content=content,
        is_read=False,
        time_created=utc_now(),
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_messages(request: PatientRequest, db: Session) -> List[RequestMessage]:
    return (
        db.query(RequestMessage)
        .options(joinedload(RequestMessage.sender))
        .filter(RequestMessage.request_id == request.request_id)
        .order_by(RequestMessage.time_created)
        .all()
    )


def mark_messages_read(request: PatientRequest, user: User, db: Session) -> List[str]:
    """
    Mark the counterpart's unread messages on ``request`` as read.

    Idempotent: a second call finds nothing unread and changes nothing.

    Returns:
        List[str]: ids of the messages that flipped to read in this call.
    """
    unread_ids = [
        message_id
        for (message_id,) in db.query(RequestMessage.message_id).filter(
            RequestMessage.request_id == request.request_id,
            RequestMessage.sender_role == counterpart_role(user.role),
            RequestMessage.is_read.is_(False),
        )
    ]
    if unread_ids:
        db.query(RequestMessage).filter(
            RequestMessage.message_id.in_(unread_ids)
        ).update({RequestMessage.is_read: True}, synchronize_session=False)
        db.commit()
        State.logger.info(
            f"{len(unread_ids)} messages on request {request.request_id} read by {user.user_id}"
        )
    return unread_ids


def count_unread(user: User, db: Session) -> int:
    if user.role == UserRole.PATIENT.value:
        owner_filter = PatientRequest.patient_id == user.user_id
    elif user.role == UserRole.VOLUNTEER.value:
        owner_filter = PatientRequest.volunteer_id == user.user_id
    else:
        return 0

    request_ids = [
        request_id
        for (request_id,) in db.query(PatientRequest.request_id).filter(owner_filter)
    ]
    if not request_ids:
        return 0
    return (
        db.query(RequestMessage)
        .filter(
            RequestMessage.request_id.in_(request_ids),
            RequestMessage.sender_role == counterpart_role(user.role),
            RequestMessage.is_read.is_(False),
        )
        .count()
    )


def delete_message(message_id: str, user: User, db: Session) -> None:
    message = (
        db.query(RequestMessage).filter(RequestMessage.message_id == message_id).first()
    )
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.sender_id != user.user_id:
        raise HTTPException(
            status_code=403, detail="You can only delete your own messages"
        )
    db.delete(message)
    db.commit()
