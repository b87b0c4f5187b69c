import uuid
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from models.session import ChatSession
from models.session_message import ChatRole, SessionMessage
from utils.state import State
from utils.timestamps import utc_now

TITLE_MAX_LENGTH = 50
CONTEXT_WINDOW = 10


def generate_session_title(question: str) -> str:
    if len(question) <= TITLE_MAX_LENGTH:
        return question
    return question[:TITLE_MAX_LENGTH].strip() + "..."


def create_session(
    user_id: str, title: str, context: Optional[dict], db: Session
) -> ChatSession:
    session = ChatSession(
        session_id=str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        context=context,
        is_active=True,
        time_created=utc_now(),
        time_updated=utc_now(),
    )
    db.add(session)
    return session


def get_session(
    session_id: str, user_id: str, db: Session, for_update: bool = False
) -> ChatSession:
    query = db.query(ChatSession).filter(
        ChatSession.session_id == session_id, ChatSession.user_id == user_id
    )
    if for_update:
        query = query.with_for_update()
    session = query.first()
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def get_recent_messages(
    session_id: str, db: Session, limit: int = CONTEXT_WINDOW
) -> List[dict]:
    recent = (
        db.query(SessionMessage)
        .filter(SessionMessage.session_id == session_id)
        .order_by(desc(SessionMessage.time_created))
        .limit(limit)
        .all()
    )
    return [{"role": msg.role, "content": msg.content} for msg in reversed(recent)]


def record_turn(
    user_id: str,
    session_id: Optional[str],
    question: str,
    reply: str,
    is_emergency: bool,
    asked_at: str,
    db: Session,
    context: Optional[dict] = None,
) -> ChatSession:
    """
    Persist one question and its reply in a single short transaction.

    Runs only once the reply exists. A new session is created here, and a
    continued one is re-read under a row lock that ends with this commit, so
    turns on the same session append one pair at a time.

    Args:
        user_id (str): Owner of the session.
        session_id (str, optional): Session to continue, or None to start one.
        asked_at (str): When the question arrived, kept in the message metadata.
        context (dict, optional): Ticket snapshot stored on a new session.

    Returns:
        ChatSession: The session the turn was appended to.
    """
    if session_id:
        session = get_session(session_id, user_id, db, for_update=True)
    else:
        session = create_session(
            user_id=user_id,
            title=generate_session_title(question),
            context=context,
            db=db,
        )
    written_at = utc_now()
    answered_at = utc_now(offset_microseconds=1)
    db.add(
        SessionMessage(
            message_id=str(uuid.uuid4()),
            session_id=session.session_id,
            role=ChatRole.USER.value,
            content=question,
            message_metadata={"timestamp": asked_at, "questionLength": len(question)},
            is_emergency=is_emergency,
            time_created=written_at,
        )
    )
    db.add(
        SessionMessage(
            message_id=str(uuid.uuid4()),
            session_id=session.session_id,
            role=ChatRole.ASSISTANT.value,
            content=reply,
            message_metadata={"timestamp": answered_at, "responseLength": len(reply)},
            is_emergency=is_emergency,
            time_created=answered_at,
        )
    )
    session.time_updated = answered_at
    db.commit()
    if is_emergency:
        State.logger.warning(f"Emergency keywords detected in session {session.session_id}")
    return session


def list_sessions(user_id: str, db: Session) -> List[dict]:
    sessions = (
        db.query(ChatSession)
        .filter(ChatSession.user_id == user_id, ChatSession.is_active.is_(True))
        .order_by(desc(ChatSession.time_updated))
        .all()
    )
    counts = dict(
        db.query(SessionMessage.session_id, func.count(SessionMessage.message_id))
        .join(ChatSession, ChatSession.session_id == SessionMessage.session_id)
        .filter(ChatSession.user_id == user_id)
        .group_by(SessionMessage.session_id)
        .all()
    )
    formatted = []
    for session in sessions:
        last = (
            db.query(SessionMessage)
            .filter(SessionMessage.session_id == session.session_id)
            .order_by(desc(SessionMessage.time_created))
            .first()
        )
        formatted.append(
            {
                "id": session.session_id,
                "title": session.title,
                "lastMessage": last.content if last else "",
                "timestamp": session.time_updated,
                "messageCount": counts.get(session.session_id, 0),
                "context": session.context,
            }
        )
    return formatted


def format_session_message(message: SessionMessage) -> dict:
    return {
        "id": message.message_id,
        "role": message.role.lower(),
        "content": message.content,
        "timestamp": message.time_created,
        "isEmergency": message.is_emergency,
    }


def format_session_detail(session: ChatSession) -> dict:
    messages = [format_session_message(msg) for msg in session.messages]
    return {
        "id": session.session_id,
        "title": session.title,
        "createdAt": session.time_created,
        "updatedAt": session.time_updated,
        "messageCount": len(messages),
        "context": session.context,
        "messages": messages,
    }


def edit_session(session: ChatSession, title: str, db: Session) -> ChatSession:
    if not title or not title.strip():
        raise HTTPException(status_code=400, detail="Valid title is required")
    session.title = title.strip()
    session.time_updated = utc_now()
    db.commit()
    db.refresh(session)
    return session


def delete_session(session: ChatSession, db: Session) -> None:
    # Cascades to every SessionMessage of the session
    db.delete(session)
    db.commit()
