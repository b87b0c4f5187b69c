from fastapi import APIRouter, Depends, HTTPException, Query

from controllers.generate_response import (
    build_chat_prompt,
    generate_response,
    llm_error_to_http,
)
from controllers.safety import EMERGENCY_WARNING, detect_emergency
from controllers.session import (
    CONTEXT_WINDOW,
    delete_session,
    edit_session,
    format_session_detail,
    format_session_message,
    get_recent_messages,
    get_session,
    list_sessions,
    record_turn,
)
from core.auth import get_current_user
from core.load_model import is_debug
from database.database import get_db
from schema.chatbot import ChatbotRequest, DeleteSessionRequest, RenameSessionRequest
from utils.errors import internal_error
from utils.state import State
from utils.timestamps import utc_now

router = APIRouter()

MAX_QUESTION_LENGTH = 2000


@router.post("")
async def ask_chatbot(
    req: ChatbotRequest,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        question = req.question.strip()
        if not question:
            raise HTTPException(status_code=400, detail="Valid question is required")
        if len(req.question) > MAX_QUESTION_LENGTH:
            raise HTTPException(
                status_code=400,
                detail="Question is too long. Please keep it under 2000 characters.",
            )
        asked_at = utc_now()
        user_id = user.user_id
        context = req.context.model_dump(by_alias=True) if req.context else None

        if req.session_id:
            session = get_session(req.session_id, user_id, db)
            history = get_recent_messages(session.session_id, db)
            prompt_context = context if context is not None else session.context
        else:
            history = [
                entry.model_dump() for entry in req.conversation_history[-CONTEXT_WINDOW:]
            ]
            prompt_context = context
        prompt = build_chat_prompt(question, history, prompt_context)
        # No transaction may stay open while the model is awaited
        db.rollback()

        try:
            reply = await generate_response(prompt, debug=is_debug())
        except Exception as e:
            raise llm_error_to_http(e, "processing your request")

        is_emergency = detect_emergency(req.question)
        session = record_turn(
            user_id, req.session_id, question, reply, is_emergency, asked_at, db,
            context=context,
        )

        response = {"success": True, "message": reply, "sessionId": session.session_id}
        if is_emergency:
            response["warning"] = EMERGENCY_WARNING
        return response
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("processing your request", e)


@router.get("/history")
async def get_history(
    session_id: str = Query(None, alias="sessionId"),
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        if session_id:
            session = get_session(session_id, user.user_id, db)
            return {
                "success": True,
                "history": [format_session_message(msg) for msg in session.messages],
                "sessionId": session.session_id,
                "sessionTitle": session.title,
            }
        return {"success": True, "sessions": list_sessions(user.user_id, db)}
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("fetching chat history", e)


@router.delete("/history")
async def delete_history(
    req: DeleteSessionRequest,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        session = get_session(req.session_id, user.user_id, db)
        delete_session(session, db)
        State.logger.info(f"Chat session {req.session_id} deleted by {user.user_id}")
        return {"success": True, "msg": "Chat session deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("deleting chat history", e)


@router.get("/session/{session_id}")
async def get_session_details(
    session_id: str,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        session = get_session(session_id, user.user_id, db)
        return {"success": True, "session": format_session_detail(session)}
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("fetching session details", e)


@router.patch("/session/{session_id}/title")
async def update_session_title(
    session_id: str,
    req: RenameSessionRequest,
    user=Depends(get_current_user),
    db=Depends(get_db),
):
    try:
        session = get_session(session_id, user.user_id, db)
        session = edit_session(session, req.title, db)
        return {
            "success": True,
            "msg": "Session title updated successfully",
            "session": {"id": session.session_id, "title": session.title},
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("updating session title", e)
