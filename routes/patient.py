from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from controllers.generate_response import generate_summary, llm_error_to_http
from controllers.message import format_message, send_message
from controllers.requests import (
    attach_summary,
    create_request,
    format_request,
    format_summary,
    get_owned_request,
    list_patient_requests,
    resolve_request,
    save_summary,
)
from core.auth import require_roles
from core.load_model import is_debug
from database.database import get_db
from models.user import UserRole
from schema.patient import AskQueryRequest, CreateRequest
from utils.errors import internal_error
from utils.state import State

router = APIRouter()

patient_only = require_roles(UserRole.PATIENT)


@router.post("/request")
async def raise_request(
    req: CreateRequest,
    background_tasks: BackgroundTasks,
    user=Depends(patient_only),
    db=Depends(get_db),
):
    try:
        request = create_request(
            patient=user,
            title=req.title,
            issue=req.issue,
            name=req.name,
            age=req.age,
            email=req.email,
            phone=req.phone,
            db=db,
        )
        # Summarization runs after the response so an AI outage never blocks the ticket
        background_tasks.add_task(attach_summary, request.request_id, request.issue)
        return {
            "success": True,
            "msg": "Ticket raised successfully",
            "data": format_request(request),
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("raising ticket", e)


@router.get("/my_requests")
async def get_my_requests(
    user=Depends(patient_only),
    db=Depends(get_db),
):
    try:
        requests = list_patient_requests(user, db)
        return {"success": True, "data": [format_request(r) for r in requests]}
    except Exception as e:
        raise internal_error("fetching requests", e)


@router.get("/request/{request_id}")
async def get_request(
    request_id: str,
    user=Depends(patient_only),
    db=Depends(get_db),
):
    try:
        request = get_owned_request(request_id, user, db)
        return {"success": True, "data": format_request(request)}
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("fetching request", e)


@router.post("/request/{request_id}/summary")
async def regenerate_summary(
    request_id: str,
    user=Depends(patient_only),
    db=Depends(get_db),
):
    try:
        request = get_owned_request(request_id, user, db)
        if request.auto_summary is not None:
            raise HTTPException(status_code=409, detail="Request already has a summary")
        request_id, issue = request.request_id, request.issue
        db.rollback()
        try:
            content = await generate_summary(issue, debug=is_debug())
        except Exception as e:
            raise llm_error_to_http(e, "summarizing request")
        summary = save_summary(request_id, content, db)
        return {
            "success": True,
            "msg": "Summary generated successfully",
            "data": format_summary(summary),
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("generating summary", e)


@router.patch("/resolve/{request_id}")
async def resolve(
    request_id: str,
    user=Depends(patient_only),
    db=Depends(get_db),
):
    try:
        request = resolve_request(request_id, user, db)
        State.logger.info(f"Request {request_id} resolved by {user.user_id}")
        return {
            "success": True,
            "msg": "Request resolved successfully",
            "data": format_request(request),
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("resolving request", e)


@router.post("/ask_query/{request_id}")
async def ask_query(
    request_id: str,
    req: AskQueryRequest,
    user=Depends(patient_only),
    db=Depends(get_db),
):
    try:
        message = send_message(
            request_id=request_id,
            content=req.message,
            sender_role=UserRole.PATIENT.value,
            user=user,
            db=db,
        )
        return {
            "success": True,
            "msg": "Query sent to volunteer successfully",
            "data": format_message(message),
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("sending query", e)
