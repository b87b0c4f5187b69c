from fastapi import APIRouter, Depends, HTTPException

from controllers.requests import (
    assign_request,
    format_request,
    list_available_requests,
    list_volunteer_requests,
)
from core.auth import require_roles
from database.database import get_db
from models.user import UserRole
from utils.errors import internal_error
from utils.state import State

router = APIRouter()

volunteer_only = require_roles(UserRole.VOLUNTEER)


@router.get("/get_all_patient")
async def get_available_requests(
    user=Depends(volunteer_only),
    db=Depends(get_db),
):
    try:
        requests = list_available_requests(db)
        return {
            "success": True,
            "data": [format_request(r, include_patient=True) for r in requests],
        }
    except Exception as e:
        raise internal_error("fetching available requests", e)


@router.post("/assign/{request_id}")
async def assign(
    request_id: str,
    user=Depends(volunteer_only),
    db=Depends(get_db),
):
    try:
        request = assign_request(request_id, user, db)
        State.logger.info(f"Request {request_id} assigned to {user.user_id}")
        return {
            "success": True,
            "msg": "Request assigned successfully",
            "data": format_request(request, include_patient=True),
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("assigning request", e)


@router.get("/my_patients")
async def get_my_patients(
    user=Depends(volunteer_only),
    db=Depends(get_db),
):
    try:
        requests = list_volunteer_requests(user, db)
        return {
            "success": True,
            "data": [format_request(r, include_patient=True) for r in requests],
        }
    except Exception as e:
        raise internal_error("fetching assigned requests", e)
