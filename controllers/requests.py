import os
import uuid
from typing import List

from fastapi import HTTPException
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from controllers.generate_response import generate_summary
from core.load_model import is_debug
from database.database import session_scope
from models.auto_summary import AutoSummary
from models.patient_request import PatientRequest, RequestStatus
from models.user import User
from utils.state import State
from utils.timestamps import utc_now


def format_summary(summary: AutoSummary):
    if summary is None:
        return None
    return {
        "id": summary.summary_id,
        "content": summary.content,
        "generatedByAI": summary.generated_by_ai,
        "createdAt": summary.time_created,
    }


def format_request(request: PatientRequest, include_patient: bool = False) -> dict:
    data = {
        "id": request.request_id,
        "title": request.title,
        "issue": request.issue,
        "status": request.status,
        "userId": request.patient_id,
        "volunteerId": request.volunteer_id,
        "name": request.contact_name,
        "age": request.contact_age,
        "email": request.contact_email,
        "phone": request.contact_phone,
        "createdAt": request.time_created,
        "updatedAt": request.time_updated,
        "autoSummary": format_summary(request.auto_summary),
    }
    if include_patient:
        data["user"] = {"name": request.patient.name, "email": request.patient.email}
    return data


def create_request(
    patient: User,
    title: str,
    issue: str,
    db: Session,
    name: str = None,
    age: int = None,
    email: str = None,
    phone: str = None,
) -> PatientRequest:
    if not title or not title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    if not issue or not issue.strip():
        raise HTTPException(status_code=400, detail="Issue description is required")
    request = PatientRequest(
        request_id=str(uuid.uuid4()),
        patient_id=patient.user_id,
        title=title.strip(),
        issue=issue.strip(),
        status=RequestStatus.PENDING.value,
        contact_name=name,
        contact_age=age,
        contact_email=email,
        contact_phone=phone,
        time_created=utc_now(),
        time_updated=utc_now(),
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    State.logger.info(f"Request {request.request_id} raised by {patient.user_id}")
    return request


def get_owned_request(request_id: str, patient: User, db: Session) -> PatientRequest:
    """A ticket is only visible to the patient who raised it."""
    request = (
        db.query(PatientRequest)
        .options(selectinload(PatientRequest.auto_summary))
        .filter(PatientRequest.request_id == request_id)
        .first()
    )
    if not request or request.patient_id != patient.user_id:
        raise HTTPException(status_code=404, detail="Request not found")
    return request


def list_patient_requests(patient: User, db: Session) -> List[PatientRequest]:
    return (
        db.query(PatientRequest)
        .options(selectinload(PatientRequest.auto_summary))
        .filter(PatientRequest.patient_id == patient.user_id)
        .order_by(desc(PatientRequest.time_created))
        .all()
    )


def resolve_request(request_id: str, patient: User, db: Session) -> PatientRequest:
    request = (
        db.query(PatientRequest).filter(PatientRequest.request_id == request_id).first()
    )
    if not request:
        raise HTTPException(status_code=404, detail="Request not found")
    if request.patient_id != patient.user_id:
        raise HTTPException(
            status_code=403, detail="You can resolve only your own request"
        )
    if request.status == RequestStatus.CANCELLED.value:
        raise HTTPException(
            status_code=400, detail="Cancelled requests cannot be resolved"
        )
    if request.status != RequestStatus.RESOLVED.value:
        request.status = RequestStatus.RESOLVED.value
        request.time_updated = utc_now()
        db.commit()
        db.refresh(request)
    return request


def list_available_requests(db: Session) -> List[PatientRequest]:
    return (
        db.query(PatientRequest)
        .options(
            selectinload(PatientRequest.auto_summary),
            selectinload(PatientRequest.patient),
        )
        .filter(
            PatientRequest.status == RequestStatus.PENDING.value,
            PatientRequest.volunteer_id.is_(None),
        )
        .order_by(PatientRequest.time_created)
        .all()
    )


def assign_request(request_id: str, volunteer: User, db: Session) -> PatientRequest:
    """
    Claim a pending ticket for ``volunteer``.

    The claim is a single conditional UPDATE on "volunteer unset and still
    pending", so of two concurrent callers exactly one sees a row change.
    """
    claimed = (
        db.query(PatientRequest)
        .filter(
            PatientRequest.request_id == request_id,
            PatientRequest.volunteer_id.is_(None),
            PatientRequest.status == RequestStatus.PENDING.value,
        )
        .update(
            {
                PatientRequest.volunteer_id: volunteer.user_id,
                PatientRequest.status: RequestStatus.IN_PROGRESS.value,
                PatientRequest.time_updated: utc_now(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    request = (
        db.query(PatientRequest).filter(PatientRequest.request_id == request_id).first()
    )
    if not request:
        raise HTTPException(status_code=404, detail="Request not found")
    if claimed == 0:
        State.logger.info(
            f"Volunteer {volunteer.user_id} lost the claim on request {request_id}"
        )
        raise HTTPException(
            status_code=409, detail="Request is already assigned or no longer available"
        )
    db.refresh(request)
    return request


def list_volunteer_requests(volunteer: User, db: Session) -> List[PatientRequest]:
    return (
        db.query(PatientRequest)
        .options(
            selectinload(PatientRequest.auto_summary),
            selectinload(PatientRequest.patient),
        )
        .filter(PatientRequest.volunteer_id == volunteer.user_id)
        .order_by(desc(PatientRequest.time_created))
        .all()
    )


def save_summary(request_id: str, content: str, db: Session) -> AutoSummary:
    """Store the summary, relying on the unique request_id to reject a second one."""
    summary = AutoSummary(
        summary_id=str(uuid.uuid4()),
        request_id=request_id,
        content=content,
        generated_by_ai=True,
        time_created=utc_now(),
    )
    db.add(summary)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if db.query(AutoSummary).filter(AutoSummary.request_id == request_id).first():
            raise HTTPException(status_code=409, detail="Request already has a summary")
        raise
    db.refresh(summary)
    return summary


async def attach_summary(request_id: str, issue: str):
    """
    Background task run after a ticket is committed.

    Tries the summarizer up to SUMMARY_MAX_ATTEMPTS times; the ticket stays
    usable without a summary when every attempt fails.
    """
    attempts = int(os.getenv("SUMMARY_MAX_ATTEMPTS", "2"))
    content = None
    for attempt in range(1, attempts + 1):
        try:
            content = await generate_summary(issue, debug=is_debug())
            break
        except Exception as e:
            State.logger.warning(
                f"Summary attempt {attempt}/{attempts} failed for request {request_id}: {str(e)}"
            )
    if content is None:
        State.logger.error(f"No summary generated for request {request_id}")
        return None

    try:
        with session_scope() as db:
            return save_summary(request_id, content, db)
    except HTTPException:
        State.logger.info(f"Request {request_id} already has a summary")
        return None
    except Exception as e:
        State.logger.opt(exception=e).error(
            f"An error occured while storing summary for request {request_id}: {str(e)}"
        )
        return None

