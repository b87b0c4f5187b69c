import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError

from core.auth import create_access_token, token_subject
from database.database import get_db
from models.user import User
from schema.auth import LoginRequest, RegisterRequest
from utils.errors import internal_error
from utils.state import State
from utils.timestamps import utc_now
from utils.token import get_hashed_password, verify_password

router = APIRouter()


def format_user(user: User) -> dict:
    return {
        "id": user.user_id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "age": user.age,
        "phone": user.phone,
        "createdAt": user.time_created,
    }


@router.post("/register")
async def register_user(
    req: RegisterRequest,
    db=Depends(get_db),
):
    try:
        if db.query(User).filter(User.email == req.email).first():
            State.logger.error("User with email already exists")
            raise HTTPException(
                status_code=409, detail="User with this email already exists"
            )
        new_user = User(
            user_id=str(uuid.uuid4()),
            name=req.name,
            email=req.email,
            password=get_hashed_password(req.password),
            phone=req.phone,
            age=req.age,
            role=req.role.value,
            time_created=utc_now(),
            time_updated=utc_now(),
        )
        db.add(new_user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            db.rollback()
            raise HTTPException(
                status_code=409, detail="User with this email already exists"
            )
        db.refresh(new_user)
        token = create_access_token(subject=token_subject(new_user))
        return {
            "success": True,
            "msg": "User added successfully",
            "user": format_user(new_user),
            "token": token,
        }
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise internal_error("registering user", e)


@router.post("/login")
async def login_user(
    req: LoginRequest,
    db=Depends(get_db),
):
    try:
        user = db.query(User).filter(User.email == req.email).first()
        if not user:
            State.logger.error("Login attempt for unknown email")
            raise HTTPException(status_code=404, detail="User not found")
        if not verify_password(req.password, user.password):
            State.logger.error(f"Incorrect password for user {user.user_id}")
            raise HTTPException(status_code=403, detail="Incorrect password")
        token = create_access_token(subject=token_subject(user))
        return {
            "success": True,
            "msg": "Logged in successfully",
            "user": format_user(user),
            "token": token,
        }
    except HTTPException:
        raise
    except Exception as e:
        raise internal_error("logging in", e)
