from pydantic import AliasChoices, BaseModel, Field

from models.user import UserRole


class RegisterRequest(BaseModel):
    name: str | None = None
    email: str
    password: str = Field(min_length=1)
    role: UserRole = UserRole.PATIENT
    age: int | None = None
    phone: str | None = Field(None, validation_alias=AliasChoices("phone", "phoneno"))


class LoginRequest(BaseModel):
    email: str
    password: str
