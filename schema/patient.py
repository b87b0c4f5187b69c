from pydantic import BaseModel


class CreateRequest(BaseModel):
    title: str
    issue: str
    name: str | None = None
    age: int | None = None
    email: str | None = None
    phone: str | None = None


class AskQueryRequest(BaseModel):
    message: str | None = None
