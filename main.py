from dotenv import load_dotenv

load_dotenv(".env")

import os
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from database.database import Base, DatabaseConnectionError, engine
from routes import chat, chatbot, patient, user, volunteer
from utils.errors import internal_error
from utils.state import State

state = State()
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state.logger.info(f"Starting {state.service}")
    yield
    state.logger.info(f"Shutting down {state.service}")


app = FastAPI(
    title="CareBridge API",
    description="Patient support tickets, volunteer messaging and a health chatbot",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=False,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_methods=["*"],
    allow_headers=["*"],
)

logfire.instrument_fastapi(app)
logfire.instrument_sqlalchemy(engine=engine)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "msg": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        msg = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        msg = "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "msg": msg})


@app.exception_handler(DatabaseConnectionError)
async def database_exception_handler(request: Request, exc: DatabaseConnectionError):
    state.logger.error(f"Database unavailable for {request.url.path}")
    return JSONResponse(
        status_code=503,
        content={"success": False, "msg": "Database is temporarily unavailable"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    error = internal_error(f"handling {request.url.path}", exc)
    return JSONResponse(
        status_code=error.status_code, content={"success": False, "msg": error.detail}
    )


app.include_router(user.router, prefix="/user")
app.include_router(patient.router, prefix="/patient")
app.include_router(volunteer.router, prefix="/volunteer")
app.include_router(chat.router, prefix="/chat")
app.include_router(chatbot.router, prefix="/chatbot")


@app.get("/")
async def root():
    return {"success": True, "msg": "Welcome to the CareBridge API"}
