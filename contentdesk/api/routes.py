"""HTTP route definitions for account registration and login."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field

from .errors import error_response, response_for
from ..config import get_settings
from ..domain.contracts import Credentials, RegistrationInput
from ..domain.errors import CredentialError
from ..domain.service import AccountService
from ..repository import AccountRecord
from ..security.rate_limiter import RateLimiter, build_rate_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class RegisterRequest(BaseModel):
    """Payload accepted when registering an account."""

    email: str | None = None
    password: str | None = None
    username: str | None = None


class RegisterResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "registration successful"
    inserted_id: str = Field(..., alias="insertedId")
    display: bool = True


class LoginRequest(BaseModel):
    """Email/password body for login."""

    email: str | None = None
    password: str | None = None


class UserView(BaseModel):
    """Public account fields returned by login."""

    model_config = ConfigDict(populate_by_name=True)

    username: str | None
    email: str
    user_id: str = Field(..., alias="userId")


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "login successful"
    user: UserView


class UserListEntry(BaseModel):
    """Listing entry; password material is never part of it."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    username: str | None
    email: str
    created_at: str = Field(..., alias="createdAt")

    @classmethod
    def from_record(cls, record: AccountRecord) -> "UserListEntry":
        return cls(
            user_id=record.account_id,
            username=record.display_name,
            email=record.email,
            created_at=record.created_at.isoformat(),
        )


class UserListResponse(BaseModel):
    users: list[UserListEntry]


rate_limiter: RateLimiter = build_rate_limiter(get_settings())


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def _throttled(operation: str, request: Request) -> Response | None:
    client_host = request.client.host if request.client else "unknown"
    if rate_limiter.allow(f"{operation}:{client_host}"):
        return None
    logger.warning("%s rate limited for %s", operation, client_host)
    response = error_response(status.HTTP_429_TOO_MANY_REQUESTS, "rate limited")
    response.headers["Retry-After"] = str(rate_limiter.window_seconds)
    return response


@router.post(
    "/db/users/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    request: Request,
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
):
    """Register an account identified by email."""
    throttled = _throttled("register", request)
    if throttled is not None:
        return throttled
    try:
        account_id = service.register(
            RegistrationInput(
                email=payload.email,
                password=payload.password,
                display_name=payload.username,
            )
        )
    except CredentialError as exc:
        return response_for(exc, unavailable_message="registration failed, please try again later")
    return RegisterResponse(inserted_id=account_id)


@router.post("/db/users/login", response_model=LoginResponse)
def login(
    request: Request,
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
):
    """Verify credentials; unknown emails and wrong passwords share one 401 response."""
    throttled = _throttled("login", request)
    if throttled is not None:
        return throttled
    try:
        summary = service.login(Credentials(email=payload.email, password=payload.password))
    except CredentialError as exc:
        return response_for(exc, unavailable_message="login failed, please try again later")
    return LoginResponse(
        user=UserView(
            username=summary.display_name,
            email=summary.email,
            user_id=summary.account_id,
        )
    )


@router.get("/db/users/GETall", response_model=UserListResponse)
def list_users(service: AccountService = Depends(get_service)):
    """List every account without salts or hashes."""
    try:
        records = service.list_accounts()
    except CredentialError as exc:
        logger.exception("failed to list users")
        return response_for(exc, unavailable_message="failed to list users")
    return UserListResponse(users=[UserListEntry.from_record(record) for record in records])
