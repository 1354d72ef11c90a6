"""
API v1 routes.

Defines REST endpoints for registration, email confirmation, login and
password reset. Domain calls run in the threadpool under a deadline, so
a slow collaborator (SMTP, database) cannot hold a request open past
REQUEST_TIMEOUT_SECONDS.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from src.api.dependencies import get_authentication_service, get_session_claims
from src.api.models import (
    CurrentAccountResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
)
from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.exceptions import (
    AccountNotFound,
    BadCredentials,
    BadToken,
    DuplicateAccount,
    EmailNotConfirmed,
    InvalidOrExpiredLink,
    InvalidRequest,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

T = TypeVar("T")

FORGOT_PASSWORD_MESSAGE = "If that email exists, a reset link has been sent."


async def _run(settings: Settings, func: Callable[..., T], *args: Any) -> T:
    """Run a blocking domain call off the event loop with a deadline."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args), timeout=settings.request_timeout_seconds
        )
    except asyncio.TimeoutError:
        logger.error(
            "%s exceeded %.1fs deadline",
            getattr(func, "__name__", "domain call"),
            settings.request_timeout_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Request timed out",
        ) from None


@router.post(
    "/register",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error or account exists"},
        503: {"model": ErrorResponse, "description": "Confirmation email could not be sent"},
    },
    summary="Register a new user",
    description="Submit email and password to begin registration. "
    "A confirmation link will be sent to the provided email; "
    "the account is created only when that link is followed.",
)
async def register(
    request_data: RegisterRequest,
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """
    Stage a registration and send the confirmation link.

    - **email**: Valid email address to register
    - **password**: Password (minimum 6 characters, at least one digit)
    """
    try:
        await _run(settings, service.register, request_data.email, request_data.password)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except DuplicateAccount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists.",
        ) from None
    except TransportError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Confirmation email could not be sent. Please try again later.",
        ) from None
    return MessageResponse(
        message="Confirmation email sent. Please verify to complete registration."
    )


@router.get(
    "/confirm-email",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired link"},
    },
    summary="Confirm email and create the account",
)
async def confirm_email(
    token: str = Query(..., min_length=1),
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Create the account staged under the emailed confirmation token."""
    try:
        await _run(settings, service.confirm_email, token)
    except InvalidOrExpiredLink:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired confirmation link.",
        ) from None
    except DuplicateAccount:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists.",
        ) from None
    return MessageResponse(message="Email confirmed and account created!")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unknown account, unconfirmed email or wrong password"},
    },
    summary="Log in and receive a session token",
)
async def login(
    request_data: LoginRequest,
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> LoginResponse:
    """
    Exchange credentials for a JWT session token.

    The three failure reasons are reported with distinct messages.
    """
    try:
        token = await _run(settings, service.login, request_data.email, request_data.password)
    except AccountNotFound:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account does not exist. If you created one, please confirm your email.",
        ) from None
    except EmailNotConfirmed:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email not confirmed. Please check your inbox.",
        ) from None
    except BadCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password.",
        ) from None
    return LoginResponse(token=token)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset link",
    description="Always returns the same response, whether or not the email is registered.",
)
async def forgot_password(
    request_data: ForgotPasswordRequest,
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Send a reset link if the account exists."""
    await _run(settings, service.forgot_password, request_data.email)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.get(
    "/reset-password",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Redirect a reset link to the front-end reset page",
)
async def reset_password_redirect(
    token: str = Query(..., min_length=1),
    email: str = Query(..., min_length=1),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Forward the emailed reset link, parameters intact, to the front end."""
    frontend_base = settings.frontend_base_url.rstrip("/")
    url = f"{frontend_base}/reset-password?{urlencode({'token': token, 'email': email})}"
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or token"},
    },
    summary="Reset password with an emailed token",
)
async def reset_password(
    request_data: ResetPasswordRequest,
    service: AuthenticationService = Depends(get_authentication_service),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """Replace the password. The token cannot be used again afterwards."""
    try:
        await _run(
            settings,
            service.reset_password,
            request_data.email,
            request_data.token,
            request_data.new_password,
        )
    except InvalidRequest:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid request.",
        ) from None
    except BadToken:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired token.",
        ) from None
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    return MessageResponse(message="Password has been reset successfully.")


@router.get(
    "/me",
    response_model=CurrentAccountResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid session token"},
    },
    summary="Identity of the bearer session token",
)
async def me(claims: dict = Depends(get_session_claims)) -> CurrentAccountResponse:
    """Return the account identity carried by the verified session token."""
    return CurrentAccountResponse(id=claims["sub"], email=claims["email"])
