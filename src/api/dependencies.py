"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
Adapters are created once during app lifespan and kept in app.state.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config.settings import Settings, get_settings
from src.domain.authentication import AuthenticationService
from src.domain.exceptions import BadToken
from src.domain.ports import AccountRepository, EmailSender, PendingRegistrationStore
from src.domain.tokens import TokenService


def get_account_repository(request: Request) -> AccountRepository:
    """Get the account repository from app state."""
    return request.app.state.accounts


def get_pending_store(request: Request) -> PendingRegistrationStore:
    """Get the pending-registration store from app state."""
    return request.app.state.pending_store


def get_email_sender(request: Request) -> EmailSender:
    """Get the email sender from app state."""
    return request.app.state.email_sender


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    """Create token service with the signing secret injected from settings."""
    return TokenService(
        secret_key=settings.jwt_secret_key,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        session_expiry_minutes=settings.jwt_expiry_minutes,
        email_token_expiry_minutes=settings.email_token_expiry_minutes,
        password_reset_expiry_minutes=settings.password_reset_expiry_minutes,
        clock_skew_seconds=settings.clock_skew_seconds,
        algorithm=settings.jwt_algorithm,
    )


def get_authentication_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> AuthenticationService:
    """
    Create authentication service with injected dependencies.

    Wires together the repository, pending store, token service and
    email sender for the domain service.
    """
    base_url = settings.public_base_url.rstrip("/")
    return AuthenticationService(
        accounts=get_account_repository(request),
        pending_store=get_pending_store(request),
        tokens=tokens,
        email_sender=get_email_sender(request),
        confirm_email_url=f"{base_url}/v1/confirm-email",
        reset_password_url=f"{base_url}/v1/reset-password",
        pending_ttl_seconds=settings.pending_registration_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
    )


# Bearer security scheme for OpenAPI documentation
http_bearer = HTTPBearer(auto_error=False)


def get_session_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    service: AuthenticationService = Depends(get_authentication_service),
) -> dict:
    """
    Verify the bearer session token on the current request.

    Every failure (missing header, bad signature, expired, wrong purpose)
    produces the same 401.

    Returns:
        Verified token claims
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return service.authenticate(credentials.credentials)
    except BadToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
