"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user
from app.models.user import User
from app.rate_limit import limiter
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
    UserData,
    UserResponse,
)
from app.services.auth import get_auth_service
from app.services.email import EmailSender, get_email_sender

router = APIRouter(prefix="/api/v1/users", tags=["Authentication"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
@limiter.limit("5/minute")
def signup(request: Request, body: SignupRequest, db: Session = Depends(get_db)) -> SignupResponse:
    """Register a new user account and log it in."""
    auth_service = get_auth_service()
    user = auth_service.signup(db, body.name, body.email, body.password, body.password_confirm, body.role)
    token = auth_service.issue_token(user)
    return SignupResponse(token=token, data=UserData(user=UserResponse.model_validate(user)))


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Authenticate and receive a JWT token."""
    auth_service = get_auth_service()
    user = auth_service.login(db, body.email, body.password)
    return TokenResponse(token=auth_service.issue_token(user))


@router.get("/me", response_model=MeResponse)
def me(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)) -> MeResponse:
    """Return the authenticated user."""
    record = db.get(User, user.user_id)
    return MeResponse(data=UserData(user=UserResponse.model_validate(record)))


@router.post("/forgotPassword", response_model=MessageResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    sender: EmailSender = Depends(get_email_sender),
) -> MessageResponse:
    """Email a one-time password reset token to the user."""
    reset_url = f"{str(request.base_url).rstrip('/')}{router.prefix}/resetPassword/"
    get_auth_service().request_password_reset(db, body.email, sender, reset_url)
    return MessageResponse(message="Token sent to email!")


@router.patch("/resetPassword/{token}", response_model=TokenResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Reset password using a valid token. Returns JWT for auto-login."""
    auth_service = get_auth_service()
    user = auth_service.reset_password(db, token, body.password, body.password_confirm)
    return TokenResponse(token=auth_service.issue_token(user))
