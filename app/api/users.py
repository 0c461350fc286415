"""Authentication routes for the users resource.

Sessions, registrations and password recovery under ``/users``:

- ``GET  /users/sign_in``    sign-in form
- ``POST /users/sign_in``    exchange credentials for a bearer token
- ``DELETE /users/sign_out`` revoke the current token
- ``GET  /users/sign_up``    registration form
- ``POST /users``            register
- ``GET  /users/me``         current account
- ``PUT  /users``            update account (requires ``current_password``)
- ``DELETE /users``          cancel account
- ``POST /users/password``   send reset instructions
- ``PUT  /users/password``   reset password with a token
"""
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from app.core.auth import (
    authenticate_user,
    create_access_token,
    get_current_user,
    get_token_data,
    hash_password,
    revoke_token,
    verify_password,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)
from app.core.config import settings
from app.core.logging import get_logger, LogTimer
from app.core.templating import render
from app.domain.user import (
    AccountUpdateRequest,
    PasswordChangeRequest,
    PasswordResetRequest,
    RegistrationRequest,
    SignInRequest,
    TokenData,
    TokenResponse,
    User,
    UserProfile,
)
from app.infrastructure.redis import get_token_store

logger = get_logger(__name__)
router = APIRouter(prefix="/users", tags=["users"])

RESET_PREFIX = "reset_password:"


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user),
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=user.to_profile(),
    )


def _check_password(password: str, confirmation: Optional[str]) -> None:
    if len(password) < settings.password_min_length:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Password is too short (minimum is {settings.password_min_length} characters)",
        )
    if confirmation is not None and confirmation != password:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Password confirmation doesn't match Password",
        )


def deliver_reset_instructions(user: User, token: str) -> None:
    """Hand reset instructions to the mailer.

    No mailer is configured; the token is logged at debug level only.
    """
    logger.info("Reset password instructions issued", extra={"user_id": user.id})
    logger.debug(f"Reset password token for {user.email}: {token}")


# -----------------
# SESSIONS
# -----------------

@router.get("/sign_in", response_class=HTMLResponse, name="new_user_session")
def new_session(request: Request):
    """Sign-in form."""
    return render(request, "users/sessions/new.html")


@router.post("/sign_in", response_model=TokenResponse, name="user_session")
def create_session(req: SignInRequest):
    """Authenticate user and return a bearer token.

    Example:
        POST /users/sign_in
        {"email": "user@example.com", "password": "secret123"}
    """
    with LogTimer(logger, "user_sign_in"):
        user = authenticate_user(req.email, req.password)

        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        User.objects.update(user, {})
        return _token_response(user)


@router.delete("/sign_out", status_code=status.HTTP_204_NO_CONTENT, name="destroy_user_session")
def destroy_session(token_data: TokenData = Depends(get_token_data)):
    """Revoke the bearer token used for this request."""
    revoke_token(token_data)
    logger.info("User signed out", extra={"user_id": token_data.sub})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------
# REGISTRATIONS
# -----------------

@router.get("/sign_up", response_class=HTMLResponse, name="new_user_registration")
def new_registration(request: Request):
    """Registration form."""
    return render(
        request,
        "users/registrations/new.html",
        {"password_min_length": settings.password_min_length},
    )


@router.post("", response_model=TokenResponse, status_code=status.HTTP_201_CREATED, name="user_registration")
def create_registration(req: RegistrationRequest):
    """Register a new account and sign it in."""
    email = req.email.lower()
    if User.objects.find_by(email=email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email has already been taken")
    _check_password(req.password, req.password_confirmation)

    user = User.objects.create({
        "email": email,
        "name": req.name,
        "password_hash": hash_password(req.password),
    })
    logger.info(f"User registered: {email}", extra={"user_id": user.id})
    return _token_response(user)


@router.get("/me", response_model=UserProfile, name="user_profile")
def show_registration(current_user: User = Depends(get_current_user)):
    """Current account.

    Requires: Authentication
    """
    return current_user.to_profile()


@router.put("", response_model=UserProfile, name="update_user_registration")
def update_registration(req: AccountUpdateRequest, current_user: User = Depends(get_current_user)):
    """Update email, name or password of the current account."""
    if not verify_password(req.current_password, current_user.password_hash):
        logger.warning("Account update with wrong current password", extra={"user_id": current_user.id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is invalid")

    changes = {}
    if req.email is not None and req.email.lower() != current_user.email:
        email = req.email.lower()
        if User.objects.find_by(email=email) is not None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email has already been taken")
        changes["email"] = email
    if req.name is not None:
        changes["name"] = req.name
    if req.password:
        _check_password(req.password, req.password_confirmation)
        changes["password_hash"] = hash_password(req.password)

    try:
        User.objects.update(current_user, changes)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors(include_url=False))

    logger.info("Account updated", extra={"user_id": current_user.id, "fields": sorted(changes)})
    return current_user.to_profile()


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, name="cancel_user_registration")
def cancel_registration(
    token_data: TokenData = Depends(get_token_data),
    current_user: User = Depends(get_current_user),
):
    """Delete the current account and revoke its token."""
    User.objects.destroy(current_user)
    revoke_token(token_data)
    logger.info("Account cancelled", extra={"user_id": current_user.id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------
# PASSWORDS
# -----------------

@router.post("/password", status_code=status.HTTP_202_ACCEPTED, name="user_password")
def create_password_reset(req: PasswordResetRequest):
    """Issue reset instructions.

    Responds the same way whether or not the email is registered.
    """
    user = User.objects.find_by(email=req.email.lower())
    if user is not None:
        token = secrets.token_urlsafe(32)
        get_token_store(RESET_PREFIX).set(
            token,
            {"user_id": user.id},
            ttl=timedelta(hours=settings.reset_password_within_hours),
        )
        deliver_reset_instructions(user, token)
    else:
        logger.info("Reset requested for unknown email")

    return {"message": "If your email address exists in our database, you will receive "
                       "a password recovery link at your email address in a few minutes."}


@router.put("/password", response_model=TokenResponse, name="update_user_password")
def update_password(req: PasswordChangeRequest):
    """Set a new password using a reset token and sign the user in."""
    _check_password(req.password, req.password_confirmation)

    data = get_token_store(RESET_PREFIX).pop(req.reset_password_token)
    user = User.objects.find_by(id=data["user_id"]) if data else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Reset password token is invalid",
        )

    User.objects.update(user, {"password_hash": hash_password(req.password)})
    logger.info("Password reset", extra={"user_id": user.id})
    return _token_response(user)
