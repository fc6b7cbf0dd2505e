# PURPOSE: /auth/register, /auth/login, /auth/me

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from ..api.errors import AuthenticationError, NotFoundError
from ..config import settings
from ..db import get_db
from ..models import AuthResponse, LoginRequest, ProfileUpdate, RegisterRequest, UserPublic
from ..rate_limit import limiter
from ..security import Principal, get_current_principal, hash_password, issue_token, verify_password
from ..store_db import create_user, get_user, get_user_by_email, touch_last_login, update_user_profile

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger("taskforge.auth")


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
def register_user(
    request: Request, response: Response, payload: RegisterRequest, db: Session = Depends(get_db)
):
    # create_user re-checks the email and maps a racing duplicate to 409
    user = create_user(
        db,
        email=payload.email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    token = issue_token(user.id, user.email)
    return AuthResponse(user=UserPublic.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    response: Response,
    payload: LoginRequest,
    db: Session = Depends(get_db),
):
    user = get_user_by_email(db, payload.email)
    # Password first: only someone holding the password learns the account is deactivated
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("login failed email_known=%s", user is not None)
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    user = touch_last_login(db, user)
    logger.info("user logged in user_id=%s", user.id)
    token = issue_token(user.id, user.email)
    return AuthResponse(user=UserPublic.model_validate(user), token=token)


@router.get("/me", response_model=UserPublic)
def me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    user = get_user(db, principal.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.patch("/me", response_model=UserPublic)
def update_me(
    payload: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    user = get_user(db, principal.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return update_user_profile(db, user, payload)
