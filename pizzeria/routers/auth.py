from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_current_account, get_db
from pizzeria.models import User
from pizzeria.schemas import (
    GoogleAuthResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserProfileUpdate,
    UserRead,
)
from pizzeria.services import AccountService, AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    service = AuthService(db)
    user, token = service.register(**payload.model_dump())
    return TokenResponse(access_token=token, user=UserRead.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    service = AuthService(db)
    user, token = service.login(username=payload.username, password=payload.password)
    return TokenResponse(access_token=token, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead)
def me(account: User = Depends(get_current_account)):
    return UserRead.model_validate(account)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserProfileUpdate,
    account: User = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    user = AccountService(db).update_user(user_id=account.id, data=updates)
    return UserRead.model_validate(user)


@router.get("/google", response_model=GoogleAuthResponse)
def google_sign_in(redirect_to: Optional[str] = None, db: Session = Depends(get_db)):
    service = AuthService(db)
    return GoogleAuthResponse(url=service.google_oauth_url(redirect_to))
