from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from pizzeria.core.identity import Identity, extract_token, resolve_identity
from pizzeria.models import User
from pizzeria.services.account_service import AccountService


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.session()


def get_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    token = extract_token(request.headers, request.cookies)
    return resolve_identity(token, role_lookup=AccountService(db).role_for_supabase_user)


def get_optional_account(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User | None:
    if not identity.is_authenticated:
        return None
    return AccountService(db).resolve(identity)


def get_current_account(account: User | None = Depends(get_optional_account)) -> User:
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return account


def require_staff(account: User = Depends(get_current_account)) -> User:
    if not account.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff only")
    return account


def require_admin(account: User = Depends(get_current_account)) -> User:
    if not account.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admins only")
    return account
