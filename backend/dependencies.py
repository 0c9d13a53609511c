"""
Shared FastAPI dependencies.
"""
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from core.security import bearer_scheme
from core.jwt_handler import decode_access_token, JWTError
from db.database import SessionLocal


def get_db():
    """Yield a SQLAlchemy session, closing it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_account_id(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    """Decode the bearer token and return the account id it was issued for."""
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    account_id = payload.get("sub")
    if not account_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(account_id)
