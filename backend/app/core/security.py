from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.core.config import get_settings


security = HTTPBasic(auto_error=False)

_CHALLENGE = {"WWW-Authenticate": 'Basic realm="catalog-admin"'}


def require_basic_auth(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    """Guard for the admin console API; returns the authenticated username as the audit actor."""
    settings = get_settings()
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required", headers=_CHALLENGE)

    valid_user = secrets.compare_digest(credentials.username.encode(), settings.basic_auth_username.encode())
    valid_pass = secrets.compare_digest(credentials.password.encode(), settings.basic_auth_password.encode())
    if not (valid_user and valid_pass):
        raise HTTPException(status_code=401, detail="Invalid credentials", headers=_CHALLENGE)
    return credentials.username
