# khe_api/auth.py
"""
Request authentication.

Clients send HTTP Basic credentials where the username is the user key
(`_id`) and the password is the token returned by POST /users/token.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from khe_api.data_client.tables import User
from khe_api.data_client.user_client import authenticate_token
from khe_api.db import get_session

_basic = HTTPBasic(auto_error=False)


def require_user(*roles: str) -> Callable[..., User]:
    """
    Dependency factory. No roles: any authenticated user.

        @router.get("/tickets")
        def list_tickets(user: User = Depends(require_user("admin", "staff"))): ...
    """

    def _dependency(
        creds: Optional[HTTPBasicCredentials] = Depends(_basic),
        session: Session = Depends(get_session),
    ) -> User:
        if creds is None:
            raise HTTPException(
                status_code=401,
                detail={"message": "Authentication required"},
                headers={"WWW-Authenticate": "Basic"},
            )
        user = authenticate_token(session, creds.username, creds.password)
        if user is None:
            raise HTTPException(
                status_code=401,
                detail={"message": "Invalid key or token"},
                headers={"WWW-Authenticate": "Basic"},
            )
        if roles and user.role not in roles:
            raise HTTPException(status_code=403, detail={"message": "Insufficient role", "role": user.role})
        return user

    return _dependency
