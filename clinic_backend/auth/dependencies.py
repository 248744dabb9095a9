from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_backend.auth import jwt_handler

security = HTTPBearer()


@dataclass(frozen=True)
class AdminIdentity:
    email: str
    role: str


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AdminIdentity:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    role = payload.get("role")
    if role != jwt_handler.ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return AdminIdentity(email=email, role=role)
