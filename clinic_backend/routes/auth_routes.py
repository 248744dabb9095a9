import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator

from clinic_backend.auth import jwt_handler
from clinic_backend.auth.dependencies import AdminIdentity, get_current_admin
from clinic_backend.core import config

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'


def credentials_match(email: str, password: str) -> bool:
    if not config.ADMIN_PASSWORD:
        return False
    email_ok = hmac.compare_digest(email.encode(), config.ADMIN_EMAIL.encode())
    password_ok = hmac.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())
    return email_ok and password_ok


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest):
    if not credentials_match(data.email, data.password):
        logger.warning('Failed admin login for %s', data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid email or password.',
        )

    token = jwt_handler.create_access_token(subject=data.email)
    return TokenResponse(access_token=token)


@router.post('/logout', status_code=status.HTTP_204_NO_CONTENT)
def logout(current_admin: AdminIdentity = Depends(get_current_admin)):
    # Tokens are stateless; the client drops its copy.
    del current_admin


@router.get('/me')
def me(current_admin: AdminIdentity = Depends(get_current_admin)):
    return {'email': current_admin.email, 'role': current_admin.role}
