"""Authentication helpers and FastAPI security dependencies.

Caller identity is resolved per request by an `Authenticator`
strategy. The default `JWTAuthenticator` verifies a bearer token and
reads the `sub`, `role` and `tenant` claims; tests substitute their own
strategy through `app.dependency_overrides[get_authenticator]`.

Token verification raises HTTPExceptions (401) so it can be used
directly inside route dependencies. Scope checks raise
`AuthorizationError` (403), which the application renders like any
other store error.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from .config import settings
from .errors import AuthorizationError

bearer_scheme = HTTPBearer(auto_error=False)

ROLE_STUDENT = "student"
ROLE_SUPERVISOR = "supervisor"


@dataclass(frozen=True)
class Caller:
    """The authenticated identity behind one request."""
    user_id: str
    role: str
    tenant: str


class Authenticator(Protocol):
    def resolve(self, token: Optional[str]) -> Caller:
        ...


class JWTAuthenticator:
    """Resolve callers from HS256 (by default) signed bearer tokens."""
    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def decode_token(self, token: str) -> dict:
        """Decode and verify a JWT token.

        Returns the decoded payload on success or raises an HTTPException
        with status 401 on failure.
        """
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise HTTPException(status_code=401, detail='token expired')
        except jwt.InvalidTokenError:
            raise HTTPException(status_code=401, detail='invalid token')

    def resolve(self, token: Optional[str]) -> Caller:
        if not token:
            raise HTTPException(status_code=401, detail='missing token')
        payload = self.decode_token(token)
        user_id = payload.get('sub')
        tenant = payload.get('tenant')
        if not user_id or not tenant:
            raise HTTPException(status_code=401, detail='invalid token payload')
        return Caller(user_id=str(user_id), role=payload.get('role', ROLE_STUDENT), tenant=str(tenant))


_default_authenticator = JWTAuthenticator(settings.JWT_SECRET, settings.JWT_ALGORITHM)


def get_authenticator() -> Authenticator:
    """FastAPI dependency returning the active authentication strategy."""
    return _default_authenticator


def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    authenticator: Authenticator = Depends(get_authenticator),
) -> Caller:
    """FastAPI dependency that returns the authenticated caller."""
    token = credentials.credentials if credentials else None
    return authenticator.resolve(token)


def ensure_student_scope(caller: Caller, class_id: str, student_id: str) -> None:
    """The caller must be the student named in the path, in the path's class."""
    if caller.tenant != class_id or caller.user_id != student_id:
        raise AuthorizationError()


def ensure_supervisor_scope(caller: Caller, class_id: str) -> None:
    """The caller must supervise the class named in the path."""
    if caller.tenant != class_id or caller.role != ROLE_SUPERVISOR:
        raise AuthorizationError()
