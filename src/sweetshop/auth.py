from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .errors import Forbidden, Unauthorized
from .models.user import ADMIN_ROLE
from .tokens import Identity, InvalidToken, TokenService

security = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Require a valid bearer token and attach its identity to the request.

    A missing token is 401; a token that fails verification is 403.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    try:
        identity = tokens.verify(credentials.credentials)
    except InvalidToken:
        raise Forbidden("Invalid Token")
    request.state.identity = identity
    return identity


def require_admin(identity: Identity = Depends(require_user)) -> Identity:
    # the role is trusted from the token; storage is not consulted
    if identity.role != ADMIN_ROLE:
        raise Forbidden("Access Denied: Admins Only")
    return identity
