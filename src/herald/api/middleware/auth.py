"""JWT Bearer authentication middleware.

Tokens are issued by the identity provider; Herald only verifies them. The
token subject is the caller's user id, and every user-scoped route acts on it.
Producers (services publishing notifications) carry the ``service`` role.
"""

import logging

from jose import ExpiredSignatureError, JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from herald.config import settings

logger = logging.getLogger(__name__)

_PUBLIC_PREFIXES = ("/api/v1/health", "/docs", "/redoc", "/openapi.json")


def _anonymous(auth_error: str | None = None) -> dict:
    user = {"sub": "anonymous", "roles": []}
    if auth_error:
        user["_auth_error"] = auth_error
    return user


def principal_from_token(token: str) -> dict:
    """Verify signature, expiry, issuer and audience; return ``{sub, roles}``.

    Failures come back as an anonymous principal carrying ``_auth_error`` so the
    route dependencies decide whether authentication was required.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError:
        return _anonymous("token_expired")
    except JWTError as exc:
        logger.debug("JWT rejected: %s", exc)
        return _anonymous("invalid_token")

    if claims.get("type") == "refresh":
        return _anonymous("not_access_token")
    if not claims.get("sub"):
        return _anonymous("missing_subject")

    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = roles.split()
    return {"sub": claims["sub"], "roles": list(roles)}


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        header = request.headers.get("authorization", "")
        if request.url.path.startswith(_PUBLIC_PREFIXES) or not header.startswith("Bearer "):
            request.state.user = _anonymous()
        else:
            request.state.user = principal_from_token(header.removeprefix("Bearer ").strip())
        return await call_next(request)
