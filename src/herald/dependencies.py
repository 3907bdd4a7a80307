"""FastAPI dependencies: database session, notifier, caller identity and roles."""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from herald.errors.exceptions import AuthenticationError, AuthorizationError
from herald.logging_config import bind_request_context
from herald.services.delivery.notifier import Notifier

PRODUCER_ROLES = ("service", "admin")


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """One session per request; handlers and engines commit explicitly."""
    async with request.app.state.db_session_factory() as session:
        yield session


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


async def get_principal(request: Request) -> dict:
    """The verified token principal, or 401 when the request is anonymous."""
    principal = getattr(request.state, "user", None) or {}
    if "_auth_error" in principal:
        raise AuthenticationError(principal["_auth_error"])
    if principal.get("sub") in (None, "", "anonymous"):
        raise AuthenticationError()
    return principal


async def get_user_id(request: Request, principal: dict = Depends(get_principal)) -> str:
    bind_request_context(getattr(request.state, "trace_id", "unknown"), user_id=principal["sub"])
    return principal["sub"]


def require_role(*roles: str):
    async def _check(principal: dict = Depends(get_principal)) -> dict:
        if not set(principal.get("roles", [])) & set(roles):
            raise AuthorizationError(roles)
        return principal

    return _check


UserId = Annotated[str, Depends(get_user_id)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
RequireProducer = Depends(require_role(*PRODUCER_ROLES))
