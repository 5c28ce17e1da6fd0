from typing import Optional
from fastapi import Header, Request

from exam_service.context import AppContext
from exam_service.errors import ConfigurationError


def get_context(request: Request) -> AppContext:
    """Dependency injection for the startup-built AppContext"""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise ConfigurationError()
    return context


def get_user_email(x_user_email: Optional[str] = Header(None, alias="X-User-Email")) -> Optional[str]:
    """Caller identity supplied by the auth proxy in front of this service"""
    return (x_user_email or "").strip() or None
