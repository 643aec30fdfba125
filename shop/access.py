# shop/access.py — guarda de acesso admin
"""
authorize(request) -> AccessDecision(allowed, reason)

- sem identidade resolvida      -> Denied("unauthenticated")  (401)
- papel ausente ou != "admin"   -> Denied("forbidden")        (403)

É uma checagem consultiva na aplicação; o bloqueio definitivo continua sendo
o controle por linha no store, que as operações privilegiadas só ignoram
depois que esta guarda passa.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional, Protocol

from django.conf import settings
from django.core.cache import cache

from .exceptions import Forbidden, Unauthorized
from .models import UserRole

logger = logging.getLogger(__name__)

UNAUTHENTICATED = "unauthenticated"
FORBIDDEN = "forbidden"


class RoleProvider(Protocol):
    def role_for(self, user_id: Any) -> Optional[str]:
        ...


class UserRoleProvider:
    """Adaptador sobre a tabela UserRole."""

    def role_for(self, user_id: Any) -> Optional[str]:
        return UserRole.objects.filter(user_id=user_id).values_list("role", flat=True).first()


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None
    user_id: Any = None

    @classmethod
    def allow(cls, user_id: Any) -> "AccessDecision":
        return cls(True, None, user_id)

    @classmethod
    def deny(cls, reason: str, user_id: Any = None) -> "AccessDecision":
        return cls(False, reason, user_id)


def _generation_key(user_id: Any) -> str:
    return f"shop:admin-role-gen:{user_id}"


def _role_cache_key(user_id: Any, session_key: Optional[str]) -> str:
    generation = cache.get(_generation_key(user_id), 0)
    return f"shop:admin-role:{user_id}:{generation}:{session_key or 'nosession'}"


def forget_role(user_id: Any, session_key: Optional[str]) -> None:
    cache.delete(_role_cache_key(user_id, session_key))


def forget_all_roles(user_id: Any) -> None:
    """Invalida o papel em cache de todas as sessões do usuário."""
    key = _generation_key(user_id)
    if cache.add(key, 1, None):
        return
    cache.incr(key)


def _resolve_identity(request) -> Any:
    user = getattr(request, "user", None)
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return user


def _session_key(request) -> Optional[str]:
    session = getattr(request, "session", None)
    return getattr(session, "session_key", None)


class AdminAccessGuard:
    def __init__(self, roles: Optional[RoleProvider] = None, cache_seconds: Optional[int] = None):
        self.roles = roles or UserRoleProvider()
        if cache_seconds is None:
            cache_seconds = getattr(settings, "ADMIN_ROLE_CACHE_SECONDS", 60)
        self.cache_seconds = int(cache_seconds)

    def _role(self, user_id: Any, session_key: Optional[str]) -> Optional[str]:
        if self.cache_seconds <= 0:
            return self.roles.role_for(user_id)
        key = _role_cache_key(user_id, session_key)
        cached = cache.get(key)
        if cached is not None:
            return cached or None
        role = self.roles.role_for(user_id)
        # "" guarda a ausência de papel sem confundir com cache vazio
        cache.set(key, role or "", self.cache_seconds)
        return role

    def authorize(self, request) -> AccessDecision:
        user = _resolve_identity(request)
        if user is None:
            return AccessDecision.deny(UNAUTHENTICATED)

        role = self._role(user.pk, _session_key(request))
        if role != UserRole.ADMIN:
            return AccessDecision.deny(FORBIDDEN, user.pk)
        return AccessDecision.allow(user.pk)


def admin_required(view_func=None, *, guard: Optional[AdminAccessGuard] = None):
    """Decorator de view: Denied vira Unauthorized (401) ou Forbidden (403)."""

    def decorator(fn):
        @wraps(fn)
        def _wrapped(request, *args, **kwargs):
            decision = (guard or AdminAccessGuard()).authorize(request)
            if not decision.allowed:
                logger.warning("Admin access denied: path=%s reason=%s", request.path, decision.reason)
                if decision.reason == UNAUTHENTICATED:
                    raise Unauthorized(path=request.path)
                raise Forbidden(path=request.path, user_id=decision.user_id)
            return fn(request, *args, **kwargs)
        return _wrapped

    if view_func is not None:
        return decorator(view_func)
    return decorator
