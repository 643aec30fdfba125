# shop/responses.py — fronteira de erro: exceção tipada -> JsonResponse
"""
Toda view do fluxo de pedido/pagamento passa por `api_errors(operation)`.

- StoreError: status estável da taxonomia + {"error", "message"};
- qualquer outra exceção: 500 genérico, com stack trace só no log.

O log leva o nome da operação e o id da entidade (contexto do erro), nunca
assinatura nem segredo.
"""
from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional

from django.http import JsonResponse
from rest_framework.exceptions import APIException

from .exceptions import StoreError

logger = logging.getLogger(__name__)

# contexto que pode ir para o log
_LOGGABLE_CONTEXT = ("order_id", "gateway_order_id", "payment_id", "user_id", "path", "event")

Renderer = Callable[[StoreError], Dict[str, Any]]


def _context_for_log(exc: StoreError) -> str:
    parts = [f"{k}={exc.context[k]}" for k in _LOGGABLE_CONTEXT if exc.context.get(k) is not None]
    return " ".join(parts) or "-"


def error_response(exc: StoreError, render: Optional[Renderer] = None) -> JsonResponse:
    body = render(exc) if render else exc.payload()
    return JsonResponse(body, status=exc.status_code)


def api_errors(operation: str, render: Optional[Renderer] = None):
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            try:
                return view_func(request, *args, **kwargs)
            except StoreError as exc:
                level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
                logger.log(
                    level,
                    "%s failed: %s (%s) %s",
                    operation, exc.__class__.__name__, exc.status_code, _context_for_log(exc),
                )
                return error_response(exc, render)
            except APIException:
                # parse/auth do DRF seguem pelo handler padrão
                raise
            except Exception:
                logger.exception("%s failed: unexpected error", operation)
                body = {"error": "Internal server error", "message": "Unexpected error"}
                if render:
                    body = render(StoreError("Unexpected error"))
                return JsonResponse(body, status=500)
        return _wrapped
    return decorator


def verification_body(exc: StoreError) -> Dict[str, Any]:
    """Formato de /payment/verify: {"ok": false, "error", "message"?}."""
    body: Dict[str, Any] = {"ok": False, "error": exc.error}
    if exc.message and exc.message != exc.error:
        body["message"] = exc.message
    return body
