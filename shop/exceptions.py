# shop/exceptions.py — taxonomia de erros do fluxo pedido/pagamento
"""
Cada erro carrega o status HTTP estável e a mensagem pública. A conversão para
resposta acontece num único ponto (shop.responses.api_errors).
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class StoreError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str = "", **context: Any):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.context = context

    def payload(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


# --------- Erros do cliente ---------
class InvalidInput(StoreError):
    status_code = 400
    error = "Invalid input"


class InvalidAmount(InvalidInput):
    error = "Invalid amount"


class InvalidTransition(InvalidInput):
    error = "Invalid status transition"


class InvalidRequest(InvalidInput):
    """Corpo de requisição com erros por campo (vão em "fields")."""

    def __init__(self, message: str = "", errors: Optional[Dict[str, Any]] = None, **context: Any):
        super().__init__(message, **context)
        self.errors = errors or {}

    def payload(self) -> Dict[str, Any]:
        data = super().payload()
        if self.errors:
            data["fields"] = self.errors
        return data


class OrderValidationError(InvalidRequest):
    error = "Invalid order"


class InvalidSignature(StoreError):
    # Mesma mensagem para divergência e tamanho diferente (sem oráculo)
    status_code = 400
    error = "Invalid payment signature"

    def __init__(self, **context: Any):
        super().__init__(self.error, **context)


class InvalidWebhookSignature(StoreError):
    status_code = 401
    error = "Invalid signature"


# --------- Identidade ---------
class Unauthorized(StoreError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, **context: Any):
        super().__init__("Log in to continue", **context)


class Forbidden(StoreError):
    status_code = 403
    error = "Forbidden - Admin access required"

    def __init__(self, **context: Any):
        super().__init__("Admin access required", **context)


# --------- Recursos ---------
class NotFound(StoreError):
    status_code = 404
    error = "Not found"


class OrderNotFound(NotFound):
    error = "Order not found"


class ConflictError(StoreError):
    status_code = 409
    error = "Order was modified concurrently"


# --------- Servidor / upstream ---------
class VerificationError(StoreError):
    status_code = 500
    error = "Signature verification failed"


class PersistenceError(StoreError):
    status_code = 500
    error = "Failed to update order"


class ConfigurationError(StoreError):
    status_code = 503
    error = "Server configuration error"


class GatewayError(StoreError):
    error = "Failed to create Razorpay order"

    def __init__(self, http_status: Optional[int], description: str = "", **context: Any):
        super().__init__(description or "Razorpay API error", **context)
        self.upstream_status = http_status
        # 4xx do gateway passa adiante; o resto vira 400 genérico
        if http_status is not None and 400 <= int(http_status) < 500:
            self.http_status = int(http_status)
        else:
            self.http_status = 400
        self.status_code = self.http_status
        self.description = self.message
