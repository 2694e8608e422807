"""
Uniform response envelope for the HTTP API.

Every response body has the shape:

    {"exito": bool, "datos": ..., "mensaje": ..., "error": ..., "codigo": ...}

Views build successful bodies with ``success_response`` and translate failed
command results with ``result_error_response``. Exceptions raised inside DRF
views (validation, authentication, 404, 405, database errors, bugs) are
funnelled through ``envelope_exception_handler``, which is wired as
REST_FRAMEWORK["EXCEPTION_HANDLER"].

Responses never carry stack traces or internal identifiers; the error
``codigo`` is the stable, machine-readable category.
"""

import logging

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


logger = logging.getLogger(__name__)


class ErrorCode:
    """Stable error categories exposed as ``codigo`` in error responses."""

    NOT_FOUND = "NO_ENCONTRADO"
    INACTIVE_REFERENCE = "REFERENCIA_INACTIVA"
    INSUFFICIENT_BALANCE = "SALDO_INSUFICIENTE"
    INSUFFICIENT_STOCK = "STOCK_INSUFICIENTE"
    CONFLICT = "CONFLICTO"
    VALIDATION = "VALIDACION"
    BUSINESS_RULE = "REGLA_NEGOCIO"
    STORAGE = "ERROR_ALMACENAMIENTO"
    NOT_AUTHENTICATED = "NO_AUTENTICADO"
    FORBIDDEN = "PROHIBIDO"
    METHOD_NOT_ALLOWED = "METODO_NO_PERMITIDO"
    THROTTLED = "LIMITE_EXCEDIDO"
    INTERNAL = "ERROR_INTERNO"

    HTTP_STATUS = {
        NOT_FOUND: status.HTTP_404_NOT_FOUND,
        INACTIVE_REFERENCE: status.HTTP_404_NOT_FOUND,
        INSUFFICIENT_BALANCE: status.HTTP_400_BAD_REQUEST,
        INSUFFICIENT_STOCK: status.HTTP_400_BAD_REQUEST,
        CONFLICT: status.HTTP_409_CONFLICT,
        VALIDATION: status.HTTP_400_BAD_REQUEST,
        BUSINESS_RULE: status.HTTP_400_BAD_REQUEST,
        STORAGE: status.HTTP_500_INTERNAL_SERVER_ERROR,
        NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
        FORBIDDEN: status.HTTP_403_FORBIDDEN,
        METHOD_NOT_ALLOWED: status.HTTP_405_METHOD_NOT_ALLOWED,
        THROTTLED: status.HTTP_429_TOO_MANY_REQUESTS,
        INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    @classmethod
    def status_for(cls, code: str) -> int:
        return cls.HTTP_STATUS.get(code, status.HTTP_400_BAD_REQUEST)


# Status codes DRF produces on its own, mapped back to a category.
_CODE_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.NOT_AUTHENTICATED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.THROTTLED,
}


def success_response(datos=None, mensaje: str = None, http_status: int = status.HTTP_200_OK, **extra) -> Response:
    """Wrap a payload in the success envelope. ``extra`` adds top-level keys (paginacion, resumen...)."""
    body = {"exito": True, "datos": datos}
    if mensaje:
        body["mensaje"] = mensaje
    body.update(extra)
    return Response(body, status=http_status)


def error_response(error: str, code: str, detalles=None, http_status: int = None) -> Response:
    body = {"exito": False, "error": error, "codigo": code}
    if detalles is not None:
        body["detalles"] = detalles
    return Response(body, status=http_status or ErrorCode.status_for(code))


def result_error_response(result) -> Response:
    """Translate a failed CommandResult into an error envelope."""
    return error_response(result.error, result.code)


def envelope_exception_handler(exc, context):
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else "unknown"

    if isinstance(exc, ValidationError):
        return error_response("Datos inválidos", ErrorCode.VALIDATION, detalles=exc.detail)

    if isinstance(exc, IntegrityError):
        logger.warning("Integrity error in %s: %s", view_name, exc)
        return error_response("Ya existe un registro con estos datos", ErrorCode.CONFLICT)

    if isinstance(exc, DatabaseError):
        logger.exception("Database error in %s", view_name)
        return error_response("Error en la base de datos", ErrorCode.STORAGE)

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled error in %s", view_name)
        return error_response("Error interno del servidor", ErrorCode.INTERNAL)

    detail = response.data.get("detail") if isinstance(response.data, dict) else None
    code = _CODE_BY_STATUS.get(response.status_code, ErrorCode.INTERNAL)
    response.data = {
        "exito": False,
        "error": str(detail) if detail is not None else "Error en la solicitud",
        "codigo": code,
    }
    return response
