# core/api/exception_handler.py

"""
DRF EXCEPTION HANDLER (REST_FRAMEWORK["EXCEPTION_HANDLER"])

Every exception raised by a view ends up here and leaves as the error
envelope. Stack traces are attached only when ERROR_INCLUDE_STACK is on
(dev settings); production settings force it off.
"""

from __future__ import annotations

import logging
import traceback

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.http import Http404
from django.utils import timezone
from rest_framework import status
from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.views import set_rollback

from core.api.responses import error_response
from core.exceptions import AppError

logger = logging.getLogger("erp.api")


def _django_validation_details(exc: DjangoValidationError):
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return {"non_field_errors": exc.messages}


def _first_message(details, fallback: str) -> str:
    if isinstance(details, dict):
        for key, value in details.items():
            msg = _first_message(value, "")
            if msg:
                return msg if key in ("detail", "non_field_errors") else f"{key}: {msg}"
    elif isinstance(details, (list, tuple)) and details:
        return _first_message(details[0], fallback)
    elif details:
        return str(details)
    return fallback


def _error_payload(exc, *, code: str, status_code: int, details=None) -> dict:
    payload = {
        "code": code,
        "status_code": status_code,
        "timestamp": timezone.now().isoformat(),
    }
    if details is not None:
        payload["details"] = details
    if getattr(settings, "ERROR_INCLUDE_STACK", False):
        payload["stack"] = traceback.format_exception(
            type(exc), exc, exc.__traceback__
        )
    return payload


def envelope_exception_handler(exc, context):
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, AppError):
        set_rollback()
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request failed: %s",
            exc.message,
            extra={"view": view_name, "status_code": exc.status_code},
        )
        error = exc.to_dict()
        error.update(
            _error_payload(exc, code=exc.error_code, status_code=exc.status_code)
        )
        return error_response(exc.message, exc.status_code, error)

    if isinstance(exc, DjangoValidationError):
        set_rollback()
        details = _django_validation_details(exc)
        return error_response(
            _first_message(details, "Validation failed"),
            status.HTTP_400_BAD_REQUEST,
            _error_payload(
                exc, code="validation_error", status_code=400, details=details
            ),
        )

    if isinstance(exc, IntegrityError):
        set_rollback()
        logger.warning("Integrity error", extra={"view": view_name})
        return error_response(
            "Resource conflicts with an existing record",
            status.HTTP_409_CONFLICT,
            _error_payload(exc, code="conflict", status_code=409),
        )

    if isinstance(exc, ObjectDoesNotExist):
        exc = Http404(str(exc))

    # Http404, PermissionDenied and every DRF APIException.
    response = drf_exception_handler(exc, context)
    if response is not None:
        details = response.data
        fallback = "Request failed"
        if isinstance(exc, (Http404, PermissionDenied)):
            fallback = "Not found" if isinstance(exc, Http404) else "Access denied"
        code = getattr(exc, "default_code", None) or (
            "not_found" if isinstance(exc, Http404) else "error"
        )
        return error_response(
            _first_message(details, fallback),
            response.status_code,
            _error_payload(
                exc, code=code, status_code=response.status_code, details=details
            ),
            headers={
                k: v
                for k, v in response.headers.items()
                if k in ("WWW-Authenticate", "Retry-After")
            },
        )

    set_rollback()
    logger.exception("Unhandled error", extra={"view": view_name})
    return error_response(
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        _error_payload(exc, code="internal_error", status_code=500),
    )
