import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)


class ShopError(APIException):
    """Base for domain errors; carries an optional field -> messages map."""

    default_code = "error"
    default_detail = "Request failed"

    def __init__(self, message=None, errors=None, code=None):
        super().__init__(detail=message or self.default_detail, code=code or self.default_code)
        self.errors = errors or {}


class ValidationError(ShopError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "validation_error"
    default_detail = "Validation failed"


class NotFoundError(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "Resource not found"


class ConflictError(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "conflict"
    default_detail = "Conflicting state"


class DuplicateImeiError(ConflictError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "duplicate_imei"
    default_detail = "IMEI already exists in inventory"

    def __init__(self, message=None, field="imei"):
        super().__init__(message=message, errors={field: [message or self.default_detail]})


class AuthError(ShopError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "auth_failed"
    default_detail = "Invalid username or password"


class AccountInactiveError(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "account_inactive"
    default_detail = "Your account is deactivated. Contact administrator."


class PersistenceError(ShopError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "persistence_error"
    default_detail = "Database error"


def _view_name(context):
    view = context.get("view")
    return view.__class__.__name__ if view is not None else "unknown"


def _request_path(context):
    request = context.get("request")
    return getattr(request, "path", "")


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.error(
            "Database error in %s (%s): %s",
            _view_name(context),
            _request_path(context),
            exc,
        )
        exc = PersistenceError()

    response = exception_handler(exc, context)
    if response is None:
        logger.exception(
            "Unhandled error in %s (%s)",
            _view_name(context),
            _request_path(context),
            exc_info=exc,
        )
        set_rollback()
        return Response(
            {"success": False, "code": "server_error", "message": "Internal server error", "errors": {}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, DRFValidationError):
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        message = "Validation failed"
        errors = response.data if isinstance(response.data, dict) else {"non_field_errors": response.data}
    elif isinstance(exc, ShopError):
        message = str(exc.detail)
        errors = exc.errors
    elif isinstance(response.data, dict):
        message = response.data.get("detail", "Request failed")
        errors = {k: v for k, v in response.data.items() if k != "detail"}
    else:
        message = "Request failed"
        errors = {}

    code = exc.get_codes() if isinstance(exc, APIException) and not isinstance(exc, DRFValidationError) else "validation_error"
    if not isinstance(code, str):
        code = getattr(exc, "default_code", "error")

    response.data = {
        "success": False,
        "code": code,
        "message": str(message),
        "errors": errors,
    }
    return response
