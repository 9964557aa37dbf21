"""
Error taxonomy for the proxy. Every ProxyError becomes a JSON body {"error": message}.
"""
import logging
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Startup configuration is incomplete; the process must not serve requests."""


class ProxyError(Exception):
    status_code = 500
    default_message = "Proxy error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidToken(ProxyError):
    status_code = 401
    default_message = "Invalid auth token"


class NotAuthorized(ProxyError):
    status_code = 403
    default_message = "Not authorized to access this mentor"


class ValidationError(ProxyError):
    status_code = 400
    default_message = "Invalid request"


class CredentialNotConfigured(ProxyError):
    # Stays a 500 for compatibility with existing clients
    status_code = 500
    default_message = "Cal.com token not configured"


class UpstreamError(ProxyError):
    status_code = 500
    default_message = "Cal.com request failed"


async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, InvalidToken) else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


def _is_blank(value) -> bool:
    """null, false, 0 and "" count as not given."""
    if value is None or value is False or value == "":
        return True
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0


def describe_validation_errors(errors) -> str:
    """
    One message for a failed request body: "a and b are required" when fields are absent or blank,
    otherwise "<field> is invalid" for the first field with a wrong type or value.
    """
    missing: list[str] = []
    invalid: list[str] = []
    for err in errors:
        loc = err.get("loc", ())
        if err.get("type") == "json_invalid":
            return "Request body must be valid JSON"
        if len(loc) < 2:
            if err.get("type") == "missing":
                return "Request body is required"
            return "Request body must be a JSON object"
        # Bodies are flat; union members and dict keys add deeper loc entries
        field = str(loc[1])
        if err.get("type") == "missing" or _is_blank(err.get("input")):
            if field not in missing:
                missing.append(field)
        elif field not in invalid:
            invalid.append(field)
    if missing:
        return f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required"
    if invalid:
        return f"{invalid[0]} is invalid"
    return ValidationError.default_message


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await proxy_error_handler(request, ValidationError(describe_validation_errors(exc.errors())))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, never leak it to the client."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": ProxyError.default_message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


@contextmanager
def handler_errors(message: str):
    """
    Let ProxyErrors through; log anything else and turn it into a ProxyError with message.
    Keeps one failing request from surfacing as an unhandled exception.
    """
    try:
        yield
    except ProxyError:
        raise
    except Exception as e:
        logger.exception(message)
        raise ProxyError(message) from e
