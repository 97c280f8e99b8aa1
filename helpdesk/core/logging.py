# helpdesk/core/logging.py
import logging
import logging.config
import uuid
from contextvars import ContextVar
from typing import Any, Mapping, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# id поточного запиту (або події у воркері); "-" поза запитом
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def current_request_id() -> Optional[str]:
    return _request_id.get()


def bind_request_id(request_id: Optional[str]):
    """Прив'язує id до поточного контексту. Повертає токен для reset_request_id."""
    return _request_id.set(request_id)


def reset_request_id(token) -> None:
    _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Додає request_id до кожного запису, навіть із сервісів без доступу до Request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = _request_id.get() or "-"
        return True


def setup_logging(level: str = "INFO") -> None:
    """Конфігурація логів для апки, rq-воркера та Uvicorn: один handler, один формат."""
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "plain": {"format": "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "filters": ["request_id"],
            },
        },
        "loggers": {
            "": {"handlers": ["default"], "level": level},
            "uvicorn": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
        },
    })


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    X-Request-ID: береться з вхідного заголовка або генерується.
    Живе в request.state і в contextvar на час запиту, повертається у відповіді.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def log_extra(request: Request | None, **fields: Any) -> Mapping[str, Any]:
    """
    Поля для extra= у роутерах:
    log.info("user_updated", extra=log_extra(request, user_id=u.id))
    """
    extra: dict[str, Any] = dict(fields)
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        extra["request_id"] = rid
    return extra
