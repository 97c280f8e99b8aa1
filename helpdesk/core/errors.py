"""
Таксономія помилок домену.

Сервіси піднімають ці винятки, а main.py перетворює їх на відповіді
{"success": false, "detail": ...} з відповідним HTTP-статусом.
"""
from __future__ import annotations

from typing import Any


class HelpdeskError(Exception):
    status_code: int = 500
    default_detail: str = "Server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "detail": self.detail}


class NotFound(HelpdeskError):
    status_code = 404
    default_detail = "Not found"


class Forbidden(HelpdeskError):
    # деталі про сам ресурс сюди не кладемо
    status_code = 403
    default_detail = "Not authorized"


class ValidationFailed(HelpdeskError):
    status_code = 422
    default_detail = "Validation failed"

    def __init__(self, detail: str | None = None, *, field: str | None = None, errors: list[dict[str, str]] | None = None) -> None:
        super().__init__(detail)
        self.errors = list(errors or [])
        if field is not None:
            self.errors.append({"field": field, "message": self.detail})

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["errors"] = self.errors
        return body


class ConflictOfState(HelpdeskError):
    status_code = 409
    default_detail = "Action not allowed in the current state"


class StoreFailure(HelpdeskError):
    status_code = 500
    default_detail = "Server error"
