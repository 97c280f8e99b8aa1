# helpdesk/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from helpdesk.api.routes import (
    health,
    auth,
    users,
    tickets,
    comments,
)
from helpdesk.core.config import settings
from helpdesk.core.errors import HelpdeskError, StoreFailure
from helpdesk.core.logging import setup_logging, RequestIdMiddleware, log_extra

setup_logging(settings.log_level)
log = logging.getLogger("helpdesk")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.auto_create_tables:
        from helpdesk.db.session import create_all

        await create_all()
    yield


app = FastAPI(
    title="Helpdesk Lite",
    version="0.2.0",
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# ==== Middlewares ====
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


# ==== Помилки -> {"success": false, ...} ====

@app.exception_handler(HelpdeskError)
async def helpdesk_error_handler(request: Request, exc: HelpdeskError):
    if exc.status_code >= 500:
        log.error("helpdesk_error: %s", exc.detail, extra=log_extra(request))
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"success": False, "detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # деталі в лог, клієнту загальне повідомлення
    log.exception("store_failure", extra=log_extra(request), exc_info=exc)
    return JSONResponse(status_code=500, content=StoreFailure().to_body())


# ==== API під /api ====
app.include_router(health.router,   prefix="/api",         tags=["health"])
app.include_router(auth.router,     prefix="/api/auth",    tags=["auth"])
app.include_router(users.router,    prefix="/api/users",   tags=["users"])
app.include_router(tickets.router,  prefix="/api/tickets", tags=["tickets"])
app.include_router(comments.router, prefix="/api/tickets", tags=["comments"])
