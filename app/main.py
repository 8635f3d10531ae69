from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api.routes import comments, favorites, lessons, payments, reports, users
from app.config import get_settings
from app.core.exceptions import (
  DuplicateError,
  ForbiddenError,
  NotFoundError,
  PartialWriteError,
  PaymentProviderError,
  duplicate_exception_handler,
  forbidden_exception_handler,
  global_exception_handler,
  http_exception_handler,
  not_found_exception_handler,
  partial_write_exception_handler,
  payment_exception_handler,
  request_validation_exception_handler,
)
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()

app = FastAPI(title="Lesson Share API", version="0.1.0", lifespan=lifespan, debug=settings.debug)

app.add_middleware(
  CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"]
)


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(NotFoundError, not_found_exception_handler)
app.add_exception_handler(ForbiddenError, forbidden_exception_handler)
app.add_exception_handler(DuplicateError, duplicate_exception_handler)
app.add_exception_handler(PartialWriteError, partial_write_exception_handler)
app.add_exception_handler(PaymentProviderError, payment_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
  return "server is running!"


@app.get("/health", include_in_schema=False)
async def health_check(request: Request) -> JSONResponse:
  """Return a simple health status; degraded while the store runs without its unique indexes."""
  store = getattr(request.app.state, "store", None)
  if store is not None and not getattr(request.app.state, "indexes_ready", False):
    return JSONResponse(status_code=503, content={"status": "degraded", "indexes": "pending", "version": "0.1.0"})
  return JSONResponse(content={"status": "ok", "version": "0.1.0"})


app.include_router(lessons.router, tags=["lessons"])
app.include_router(users.router, tags=["users"])
app.include_router(favorites.router, prefix="/favorites", tags=["favorites"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(comments.router, prefix="/comments", tags=["comments"])
app.include_router(payments.router, tags=["payments"])
