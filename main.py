# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from config.logging_config import configure_logging, ledger_context
from database import Base, SessionLocal, engine
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.auth_routes import router as auth_router
from routers.portfolio_routes import router as portfolio_router
from routers.trade_routes import router as trade_router
from services.asset_catalog import seed_assets
from services.ledger_errors import LedgerError

import models  # noqa: F401  registers every table on Base.metadata

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_assets(db)
    finally:
        db.close()
    logger.info("ledger service ready")
    yield


app = FastAPI(title="Trade Ledger", lifespan=lifespan)
app.state.limiter = limiter

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Authorization"],
)


# ─── Error envelope: every failure is {"error": "..."} ──────────────

@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": f"{field}: {message}" if field else message})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": f"Rate limit exceeded: {exc.detail}"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        "unhandled_error path=%s",
        request.url.path,
        extra=ledger_context(request_id=getattr(request.state, "request_id", None)),
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Include routers
app.include_router(auth_router, prefix="/api")
app.include_router(trade_router, prefix="/api")
app.include_router(portfolio_router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}
