"""
FMF Access Gate Service (port 8400)
-----------------------------------
Location-gated staff login for the gym dashboard.
CS logins from unrecognised addresses are queued for ADMIN approval.

Every error response has the shape {"error": "<message>"}.
"""

import logging
import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from fmf.services.shared.database import create_all_tables
from fmf.services.shared.errors import AccessError

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("fmf_access_starting")
    create_all_tables()
    logger.info("fmf_access_tables_ready")
    yield
    logger.info("fmf_access_stopping")


app = FastAPI(
    title="FMF Access Gate",
    version="0.1.0",
    description="Location-gated staff login and access request approval.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request parameters"})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("storage_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


from fmf.services.access.routes_login    import router as login_router     # noqa: E402
from fmf.services.access.routes_resolve  import router as resolve_router   # noqa: E402
from fmf.services.access.routes_registry import router as registry_router  # noqa: E402

app.include_router(login_router,    tags=["Secure Login"])
app.include_router(resolve_router,  tags=["Approvals"])
app.include_router(registry_router, tags=["Registry"])


@app.get("/health", tags=["Health"])
def health():
    return {"status": "healthy", "service": "fmf-access", "version": "0.1.0"}
