"""
Drug claim control plane (FastAPI).

Clients race to reserve one of a small set of resources, keep the
reservation alive with heartbeats, and commit it into a permanent
assignment. The service is stateless: all coordination state lives in the
database and every mutation is one conditional write or one transaction,
so any number of API processes can serve the same store.

Endpoints:
- GET    /api/v1/resources?holderToken=
- POST   /api/v1/leases           (acquire / renew)
- DELETE /api/v1/leases           (release, idempotent)
- POST   /api/v1/assignments      (commit)
- GET    /api/v1/admin/overview
- DELETE /api/v1/admin/assignments/{assignment_id}

Local dev: python -m uvicorn drugclaim.api.main:app --reload
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from drugclaim.api.core.config import settings
from drugclaim.api.core.errors import ClaimError
from drugclaim.api.core.logging import logger
from drugclaim.api.db.session import SessionLocal
from drugclaim.api.routers import admin, assignments, leases, resources
from drugclaim.api.services.resource_registry import seed_default_resources

# Create FastAPI app
app = FastAPI(
    title="Drug Claim Control Plane",
    description="Lease, heartbeat and commit protocol for uniquely-assignable resources",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(resources.router)
app.include_router(leases.router)
app.include_router(assignments.router)
app.include_router(admin.router)


@app.exception_handler(ClaimError)
async def claim_error_handler(request: Request, exc: ClaimError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are 400, never retried."""
    errors = jsonable_encoder(exc.errors())
    messages = [f"{'.'.join(str(p) for p in e.get('loc', [])[1:])}: {e.get('msg')}" for e in errors]
    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(messages) or "Invalid request.", "error": "invalid", "reason": None, "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Unhandled store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Store error.", "error": "store_error", "reason": None},
    )


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "drugclaim-control-plane"}


@app.on_event("startup")
async def startup():
    """Startup event."""
    logger.info("Drug claim control plane starting...")
    logger.info(f"Lease TTL: {settings.LEASE_TTL_SECONDS}s, heartbeat: {settings.HEARTBEAT_INTERVAL_SECONDS}s")

    if settings.SEED_RESOURCES_ON_STARTUP:
        db = SessionLocal()
        try:
            seed_default_resources(db, settings.DEFAULT_RESOURCE_COUNT)
        finally:
            db.close()


@app.on_event("shutdown")
async def shutdown():
    """Shutdown event."""
    logger.info("Drug claim control plane shutting down...")
