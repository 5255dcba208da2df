import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.errors import ProvisioningError, validation
from app.identity import HttpIdentityProvider
from app.middleware import RequestTimingMiddleware
from app.routers import users

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    identity_provider = HttpIdentityProvider()
    await identity_provider.connect()
    app.state.identity_provider = identity_provider
    yield
    # Shutdown
    await identity_provider.disconnect()

app = FastAPI(
    title="Usuarios API",
    description="User provisioning across the relational store and the identity provider",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handlers
@app.exception_handler(ProvisioningError)
async def provisioning_error_handler(request: Request, exc: ProvisioningError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    error = validation("Invalid request or missing required fields.", request.url.path)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())

# Routers
app.include_router(users.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
