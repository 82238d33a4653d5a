import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import Base, engine
from .errors import KitlyError
from .logging_config import configure_logging
from .routers.billing import router as billing_router
from .routers.bundles import router as bundles_router
from .routers.storefront import router as storefront_router
from .routers.webhooks import router as webhooks_router

configure_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Postgres schemas are managed by the alembic revisions; local sqlite is created on the fly
    if settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Kitly Bundles API", version="0.1.0", lifespan=lifespan)

# CORS
origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)


@app.exception_handler(KitlyError)
async def kitly_error_handler(request: Request, exc: KitlyError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.get("/health")
def health():
    return {"status": "ok"}

# Routers
app.include_router(bundles_router, prefix="/api/bundles", tags=["bundles"])
app.include_router(billing_router, prefix="/api/billing", tags=["billing"])
app.include_router(webhooks_router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(storefront_router, tags=["storefront"])
