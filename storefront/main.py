import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefront import config
from storefront.admin import router as admin_router
from storefront.auth import ensure_admin
from storefront.database import Base, engine, SessionLocal
from storefront.errors import ConfigurationError, InvalidTransition, StorefrontError
from storefront.routes import router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap_admin()
    yield


app = FastAPI(title="VIP Club Storefront", lifespan=lifespan)

app.include_router(router)
app.include_router(admin_router)

config.MEDIA_ROOT.mkdir(parents=True, exist_ok=True)
app.mount("/media", StaticFiles(directory=config.MEDIA_ROOT), name="media")

Base.metadata.create_all(bind=engine)


@app.exception_handler(ConfigurationError)
async def configuration_error(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Serviço de pagamento indisponível"},
    )


@app.exception_handler(InvalidTransition)
async def invalid_transition(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"success": False, "error": exc.message})


@app.exception_handler(StorefrontError)
async def storefront_error(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=400, content={"success": False, "error": exc.message})


def bootstrap_admin():
    if not (config.ADMIN_EMAIL and config.ADMIN_PASSWORD):
        return
    db = SessionLocal()
    try:
        ensure_admin(db, config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
    finally:
        db.close()
