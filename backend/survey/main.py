import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from survey.api.deps import install_services
from survey.api.routes import dataset, health, ratings, samples
from survey.config import settings as app_settings
from survey.middleware.error_handler import register_error_handlers
from survey.middleware.rate_limit import RateLimitMiddleware
from survey.middleware.security import SecurityMiddleware
from survey.services.dataset.loader import load_dataset

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: load the dataset before accepting requests; it is read-only afterwards
    logger.info("Loading dataset %s...", app_settings.dataset_repo)
    loop = asyncio.get_event_loop()
    ds = await loop.run_in_executor(None, load_dataset, app_settings)
    if len(ds) == 0:
        logger.warning("Running with an empty dataset")
    else:
        logger.info("Dataset ready with %d samples (source: %s)", len(ds), ds.source)
    install_services(app, ds)
    yield


app = FastAPI(title=app_settings.app_name, version="1.0.0", lifespan=lifespan)

# Middleware (order matters: outermost first)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=app_settings.rate_limit_requests,
    window_seconds=app_settings.rate_limit_window,
    trust_forwarded_for=app_settings.trust_forwarded_for,
)
app.add_middleware(SecurityMiddleware, max_body_size=app_settings.max_body_size)
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handlers
register_error_handlers(app)

# Routes
app.include_router(health.router)
app.include_router(dataset.router)
app.include_router(samples.router)
app.include_router(ratings.router)

# Built frontend, if one is deployed alongside the API
if app_settings.frontend_dir is not None and app_settings.frontend_dir.is_dir():
    app.mount("/", StaticFiles(directory=app_settings.frontend_dir, html=True), name="frontend")


def run() -> None:
    import uvicorn

    uvicorn.run("survey.main:app", host=app_settings.host, port=app_settings.port)
