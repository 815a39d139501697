# farmly/main.py
from fastapi import FastAPI
import logging
from contextlib import asynccontextmanager

from farmly.config import settings
from farmly.database import db
from farmly.api.routes import cart as cart_routes
from farmly.api.routes import catalog as catalog_routes
from farmly.api.routes import checkout as checkout_routes
from farmly.api.routes import orders as order_routes
from farmly.api.routes import reviews as reviews_routes
from farmly.middleware.cors_config import configure_cors
from farmly.middleware.security_headers import add_security_headers


logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: apply the configured log level and report which tables are missing.
    Missing tables are not fatal; listings are simply empty until data is loaded.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if isinstance(level, int):
        logging.getLogger("farmly").setLevel(level)
        logger.setLevel(level)
    else:
        logger.warning("Unknown LOG_LEVEL %r, keeping the default", settings.LOG_LEVEL)

    for table in ("products", "farms", "events", "event_products"):
        path = db._file_path(table)
        if not path.exists():
            logger.warning("Table file not found at %s; listings from it will be empty", path)
        else:
            logger.info("Found %s table: %s", table, path)

    yield
    logger.info("Shutting down farmly API")


app = FastAPI(title="farmly API", version="0.1.0", lifespan=lifespan)
configure_cors(app)
add_security_headers(app)

app.include_router(catalog_routes.router)
app.include_router(reviews_routes.router)
app.include_router(cart_routes.router)
app.include_router(checkout_routes.router)
app.include_router(order_routes.router)


@app.get("/", tags=["root"])
async def root():
    return {"status": "ok", "service": "farmly API"}
