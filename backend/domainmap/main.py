import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from domainmap.api.routes import router
from domainmap.config import CORS_ORIGINS, LOG_LEVEL
from domainmap.db.models import Base
from domainmap.db.session import engine

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Domain Map",
    version="0.1.0",
)

# Middleware first
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
def startup():
    retries = 5
    delay = 2

    for attempt in range(retries):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("[DB] database connected")
            return
        except OperationalError:
            logger.info("[DB] waiting for database... (%d/%d)", attempt + 1, retries)
            time.sleep(delay)

    # Keep serving; build logs are best effort
    logger.warning("[DB] database not ready, running without persistence")
