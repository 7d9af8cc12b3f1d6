import logging
import os

from fastapi import FastAPI

from realm.api.routes import router

app = FastAPI(title="realm-stability", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=os.environ.get("REALM_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "realm-stability", "version": "0.1.0"}
