"""
EVTC Summary - HTTP service
Upload arcdps combat logs and get back the encounter summary
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

import config
from encounters import get_encounter_table
from logger import get_logger
from routers.evtc import router as evtc_router
from services.gw2_api_service import close_gw2_api

# Setup logger
logger = get_logger('main')


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"EVTC Summary v{config.VERSION} starting")
    yield
    await close_gw2_api()


app = FastAPI(
    title="EVTC Summary",
    description="Encounter summaries from arcdps EVTC combat logs",
    version=config.VERSION,
    lifespan=lifespan,
)

app.include_router(evtc_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for deployment"""
    return {
        "status": "operational",
        "message": f"EVTC Summary v{config.VERSION}",
        "encounters": len(get_encounter_table()),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
