from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import structlog

from core.logging import configure_logging
from db.database import create_db_and_tables
from routers.activity import router as activity_router
from routers.categories import router as categories_router
from routers.inventory import router as inventory_router
from routers.locations import router as locations_router
from routers.realtime import router as realtime_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    logger.info("application_started")
    yield


app = FastAPI(
    title="Household Stock API",
    description="API for tracking household stock across storage locations",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(locations_router, prefix="/locations", tags=["locations"])
app.include_router(categories_router, prefix="/categories", tags=["categories"])
app.include_router(activity_router, prefix="/activity", tags=["activity"])
app.include_router(realtime_router, prefix="/realtime", tags=["realtime"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
