import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from bolao.config import LOG_LEVEL
from bolao.database import create_db_and_tables
from bolao.exceptions import BolaoException

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables
    create_db_and_tables()
    logger.info("Database ready")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Bolão",
    description="Scoring and ranking engine for football betting pools",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(BolaoException)
async def bolao_exception_handler(request: Request, exc: BolaoException):
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
from bolao.routers import matches, predictions, champions, pools, ranking

app.include_router(matches.router)
app.include_router(predictions.router)
app.include_router(champions.router)
app.include_router(pools.router)
app.include_router(ranking.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
