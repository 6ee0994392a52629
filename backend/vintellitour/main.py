from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vintellitour.core.config import APP_NAME, APP_VERSION, CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from vintellitour.core.logger import logger
from vintellitour.db.database import close_database_connection, init_indexes, test_connection
from vintellitour.router.chat import router as chat_router
from vintellitour.router.itinerary import router as itinerary_router
from vintellitour.router.system import router as system_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Test database connection
    logger.info("🚀 Starting up %s...", APP_NAME)
    if await test_connection():
        await init_indexes()
    yield
    # Shutdown: Close database connection
    logger.info("🛑 Shutting down %s...", APP_NAME)
    await close_database_connection()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(system_router)
app.include_router(chat_router)
app.include_router(itinerary_router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
