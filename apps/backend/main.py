import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

import settings
from api import availability, slots, bookings, config
from database import init_db, SessionLocal, EngineConfigDB
from services.availability import WINDOW_CONFIG_KEY
from services.errors import ConflictError, SchedulingError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def seed_data():
    db = SessionLocal()
    try:
        if not db.query(EngineConfigDB).filter(EngineConfigDB.key == WINDOW_CONFIG_KEY).first():
            logger.info("Seeding default activity window configuration...")
            default_window = {
                "start": settings.ACTIVITY_WINDOW_START,
                "end": settings.ACTIVITY_WINDOW_END,
                "days": settings.ACTIVE_DAYS,
            }
            db.add(EngineConfigDB(key=WINDOW_CONFIG_KEY, value_json=default_window))
            db.commit()
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    seed_data()
    yield


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
        # Conflicts are normal races, not failures
        if isinstance(exc, ConflictError):
            logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        elif exc.status_code >= 500:
            logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        else:
            logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        http_exc = exc.to_http_exception()
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


app = FastAPI(title="Review Slot Scheduler API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(availability.router, prefix="/api")
app.include_router(slots.router, prefix="/api")
app.include_router(bookings.router, prefix="/api")
app.include_router(config.router, prefix="/api")

@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=settings.PORT, reload=True)
