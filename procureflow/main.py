import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from procureflow.api import procurement
from procureflow.core.config import settings
from procureflow.core.errors import ProcurementError
from procureflow.core.logging import setup_logging, get_logger
from procureflow.db.session import init_db

setup_logging()
logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ProcurementError, procurement.procurement_error_handler)
app.include_router(procurement.router)


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started")


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.APP_VERSION}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
