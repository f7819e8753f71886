# perfstore/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from perfstore.config import settings
from perfstore.database import Store
from perfstore.errors import (
    ConstraintViolation, InvalidInput, NotFound, PerfStoreError, StorageFailure, UpgradeFailure
)
from perfstore.routers import analytics, datasets, employees, imports, summaries

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="perfstore - Employee Performance Store", version="1.0")

# Include Routers
app.include_router(datasets.router)
app.include_router(employees.router)
app.include_router(imports.router)
app.include_router(analytics.router)
app.include_router(summaries.router)

STATUS_CODES = (
    (NotFound, 404),
    (InvalidInput, 400),
    (ConstraintViolation, 409),
    (UpgradeFailure, 500),
    (StorageFailure, 500),
)

@app.exception_handler(PerfStoreError)
async def perfstore_error_handler(request: Request, exc: PerfStoreError):
    status_code = next((code for kind, code in STATUS_CODES if isinstance(exc, kind)), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})

@app.on_event("startup")
async def startup_event():
    # Brings the schema up to date before the first request is served.
    store = Store(
        settings.effective_database_url,
        echo=settings.SQL_ECHO,
        target_version=settings.SCHEMA_VERSION,
    )
    app.state.store = await store.open()

@app.on_event("shutdown")
async def shutdown_event():
    store = getattr(app.state, "store", None)
    if store is not None:
        await store.close()

@app.get("/")
def read_root():
    return {"message": "Welcome to perfstore"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("perfstore.main:app", host="0.0.0.0", port=8000, reload=True)
