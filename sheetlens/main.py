import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sheetlens.db import get_upload_store
from sheetlens.logging_config import setup_logging
from sheetlens.routers import analysis, uploads

logger = logging.getLogger("sheetlens")

app = FastAPI(title="SheetLens Upload API")

app.include_router(uploads.router)
app.include_router(analysis.router)


@app.exception_handler(StarletteHTTPException)
async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"error": str(exc.detail), "status": exc.status_code},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Request validation failed: %s", exc.errors())
    return JSONResponse({"error": "Invalid request", "status": 400}, status_code=400)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup():
    setup_logging()
    try:
        await get_upload_store().ensure_indexes()
    except Exception:
        # App should stay available even if DB indexes can't be ensured at startup.
        logger.exception("Failed to ensure MongoDB indexes on startup")
