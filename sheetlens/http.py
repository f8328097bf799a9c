import json
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("sheetlens")


async def json_body(request: Request) -> dict:
    """Request body as a dict; anything that is not a JSON object reads as ``{}``."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError):
        logger.info("Ignoring malformed JSON body on %s", request.url.path)
        return {}
    return payload if isinstance(payload, dict) else {}


def envelope_response(result: dict) -> JSONResponse:
    return JSONResponse(result, status_code=result["status"])
