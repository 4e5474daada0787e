"""Request body parsing for JSON endpoints."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)


async def read_json_body(request: Request) -> Any:
    """Parse the request body as JSON.

    An empty body is treated as an empty object so the validators report
    the missing fields by name.

    Args:
        request: Incoming request.

    Returns:
        The decoded JSON value (any JSON type; shape is checked by validators).

    Raises:
        json.JSONDecodeError: If the body is not valid JSON or not valid
            UTF-8. The global handler maps this to a 400 "Bad Request"
            response.
    """

    raw = await request.body()
    if not raw.strip():
        return {}

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.info("request_body.malformed_json", extra={"body_bytes": len(raw)})
        raise
    except UnicodeDecodeError as exc:
        # Undecodable bytes are a malformed body too
        logger.info("request_body.undecodable", extra={"body_bytes": len(raw)})
        raise json.JSONDecodeError(
            exc.reason, raw.decode("utf-8", errors="replace"), exc.start
        ) from exc
