"""One access-log line per completed request.

Internal probe traffic (dashboard heartbeats, sidecar health checks) is
frequent and uninteresting, so it is only logged when it fails.
"""

from __future__ import annotations

import logging
import time
from typing import Mapping

from perfsim.utils.timestamps import format_timestamp

logger = logging.getLogger("perfsim.access")

PROBE_HEADER = "x-internal-probe"
PROBE_PATH = "/api/metrics/probe"
LOOPBACK_ADDRESSES = frozenset({"127.0.0.1", "::1"})


def is_internal_probe(headers: Mapping[str, str], path: str, client_host: str | None) -> bool:
    """Classify a request as internal probe traffic.

    Args:
        headers: Request headers (case-insensitive mapping, e.g. Starlette Headers).
        path: Request path without query string.
        client_host: Remote address, if known.

    Returns:
        True if the probe header is "true", or the probe endpoint was hit from loopback.
    """

    if headers.get(PROBE_HEADER) == "true":
        return True
    return path == PROBE_PATH and client_host in LOOPBACK_ADDRESSES


def log_request(
    method: str,
    uri: str,
    status_code: int,
    start_time: float,
    *,
    headers: Mapping[str, str] | None = None,
    client_host: str | None = None,
) -> None:
    """Emit the access line for a completed request, unless it is a quiet probe.

    Args:
        method: HTTP method.
        uri: Request path.
        status_code: Final response status.
        start_time: time.perf_counter() value taken when the request started.
        headers: Request headers used for probe detection.
        client_host: Remote address used for probe detection.
    """

    duration_ms = round((time.perf_counter() - start_time) * 1000, 1)
    is_error = status_code >= 400

    if not is_error and is_internal_probe(headers or {}, uri, client_host):
        return

    line = f"[{format_timestamp()}] {method} {uri} {status_code} {duration_ms}ms"
    logger.log(logging.WARNING if is_error else logging.INFO, line)
