"""Local service reachability probe."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from remote_e2e.core.constants import HEALTH_PROBE_TIMEOUT_S, MAX_PORT, MIN_PORT

logger = logging.getLogger(__name__)


class HttpHealthProbe:
    """Treat any HTTP answer on ``localhost:<port>`` as a live service."""

    def __init__(
        self,
        *,
        host: str = "localhost",
        timeout: float = HEALTH_PROBE_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.host = host
        self.timeout = timeout
        self.transport = transport

    async def check(self, port: int) -> bool:
        if isinstance(port, bool) or not isinstance(port, int):
            logger.info("Service check skipped: %r is not a port number", port)
            return False
        if not MIN_PORT <= port <= MAX_PORT:
            logger.info("Service check skipped: port %s is out of range", port)
            return False

        url = f"http://{self.host}:{port}/"
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.get(url, timeout=self.timeout)
        except httpx.TimeoutException:
            logger.info("Service check on port %s timed out", port)
            return False
        except httpx.HTTPError as exc:
            logger.info("Service check on port %s failed: %s", port, exc)
            return False
        except Exception as exc:
            # Socket-level failures can escape httpx unwrapped
            logger.info(
                "Service check on port %s failed: %s: %s", port, type(exc).__name__, exc
            )
            return False
        logger.debug("Service on port %s answered with %s", port, response.status_code)
        return True


__all__ = ["HttpHealthProbe"]
