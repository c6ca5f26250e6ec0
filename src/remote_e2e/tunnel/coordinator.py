"""Exposure tunnel lifecycle for a single run."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from remote_e2e.core.constants import DEFAULT_TUNNEL_DOMAIN, MAX_PORT, MIN_PORT
from remote_e2e.errors import TunnelError, TunnelErrorCategory, ValidationError
from remote_e2e.interfaces import TunnelProvider
from remote_e2e.logging.redact import register_secret
from remote_e2e.models import TunnelInfo

logger = logging.getLogger(__name__)

_AUTH_MARKERS = ("invalid tunnel configuration", "authtoken", "authentication")
_PORT_MARKERS = ("econnrefused", "connection refused")
_NAME_MARKERS = ("hostname", "subdomain", "domain")
_BINARY_MARKERS = ("enoent", "spawn", "no such file", "not found in path")
_UNAUTHORIZED_MARKERS = ("401", "unauthorized")


def categorize_tunnel_error(error: BaseException, port: int, subdomain: str) -> TunnelError:
    """Turn a raw transport failure into a user-facing :class:`TunnelError`."""
    if isinstance(error, TunnelError):
        return error

    original = str(error) or type(error).__name__
    lowered = original.lower()

    if any(marker in lowered for marker in _AUTH_MARKERS):
        return TunnelError(
            "Invalid tunnel auth token. Please check your authentication credentials.",
            TunnelErrorCategory.AUTHENTICATION,
            original=original,
        )
    if any(marker in lowered for marker in _PORT_MARKERS):
        return TunnelError(
            f"Cannot connect to localhost:{port}. "
            f"Please ensure your server is running on port {port}.",
            TunnelErrorCategory.PORT_UNREACHABLE,
            original=original,
        )
    if any(marker in lowered for marker in _NAME_MARKERS):
        return TunnelError(
            f"Failed to create tunnel with subdomain '{subdomain}'. "
            "The subdomain may already be in use or invalid.",
            TunnelErrorCategory.NAME_IN_USE,
            original=original,
        )
    if isinstance(error, FileNotFoundError) or any(
        marker in lowered for marker in _BINARY_MARKERS
    ):
        return TunnelError(
            "Tunnel binary not found or not executable. "
            "Please ensure ngrok is properly installed.",
            TunnelErrorCategory.BINARY_MISSING,
            original=original,
        )
    if any(marker in lowered for marker in _UNAUTHORIZED_MARKERS):
        return TunnelError(
            "Authentication failed. The auth token is invalid or expired.",
            TunnelErrorCategory.AUTHENTICATION,
            original=original,
        )
    return TunnelError(
        f"Failed to create tunnel: {original}",
        TunnelErrorCategory.GENERIC,
        original=original,
    )


class TunnelCoordinator:
    """Owns at most one open tunnel at a time."""

    def __init__(
        self,
        provider: TunnelProvider,
        *,
        base_domain: str = DEFAULT_TUNNEL_DOMAIN,
    ) -> None:
        self._provider = provider
        self._base_domain = base_domain.strip(".")
        self._info: Optional[TunnelInfo] = None

    @property
    def info(self) -> Optional[TunnelInfo]:
        return self._info

    def is_open(self) -> bool:
        return self._info is not None

    def hostname_for(self, subdomain: str) -> str:
        return f"{subdomain}.{self._base_domain}"

    async def open(self, port: int, subdomain: str, auth_token: Optional[str]) -> TunnelInfo:
        """Expose ``localhost:port`` as ``<subdomain>.<base domain>``.

        Raises:
            ValidationError: If the token, port or subdomain is unusable
            TunnelError: If the provider fails to open the tunnel
        """
        if not auth_token:
            raise ValidationError("Auth token is required to create tunnel")
        if (
            isinstance(port, bool)
            or not isinstance(port, int)
            or not MIN_PORT <= port <= MAX_PORT
        ):
            raise ValidationError(
                f"Invalid port number: {port}. "
                f"Port must be between {MIN_PORT} and {MAX_PORT}"
            )
        if not subdomain or not subdomain.strip():
            raise ValidationError("Subdomain is required and cannot be empty")
        subdomain = subdomain.strip()
        register_secret(auth_token)

        if self._info is not None:
            await self.close()

        hostname = self.hostname_for(subdomain)
        logger.info("Creating tunnel for localhost:%d as %s", port, hostname)
        # The provider may finish on a worker thread after we are cancelled.
        opening = asyncio.ensure_future(self._provider.open(port, hostname, auth_token))
        try:
            url = await asyncio.shield(opening)
        except asyncio.CancelledError:
            await self._discard(opening, hostname)
            raise
        except Exception as exc:
            error = categorize_tunnel_error(exc, port, subdomain)
            logger.error("Failed to create tunnel: %s", error.original or error.message)
            raise error from exc
        if not url:
            raise TunnelError("Failed to create tunnel - no URL returned")

        self._info = TunnelInfo(url=url, port=port, subdomain=subdomain)
        logger.info("Tunnel created: %s -> localhost:%d", url, port)
        return self._info

    async def close(self) -> None:
        """Tear down the open tunnel, if any. Never raises."""
        info, self._info = self._info, None
        if info is None:
            logger.debug("No active tunnel to clean up")
            return
        try:
            await self._provider.close(info.url)
            logger.info("Tunnel disconnected: %s", info.url)
        except Exception as exc:
            logger.warning("Failed to properly clean up tunnel %s: %s", info.url, exc)

    async def _discard(self, opening: asyncio.Future, hostname: str) -> None:
        """Wait out a cancelled open and tear down whatever it produced."""
        logger.warning("Tunnel setup for %s cancelled; closing it once it lands", hostname)
        try:
            url = await opening
        except Exception as exc:
            logger.debug("Cancelled tunnel setup for %s failed: %s", hostname, exc)
            return
        if not url:
            return
        try:
            await self._provider.close(url)
            logger.info("Tunnel disconnected: %s", url)
        except Exception as exc:
            logger.warning("Failed to properly clean up tunnel %s: %s", url, exc)


__all__ = ["TunnelCoordinator", "categorize_tunnel_error"]
