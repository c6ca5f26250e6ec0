"""ngrok-backed :class:`TunnelProvider` using ``pyngrok``.

pyngrok manages the ngrok binary and talks to it synchronously, so every call
is pushed onto a worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pyngrok import conf, ngrok

logger = logging.getLogger(__name__)


class NgrokTunnelProvider:
    def __init__(self, *, ngrok_path: Optional[str] = None) -> None:
        self._ngrok_path = ngrok_path
        self._config: Optional[conf.PyngrokConfig] = None

    def _pyngrok_config(self, auth_token: str) -> conf.PyngrokConfig:
        kwargs = {"auth_token": auth_token}
        if self._ngrok_path:
            kwargs["ngrok_path"] = self._ngrok_path
        return conf.PyngrokConfig(**kwargs)

    async def open(self, port: int, hostname: str, auth_token: str) -> str:
        self._config = self._pyngrok_config(auth_token)
        tunnel = await asyncio.to_thread(
            ngrok.connect,
            addr=str(port),
            proto="http",
            pyngrok_config=self._config,
            domain=hostname,
        )
        logger.debug("ngrok reported public url %s", tunnel.public_url)
        return tunnel.public_url

    async def close(self, url: str) -> None:
        await asyncio.to_thread(ngrok.disconnect, url, pyngrok_config=self._config)


__all__ = ["NgrokTunnelProvider"]
