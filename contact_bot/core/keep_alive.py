# -*- coding: utf-8 -*-
"""
Keep Alive - Ping periódico na URL pública do bot
Evita que hosts gratuitos (Render) coloquem o serviço para dormir.

Autor: ContactBot Team
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from .logger import get_logger

logger = get_logger(__name__)


class KeepAlive:
    """Faz GET em {app_url}/health a cada `interval` segundos."""

    def __init__(self, app_url: Optional[str], interval: float = 600.0, timeout_seconds: float = 10.0):
        self.app_url = app_url.rstrip('/') if app_url else None
        self.interval = interval
        self.timeout = timeout_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return bool(self.app_url)

    async def start(self):
        if self._running:
            return
        if not self.enabled:
            logger.info("Keep-alive desativado (APP_URL não configurada)")
            return

        self._running = True
        self._task = asyncio.create_task(self._ping_loop(), name="keep_alive")
        logger.info(f"🏓 Keep-alive ativo para {self.app_url} (a cada {self.interval}s)")

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _ping_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                await self.ping()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Erro no keep-alive loop: {e}", exc_info=True)

    async def ping(self) -> Dict[str, Any]:
        """GET /health; retorna status e latency_ms (nunca lança)."""
        url = f"{self.app_url}/health"
        loop = asyncio.get_running_loop()
        start = loop.time()
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession() as session:
                async with session.get(url, timeout=timeout) as resp:
                    latency_ms = round((loop.time() - start) * 1000)
                    if resp.status == 200:
                        logger.info(f"🏓 Keep-alive ping enviado ({latency_ms}ms)")
                        return {"status": "ok", "latency_ms": latency_ms}
                    logger.warning(f"⚠️ Keep-alive ping respondeu {resp.status}")
                    return {"status": "error", "code": resp.status, "latency_ms": latency_ms}
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ Keep-alive ping expirou ({self.timeout}s)")
            return {"status": "timeout", "latency_ms": round((loop.time() - start) * 1000)}
        except aiohttp.ClientError as e:
            logger.warning(f"⚠️ Keep-alive ping falhou: {e}")
            return {"status": "down", "error": str(e)}
