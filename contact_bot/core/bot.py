# -*- coding: utf-8 -*-
"""
ContactBot - Classe Principal
Monta armazenamento, sessão WhatsApp, roteador de comandos e keep-alive

Autor: ContactBot Team
Versão: 1.0.0
"""

from datetime import datetime
from typing import Any, Dict, Optional

from .command_router import CommandRouter
from .config import Config
from .keep_alive import KeepAlive
from .logger import get_logger
from .supervisor import SessionSupervisor
from contact_bot.modules.contacts.contact_store import ContactStore
from contact_bot.modules.whatsapp.baileys_bridge import BaileysBridgeClient
from contact_bot.modules.whatsapp.messaging import MessagingClient

logger = get_logger(__name__)


class ContactBot:
    """
    Classe principal do bot

    Uso:
        bot = ContactBot()
        await bot.start()
        app = create_app(bot.supervisor, bot.store)
        ...
        await bot.stop()
    """

    def __init__(self, config: Optional[Config] = None, client: Optional[MessagingClient] = None):
        self.config = config or Config()
        settings = self.config.settings

        self.store = ContactStore(self.config.data_dir)
        self.client = client or BaileysBridgeClient(settings.WHATSAPP_API_URL)
        self.supervisor = SessionSupervisor(
            self.client,
            admin_jid=settings.ADMIN_JID,
            server_name=settings.SERVER_NAME,
            max_reconnect_attempts=settings.MAX_RECONNECT_ATTEMPTS,
            heartbeat_interval=settings.HEARTBEAT_INTERVAL,
            stale_after=settings.STALE_AFTER,
        )
        self.router = CommandRouter(self.store, self.supervisor)
        self.supervisor.set_message_handler(self.router.dispatch)
        self.keep_alive = KeepAlive(settings.APP_URL, interval=settings.KEEP_ALIVE_INTERVAL)

        self._running = False
        self._start_time: Optional[datetime] = None

    async def start(self):
        """Carrega contatos, inicia keep-alive e conecta ao WhatsApp"""
        if self._running:
            logger.warning("Bot já está rodando")
            return self

        settings = self.config.settings
        logger.info(f"🚀 Iniciando bot (ambiente: {settings.ENVIRONMENT}, servidor: {settings.SERVER_NAME})")
        self._start_time = datetime.now()
        self._running = True

        self.store.load()
        await self.keep_alive.start()
        await self.supervisor.start()

        logger.info("✅ Bot pronto!")
        return self

    async def stop(self):
        """Para o bot graciosamente (fecha a sessão WhatsApp)"""
        if not self._running:
            return

        logger.info("🛑 Parando bot...")
        self._running = False
        await self.keep_alive.stop()
        await self.supervisor.stop()
        logger.info("👋 Bot finalizado")

    @property
    def status(self) -> Dict[str, Any]:
        """Status resumido do bot"""
        return {
            'running': self._running,
            'started_at': self._start_time.isoformat() if self._start_time else None,
            'contacts': len(self.store),
            'session': self.supervisor.state.to_dict(),
            'keep_alive': self.keep_alive.enabled,
        }
