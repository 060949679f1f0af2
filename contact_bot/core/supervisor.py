# -*- coding: utf-8 -*-
"""
Session Supervisor - Ciclo de vida da conexão WhatsApp
Conecta, acompanha eventos de conexão, reconecta com backoff exponencial,
trata logout, envia heartbeat e recupera conexões mortas silenciosamente.

Autor: ContactBot Team
Versão: 1.0.0
"""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from .exceptions import SessionUnavailableException
from .logger import get_logger
from contact_bot.modules.whatsapp.messaging import (
    CallReceived,
    ConnectConfig,
    ConnectionUpdate,
    CredentialsUpdate,
    MessageReceived,
    MessagingClient,
    MessagingSession,
    SessionEvent,
    extract_text,
)

logger = get_logger(__name__)

QR_IMAGE_URL = "https://api.qrserver.com/v1/create-qr-code/?size=400x400&data={data}"

BASE_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 30000
CONNECT_ERROR_RETRY_SECONDS = 5.0

# Status de chamada que ainda podem ser recusados
REJECTABLE_CALL_STATUS = (None, 'offer', 'ringing')

MessageHandler = Callable[[str, str], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backoff_delay(attempts: int) -> float:
    """Atraso (segundos) antes da reconexão número `attempts`: min(1000 * 2^n, 30000) ms"""
    return min(BASE_BACKOFF_MS * (2 ** attempts), MAX_BACKOFF_MS) / 1000


def qr_image_url(code: str) -> str:
    return QR_IMAGE_URL.format(data=quote(code, safe=''))


class Phase(str, Enum):
    """Fases da conexão"""
    DISCONNECTED = "disconnected"
    AWAITING_PAIRING = "awaiting-pairing"
    CONNECTED = "connected"


@dataclass
class SessionState:
    """Visão do supervisor sobre a conectividade (uma instância por processo)"""
    phase: Phase = Phase.DISCONNECTED
    pending_pairing_code: Optional[str] = None
    reconnect_attempts: int = 0
    last_activity_at: datetime = field(default_factory=_utcnow)
    fatal: bool = False
    started_at: datetime = field(default_factory=_utcnow)

    def touch(self):
        self.last_activity_at = _utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase.value,
            'pending_pairing_code': self.pending_pairing_code,
            'reconnect_attempts': self.reconnect_attempts,
            'last_activity_at': self.last_activity_at.isoformat(),
            'fatal': self.fatal,
            'started_at': self.started_at.isoformat(),
        }


class SessionSupervisor:
    """
    Dono do SessionState e da sessão WhatsApp ativa

    - No máximo uma tentativa de conexão em andamento (lock single-flight)
    - No máximo um reconnect agendado (o anterior é cancelado)
    - Erros de eventos são logados, nunca derrubam o loop de eventos

    Uso:
        supervisor = SessionSupervisor(BaileysBridgeClient(), admin_jid="55...@s.whatsapp.net")
        supervisor.set_message_handler(router.dispatch)
        await supervisor.start()
    """

    def __init__(
        self,
        client: MessagingClient,
        admin_jid: Optional[str] = None,
        server_name: str = "Local",
        max_reconnect_attempts: int = 10,
        heartbeat_interval: float = 60.0,
        stale_after: float = 300.0,
        connect_config: Optional[ConnectConfig] = None
    ):
        self.client = client
        self.admin_jid = admin_jid
        self.server_name = server_name
        self.max_reconnect_attempts = max_reconnect_attempts
        self.heartbeat_interval = heartbeat_interval
        self.stale_after = stale_after
        self.connect_config = connect_config or ConnectConfig()

        self.state = SessionState()
        self.last_reconnect_delay: Optional[float] = None

        self._session: Optional[MessagingSession] = None
        self._session_closed = False
        self._message_handler: Optional[MessageHandler] = None
        self._connect_lock = asyncio.Lock()
        self._reconnect_task: Optional[asyncio.Task] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def session(self) -> Optional[MessagingSession]:
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._session is not None and self.state.phase is Phase.CONNECTED

    @property
    def uptime_seconds(self) -> float:
        return (_utcnow() - self.state.started_at).total_seconds()

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def set_message_handler(self, handler: MessageHandler):
        """Define quem recebe (remetente, texto) das mensagens aceitas"""
        self._message_handler = handler

    # ========== Ciclo de vida ==========

    async def start(self):
        """Inicia heartbeat e a primeira conexão"""
        if self._running:
            logger.warning("Supervisor já está rodando")
            return

        self._running = True
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(), name="whatsapp_heartbeat"
        )
        await self.connect()

    async def stop(self):
        """Cancela tarefas em segundo plano e fecha a sessão"""
        if not self._running:
            return

        self._running = False
        for task in (self._heartbeat_task, self._reconnect_task, self._pump_task):
            if task is None or task.done() or task is asyncio.current_task():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._heartbeat_task = self._reconnect_task = self._pump_task = None

        await self._discard_session()
        try:
            await self.client.close()
        except Exception as e:
            logger.warning(f"Falha ao fechar cliente de mensagens: {e}")
        logger.info("🛑 Sessão WhatsApp encerrada")

    async def connect(self) -> bool:
        """
        Abre uma nova sessão (descartando a anterior)

        Returns:
            True se a sessão foi aberta; False se falhou ou já havia
            uma tentativa em andamento
        """
        if not self._running:
            logger.debug("Supervisor parado, conexão ignorada")
            return False

        if self._connect_lock.locked():
            logger.info("Conexão já em andamento, tentativa ignorada")
            return False

        async with self._connect_lock:
            self._cancel_pending_reconnect()
            await self._discard_session()

            logger.info("🔌 Conectando ao WhatsApp...")
            try:
                version = await self.client.fetch_latest_version()
                session = await self.client.connect(replace(self.connect_config, version=version))
            except Exception as e:
                logger.error(f"❌ Erro de conexão: {e}")
                self._retry_after_connect_error()
                return False

            self._session = session
            self._session_closed = False
            self._pump_task = asyncio.create_task(
                self._pump_events(session), name="whatsapp_events"
            )
            return True

    async def force_reconnect(self) -> bool:
        """Reconexão imediata, fora da política de backoff"""
        self._cancel_pending_reconnect()
        return await self.connect()

    # ========== Envio ==========

    async def send_text(self, recipient: str, text: str):
        session = self._session
        if session is None:
            raise SessionUnavailableException('send_text')
        await session.send_text(recipient, text)

    async def notify_admin(self, text: str) -> bool:
        """Envio best-effort ao admin; falhas são apenas logadas"""
        if not self.admin_jid or not self.is_connected:
            return False
        try:
            await self.send_text(self.admin_jid, text)
            return True
        except Exception as e:
            logger.warning(f"⚠️ Não foi possível notificar o admin: {e}")
            return False

    # ========== Heartbeat ==========

    async def _heartbeat_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self.heartbeat_interval)
                await self.heartbeat_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Erro no heartbeat loop: {e}", exc_info=True)

    async def heartbeat_once(self) -> bool:
        """Envia presença; se falhar e a conexão estiver parada há muito tempo, força reconexão"""
        session = self._session
        if session is None or not self.is_connected:
            return False

        try:
            await session.send_presence('available')
        except Exception as e:
            logger.warning(f"⚠️ Heartbeat falhou: {e}")
            idle = (_utcnow() - self.state.last_activity_at).total_seconds()
            if idle > self.stale_after:
                logger.warning(
                    "🔄 Conexão parece morta, reconectando...",
                    context={'idle_seconds': round(idle)}
                )
                await self.force_reconnect()
            return False

        self.state.touch()
        logger.debug("💓 Heartbeat WhatsApp enviado")
        return True

    # ========== Reconexão ==========

    def _cancel_pending_reconnect(self):
        task = self._reconnect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._reconnect_task = None

    def _schedule_reconnect(self, delay: float):
        self._cancel_pending_reconnect()
        self.last_reconnect_delay = delay
        self._reconnect_task = asyncio.create_task(
            self._delayed_connect(delay), name="whatsapp_reconnect"
        )

    async def _delayed_connect(self, delay: float):
        await asyncio.sleep(delay)
        await self.connect()

    def _retry_after_connect_error(self):
        if self.state.reconnect_attempts < self.max_reconnect_attempts:
            self.state.reconnect_attempts += 1
            self._schedule_reconnect(CONNECT_ERROR_RETRY_SECONDS)
        else:
            self._give_up()

    def _give_up(self):
        self.state.fatal = True
        logger.critical(
            "❌ Máximo de tentativas de reconexão atingido; WhatsApp não será reconectado",
            context={'attempts': self.state.reconnect_attempts}
        )

    async def _discard_session(self):
        session, pump = self._session, self._pump_task
        self._session = None
        self._pump_task = None
        self.state.phase = Phase.DISCONNECTED
        self.state.pending_pairing_code = None

        if pump is not None and not pump.done() and pump is not asyncio.current_task():
            pump.cancel()
            try:
                await pump
            except asyncio.CancelledError:
                pass
        if session is not None:
            try:
                await session.close()
            except Exception as e:
                logger.debug(f"Falha ao fechar sessão anterior: {e}")

    # ========== Eventos ==========

    async def _pump_events(self, session: MessagingSession):
        try:
            async for event in session.events():
                if session is not self._session:
                    return
                await self.handle_event(event, session)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"❌ Stream de eventos interrompido: {e}", exc_info=True)

        if session is self._session and self._running and not self._session_closed:
            logger.warning("⚠️ Stream de eventos encerrado sem aviso de desconexão")
            await self.handle_event(ConnectionUpdate(connection='close'), session)

    async def handle_event(self, event: SessionEvent, session: Optional[MessagingSession] = None):
        """Trata um evento da sessão (por padrão, a sessão ativa)"""
        session = session or self._session
        try:
            if isinstance(event, ConnectionUpdate):
                await self._on_connection_update(event)
            elif isinstance(event, CredentialsUpdate) and session is not None:
                await session.save_credentials(event.payload)
            elif isinstance(event, MessageReceived):
                await self._on_message(event)
            elif isinstance(event, CallReceived) and session is not None:
                await self._on_call(session, event)
        except Exception as e:
            logger.error(f"Erro ao processar evento {type(event).__name__}: {e}", exc_info=True)

    async def _on_connection_update(self, update: ConnectionUpdate):
        if update.qr:
            self.state.pending_pairing_code = update.qr
            self.state.phase = Phase.AWAITING_PAIRING
            logger.info("📷 QR Code disponível para pareamento", context={'url': qr_image_url(update.qr)})

        if update.connection == 'open':
            await self._on_open()
        elif update.connection == 'close':
            await self._on_close(update)

    async def _on_open(self):
        self.state.phase = Phase.CONNECTED
        self.state.pending_pairing_code = None
        self.state.reconnect_attempts = 0
        self.state.fatal = False
        self.state.touch()
        logger.info("✅ WhatsApp conectado")

        if self.admin_jid:
            connected_at = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            await self.notify_admin(
                f"🤖 *Bot Online*\n\n✅ Connected at: {connected_at}\n🌐 Server: {self.server_name}"
            )

    async def _on_close(self, update: ConnectionUpdate):
        self._session_closed = True
        self.state.phase = Phase.DISCONNECTED
        self.state.pending_pairing_code = None
        logger.warning(f"❌ Conexão fechada. Motivo: {update.status_code}")

        if update.is_logged_out:
            logger.info("🔑 Logout detectado. Limpando credenciais e reconectando...")
            try:
                await self.client.reset_credentials()
            except Exception as e:
                logger.error(f"❌ Falha ao limpar credenciais: {e}")
            await self.connect()
        elif self.state.reconnect_attempts < self.max_reconnect_attempts:
            self.state.reconnect_attempts += 1
            delay = backoff_delay(self.state.reconnect_attempts)
            logger.info(
                f"🔄 Reconectando em {delay:g}s... "
                f"(tentativa {self.state.reconnect_attempts}/{self.max_reconnect_attempts})"
            )
            self._schedule_reconnect(delay)
        else:
            self._give_up()

    async def _on_message(self, event: MessageReceived):
        if event.from_me or event.message is None:
            return

        # Qualquer mensagem recebida (inclusive mídia) conta como atividade
        self.state.touch()
        text = extract_text(event)
        if text is None:
            return

        logger.info(f"📩 Mensagem de {event.remote_jid}: {text}")

        if self._message_handler is None:
            return
        try:
            await self._message_handler(event.remote_jid, text)
        except Exception as e:
            logger.error(f"Erro ao tratar mensagem de {event.remote_jid}: {e}", exc_info=True)

    async def _on_call(self, session: MessagingSession, event: CallReceived):
        if event.status not in REJECTABLE_CALL_STATUS:
            return
        logger.info(f"📞 Chamada de {event.caller} recebida, recusando...")
        try:
            await session.reject_call(event.call_id, event.caller)
        except Exception as e:
            logger.warning(f"⚠️ Não foi possível recusar chamada {event.call_id}: {e}")
