# -*- coding: utf-8 -*-
"""
Messaging - Interface abstrata da camada WhatsApp
O protocolo, a criptografia e o pareamento ficam do lado da implementação;
o bot só enxerga eventos normalizados e as ações de envio.

Autor: ContactBot Team
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, AsyncIterator, Dict, Optional, Tuple, Union


class DisconnectReason(IntEnum):
    """Códigos de desconexão (mesmos status do Baileys)"""
    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    CONNECTION_REPLACED = 440
    TIMED_OUT = 408
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411
    FORBIDDEN = 403
    UNAVAILABLE_SERVICE = 503


@dataclass
class ConnectConfig:
    """Parâmetros repassados à implementação ao abrir uma sessão"""
    version: Optional[Tuple[int, ...]] = None
    browser: Tuple[str, str, str] = ('Ubuntu', 'Chrome', '22.04')
    print_qr_in_terminal: bool = False
    keep_alive_interval_ms: int = 10000
    connect_timeout_ms: int = 60000
    default_query_timeout_ms: int = 60000

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': list(self.version) if self.version else None,
            'browser': list(self.browser),
            'printQRInTerminal': self.print_qr_in_terminal,
            'keepAliveIntervalMs': self.keep_alive_interval_ms,
            'connectTimeoutMs': self.connect_timeout_ms,
            'defaultQueryTimeoutMs': self.default_query_timeout_ms,
        }


@dataclass
class ConnectionUpdate:
    """Mudança de estado da conexão ('connecting', 'open', 'close') e/ou novo QR"""
    connection: Optional[str] = None
    qr: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def is_logged_out(self) -> bool:
        return self.status_code == DisconnectReason.LOGGED_OUT


@dataclass
class CredentialsUpdate:
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MessageReceived:
    remote_jid: str
    from_me: bool = False
    message_id: Optional[str] = None
    message: Optional[Dict[str, Any]] = None
    push_name: Optional[str] = None


@dataclass
class CallReceived:
    call_id: str
    caller: str
    status: Optional[str] = None


SessionEvent = Union[ConnectionUpdate, CredentialsUpdate, MessageReceived, CallReceived]


def extract_text(event: MessageReceived) -> Optional[str]:
    """
    Extrai o texto de uma mensagem recebida.

    Aceita mensagem simples ('conversation') ou texto estendido
    ('extendedTextMessage.text'). Retorna None quando não há texto
    (mídia, reação, mensagem vazia).
    """
    message = event.message
    if not isinstance(message, dict):
        return None

    text = message.get('conversation')
    if not text:
        extended = message.get('extendedTextMessage')
        if isinstance(extended, dict):
            text = extended.get('text')

    if not isinstance(text, str) or not text:
        return None
    return text


class MessagingSession(ABC):
    """Uma sessão WhatsApp aberta"""

    @property
    @abstractmethod
    def user(self) -> Optional[str]:
        """JID da conta autenticada (None enquanto não autenticado)"""

    @abstractmethod
    def events(self) -> AsyncIterator[SessionEvent]:
        """Stream de eventos na ordem de chegada; termina quando a sessão fecha"""

    @abstractmethod
    async def send_text(self, recipient: str, text: str) -> None:
        pass

    @abstractmethod
    async def send_presence(self, state: str) -> None:
        pass

    @abstractmethod
    async def reject_call(self, call_id: str, caller: str) -> None:
        pass

    @abstractmethod
    async def save_credentials(self, payload: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class MessagingClient(ABC):
    """Fábrica de sessões + dono das credenciais persistidas"""

    @abstractmethod
    async def fetch_latest_version(self) -> Tuple[int, ...]:
        pass

    @abstractmethod
    async def connect(self, config: ConnectConfig) -> MessagingSession:
        pass

    @abstractmethod
    async def reset_credentials(self) -> None:
        """Descarta credenciais invalidadas (logout) para permitir novo pareamento"""

    async def close(self) -> None:
        """Libera recursos do cliente (opcional)"""
        return None
