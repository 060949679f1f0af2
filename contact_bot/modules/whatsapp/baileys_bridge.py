# -*- coding: utf-8 -*-
"""
Baileys Bridge - Cliente do serviço Node (Baileys) em localhost:3001
Ações via HTTP (aiohttp) e eventos via WebSocket em /session/events.

Formato dos frames recebidos: {"event": "<nome baileys>", "data": {...}}
  - connection.update  {connection, qr, lastDisconnect.error.output.statusCode, user}
  - creds.update       {...credenciais...}
  - messages.upsert    {messages: [{key: {remoteJid, fromMe, id}, message, pushName}]}
  - call               [{id, from, status}]
"""

import asyncio
import json
import os
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import aiohttp

from contact_bot.core.exceptions import BridgeException
from contact_bot.core.logger import get_logger
from .messaging import (
    CallReceived,
    ConnectConfig,
    ConnectionUpdate,
    CredentialsUpdate,
    MessageReceived,
    MessagingClient,
    MessagingSession,
    SessionEvent,
)

logger = get_logger(__name__)

DEFAULT_API_URL = 'http://localhost:3001'


def _status_code(data: Dict[str, Any]) -> Optional[int]:
    code = data.get('statusCode')
    if code is None:
        last = data.get('lastDisconnect') or {}
        error = last.get('error') or {}
        output = error.get('output') or {}
        code = output.get('statusCode')
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


def parse_frame(frame: Dict[str, Any]) -> List[SessionEvent]:
    """Converte um frame da bridge em eventos normalizados (lista vazia se desconhecido)."""
    name = frame.get('event')
    data = frame.get('data')

    if name == 'connection.update':
        data = data if isinstance(data, dict) else {}
        return [ConnectionUpdate(
            connection=data.get('connection'),
            qr=data.get('qr'),
            status_code=_status_code(data),
        )]

    if name == 'creds.update':
        return [CredentialsUpdate(payload=data if isinstance(data, dict) else {})]

    if name == 'messages.upsert':
        data = data if isinstance(data, dict) else {}
        events: List[SessionEvent] = []
        for item in data.get('messages') or []:
            key = item.get('key') or {}
            remote_jid = key.get('remoteJid')
            if not remote_jid:
                continue
            events.append(MessageReceived(
                remote_jid=remote_jid,
                from_me=bool(key.get('fromMe')),
                message_id=key.get('id'),
                message=item.get('message'),
                push_name=item.get('pushName'),
            ))
        return events

    if name == 'call':
        calls = data if isinstance(data, list) else [data]
        return [
            CallReceived(call_id=c['id'], caller=c['from'], status=c.get('status'))
            for c in calls
            if isinstance(c, dict) and c.get('id') and c.get('from')
        ]

    logger.debug(f"Frame ignorado da bridge: {name}")
    return []


class BaileysBridgeSession(MessagingSession):
    """Sessão aberta na bridge; o WebSocket entrega os eventos em ordem."""

    def __init__(self, client: 'BaileysBridgeClient', ws: aiohttp.ClientWebSocketResponse,
                 user: Optional[str] = None):
        self._client = client
        self._ws = ws
        self._user = user

    @property
    def user(self) -> Optional[str]:
        return self._user

    def _track_user(self, frame: Dict[str, Any]) -> None:
        if frame.get('event') != 'connection.update':
            return
        data = frame.get('data') or {}
        if data.get('connection') == 'close':
            self._user = None
            return
        user = data.get('user')
        if isinstance(user, dict):
            user = user.get('id')
        if user:
            self._user = user

    async def events(self) -> AsyncIterator[SessionEvent]:
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    frame = json.loads(msg.data)
                except json.JSONDecodeError:
                    logger.warning(f"Frame inválido da bridge: {msg.data[:200]}")
                    continue
                if not isinstance(frame, dict):
                    continue
                self._track_user(frame)
                for event in parse_frame(frame):
                    yield event
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.warning(f"WebSocket da bridge com erro: {self._ws.exception()}")
                break
        self._user = None

    async def send_text(self, recipient: str, text: str) -> None:
        await self._client.request('POST', '/send', {'to': recipient, 'message': text})

    async def send_presence(self, state: str) -> None:
        await self._client.request('POST', '/presence', {'state': state})

    async def reject_call(self, call_id: str, caller: str) -> None:
        await self._client.request('POST', '/call/reject', {'callId': call_id, 'from': caller})

    async def save_credentials(self, payload: Dict[str, Any]) -> None:
        await self._client.request('POST', '/auth/save', {'creds': payload})

    async def close(self) -> None:
        self._user = None
        try:
            await self._client.request('POST', '/session/close', timeout=5)
        except BridgeException as e:
            logger.debug(f"Falha ao fechar sessão na bridge: {e}")
        if not self._ws.closed:
            await self._ws.close()


class BaileysBridgeClient(MessagingClient):
    """
    MessagingClient que conversa com a bridge Baileys (Node).

    Uso:
        client = BaileysBridgeClient('http://localhost:3001')
        session = await client.connect(ConnectConfig(version=await client.fetch_latest_version()))
        async for event in session.events():
            ...
    """

    def __init__(self, api_url: Optional[str] = None, timeout: float = 10.0):
        self.api_url = (api_url or os.getenv('WHATSAPP_API_URL') or DEFAULT_API_URL).rstrip('/')
        self.timeout = timeout
        self._http: Optional[aiohttp.ClientSession] = None

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession()
        return self._http

    async def request(self, method: str, endpoint: str, data: Dict = None,
                      timeout: Optional[float] = None) -> Dict[str, Any]:
        """Chama a bridge e devolve o JSON da resposta; erros viram BridgeException."""
        url = f"{self.api_url}{endpoint}"
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)
        try:
            async with self._get_http().request(method, url, json=data, timeout=client_timeout) as resp:
                body = await resp.text()
                if resp.status >= 400:
                    raise BridgeException(endpoint, status_code=resp.status, response=body[:500])
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BridgeException(endpoint, message=f"Bridge WhatsApp inacessível em {url}: {e}") from e

        if not body:
            return {}
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return {'raw': body}
        return parsed if isinstance(parsed, dict) else {'data': parsed}

    async def fetch_latest_version(self) -> Tuple[int, ...]:
        data = await self.request('GET', '/version')
        version = data.get('version')
        if not isinstance(version, list) or not version:
            raise BridgeException('/version', message=f"Versão inválida da bridge: {version!r}")
        return tuple(int(v) for v in version)

    async def connect(self, config: ConnectConfig) -> MessagingSession:
        data = await self.request(
            'POST', '/session/connect', config.to_dict(),
            timeout=config.connect_timeout_ms / 1000,
        )
        try:
            ws = await self._get_http().ws_connect(f"{self.api_url}/session/events", heartbeat=30)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BridgeException('/session/events', message=f"WebSocket da bridge indisponível: {e}") from e

        user = data.get('user')
        if isinstance(user, dict):
            user = user.get('id')
        logger.debug(f"Sessão aberta na bridge (user={user})")
        return BaileysBridgeSession(self, ws, user)

    async def reset_credentials(self) -> None:
        await self.request('POST', '/auth/reset')
        logger.info("🔑 Credenciais descartadas na bridge")

    async def close(self) -> None:
        if self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None
