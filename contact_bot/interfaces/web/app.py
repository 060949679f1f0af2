# -*- coding: utf-8 -*-
"""
Web Gateway - Aplicação FastAPI
Formulário de contato, health check, QR Code de pareamento e wake

Autor: ContactBot Team
Versão: 1.0.0
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from contact_bot.core.exceptions import BotException
from contact_bot.core.logger import get_logger
from contact_bot.core.supervisor import SessionSupervisor, qr_image_url
from contact_bot.modules.contacts.contact_store import Contact, ContactStore

logger = get_logger(__name__)

REQUIRED_CONTACT_FIELDS = ('name', 'email', 'subject', 'message')


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_contact_notification(contact: Contact) -> str:
    return (
        "📩 *New Contact*\n\n"
        f"🆔 ID: {contact.id}\n"
        f"👤 Name: {contact.name}\n"
        f"📧 Email: {contact.email}\n"
        f"📝 Subject: {contact.subject or 'N/A'}\n"
        f"💬 Message: {contact.message}"
    )


def missing_fields(body: Dict[str, Any]) -> list:
    missing = []
    for name in REQUIRED_CONTACT_FIELDS:
        value = body.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def create_app(supervisor: SessionSupervisor, store: ContactStore) -> FastAPI:
    """
    Monta o app HTTP ligado à sessão e ao armazenamento de contatos

    Args:
        supervisor: Dono da sessão WhatsApp (estado exposto em /health)
        store: Armazenamento dos contatos
    """
    app = FastAPI(title="Contact Bot", version="1.0.0")
    app.state.supervisor = supervisor
    app.state.store = store

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.error(f"Erro inesperado em {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={'error': 'Internal server error'})

    @app.post("/api/contact")
    async def api_contact(request: Request):
        """Recebe o formulário de contato do site."""
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JSONResponse(status_code=400, content={'error': 'Invalid JSON body'})

        if not isinstance(body, dict) or missing_fields(body):
            return JSONResponse(status_code=400, content={'error': 'Missing required fields'})

        try:
            contact = store.add(body)
        except (BotException, OSError, TypeError, ValueError) as e:
            logger.error(f"Contact API error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={'error': 'Internal server error'})

        await supervisor.notify_admin(format_contact_notification(contact))
        return {'success': True, 'id': contact.id}

    @app.get("/health")
    async def health():
        """Status do processo e da conexão WhatsApp."""
        state = supervisor.state
        return {
            'status': 'ok',
            'timestamp': _now_iso(),
            'uptime': supervisor.uptime_seconds,
            'whatsapp': 'connected' if supervisor.is_connected else 'disconnected',
            'lastActivity': state.last_activity_at.isoformat(),
        }

    @app.get("/qr")
    async def qr():
        """Redireciona para a imagem do QR Code pendente, se houver."""
        code = supervisor.state.pending_pairing_code
        if code:
            return RedirectResponse(qr_image_url(code))
        return {'message': 'No QR code available. Bot might be connected already.'}

    @app.get("/wake")
    async def wake():
        """Alvo dos pings de keep-alive."""
        return {
            'message': 'Bot is awake!',
            'timestamp': _now_iso(),
            'connected': supervisor.is_connected,
        }

    return app
