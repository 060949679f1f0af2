# -*- coding: utf-8 -*-
"""
Command Router - Comandos de texto do bot
/help, /status e a família /contact (recent, stats, delete, search)

Autor: ContactBot Team
Versão: 1.0.0
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from .logger import get_logger
from contact_bot.modules.contacts.contact_store import Contact, ContactStore

logger = get_logger(__name__)

RECENT_LIMIT = 5
CONTACT_PREFIX = "/contact"

HELP_TEXT = (
    "🤖 *Bot Help Menu*\n\n"
    "📍 *Commands List:*\n\n"
    "1️⃣ /contact - Contact management commands\n"
    "   • /contact recent - Show recent contacts\n"
    "   • /contact stats - Show contact statistics\n"
    "   • /contact delete <id|all> - Delete contacts\n"
    "   • /contact search <id> - Search for a contact\n\n"
    "2️⃣ /help - Show this menu"
)

CONTACT_MENU_TEXT = (
    "📋 *Contact Command Menu*\n\n"
    "• /contact recent — Show last 5 contacts\n"
    "• /contact stats — Contact statistics\n"
    "• /contact delete <id|all> — Delete specific or all contacts\n"
    "• /contact search <id> — Search contact by ID"
)

FALLBACK_TEXT = (
    "🤖 I'm a simple bot. Here's what I can do:\n\n"
    "/help - Show help menu\n"
    "/contact - Contact commands\n"
    "/status - Check bot status\n\n"
    "Try one of these commands!"
)


class StatusSource(Protocol):
    """O que o roteador precisa saber da sessão (SessionSupervisor satisfaz)"""

    @property
    def is_connected(self) -> bool: ...

    @property
    def uptime_seconds(self) -> float: ...

    async def send_text(self, recipient: str, text: str) -> None: ...


def format_timestamp(ts: Optional[datetime]) -> str:
    if ts is None:
        return "None"
    return ts.astimezone().strftime('%Y-%m-%d %H:%M:%S')


def format_contact(contact: Contact) -> str:
    return (
        f"🆔 *ID:* {contact.id}\n"
        f"👤 *Name:* {contact.name}\n"
        f"📧 *Email:* {contact.email}\n"
        f"📝 *Subject:* {contact.subject or 'N/A'}\n"
        f"💬 *Message:* {contact.message}\n"
        f"🕒 *Time:* {format_timestamp(contact.timestamp)}"
    )


def format_uptime(seconds: float) -> str:
    seconds = max(int(seconds), 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m"


class CommandRouter:
    """
    Mapeia o texto recebido para uma resposta

    handle() só monta o texto; dispatch() faz o único envio.

    Uso:
        router = CommandRouter(store, supervisor)
        supervisor.set_message_handler(router.dispatch)
    """

    def __init__(self, store: ContactStore, status: StatusSource):
        self.store = store
        self.status = status
        # Comandos exatos: a mensagem inteira precisa ser o comando
        self._commands: Dict[str, Callable[[List[str]], str]] = {
            '/help': self._help,
            '/status': self._status,
        }
        self._contact_commands: Dict[str, Callable[[List[str]], str]] = {
            'recent': self._contact_recent,
            'stats': self._contact_stats,
            'delete': self._contact_delete,
            'search': self._contact_search,
        }

    @staticmethod
    def normalize(text: str) -> str:
        return (text or '').strip().lower()

    def handle(self, text: str) -> str:
        """Retorna a resposta em texto para a mensagem recebida"""
        normalized = self.normalize(text)
        parts = normalized.split()

        handler = self._commands.get(normalized)
        if handler is not None:
            return handler(parts)
        if normalized.startswith(CONTACT_PREFIX):
            return self._contact(parts)
        return FALLBACK_TEXT

    async def dispatch(self, sender: str, text: str):
        """Trata a mensagem e envia a resposta ao remetente"""
        reply = self.handle(text)
        await self.status.send_text(sender, reply)

    # ========== Comandos ==========

    def _help(self, parts: List[str]) -> str:
        return HELP_TEXT

    def _status(self, parts: List[str]) -> str:
        connected = 'Yes' if self.status.is_connected else 'No'
        return (
            "🤖 *Bot Status*\n\n"
            "✅ Online\n"
            f"⏱️ Uptime: {format_uptime(self.status.uptime_seconds)}\n"
            f"📱 Connected: {connected}"
        )

    def _contact(self, parts: List[str]) -> str:
        sub = parts[1] if len(parts) > 1 else None
        handler = self._contact_commands.get(sub)
        if handler is None:
            return CONTACT_MENU_TEXT
        return handler(parts)

    def _contact_recent(self, parts: List[str]) -> str:
        recent = self.store.recent(RECENT_LIMIT)
        if not recent:
            return "📭 No recent contact data found."
        body = "\n\n".join(format_contact(c) for c in recent)
        return f"📥 *Recent Contacts*\n\n{body}"

    def _contact_stats(self, parts: List[str]) -> str:
        stats = self.store.stats()
        return (
            "📊 *Contact Stats*\n\n"
            f"• Total Contacts: {stats.total}\n"
            f"• Last Entry: {format_timestamp(stats.last_entry)}"
        )

    def _contact_delete(self, parts: List[str]) -> str:
        if len(parts) < 3:
            return "❌ *Usage:* /contact delete <id|all>"

        target = parts[2]
        if target == 'all':
            count = self.store.delete_all()
            logger.info(f"Contatos apagados via WhatsApp: {count}")
            return f"✅ All contacts deleted ({count} removed)"

        removed = self.store.delete_by_id(target)
        if removed is None:
            return f"❌ Contact with ID *{target}* not found."
        return (
            "🗑️ *Contact Deleted*\n\n"
            f"🆔 *ID:* {removed.id}\n"
            f"👤 *Name:* {removed.name}\n"
            f"📧 *Email:* {removed.email}"
        )

    def _contact_search(self, parts: List[str]) -> str:
        if len(parts) < 3:
            return "❌ *Usage:* /contact search <id>"

        target = parts[2]
        found = self.store.find_by_id(target)
        if found is None:
            return f"🔍 Contact with ID *{target}* not found."
        return f"🔍 *Contact Found*\n\n{format_contact(found)}"
