# -*- coding: utf-8 -*-
"""
WhatsApp Module
Interface de mensagens e cliente da bridge Baileys
"""

from .messaging import (
    CallReceived,
    ConnectConfig,
    ConnectionUpdate,
    CredentialsUpdate,
    DisconnectReason,
    MessageReceived,
    MessagingClient,
    MessagingSession,
    SessionEvent,
    extract_text,
)
from .baileys_bridge import BaileysBridgeClient, BaileysBridgeSession, parse_frame

__all__ = [
    'CallReceived', 'ConnectConfig', 'ConnectionUpdate', 'CredentialsUpdate',
    'DisconnectReason', 'MessageReceived', 'MessagingClient', 'MessagingSession',
    'SessionEvent', 'extract_text',
    'BaileysBridgeClient', 'BaileysBridgeSession', 'parse_frame',
]
