# -*- coding: utf-8 -*-
"""
Web Gateway
Endpoints HTTP do bot (formulário de contato, health, QR, wake)
"""

from .app import create_app

__all__ = ['create_app']
