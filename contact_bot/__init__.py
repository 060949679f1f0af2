# -*- coding: utf-8 -*-
"""
ContactBot
Bot de WhatsApp que recebe o formulário de contato do site e responde comandos do admin
"""

__version__ = '1.0.0'
