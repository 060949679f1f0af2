# -*- coding: utf-8 -*-
"""
ContactBot Core Package
Configuração, logging, sessão WhatsApp e comandos

Os módulos são importados diretamente (ex.: contact_bot.core.bot) para
que os módulos de contatos e WhatsApp possam usar core.exceptions.
"""

__version__ = '1.0.0'
