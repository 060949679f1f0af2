# -*- coding: utf-8 -*-
"""
Contacts Module
Contatos recebidos pelo formulário do site
"""

from .contact_store import Contact, ContactStats, ContactStore, MAX_CONTACTS_STORED

__all__ = ['Contact', 'ContactStats', 'ContactStore', 'MAX_CONTACTS_STORED']
