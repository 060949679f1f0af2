# -*- coding: utf-8 -*-
"""
Exceptions - Hierarquia de Exceções do Bot
Erros de configuração, armazenamento e sessão WhatsApp

Autor: ContactBot Team
Versão: 1.0.0
"""

from typing import Optional, Dict, Any


class BotException(Exception):
    """
    Exceção base para todos os erros do bot

    Attributes:
        message: Mensagem de erro
        error_code: Código de erro opcional
        details: Detalhes adicionais do erro
        module: Módulo onde o erro ocorreu
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        module: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.module = module

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"[{self.error_code}]")
        if self.module:
            parts.append(f"(módulo: {self.module})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Converte exceção para dicionário"""
        return {
            'error': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code,
            'module': self.module,
            'details': self.details
        }


class ConfigurationException(BotException):
    """Erro de configuração"""
    pass


class StorageException(BotException):
    """Erro ao ler ou gravar dados persistidos"""

    def __init__(self, path: str, message: str):
        super().__init__(
            message=message,
            error_code='STORAGE_ERROR',
            details={'path': path},
            module='contacts'
        )
        self.path = path


class MessagingException(BotException):
    """Erro na camada de mensagens (WhatsApp)"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            module='whatsapp'
        )


class BridgeException(MessagingException):
    """Erro na chamada à bridge Baileys"""

    def __init__(
        self,
        endpoint: str,
        status_code: Optional[int] = None,
        response: Optional[str] = None,
        message: Optional[str] = None
    ):
        msg = message or f"Erro na bridge WhatsApp ({endpoint})"
        if status_code:
            msg += f" (status: {status_code})"
        super().__init__(
            message=msg,
            error_code=f"BRIDGE_{status_code or 'UNREACHABLE'}",
            details={
                'endpoint': endpoint,
                'status_code': status_code,
                'response': response
            }
        )
        self.endpoint = endpoint
        self.status_code = status_code
        self.response = response


class SessionUnavailableException(MessagingException):
    """Nenhuma sessão WhatsApp ativa para enviar mensagens"""

    def __init__(self, action: str):
        super().__init__(
            message=f"Sessão WhatsApp indisponível para {action}",
            error_code='SESSION_UNAVAILABLE',
            details={'action': action}
        )
        self.action = action
