# -*- coding: utf-8 -*-
"""
Logger - Sistema de Logging Estruturado
Logging com contexto e formatação consistente

Autor: ContactBot Team
Versão: 1.0.0
"""

import logging
import os
import sys
import json
from typing import Optional, Dict, Any
from datetime import datetime
from pathlib import Path


# Atributos padrão de LogRecord que não entram no JSON estruturado
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'taskName',
    'exc_info', 'exc_text', 'stack_info', 'context',
])

PLAIN_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


class StructuredFormatter(logging.Formatter):
    """
    Formatter que produz logs estruturados em JSON
    """

    def format(self, record: logging.LogRecord) -> str:
        """Formata log como JSON estruturado"""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        context = getattr(record, 'context', None)
        if context:
            log_data['context'] = context

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Formatter colorido para terminal
    """

    # Cores ANSI
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        """Formata log com cores"""
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        message = record.getMessage()

        context_str = ""
        context = getattr(record, 'context', None)
        if context:
            context_str = f" | {json.dumps(context, ensure_ascii=False, default=str)}"

        formatted = (
            f"{color}[{timestamp}] {record.levelname:8s}{reset} | "
            f"{record.name} | {message}{context_str}"
        )

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class BotLogger:
    """
    Logger com contexto para o bot

    Envolve um logging.Logger; a saída é decidida pelos handlers do root
    configurados em setup_logging().
    """

    def __init__(self, name: str, level: Optional[int] = None):
        self.name = name
        self.logger = logging.getLogger(name)
        if level is not None:
            self.logger.setLevel(level)

    def _log_with_context(
        self,
        level: int,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        """Loga com contexto adicional"""
        exc_info = kwargs.pop('exc_info', False)
        extra = {'context': context or {}}
        extra.update(kwargs)
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """Log de debug"""
        self._log_with_context(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """Log de informação"""
        self._log_with_context(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs):
        """Log de aviso"""
        self._log_with_context(logging.WARNING, message, context, **kwargs)

    def error(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
        **kwargs
    ):
        """Log de erro"""
        self._log_with_context(logging.ERROR, message, context, exc_info=exc_info, **kwargs)

    def critical(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
        **kwargs
    ):
        """Log crítico"""
        self._log_with_context(logging.CRITICAL, message, context, exc_info=exc_info, **kwargs)


def _level_from_env() -> int:
    level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    return getattr(logging, level_str, logging.INFO)


def get_logger(name: str, level: Optional[int] = None) -> BotLogger:
    """
    Cria ou retorna logger com suporte a contexto

    Args:
        name: Nome do logger (geralmente __name__)
        level: Nível de log (opcional, herda do root se omitido)

    Returns:
        Logger configurado
    """
    return BotLogger(name, level)


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Path] = None,
    structured: bool = False
):
    """
    Configura logging global do bot

    Args:
        level: Nível de log (default: LOG_LEVEL do ambiente)
        log_file: Arquivo para logs
        structured: Formato JSON no arquivo
    """
    if level is None:
        level = _level_from_env()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if sys.stdout.isatty():
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt='%H:%M:%S'))

    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)

        if structured:
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(PLAIN_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
            )

        root_logger.addHandler(file_handler)

    # Reduz logging verboso
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
