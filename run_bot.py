#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContactBot - Entry Point Principal
Sobe a sessão WhatsApp e o servidor HTTP no mesmo event loop

Autor: ContactBot Team
Versão: 1.0.0

Uso:
    python run_bot.py              # Inicia bot + servidor HTTP (PORT, padrão 3000)
    python run_bot.py --port 8080  # Porta explícita
    python run_bot.py --debug      # Log em nível DEBUG
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import uvicorn

from contact_bot.core.bot import ContactBot
from contact_bot.core.config import Config
from contact_bot.core.exceptions import ConfigurationException
from contact_bot.core.logger import get_logger, setup_logging
from contact_bot.interfaces.web import create_app

logger = get_logger("contact_bot")


def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict):
    """Erros não tratados em tasks são logados; o processo continua de pé."""
    exc = context.get('exception')
    message = context.get('message', 'erro desconhecido')
    if exc is not None:
        logger.error(f"⚠️ Erro não tratado no event loop: {message}", exc_info=exc)
    else:
        logger.error(f"⚠️ Erro não tratado no event loop: {message}")


async def serve(config: Config, host: str, port: int):
    """Inicia o bot e o servidor HTTP; encerra o bot quando o servidor parar."""
    asyncio.get_running_loop().set_exception_handler(_handle_loop_exception)

    bot = ContactBot(config)
    app = create_app(bot.supervisor, bot.store)
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))

    try:
        await bot.start()
        logger.info(f"🌐 Servidor HTTP em http://{host}:{port}")
        await server.serve()
    finally:
        await bot.stop()


def main(argv=None) -> int:
    """Função principal"""
    parser = argparse.ArgumentParser(
        description='🤖 ContactBot - formulário de contato via WhatsApp',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Exemplos:
    python run_bot.py                  # Usa .env / variáveis de ambiente
    python run_bot.py --port 8080      # Sobrescreve PORT
    python run_bot.py --log-file logs/bot.jsonl --structured
        '''
    )
    parser.add_argument('--host', default='0.0.0.0', help='Interface do servidor HTTP')
    parser.add_argument('-p', '--port', type=int, help='Porta HTTP (sobrescreve PORT)')
    parser.add_argument('-c', '--config', help='Caminho do config.json')
    parser.add_argument('-d', '--debug', action='store_true', help='Modo debug')
    parser.add_argument('--log-file', type=Path, help='Arquivo de log')
    parser.add_argument('--structured', action='store_true', help='Log do arquivo em JSON')

    args = parser.parse_args(argv)

    overrides = {}
    if args.port:
        overrides['PORT'] = args.port
    if args.debug:
        overrides['LOG_LEVEL'] = 'DEBUG'

    try:
        config = Config(config_path=args.config, overrides=overrides)
    except ConfigurationException as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    setup_logging(
        level=getattr(logging, config.settings.LOG_LEVEL),
        log_file=args.log_file,
        structured=args.structured
    )

    try:
        asyncio.run(serve(config, args.host, config.settings.PORT))
    except KeyboardInterrupt:
        logger.info("👋 Até logo!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
