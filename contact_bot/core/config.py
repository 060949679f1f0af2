# -*- coding: utf-8 -*-
"""
Config - Gerenciador de Configurações
Carrega e valida configurações de .env, variáveis de ambiente e config.json

Autor: ContactBot Team
Versão: 1.0.0
"""

import os
import json
from pathlib import Path
from typing import Any, Optional, Dict

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .logger import get_logger
from .exceptions import ConfigurationException

logger = get_logger(__name__)

# Raiz do projeto (onde ficam .env, config.json e data/)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Nomes alternativos aceitos (herdados do deploy no Render)
ENV_ALIASES = {
    'ENVIRONMENT': ('NODE_ENV',),
    'SERVER_NAME': ('RENDER_SERVICE_NAME',),
}


class SettingsSchema(BaseModel):
    """Schema de validação para configurações"""
    ADMIN_JID: Optional[str] = None
    APP_URL: Optional[str] = None
    PORT: int = Field(default=3000, ge=1, le=65535)
    ENVIRONMENT: str = Field(default="development")
    SERVER_NAME: str = Field(default="Local")
    WHATSAPP_API_URL: str = Field(default="http://localhost:3001")
    DATA_DIR: Optional[str] = None
    LOG_LEVEL: str = Field(default="INFO")

    MAX_RECONNECT_ATTEMPTS: int = Field(default=10, ge=0)
    HEARTBEAT_INTERVAL: float = Field(default=60.0, gt=0)
    STALE_AFTER: float = Field(default=300.0, gt=0)
    KEEP_ALIVE_INTERVAL: float = Field(default=600.0, gt=0)

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level deve ser um de: {", ".join(valid_levels)}')
        return v.upper()

    @field_validator('ADMIN_JID', 'APP_URL', 'DATA_DIR')
    @classmethod
    def empty_as_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator('APP_URL', 'WHATSAPP_API_URL')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/') if v else v


class Config:
    """
    Gerenciador de configurações centralizado e validado

    Prioridade:
    1. overrides passados no construtor
    2. Variáveis de ambiente (inclui .env)
    3. config.json
    4. Defaults do schema
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        load_env: bool = True
    ):
        self._config: dict = {}
        self._env_loaded = False
        self.base_dir = BASE_DIR

        if load_env:
            self._load_env()
        self._load_json_config(config_path)
        if overrides:
            self._config.update(overrides)

        self.settings = self._validate_config(use_env=load_env, overrides=overrides or {})

    def _load_env(self):
        """Carrega variáveis do .env"""
        env_path = self.base_dir / '.env'

        if env_path.exists():
            load_dotenv(env_path)
            self._env_loaded = True
            logger.debug(f"✅ .env carregado de {env_path}")
        else:
            logger.debug(f"Arquivo .env não encontrado em {env_path}; usando ambiente do processo")

    def _load_json_config(self, config_path: Optional[str] = None):
        """Carrega config.json"""
        json_path = Path(config_path) if config_path else self.base_dir / 'config.json'

        if json_path.exists():
            try:
                with open(json_path, 'r', encoding='utf-8') as f:
                    self._config.update(json.load(f))
                logger.debug("✅ config.json carregado")
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"❌ Erro ao carregar config.json: {e}")

    def _env_value(self, key: str) -> Optional[str]:
        for name in (key,) + ENV_ALIASES.get(key, ()):
            value = os.getenv(name)
            if value is not None:
                return value
        return None

    def _validate_config(self, use_env: bool, overrides: Dict[str, Any]) -> SettingsSchema:
        """Monta e valida as configurações conhecidas pelo schema"""
        data: Dict[str, Any] = {}
        for key in SettingsSchema.model_fields:
            if key in overrides:
                data[key] = overrides[key]
                continue
            env_value = self._env_value(key) if use_env else None
            if env_value is not None:
                data[key] = env_value
            elif key in self._config:
                data[key] = self._config[key]

        try:
            return SettingsSchema(**data)
        except ValidationError as e:
            raise ConfigurationException(
                f"Erro de validação de configuração: {e}",
                error_code='INVALID_CONFIG',
                details={'errors': e.errors(include_url=False)}
            )

    def get(self, key: str, default: Any = None) -> Any:
        """
        Obtém valor de configuração

        Chaves do schema retornam o valor validado; demais chaves seguem
        ambiente > config.json > default.
        """
        if key in SettingsSchema.model_fields:
            value = getattr(self.settings, key)
            return default if value is None else value

        env_value = os.getenv(key)
        if env_value is not None:
            return env_value
        return self._config.get(key, default)

    @property
    def data_dir(self) -> Path:
        """Diretório de dados persistidos (contacts.json)"""
        if self.settings.DATA_DIR:
            return Path(self.settings.DATA_DIR)
        return self.base_dir / 'data'

    def get_all(self) -> dict:
        """Retorna todas as configurações validadas"""
        return self.settings.model_dump()

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

