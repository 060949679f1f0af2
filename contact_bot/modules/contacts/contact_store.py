# -*- coding: utf-8 -*-
"""
Contact Store - Armazenamento dos contatos recebidos pelo formulário do site
Coleção limitada (mais recentes primeiro) persistida em JSON.

Autor: ContactBot Team
"""

import json
import os
import tempfile
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from contact_bot.core.exceptions import StorageException
from contact_bot.core.logger import get_logger

logger = get_logger(__name__)

MAX_CONTACTS_STORED = 50
CONTACTS_FILENAME = "contacts.json"


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"timestamp inválido: {value!r}")
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Contact:
    """Um contato enviado pelo formulário."""
    id: str
    name: str
    email: str
    subject: Optional[str]
    message: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Contact":
        return cls(
            id=str(d["id"]),
            name=d["name"],
            email=d["email"],
            subject=d.get("subject"),
            message=d["message"],
            timestamp=_parse_timestamp(d["timestamp"]),
        )


@dataclass(frozen=True)
class ContactStats:
    total: int
    last_entry: Optional[datetime]


class ContactStore:
    """
    Coleção ordenada de contatos, do mais novo para o mais antigo.

    Toda mutação regrava o arquivo inteiro (escrita atômica via arquivo
    temporário + os.replace). Nenhum método é async: a sequência
    ler-modificar-persistir nunca cede o event loop.

    Uso:
        store = ContactStore(Path("data"))
        store.load()
        contact = store.add({"name": "A", "email": "a@x.com", ...})
    """

    def __init__(self, data_dir: Path, max_contacts: int = MAX_CONTACTS_STORED):
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / CONTACTS_FILENAME
        self.max_contacts = max_contacts
        self._contacts: List[Contact] = []

    def __len__(self) -> int:
        return len(self._contacts)

    def load(self) -> List[Contact]:
        """Carrega contatos do disco; cria arquivo vazio se não existir."""
        if not self.path.exists():
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                self.path.write_text("[]", encoding="utf-8")
                logger.info(f"📁 Arquivo de contatos criado em {self.path}")
            except OSError as e:
                logger.error(f"❌ Não foi possível criar {self.path}: {e}")
            self._contacts = []
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ValueError("conteúdo não é uma lista")
            contacts = [Contact.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"❌ Falha ao carregar contatos de {self.path}: {e} (iniciando vazio)")
            contacts = []

        self._contacts = contacts[: self.max_contacts]
        logger.info(f"📇 {len(self._contacts)} contatos carregados")
        return list(self._contacts)

    def _write(self) -> None:
        payload = json.dumps(
            [c.to_dict() for c in self._contacts], ensure_ascii=False, indent=2
        )
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), prefix=".contacts-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageException(str(self.path), f"Falha ao salvar contatos: {e}") from e

    def _persist(self) -> None:
        try:
            self._write()
        except StorageException as e:
            logger.error(f"❌ {e}")

    def add(self, fields: Dict[str, Any]) -> Contact:
        """Cria, insere no topo, descarta o mais antigo se passar do limite e persiste."""
        contact = Contact(
            id=str(uuid.uuid4()),
            name=fields.get("name"),
            email=fields.get("email"),
            subject=fields.get("subject") or None,
            message=fields.get("message"),
            timestamp=datetime.now(timezone.utc),
        )
        self._contacts.insert(0, contact)
        while len(self._contacts) > self.max_contacts:
            evicted = self._contacts.pop()
            logger.debug(f"Contato mais antigo descartado: {evicted.id}")
        self._persist()
        logger.info(f"📩 Novo contato {contact.id} de {contact.email}")
        return contact

    def recent(self, n: int = 5) -> List[Contact]:
        return list(self._contacts[: max(n, 0)])

    def all(self) -> List[Contact]:
        return list(self._contacts)

    def stats(self) -> ContactStats:
        last = self._contacts[0].timestamp if self._contacts else None
        return ContactStats(total=len(self._contacts), last_entry=last)

    def find_by_id(self, contact_id: str) -> Optional[Contact]:
        for contact in self._contacts:
            if contact.id == contact_id:
                return contact
        return None

    def delete_by_id(self, contact_id: str) -> Optional[Contact]:
        """Remove e retorna o contato; None (sem persistir) se não existir."""
        for index, contact in enumerate(self._contacts):
            if contact.id == contact_id:
                removed = self._contacts.pop(index)
                self._persist()
                logger.info(f"🗑️ Contato {contact_id} removido")
                return removed
        return None

    def delete_all(self) -> int:
        count = len(self._contacts)
        self._contacts = []
        self._persist()
        logger.info(f"🗑️ Todos os contatos removidos ({count})")
        return count
