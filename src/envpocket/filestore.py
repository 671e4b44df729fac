"""Armazenamento seguro em arquivo, cifrado em repouso com Fernet.

Formato do arquivo (JSON):
    {"format": "envpocket-store", "version": 1,
     "salt": "<base64>", "iterations": 100000, "token": "<token Fernet>"}

O token Fernet (AES-128 CBC + HMAC) cifra o mapa de itens
``{conta: {"data": <base64>, "label": ..., "comment": ...}}``. A chave Fernet
é derivada da senha mestra com PBKDF2-HMAC-SHA256.
"""

import base64
import binascii
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .store import StoredItem, StoreItem, StoreStatus, is_own_account
from .utils import locked_file

FORMAT_NAME = "envpocket-store"
FORMAT_VERSION = 1
SALT_SIZE = 16
DEFAULT_KDF_ITERATIONS = 100_000

ItemMap = Dict[str, Dict[str, Any]]


class _StoreFileError(Exception):
    def __init__(self, status: StoreStatus, message: str):
        super().__init__(message)
        self.status = status


class FileSecureStore:
    """Adaptador ``SecureStore`` persistido em um único arquivo cifrado.

    Cada escrita relê e regrava o documento inteiro sob lock exclusivo do
    arquivo (lock de melhor esforço; não é garantido em todos os sistemas).

    Attributes:
        path: Caminho do arquivo do armazenamento
        kdf_iterations: Iterações PBKDF2 usadas ao criar um arquivo novo
    """

    def __init__(
        self,
        path: str | Path,
        passphrase: str,
        kdf_iterations: int = DEFAULT_KDF_ITERATIONS,
        logger: Optional[logging.Logger] = None,
    ):
        if not passphrase:
            raise ValueError("A senha mestra do armazenamento não pode ser vazia")
        self.path = Path(path).expanduser()
        self.kdf_iterations = kdf_iterations
        self._passphrase = bytearray(passphrase.encode("utf-8"))
        self._logger = logger or logging.getLogger(__name__)
        self._fernet_cache: Dict[Tuple[bytes, int], Fernet] = {}

    def _derive_fernet(self, salt: bytes, iterations: int) -> Fernet:
        """Deriva (com cache) a chave Fernet para um salt."""
        cache_key = (salt, iterations)
        if cache_key in self._fernet_cache:
            return self._fernet_cache[cache_key]

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        derived = kdf.derive(bytes(self._passphrase))
        fernet = Fernet(base64.urlsafe_b64encode(derived))
        self._fernet_cache[cache_key] = fernet
        return fernet

    def _decode_document(self, text: str) -> Tuple[ItemMap, bytes, int]:
        """Decifra o documento; arquivo vazio equivale a armazenamento vazio."""
        if not text.strip():
            return {}, os.urandom(SALT_SIZE), self.kdf_iterations

        try:
            document = json.loads(text)
            if document.get("format") != FORMAT_NAME:
                raise ValueError(f"formato desconhecido: {document.get('format')!r}")
            salt = base64.b64decode(document["salt"], validate=True)
            iterations = int(document["iterations"])
            if iterations <= 0:
                raise ValueError(f"iterações inválidas: {iterations}")
            token = document["token"].encode("ascii")
        except (ValueError, KeyError, TypeError, AttributeError, binascii.Error) as e:
            raise _StoreFileError(StoreStatus.IO_ERROR, f"Arquivo de armazenamento inválido: {e}")

        try:
            plaintext = self._derive_fernet(salt, iterations).decrypt(token)
        except InvalidToken:
            raise _StoreFileError(
                StoreStatus.AUTH_FAILED, "Senha mestra incorreta ou armazenamento adulterado"
            )

        try:
            items = json.loads(plaintext)
            if not isinstance(items, dict) or not all(isinstance(v, dict) for v in items.values()):
                raise ValueError("mapa de itens esperado")
        except ValueError as e:
            raise _StoreFileError(StoreStatus.IO_ERROR, f"Conteúdo do armazenamento inválido: {e}")
        return items, salt, iterations

    def _encode_document(self, items: ItemMap, salt: bytes, iterations: int) -> str:
        plaintext = json.dumps(items, sort_keys=True).encode("utf-8")
        token = self._derive_fernet(salt, iterations).encrypt(plaintext)
        document = {
            "format": FORMAT_NAME,
            "version": FORMAT_VERSION,
            "salt": base64.b64encode(salt).decode("ascii"),
            "iterations": iterations,
            "token": token.decode("ascii"),
        }
        return json.dumps(document, indent=2) + "\n"

    def _read_items(self) -> ItemMap:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise _StoreFileError(StoreStatus.IO_ERROR, f"Falha ao ler {self.path}: {e}")
        except UnicodeDecodeError as e:
            raise _StoreFileError(StoreStatus.IO_ERROR, f"Arquivo de armazenamento inválido: {e}")
        items, _, _ = self._decode_document(text)
        return items

    def _mutate(self, account: str, record: Optional[Dict[str, Any]]) -> int:
        """Grava (ou remove, se ``record`` for None) um item sob lock."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with locked_file(self.path) as f:
                f.seek(0)
                try:
                    text = f.read()
                except UnicodeDecodeError as e:
                    raise _StoreFileError(
                        StoreStatus.IO_ERROR, f"Arquivo de armazenamento inválido: {e}"
                    )
                items, salt, iterations = self._decode_document(text)
                if record is None:
                    if items.pop(account, None) is None:
                        return StoreStatus.ITEM_NOT_FOUND
                else:
                    items[account] = record
                f.seek(0)
                f.truncate()
                f.write(self._encode_document(items, salt, iterations))
        except _StoreFileError as e:
            self._logger.error(str(e))
            return e.status
        except OSError as e:
            self._logger.error(f"Falha ao gravar {self.path}: {e}")
            return StoreStatus.IO_ERROR
        return StoreStatus.SUCCESS

    def put(
        self,
        account: str,
        data: bytes,
        label: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> int:
        if not account:
            return StoreStatus.PARAM
        record = {
            "data": base64.b64encode(data).decode("ascii"),
            "label": label,
            "comment": comment,
        }
        return self._mutate(account, record)

    def get(self, account: str) -> Tuple[Optional[StoredItem], int]:
        try:
            items = self._read_items()
        except _StoreFileError as e:
            self._logger.error(str(e))
            return None, e.status

        record = items.get(account)
        if record is None:
            return None, StoreStatus.ITEM_NOT_FOUND
        try:
            data = base64.b64decode(record["data"], validate=True)
        except (KeyError, TypeError, binascii.Error):
            return None, StoreStatus.IO_ERROR
        return StoredItem(account, data, record.get("label"), record.get("comment")), StoreStatus.SUCCESS

    def delete(self, account: str) -> int:
        if not self.path.exists():
            return StoreStatus.ITEM_NOT_FOUND
        return self._mutate(account, None)

    def list_all(self) -> Tuple[List[StoreItem], int]:
        try:
            items = self._read_items()
        except _StoreFileError as e:
            self._logger.error(str(e))
            return [], e.status

        listed = [
            StoreItem(account, record.get("label"), record.get("comment"))
            for account, record in sorted(items.items())
            if is_own_account(account)
        ]
        return listed, StoreStatus.SUCCESS

    def cleanup(self) -> None:
        """Zera a senha mestra em memória e descarta as chaves derivadas.

        Segurança de melhor esforço: o coletor de lixo do Python pode manter
        cópias. A instância não deve ser usada depois desta chamada.
        """
        for i in range(len(self._passphrase)):
            self._passphrase[i] = 0
        self._fernet_cache.clear()
