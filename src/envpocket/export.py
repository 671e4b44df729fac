"""Formato de exportação cifrado (ENVPOCKET_V1) para compartilhar entradas.

Layout binário:
    MAGIC("ENVPOCKET_V1", 12 bytes) || salt(32) || nonce(12) || ciphertext || tag(16)

A chave AES-256-GCM é derivada da senha com PBKDF2-HMAC-SHA256 (100.000
iterações). O texto cifrado é um objeto JSON:

    {"data": "<base64>",
     "metadata": {"key": ..., "vault": ..., "originalPath": ...,
                  "lastModified": ...,
                  "history": [{"data": ..., "originalPath": ..., "timestamp": ...}]}}
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import (
    BundleParseError,
    CorruptedBundleError,
    DecryptionFailedError,
    InvalidFormatError,
    InvalidHeaderError,
)

MAGIC = b"ENVPOCKET_V1"
SALT_SIZE = 32
NONCE_SIZE = 12  # 96 bits, padrão do AES-GCM
TAG_SIZE = 16
KEY_SIZE = 32  # AES-256
PBKDF2_ITERATIONS = 100_000
FILE_EXTENSION = ".envpocket"


@dataclass
class ExportedVersion:
    """Versão de histórico dentro de um pacote exportado."""

    data: bytes
    timestamp: str
    original_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "data": base64.b64encode(self.data).decode("ascii"),
            "timestamp": self.timestamp,
        }
        if self.original_path is not None:
            entry["originalPath"] = self.original_path
        return entry


@dataclass
class ExportRecord:
    """Conteúdo decifrado de um pacote: valor corrente, metadados e histórico.

    Attributes:
        data: Conteúdo corrente
        key: Chave lógica no momento da exportação
        vault: Vault de origem (apenas informativo)
        original_path: Rótulo de origem (caminho do arquivo ou valor direto)
        last_modified: Comentário "Last modified: ..." da entrada corrente
        history: Versões de histórico, mais recente primeiro
    """

    data: bytes
    key: Optional[str] = None
    vault: Optional[str] = None
    original_path: Optional[str] = None
    last_modified: Optional[str] = None
    history: List[ExportedVersion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {}
        if self.key is not None:
            metadata["key"] = self.key
        if self.vault is not None:
            metadata["vault"] = self.vault
        if self.original_path is not None:
            metadata["originalPath"] = self.original_path
        if self.last_modified is not None:
            metadata["lastModified"] = self.last_modified
        if self.history:
            metadata["history"] = [version.to_dict() for version in self.history]
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "metadata": metadata,
        }

    @classmethod
    def from_dict(cls, obj: Any) -> "ExportRecord":
        """Reconstrói o registro a partir do JSON decifrado.

        Entradas de histórico incompletas são ignoradas.

        Raises:
            BundleParseError: Se a estrutura principal for inválida
        """
        if not isinstance(obj, dict):
            raise BundleParseError("Falha ao interpretar os dados decifrados")
        data = _b64decode(obj.get("data"))
        metadata = obj.get("metadata")
        if data is None or not isinstance(metadata, dict):
            raise BundleParseError("Falha ao interpretar os dados decifrados")

        history = []
        raw_history = metadata.get("history")
        if isinstance(raw_history, list):
            for entry in raw_history:
                if not isinstance(entry, dict):
                    continue
                entry_data = _b64decode(entry.get("data"))
                timestamp = entry.get("timestamp")
                if entry_data is None or not isinstance(timestamp, str):
                    continue
                history.append(
                    ExportedVersion(
                        data=entry_data,
                        timestamp=timestamp,
                        original_path=_optional_str(entry.get("originalPath")),
                    )
                )

        return cls(
            data=data,
            key=_optional_str(metadata.get("key")),
            vault=_optional_str(metadata.get("vault")),
            original_path=_optional_str(metadata.get("originalPath")),
            last_modified=_optional_str(metadata.get("lastModified")),
            history=history,
        )


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _b64decode(value: Any) -> Optional[bytes]:
    if not isinstance(value, str):
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None


def derive_key(passphrase: str, salt: bytes) -> bytes:
    """Deriva a chave AES-256 da senha com PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def encode_bundle(record: ExportRecord, passphrase: str) -> bytes:
    """Serializa e cifra um registro no formato ENVPOCKET_V1.

    Args:
        record: Registro a exportar
        passphrase: Senha compartilhada com o destinatário

    Returns:
        bytes: Pacote completo, pronto para gravar em arquivo
    """
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    plaintext = json.dumps(record.to_dict(), indent=2, sort_keys=True).encode("utf-8")

    # AESGCM devolve ciphertext || tag, exatamente a cauda do layout
    sealed = AESGCM(derive_key(passphrase, salt)).encrypt(nonce, plaintext, None)
    return MAGIC + salt + nonce + sealed


def decode_bundle(blob: bytes, passphrase: str) -> ExportRecord:
    """Valida, decifra e interpreta um pacote ENVPOCKET_V1.

    Raises:
        InvalidFormatError: Pacote menor ou igual ao cabeçalho
        InvalidHeaderError: Cabeçalho diferente de ENVPOCKET_V1
        CorruptedBundleError: Pacote truncado (salt, nonce ou tag ausentes)
        DecryptionFailedError: Senha incorreta ou conteúdo adulterado
        BundleParseError: JSON decifrado com estrutura inválida
    """
    if len(blob) <= len(MAGIC):
        raise InvalidFormatError("Formato de arquivo cifrado inválido")
    if blob[: len(MAGIC)] != MAGIC:
        raise InvalidHeaderError(
            "Cabeçalho inválido. Este arquivo não parece ser uma exportação do envpocket."
        )

    body = blob[len(MAGIC):]
    if len(body) <= SALT_SIZE + NONCE_SIZE:
        raise CorruptedBundleError("Arquivo cifrado corrompido")

    salt = body[:SALT_SIZE]
    nonce = body[SALT_SIZE : SALT_SIZE + NONCE_SIZE]
    sealed = body[SALT_SIZE + NONCE_SIZE :]
    if len(sealed) <= TAG_SIZE:
        raise CorruptedBundleError("Arquivo cifrado corrompido")

    try:
        plaintext = AESGCM(derive_key(passphrase, salt)).decrypt(nonce, sealed, None)
    except InvalidTag:
        raise DecryptionFailedError("Falha ao decifrar: senha incorreta ou arquivo corrompido")

    try:
        obj = json.loads(plaintext)
    except (UnicodeDecodeError, ValueError):
        raise BundleParseError("Falha ao interpretar os dados decifrados")
    return ExportRecord.from_dict(obj)
