"""Hierarquia de erros do envpocket."""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .entries import DeleteResult


class ErrorKind(str, Enum):
    """Categorias de falha expostas às camadas superiores (CLI)."""

    NOT_FOUND = "not_found"
    INVALID_KEY = "invalid_key"
    FILE_READ = "file_read"
    STORE_FAILURE = "store_failure"
    INVALID_FORMAT = "invalid_format"
    INVALID_HEADER = "invalid_header"
    CORRUPTED = "corrupted"
    DECRYPTION_FAILED = "decryption_failed"
    PARSE_ERROR = "parse_error"


class EnvPocketError(Exception):
    """Erro base do envpocket."""

    kind: ErrorKind = ErrorKind.STORE_FAILURE


class NotFoundError(EnvPocketError):
    """Chave, vault ou versão inexistente no escopo ativo."""

    kind = ErrorKind.NOT_FOUND


class InvalidVersionIndexError(NotFoundError):
    """Índice de versão fora do histórico disponível."""

    def __init__(self, key: str, index: int, available: int):
        super().__init__(
            f"Índice de versão inválido para '{key}': {index}. "
            f"Versões disponíveis no histórico: {available}"
        )
        self.key = key
        self.index = index
        self.available = available


class InvalidKeyError(EnvPocketError):
    kind = ErrorKind.INVALID_KEY


class FileReadError(EnvPocketError):
    kind = ErrorKind.FILE_READ


class StoreFailureError(EnvPocketError):
    """Falha opaca do armazenamento seguro.

    Attributes:
        status: Código de status devolvido pelo armazenamento
    """

    kind = ErrorKind.STORE_FAILURE

    def __init__(self, status: int, message: Optional[str] = None):
        super().__init__(message or f"Falha no armazenamento seguro (status {status})")
        self.status = status


class BulkDeleteError(EnvPocketError):
    """Remoção por padrão concluída apenas parcialmente."""

    kind = ErrorKind.STORE_FAILURE

    def __init__(self, result: "DeleteResult"):
        failed = ", ".join(sorted(result.failures))
        super().__init__(
            f"Falha ao remover {len(result.failures)} chave(s): {failed}. "
            f"Removidas com sucesso: {len(result.keys)}"
        )
        self.result = result


class ExportError(EnvPocketError):
    """Erro base do formato de exportação."""


class InvalidFormatError(ExportError):
    kind = ErrorKind.INVALID_FORMAT


class InvalidHeaderError(ExportError):
    kind = ErrorKind.INVALID_HEADER


class CorruptedBundleError(ExportError):
    kind = ErrorKind.CORRUPTED


class DecryptionFailedError(ExportError):
    """Senha incorreta ou conteúdo adulterado (indistinguíveis no AES-GCM)."""

    kind = ErrorKind.DECRYPTION_FAILED


class BundleParseError(ExportError):
    kind = ErrorKind.PARSE_ERROR
