"""envpocket - Armazenamento seguro de segredos com histórico e vaults.

Este pacote fornece:
- Entradas (arquivos ou valores) com histórico automático de versões
- Vaults: namespaces isolados de chaves
- Operações em lote com curingas ('*' e '?')
- Exportação/importação cifradas (PBKDF2-HMAC-SHA256 + AES-256-GCM)
- Armazenamento em arquivo cifrado com Fernet
"""

__version__ = "0.1.0"

from .config import EnvPocketConfig
from .entries import (
    DIRECT_VALUE_LABEL,
    DeleteResult,
    Entry,
    EntryStore,
    ImportResult,
    KeyInfo,
    SaveResult,
    VaultSummary,
)
from .errors import (
    BulkDeleteError,
    BundleParseError,
    CorruptedBundleError,
    DecryptionFailedError,
    EnvPocketError,
    ErrorKind,
    ExportError,
    FileReadError,
    InvalidFormatError,
    InvalidHeaderError,
    InvalidKeyError,
    InvalidVersionIndexError,
    NotFoundError,
    StoreFailureError,
)
from .export import ExportedVersion, ExportRecord, decode_bundle, encode_bundle
from .filestore import FileSecureStore
from .history import HistoryVersion, history_for
from .store import MemorySecureStore, SecureStore, StoredItem, StoreItem, StoreStatus
from .wildcard import WildcardMatcher, compile_pattern

__all__ = [
    # Classes principais
    "EntryStore",
    "EnvPocketConfig",
    # Armazenamento
    "SecureStore",
    "MemorySecureStore",
    "FileSecureStore",
    "StoreItem",
    "StoredItem",
    "StoreStatus",
    # Resultados
    "Entry",
    "KeyInfo",
    "VaultSummary",
    "SaveResult",
    "DeleteResult",
    "ImportResult",
    "HistoryVersion",
    "DIRECT_VALUE_LABEL",
    # Exportação
    "ExportRecord",
    "ExportedVersion",
    "encode_bundle",
    "decode_bundle",
    # Utilidades
    "WildcardMatcher",
    "compile_pattern",
    "history_for",
    # Erros
    "EnvPocketError",
    "ErrorKind",
    "NotFoundError",
    "InvalidVersionIndexError",
    "InvalidKeyError",
    "FileReadError",
    "StoreFailureError",
    "BulkDeleteError",
    "ExportError",
    "InvalidFormatError",
    "InvalidHeaderError",
    "CorruptedBundleError",
    "DecryptionFailedError",
    "BundleParseError",
]
