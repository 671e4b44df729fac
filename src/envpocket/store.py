"""Interface do armazenamento seguro e adaptador em memória.

O núcleo do envpocket depende apenas de ``SecureStore``: quatro operações
sobre nomes de conta opacos, que devolvem códigos de status no lugar de
exceções, como as APIs de keychain do sistema operacional.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Protocol, Tuple

from .keycodec import CURRENT_PREFIX, HISTORY_PREFIX


class StoreStatus(IntEnum):
    """Códigos de status do armazenamento (compatíveis com o keychain)."""

    SUCCESS = 0
    IO_ERROR = -36
    PARAM = -50
    AUTH_FAILED = -25293
    DUPLICATE_ITEM = -25299
    ITEM_NOT_FOUND = -25300
    INTERACTION_NOT_ALLOWED = -25308
    NOT_PERMITTED = -34018


_STATUS_MESSAGES = {
    StoreStatus.IO_ERROR: "Erro de leitura/escrita no armazenamento seguro.",
    StoreStatus.PARAM: "Parâmetros inválidos para a operação no armazenamento.",
    StoreStatus.AUTH_FAILED: "Acesso negado ao armazenamento seguro. Verifique a senha mestra.",
    StoreStatus.DUPLICATE_ITEM: "O item já existe no armazenamento.",
    StoreStatus.ITEM_NOT_FOUND: "Item não encontrado no armazenamento.",
    StoreStatus.INTERACTION_NOT_ALLOWED: "Interação não permitida. Desbloqueie o armazenamento.",
    StoreStatus.NOT_PERMITTED: "Operação não permitida pelo sistema.",
}


def describe_status(status: int) -> str:
    """Mensagem legível para um código de status."""
    try:
        return _STATUS_MESSAGES[StoreStatus(status)]
    except (KeyError, ValueError):
        return f"Erro no armazenamento seguro: {status}"


@dataclass(frozen=True)
class StoreItem:
    """Item enumerado (sem o conteúdo)."""

    account: str
    label: Optional[str] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class StoredItem:
    """Item lido, com o conteúdo."""

    account: str
    data: bytes
    label: Optional[str] = None
    comment: Optional[str] = None


class SecureStore(Protocol):
    """Capacidade de armazenamento consumida pelo ``EntryStore``."""

    def put(
        self,
        account: str,
        data: bytes,
        label: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> int: ...

    def get(self, account: str) -> Tuple[Optional[StoredItem], int]: ...

    def delete(self, account: str) -> int: ...

    def list_all(self) -> Tuple[List[StoreItem], int]: ...


def is_own_account(account: str) -> bool:
    """Indica se a conta pertence aos prefixos reservados do envpocket."""
    return account.startswith(CURRENT_PREFIX) or account.startswith(HISTORY_PREFIX)


class MemorySecureStore:
    """Armazenamento determinístico em memória (testes e uso efêmero).

    Args:
        reject_duplicates: Se True, ``put`` em conta existente devolve
            ``DUPLICATE_ITEM`` (comportamento de ``add`` do keychain)
    """

    def __init__(self, reject_duplicates: bool = False) -> None:
        self.reject_duplicates = reject_duplicates
        self._items: Dict[str, StoredItem] = {}

    def put(
        self,
        account: str,
        data: bytes,
        label: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> int:
        if not account:
            return StoreStatus.PARAM
        if self.reject_duplicates and account in self._items:
            return StoreStatus.DUPLICATE_ITEM
        self._items[account] = StoredItem(account, bytes(data), label, comment)
        return StoreStatus.SUCCESS

    def get(self, account: str) -> Tuple[Optional[StoredItem], int]:
        item = self._items.get(account)
        if item is None:
            return None, StoreStatus.ITEM_NOT_FOUND
        return item, StoreStatus.SUCCESS

    def delete(self, account: str) -> int:
        if self._items.pop(account, None) is None:
            return StoreStatus.ITEM_NOT_FOUND
        return StoreStatus.SUCCESS

    def list_all(self) -> Tuple[List[StoreItem], int]:
        items = [
            StoreItem(item.account, item.label, item.comment)
            for item in self._items.values()
            if is_own_account(item.account)
        ]
        return items, StoreStatus.SUCCESS

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, account: object) -> bool:
        return account in self._items
