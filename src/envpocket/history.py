"""Reconstrução do histórico de versões a partir dos nomes de conta."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from .keycodec import decode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryVersion:
    """Versão substituída de uma entrada (imutável).

    Attributes:
        account: Nome de conta no armazenamento
        vault: Vault da versão
        key: Chave lógica
        timestamp: Instante em que a versão deixou de ser a corrente
        stamp: Timestamp como gravado no nome de conta
    """

    account: str
    vault: Optional[str]
    key: str
    timestamp: datetime
    stamp: str


def history_for(accounts: Iterable[str], vault: Optional[str], key: str) -> List[HistoryVersion]:
    """Lista as versões de histórico de (vault, chave), mais recente primeiro.

    Contas correntes, de outras aplicações ou de outros escopos são
    ignoradas. Versões com timestamp ilegível são descartadas sem abortar a
    consulta. Empates de timestamp são ordenados pelo nome de conta.

    Args:
        accounts: Todos os nomes de conta enumerados no armazenamento
        vault: Vault ativo (None = escopo padrão)
        key: Chave lógica

    Returns:
        List[HistoryVersion]: O índice 0 é a versão substituída mais recente
    """
    versions = []
    for account in accounts:
        decoded = decode(account)
        if decoded is None or not decoded.is_history:
            continue
        if not decoded.in_scope(vault, key):
            continue
        if decoded.timestamp is None:
            logger.debug("Versão de histórico com timestamp ilegível ignorada: %s", account)
            continue
        versions.append(
            HistoryVersion(
                account=account,
                vault=decoded.vault,
                key=decoded.key,
                timestamp=decoded.timestamp,
                stamp=decoded.stamp,
            )
        )

    versions.sort(key=lambda v: (v.timestamp, v.account), reverse=True)
    return versions
