"""Codificação de (vault, chave, timestamp) em nomes de conta do armazenamento.

Formatos:
    envpocket:[<vault>::]<chave>
    envpocket-history:[<vault>::]<chave>:<timestamp ISO 8601>

Os dois prefixos divergem no décimo caractere (':' vs '-'), portanto nenhum
nome de conta é classificado nas duas famílias. Nomes sem nenhum dos prefixos
pertencem a outra aplicação e são ignorados.

A codificação não escapa separadores: chaves contendo ':' seriam ambíguas na
decodificação, por isso ``validate_key`` as rejeita nos caminhos de escrita.

Os timestamps são gravados com microssegundos (``.ffffffZ``), e a leitura
aceita também a resolução de segundos. Ferramentas que só interpretam
``yyyy-MM-ddTHH:mm:ssZ`` (como o envpocket para macOS, baseado em
``ISO8601DateFormatter``) não reconhecem esses nomes: ao importar lá um pacote
gerado aqui, as versões de histórico são descartadas como timestamps
inválidos, embora o valor corrente seja importado normalmente.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from .errors import InvalidKeyError

CURRENT_PREFIX = "envpocket:"
HISTORY_PREFIX = "envpocket-history:"
VAULT_SEPARATOR = "::"
STAMP_SEPARATOR = ":"

MAX_VAULT_LENGTH = 100
_VAULT_PATTERN = re.compile(r"[A-Za-z0-9/_-]+")
_FORBIDDEN_KEY_CHARS = (":", "*", "?")


@dataclass(frozen=True)
class DecodedAccount:
    """Resultado da decodificação de um nome de conta.

    Attributes:
        is_history: True para versões de histórico
        vault: Vault do nome (None = escopo padrão)
        key: Chave lógica
        timestamp: Instante da versão (None para entradas correntes ou
            timestamps ilegíveis)
        stamp: Texto bruto do timestamp, como gravado
    """

    is_history: bool
    vault: Optional[str]
    key: str
    timestamp: Optional[datetime] = None
    stamp: str = ""

    def in_scope(self, vault: Optional[str], key: Optional[str] = None) -> bool:
        if self.vault != vault:
            return False
        return key is None or self.key == key


def format_timestamp(moment: datetime) -> str:
    """Formata um instante em ISO 8601 UTC com microssegundos.

    Examples:
        >>> format_timestamp(datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc))
        '2025-01-31T12:00:00.000000Z'
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(text: str) -> Optional[datetime]:
    """Converte texto ISO 8601 em datetime UTC; None se ilegível.

    Aceita também a forma sem fração de segundo (``2025-01-31T12:00:00Z``).
    """
    if not text:
        return None
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _scoped(vault: Optional[str], key: str) -> str:
    if vault is not None:
        return f"{vault}{VAULT_SEPARATOR}{key}"
    return key


def encode_current(vault: Optional[str], key: str) -> str:
    """Nome de conta da entrada corrente de (vault, chave)."""
    return CURRENT_PREFIX + _scoped(vault, key)


def encode_history(vault: Optional[str], key: str, timestamp: Union[datetime, str]) -> str:
    """Nome de conta de uma versão de histórico.

    Um timestamp em texto é usado literalmente (importação preserva os
    instantes originais).
    """
    stamp = timestamp if isinstance(timestamp, str) else format_timestamp(timestamp)
    return HISTORY_PREFIX + _scoped(vault, key) + STAMP_SEPARATOR + stamp


def decode(account: str) -> Optional[DecodedAccount]:
    """Decodifica um nome de conta; None para contas de outras aplicações."""
    if account.startswith(HISTORY_PREFIX):
        is_history = True
        rest = account[len(HISTORY_PREFIX):]
    elif account.startswith(CURRENT_PREFIX):
        is_history = False
        rest = account[len(CURRENT_PREFIX):]
    else:
        return None

    vault: Optional[str]
    vault, separator, remainder = rest.partition(VAULT_SEPARATOR)
    if not separator:
        vault, remainder = None, rest

    if not is_history:
        return DecodedAccount(is_history=False, vault=vault, key=remainder)

    key, separator, stamp = remainder.partition(STAMP_SEPARATOR)
    return DecodedAccount(
        is_history=True,
        vault=vault,
        key=key,
        timestamp=parse_timestamp(stamp) if separator else None,
        stamp=stamp,
    )


def is_valid_vault(vault: Optional[str]) -> bool:
    """Valida nome de vault: 1-100 caracteres em [A-Za-z0-9/_-]."""
    if vault is None:
        return True
    if not 1 <= len(vault) <= MAX_VAULT_LENGTH:
        return False
    return _VAULT_PATTERN.fullmatch(vault) is not None


def validate_key(key: str) -> str:
    """Valida uma chave lógica para escrita.

    Raises:
        InvalidKeyError: Se a chave for vazia ou contiver ':', '*' ou '?'
    """
    if not key:
        raise InvalidKeyError("A chave não pode ser vazia")
    for char in _FORBIDDEN_KEY_CHARS:
        if char in key:
            raise InvalidKeyError(f"A chave '{key}' não pode conter '{char}'")
    return key
