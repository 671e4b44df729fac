"""EntryStore - ciclo de vida das entradas, histórico e vaults."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional

from .errors import (
    BulkDeleteError,
    EnvPocketError,
    FileReadError,
    InvalidVersionIndexError,
    NotFoundError,
    StoreFailureError,
)
from .export import ExportedVersion, ExportRecord, decode_bundle, encode_bundle
from .history import HistoryVersion, history_for
from .keycodec import (
    MAX_VAULT_LENGTH,
    decode,
    encode_current,
    encode_history,
    format_timestamp,
    is_valid_vault,
    parse_timestamp,
    validate_key,
)
from .store import SecureStore, StoredItem, StoreItem, StoreStatus
from .wildcard import compile_pattern, has_wildcards

if TYPE_CHECKING:
    from .config import EnvPocketConfig

DIRECT_VALUE_LABEL = "(direct value)"
LAST_MODIFIED_PREFIX = "Last modified: "


def parse_last_modified(comment: Optional[str]) -> Optional[datetime]:
    """Extrai o instante de um comentário "Last modified: <ISO 8601>"."""
    if not comment or not comment.startswith(LAST_MODIFIED_PREFIX):
        return None
    return parse_timestamp(comment[len(LAST_MODIFIED_PREFIX):])


@dataclass
class Entry:
    """Conteúdo lido de uma entrada (corrente ou versão de histórico).

    Attributes:
        key: Chave lógica
        data: Conteúdo
        label: Rótulo de origem (caminho do arquivo ou valor direto)
        comment: Comentário gravado com a entrada
        version_index: Índice no histórico (None para a entrada corrente)
        timestamp: Última modificação (corrente) ou instante em que a versão
            foi substituída (histórico)
    """

    key: str
    data: bytes
    label: Optional[str] = None
    comment: Optional[str] = None
    version_index: Optional[int] = None
    timestamp: Optional[datetime] = None

    @property
    def is_history(self) -> bool:
        return self.version_index is not None

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")


@dataclass
class KeyInfo:
    """Linha da listagem de chaves."""

    key: str
    has_current: bool = False
    last_modified: Optional[datetime] = None
    history_count: int = 0
    label: Optional[str] = None


@dataclass
class VaultSummary:
    vaults: List[str] = field(default_factory=list)
    default_count: int = 0


@dataclass
class SaveResult:
    key: str
    account: str
    had_previous: bool = False
    history_saved: bool = False


@dataclass
class DeleteResult:
    """Totais de uma remoção (simples ou por padrão)."""

    keys: List[str] = field(default_factory=list)
    history_deleted: int = 0
    failures: Dict[str, str] = field(default_factory=dict)


@dataclass
class ImportResult:
    key: str
    history_imported: int = 0
    history_skipped: int = 0
    source_vault: Optional[str] = None
    replaced_existing: bool = False


class EntryStore:
    """Operações do envpocket sobre um ``SecureStore`` em um vault fixo.

    Esta classe fornece:
    - Gravação com rotação da versão corrente para o histórico
    - Leitura da versão corrente ou de versões do histórico
    - Remoção em cascata (simples ou por padrão curinga)
    - Listagem de chaves e de vaults
    - Exportação/importação cifradas (ENVPOCKET_V1)

    A rotação "corrente -> histórico" e a remoção em cascata são sequências
    de chamadas independentes ao armazenamento, sem atomicidade. Ambas podem
    ser repetidas com segurança.

    Attributes:
        store: Armazenamento seguro
        vault: Vault ativo (None = escopo padrão)
    """

    def __init__(
        self,
        store: SecureStore,
        vault: Optional[str] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
        audit_callback: Optional[Callable] = None,
    ):
        if not is_valid_vault(vault):
            raise ValueError(
                f"Nome de vault inválido: '{vault}'. "
                f"Use de 1 a {MAX_VAULT_LENGTH} caracteres entre letras, números, '/', '_' e '-'"
            )
        self.store = store
        self.vault = vault
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._logger = logger or logging.getLogger(__name__)
        self._audit_callback = audit_callback

    @classmethod
    def from_config(
        cls, config: "EnvPocketConfig", store: Optional[SecureStore] = None
    ) -> "EntryStore":
        """Cria o EntryStore descrito pela configuração.

        Args:
            config: Configuração do envpocket
            store: Armazenamento a usar (padrão: ``config.build_store()``)
        """
        return cls(
            store if store is not None else config.build_store(),
            config.vault,
            logger=config.logger,
            audit_callback=config.audit_callback,
        )

    def _put(self, account: str, data: bytes, label: Optional[str], comment: Optional[str]) -> int:
        """Grava um item; item duplicado vira sobrescrita (remove e regrava)."""
        status = self.store.put(account, data, label, comment)
        if status == StoreStatus.DUPLICATE_ITEM:
            self.store.delete(account)
            status = self.store.put(account, data, label, comment)
        return status

    def _read(self, account: str, key: str) -> StoredItem:
        item, status = self.store.get(account)
        if status == StoreStatus.ITEM_NOT_FOUND or (status == StoreStatus.SUCCESS and item is None):
            raise NotFoundError(f"Chave '{key}' não encontrada")
        if status != StoreStatus.SUCCESS:
            raise StoreFailureError(status)
        return item

    def _list_items(self) -> List[StoreItem]:
        items, status = self.store.list_all()
        if status != StoreStatus.SUCCESS:
            raise StoreFailureError(status, f"Erro ao listar itens do armazenamento: {status}")
        return items

    def _audit(self, event: str, metadata: dict) -> None:
        """Registra evento de auditoria se callback configurado.

        Args:
            event: Nome do evento (e.g., "save", "delete", "export", "import")
            metadata: Metadados do evento (nunca contém conteúdo secreto)
        """
        if self._audit_callback:
            try:
                self._audit_callback(event, metadata)
            except Exception as e:
                self._logger.warning(f"Erro no callback de auditoria: {e}")

    def _write_current(
        self,
        key: str,
        payload: bytes,
        label: Optional[str],
        comment: Optional[str] = None,
    ) -> SaveResult:
        """Rotaciona a versão corrente para o histórico e grava a nova.

        A cópia para o histórico é de melhor esforço: falhas geram apenas um
        aviso. Falha ao gravar a nova versão corrente é fatal.
        """
        account = encode_current(self.vault, key)
        now = self._clock()
        result = SaveResult(key=key, account=account)

        current, status = self.store.get(account)
        if status == StoreStatus.SUCCESS and current is not None:
            result.had_previous = True
            # Preserva o rótulo original da versão substituída
            history_label = current.label if current.label is not None else label
            history_status = self._put(
                encode_history(self.vault, key, now), current.data, history_label, None
            )
            if history_status == StoreStatus.SUCCESS:
                result.history_saved = True
            else:
                self._logger.warning(
                    f"Falha ao salvar histórico de '{key}' (status {history_status})"
                )
        elif status != StoreStatus.ITEM_NOT_FOUND:
            self._logger.warning(
                f"Não foi possível ler a versão corrente de '{key}' (status {status}); "
                "histórico não rotacionado"
            )

        if comment is None:
            comment = LAST_MODIFIED_PREFIX + format_timestamp(now)
        status = self._put(account, payload, label, comment)
        if status != StoreStatus.SUCCESS:
            raise StoreFailureError(status)
        return result

    def save(self, key: str, payload: bytes, label: Optional[str]) -> SaveResult:
        """Grava uma nova versão corrente de ``key``.

        Se já houver versão corrente, ela é copiada para o histórico com o
        instante atual antes de ser sobrescrita.

        Args:
            key: Chave lógica
            payload: Conteúdo
            label: Rótulo de origem (caminho do arquivo ou DIRECT_VALUE_LABEL)

        Returns:
            SaveResult: ``had_previous`` indica se havia versão anterior

        Raises:
            InvalidKeyError: Se a chave for inválida
            StoreFailureError: Se a gravação da versão corrente falhar
        """
        validate_key(key)
        result = self._write_current(key, payload, label)
        self._logger.info(f"Entrada '{key}' salva (vault: {self.vault or 'padrão'})")
        self._audit(
            "save",
            {"key": key, "vault": self.vault, "size": len(payload), "rotated": result.had_previous},
        )
        return result

    def save_file(self, key: str, file_path: str | Path) -> SaveResult:
        """Grava o conteúdo de um arquivo; o rótulo é o caminho absoluto.

        Raises:
            FileReadError: Se o arquivo não puder ser lido
        """
        path = Path(file_path).expanduser().absolute()
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FileReadError(
                f"Não foi possível ler o arquivo {path}. "
                f"Verifique se ele existe e se há permissão de leitura ({e.strerror})"
            )
        return self.save(key, data, str(path))

    def set_value(self, key: str, value: str) -> SaveResult:
        """Grava um valor direto (sem arquivo)."""
        return self.save(key, value.encode("utf-8"), DIRECT_VALUE_LABEL)

    def history(self, key: str) -> List[HistoryVersion]:
        """Versões de histórico de ``key``, mais recente primeiro."""
        return history_for((item.account for item in self._list_items()), self.vault, key)

    def get(self, key: str, version_index: Optional[int] = None) -> Entry:
        """Lê a versão corrente ou, com ``version_index``, uma do histórico.

        Args:
            key: Chave lógica
            version_index: 0 = versão substituída mais recentemente

        Raises:
            NotFoundError: Se a chave não existir no vault ativo
            InvalidVersionIndexError: Se o índice não existir no histórico
            StoreFailureError: Em falhas do armazenamento
        """
        if version_index is None:
            item = self._read(encode_current(self.vault, key), key)
            return Entry(
                key=key,
                data=item.data,
                label=item.label,
                comment=item.comment,
                timestamp=parse_last_modified(item.comment),
            )

        versions = self.history(key)
        if not 0 <= version_index < len(versions):
            raise InvalidVersionIndexError(key, version_index, len(versions))
        version = versions[version_index]
        item = self._read(version.account, key)
        return Entry(
            key=key,
            data=item.data,
            label=item.label,
            comment=item.comment,
            version_index=version_index,
            timestamp=version.timestamp,
        )

    def match_keys(self, pattern: str) -> List[str]:
        """Chaves correntes do vault ativo que casam com o padrão, ordenadas."""
        matcher = compile_pattern(pattern)
        matched = set()
        for item in self._list_items():
            decoded = decode(item.account)
            if decoded is None or decoded.is_history or not decoded.in_scope(self.vault):
                continue
            if matcher.matches(decoded.key):
                matched.add(decoded.key)
        return sorted(matched)

    def list(self) -> List[KeyInfo]:
        """Lista as chaves do vault ativo com data, rótulo e tamanho do histórico."""
        info: Dict[str, KeyInfo] = {}
        for item in self._list_items():
            decoded = decode(item.account)
            if decoded is None or not decoded.in_scope(self.vault):
                continue
            row = info.setdefault(decoded.key, KeyInfo(key=decoded.key))
            if decoded.is_history:
                row.history_count += 1
            else:
                row.has_current = True
                row.last_modified = parse_last_modified(item.comment)
                row.label = item.label
        return [info[key] for key in sorted(info)]

    def list_vaults(self) -> VaultSummary:
        """Vaults observados em todo o armazenamento (ignora o vault ativo)."""
        vaults = set()
        default_count = 0
        for item in self._list_items():
            decoded = decode(item.account)
            if decoded is None or decoded.is_history:
                continue
            if decoded.vault is None:
                default_count += 1
            else:
                vaults.add(decoded.vault)
        return VaultSummary(vaults=sorted(vaults), default_count=default_count)

    def _delete_key(self, key: str, accounts: Iterable[str]) -> int:
        """Remove a versão corrente e todo o histórico de ``key``.

        O histórico é removido mesmo quando não há versão corrente.

        Returns:
            int: Quantidade de versões de histórico removidas

        Raises:
            NotFoundError: Se não havia versão corrente
            StoreFailureError: Se alguma remoção falhar
        """
        status = self.store.delete(encode_current(self.vault, key))

        history_deleted = 0
        history_failure = None
        for account in accounts:
            decoded = decode(account)
            if decoded is None or not decoded.is_history or not decoded.in_scope(self.vault, key):
                continue
            history_status = self.store.delete(account)
            if history_status == StoreStatus.SUCCESS:
                history_deleted += 1
            elif history_status != StoreStatus.ITEM_NOT_FOUND:
                history_failure = history_status

        if status == StoreStatus.ITEM_NOT_FOUND:
            raise NotFoundError(f"Chave '{key}' não encontrada")
        if status != StoreStatus.SUCCESS:
            raise StoreFailureError(status)
        if history_failure is not None:
            raise StoreFailureError(
                history_failure,
                f"Chave '{key}' removida, mas parte do histórico permaneceu "
                f"(status {history_failure}). Repita a remoção.",
            )
        return history_deleted

    def delete(self, key: str) -> DeleteResult:
        """Remove uma chave (ou todas que casam com um padrão) e seu histórico.

        Args:
            key: Chave lógica ou padrão com '*' / '?'

        Returns:
            DeleteResult: Chaves removidas e total de versões de histórico

        Raises:
            NotFoundError: Chave inexistente ou nenhum casamento com o padrão
            BulkDeleteError: Se alguma remoção do padrão falhar
            StoreFailureError: Em falhas do armazenamento (forma simples)
        """
        accounts = [item.account for item in self._list_items()]

        if not has_wildcards(key):
            history_deleted = self._delete_key(key, accounts)
            result = DeleteResult(keys=[key], history_deleted=history_deleted)
        else:
            matched = self.match_keys(key)
            if not matched:
                raise NotFoundError(f"Nenhuma chave corresponde ao padrão '{key}'")

            result = DeleteResult()
            for matched_key in matched:
                try:
                    result.history_deleted += self._delete_key(matched_key, accounts)
                    result.keys.append(matched_key)
                except EnvPocketError as e:
                    result.failures[matched_key] = str(e)

        self._logger.info(
            f"{len(result.keys)} chave(s) removida(s) com {result.history_deleted} "
            f"versão(ões) de histórico (vault: {self.vault or 'padrão'})"
        )
        self._audit(
            "delete",
            {"pattern": key, "vault": self.vault, "keys": list(result.keys), "failures": len(result.failures)},
        )
        if result.failures:
            raise BulkDeleteError(result)
        return result

    def export_entry(self, key: str, passphrase: str) -> bytes:
        """Exporta a entrada corrente e todo o histórico em um pacote cifrado.

        Versões de histórico ilegíveis no momento da exportação são omitidas.

        Raises:
            NotFoundError: Se não houver versão corrente
        """
        item = self._read(encode_current(self.vault, key), key)

        history = []
        for version in self.history(key):
            stored, status = self.store.get(version.account)
            if status != StoreStatus.SUCCESS or stored is None:
                self._logger.warning(
                    f"Versão de histórico {version.stamp} de '{key}' ignorada (status {status})"
                )
                continue
            history.append(ExportedVersion(stored.data, version.stamp, stored.label))

        record = ExportRecord(
            data=item.data,
            key=key,
            vault=self.vault,
            original_path=item.label,
            last_modified=item.comment,
            history=history,
        )
        blob = encode_bundle(record, passphrase)
        self._audit("export", {"key": key, "vault": self.vault, "history": len(history)})
        return blob

    def import_entry(self, key: str, blob: bytes, passphrase: str) -> ImportResult:
        """Importa um pacote cifrado como ``key`` no vault ativo.

        O vault registrado no pacote é apenas informativo. A versão corrente
        local, se existir, vai para o histórico como em ``save``; as versões
        do pacote são regravadas com seus timestamps originais.

        Raises:
            InvalidKeyError: Se a chave for inválida
            ExportError: Se o pacote for inválido ou a senha incorreta
            StoreFailureError: Se a gravação da versão corrente falhar
        """
        validate_key(key)
        record = decode_bundle(blob, passphrase)
        saved = self._write_current(key, record.data, record.original_path, record.last_modified)

        result = ImportResult(
            key=key, source_vault=record.vault, replaced_existing=saved.had_previous
        )
        for version in record.history:
            if parse_timestamp(version.timestamp) is None:
                self._logger.warning(
                    f"Versão de histórico com timestamp inválido ignorada: {version.timestamp!r}"
                )
                result.history_skipped += 1
                continue
            status = self._put(
                encode_history(self.vault, key, version.timestamp),
                version.data,
                version.original_path,
                None,
            )
            if status == StoreStatus.SUCCESS:
                result.history_imported += 1
            else:
                self._logger.warning(
                    f"Falha ao importar versão {version.timestamp} de '{key}' (status {status})"
                )
                result.history_skipped += 1

        self._logger.info(
            f"Entrada '{key}' importada com {result.history_imported} versão(ões) de histórico"
        )
        self._audit(
            "import",
            {"key": key, "vault": self.vault, "source_vault": record.vault, "history": result.history_imported},
        )
        return result
