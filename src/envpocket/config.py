"""Configuração do envpocket."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Self

from .filestore import DEFAULT_KDF_ITERATIONS, FileSecureStore
from .keycodec import MAX_VAULT_LENGTH, is_valid_vault
from .utils import parse_env_file

VAULT_ENV = "EP_VAULT"
STORE_ENV = "ENVPOCKET_STORE"
PASSPHRASE_ENV = "ENVPOCKET_PASSPHRASE"
ITERATIONS_ENV = "ENVPOCKET_KDF_ITERATIONS"

DEFAULT_STORE_PATH = "~/.envpocket/store.json"


@dataclass
class EnvPocketConfig:
    """Configuração do envpocket.

    Attributes:
        vault: Vault ativo (None = escopo padrão)
        store_path: Caminho do armazenamento em arquivo
        passphrase: Senha mestra do armazenamento em arquivo
        kdf_iterations: Iterações PBKDF2 do armazenamento (padrão: 100_000)
        audit_callback: Callback opcional para auditoria de eventos
        logger: Logger opcional para mensagens (usa logging padrão se None)
    """

    vault: Optional[str] = None
    store_path: Optional[str] = None
    passphrase: Optional[str] = None
    kdf_iterations: int = DEFAULT_KDF_ITERATIONS
    audit_callback: Optional[Callable] = None
    logger: Optional[Any] = None  # logging.Logger

    def __post_init__(self) -> None:
        """Valida configuração após inicialização."""
        if self.vault is not None:
            # Remover aspas (problema comum com dotenv)
            self.vault = self.vault.strip("\"'") or None

        if not is_valid_vault(self.vault):
            raise ValueError(
                f"Nome de vault inválido: '{self.vault}'. "
                f"Use de 1 a {MAX_VAULT_LENGTH} caracteres entre letras, números, '/', '_' e '-'"
            )

        if self.kdf_iterations <= 0:
            raise ValueError("O número de iterações PBKDF2 deve ser positivo")

    @classmethod
    def from_environment(cls, **kwargs: Any) -> Self:
        """Cria configuração a partir de variáveis de ambiente.

        Variáveis lidas:
            EP_VAULT=prod/sql
            ENVPOCKET_STORE=~/.envpocket/store.json
            ENVPOCKET_PASSPHRASE=senha-mestra
            ENVPOCKET_KDF_ITERATIONS=100000 (opcional)

        Argumentos explícitos diferentes de None têm precedência sobre o
        ambiente.

        Raises:
            ValueError: Se configuração for inválida
        """
        return cls._from_mapping(os.environ, **kwargs)

    @classmethod
    def from_file(cls, filename: str, **kwargs: Any) -> Self:
        """Cria configuração a partir de um arquivo .env.

        Raises:
            FileNotFoundError: Se o arquivo não existir
            ValueError: Se configuração for inválida
        """
        env_path = Path(filename)
        if not env_path.exists():
            raise FileNotFoundError(f"Arquivo .env não encontrado: {filename}")

        return cls._from_mapping(parse_env_file(env_path), **kwargs)

    @classmethod
    def _from_mapping(cls, mapping: Mapping[str, str], **kwargs: Any) -> Self:
        """Cria configuração a partir de um mapeamento de variáveis."""
        values: dict = {
            "vault": mapping.get(VAULT_ENV) or None,
            "store_path": mapping.get(STORE_ENV) or None,
            "passphrase": mapping.get(PASSPHRASE_ENV) or None,
        }

        iterations = mapping.get(ITERATIONS_ENV)
        if iterations:
            try:
                values["kdf_iterations"] = int(iterations)
            except ValueError:
                raise ValueError(f"{ITERATIONS_ENV} deve ser um inteiro, recebido: '{iterations}'")

        values.update({k: v for k, v in kwargs.items() if v is not None})
        return cls(**values)

    def resolved_store_path(self) -> Path:
        return Path(self.store_path or DEFAULT_STORE_PATH).expanduser()

    def build_store(self) -> FileSecureStore:
        """Cria o armazenamento em arquivo descrito pela configuração.

        Raises:
            ValueError: Se a senha mestra não estiver configurada
        """
        if not self.passphrase:
            raise ValueError(
                f"Senha mestra do armazenamento não configurada ({PASSPHRASE_ENV})"
            )
        return FileSecureStore(
            self.resolved_store_path(),
            self.passphrase,
            kdf_iterations=self.kdf_iterations,
            logger=self.logger,
        )
