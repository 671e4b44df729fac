"""Exemplo básico de uso do envpocket."""

import logging

from envpocket import EntryStore, MemorySecureStore, NotFoundError

# Configurar logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Demonstra gravação, histórico, vaults e remoção."""

    print("\n=== envpocket - Exemplo Básico ===\n")

    # 1. Armazenamento em memória (use FileSecureStore para persistir)
    store = MemorySecureStore()
    entries = EntryStore(store, logger=logger)

    # 2. Gravar três versões da mesma chave
    print("1. Gravando três versões de 'db-url'...")
    for value in ("postgres://v1", "postgres://v2", "postgres://v3"):
        result = entries.set_value("db-url", value)
        print(f"   ✓ {value} (havia versão anterior: {result.had_previous})")

    # 3. Ler a versão corrente e o histórico
    print("\n2. Versão corrente e histórico:")
    print(f"   Corrente: {entries.get('db-url').text}")
    for index, version in enumerate(entries.history("db-url")):
        print(f"   {index}: {entries.get('db-url', index).text} (substituída em {version.stamp})")

    # 4. Vaults isolam chaves com o mesmo nome
    print("\n3. Vaults:")
    prod = EntryStore(store, "prod/sql", logger=logger)
    prod.set_value("db-url", "postgres://prod")
    print(f"   padrão:   {entries.get('db-url').text}")
    print(f"   prod/sql: {prod.get('db-url').text}")
    print(f"   Vaults conhecidos: {entries.list_vaults().vaults}")

    # 5. Listagem
    print("\n4. Chaves do escopo padrão:")
    for row in entries.list():
        print(f"   - {row.key} ({row.history_count} versões no histórico)")

    # 6. Remoção por padrão curinga
    print("\n5. Removendo 'db-*'...")
    removed = entries.delete("db-*")
    print(f"   ✓ Removidas: {removed.keys} (+{removed.history_deleted} versões de histórico)")

    try:
        entries.get("db-url")
    except NotFoundError as e:
        print(f"   {e}")
    print(f"   prod/sql continua intacto: {prod.get('db-url').text}")

    print("\n=== Fim do exemplo ===\n")


if __name__ == "__main__":
    main()
