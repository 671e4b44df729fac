"""Exemplo de uso de EnvPocketConfig.from_file() com o armazenamento em arquivo."""

import tempfile
from pathlib import Path

from envpocket import EntryStore, EnvPocketConfig


def main() -> None:
    """Demonstra configuração via .env, persistência e exportação cifrada."""
    workdir = Path(tempfile.mkdtemp(prefix="envpocket-"))

    # 1) Arquivo .env com a configuração do envpocket
    config_path = workdir / "envpocket.env"
    config_path.write_text(
        "\n".join(
            [
                f'ENVPOCKET_STORE="{workdir / "store.json"}"',
                'ENVPOCKET_PASSPHRASE="senha-mestra-de-exemplo"',
                "EP_VAULT=staging/api",
                "",
            ]
        ),
        encoding="utf-8",
    )

    # 2) Carregar a configuração (class method) e criar o EntryStore
    config = EnvPocketConfig.from_file(str(config_path))
    entries = EntryStore.from_config(config)
    print(f"Vault ativo: {config.vault}")
    print(f"Armazenamento: {config.resolved_store_path()}")

    # 3) Salvar um arquivo .env da aplicação
    app_env = workdir / ".env"
    app_env.write_text("API_KEY=sk-exemplo\n", encoding="utf-8")
    entries.save_file("api", app_env)
    app_env.write_text("API_KEY=sk-rotacionada\n", encoding="utf-8")
    entries.save_file("api", app_env)

    # 4) Exportar para a equipe e importar em outro vault
    blob = entries.export_entry("api", "senha-da-equipe")
    (workdir / "api.envpocket").write_bytes(blob)

    prod = EntryStore.from_config(EnvPocketConfig.from_file(str(config_path), vault="prod"))
    result = prod.import_entry("api", blob, "senha-da-equipe")
    print(f"Importada em prod com {result.history_imported} versão(ões) de histórico")
    print(f"Corrente em prod: {prod.get('api').text.strip()}")
    print(f"Anterior em prod: {prod.get('api', 0).text.strip()}")

    # Cleanup dos arquivos de exemplo
    for path in workdir.iterdir():
        path.unlink()
    workdir.rmdir()


if __name__ == "__main__":
    main()
