"""Testes para a interface de linha de comando."""

import pytest

from envpocket import __version__
from envpocket.cli import main

pytestmark = pytest.mark.usefixtures("clean_env")

PASSWORD = "senha-da-equipe"


@pytest.fixture
def run(store):
    def _run(*argv):
        return main(list(argv), store=store)

    return _run


def _answer(monkeypatch, response):
    monkeypatch.setattr("builtins.input", lambda prompt="": response)


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_set_and_get(run, capsys):
    assert run("set", "api-token", "abc123") == 0
    assert "✓ Valor salvo sob a chave 'api-token'" in capsys.readouterr().out

    assert run("get", "api-token") == 0
    assert capsys.readouterr().out == "abc123\n"


def test_get_raw_stdout(run, capsys):
    run("set", "k", "sem-quebra")
    capsys.readouterr()

    assert run("get", "k", "-") == 0
    assert capsys.readouterr().out == "sem-quebra"


def test_set_prompts_for_value(run, capsys, monkeypatch):
    _answer(monkeypatch, "digitado")
    assert run("set", "k") == 0
    capsys.readouterr()

    run("get", "k")
    assert capsys.readouterr().out == "digitado\n"


def test_save_and_get_file(run, capsys, tmp_path, monkeypatch):
    source = tmp_path / ".env"
    source.write_text("DB_URL=postgres://localhost\n", encoding="utf-8")
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    assert run("save", "db", str(source)) == 0
    assert "Arquivo salvo sob a chave 'db'" in capsys.readouterr().out

    monkeypatch.chdir(out_dir)
    assert run("get", "db") == 0
    assert (out_dir / ".env").read_text(encoding="utf-8") == "DB_URL=postgres://localhost\n"

    target = tmp_path / "copia.env"
    assert run("get", "db", str(target)) == 0
    assert target.read_text(encoding="utf-8") == "DB_URL=postgres://localhost\n"


def test_save_missing_file(run, capsys, tmp_path):
    assert run("save", "db", str(tmp_path / "nope.env")) == 1
    assert "Erro: Não foi possível ler o arquivo" in capsys.readouterr().err


def test_get_asks_before_overwrite(run, capsys, tmp_path, monkeypatch):
    run("set", "k", "novo")
    target = tmp_path / "existente.txt"
    target.write_text("antigo", encoding="utf-8")

    _answer(monkeypatch, "n")
    assert run("get", "k", str(target)) == 1
    assert target.read_text(encoding="utf-8") == "antigo"
    assert "Operação cancelada" in capsys.readouterr().out

    _answer(monkeypatch, "s")
    assert run("get", "k", str(target)) == 0
    assert target.read_text(encoding="utf-8") == "novo"

    target.write_text("antigo", encoding="utf-8")
    assert run("get", "k", str(target), "-f") == 0
    assert target.read_text(encoding="utf-8") == "novo"


def test_get_history_version(run, capsys):
    run("set", "k", "v1")
    run("set", "k", "v2")
    capsys.readouterr()

    assert run("get", "k", "--version", "0") == 0
    assert capsys.readouterr().out == "v1\n"

    assert run("get", "k", "--version", "5") == 1
    assert "Erro: Índice de versão inválido para 'k': 5" in capsys.readouterr().err


def test_get_missing(run, capsys):
    assert run("get", "missing") == 1
    assert "Erro: Chave 'missing' não encontrada" in capsys.readouterr().err


def test_history(run, capsys):
    run("history", "k")
    assert "Nenhum histórico encontrado para a chave 'k'" in capsys.readouterr().out

    run("set", "k", "v1")
    run("set", "k", "v2")
    run("set", "k", "v3")
    capsys.readouterr()

    assert run("history", "k") == 0
    out = capsys.readouterr().out
    assert "Histórico de 'k':" in out
    assert "  0: " in out
    assert "  1: " in out
    assert "  2: " not in out


def test_list(run, capsys):
    assert run("list") == 0
    assert "Nenhuma entrada do envpocket encontrada." in capsys.readouterr().out

    run("set", "b-key", "x")
    run("set", "b-key", "y")
    run("set", "a-key", "z")
    capsys.readouterr()

    assert run("list") == 0
    out = capsys.readouterr().out
    assert out.index("• a-key") < out.index("• b-key")
    assert "(direct value)" in out
    assert "[1 versão no histórico]" in out


def test_vaults(run, capsys):
    run("--vault", "prod/sql", "set", "db", "prod-value")
    run("--vault", "staging", "set", "db", "staging-value")
    run("set", "db", "default-value")
    capsys.readouterr()

    assert run("--vault", "prod/sql", "get", "db") == 0
    assert capsys.readouterr().out == "prod-value\n"

    assert run("--vault", "prod/sql", "list", "--vaults") == 0
    out = capsys.readouterr().out
    assert "• prod/sql" in out
    assert "• staging" in out
    assert "(padrão) - 1 entrada sem vault" in out


def test_vault_from_environment(run, capsys, monkeypatch):
    monkeypatch.setenv("EP_VAULT", "prod")
    run("set", "k", "no-vault-prod")
    monkeypatch.delenv("EP_VAULT")
    capsys.readouterr()

    assert run("get", "k") == 1
    assert run("--vault", "prod", "get", "k") == 0
    assert "no-vault-prod" in capsys.readouterr().out


def test_invalid_vault(run, capsys):
    assert run("--vault", "prod::sql", "list") == 1
    assert "Erro: Nome de vault inválido" in capsys.readouterr().err


def test_invalid_key(run, capsys):
    assert run("set", "a:b", "x") == 1
    assert "não pode conter ':'" in capsys.readouterr().err


def test_delete(run, capsys):
    run("set", "k", "v1")
    run("set", "k", "v2")
    capsys.readouterr()

    assert run("delete", "k") == 0
    out = capsys.readouterr().out
    assert "✓ Chave 'k' removida" in out
    assert "1 versão do histórico" in out

    assert run("delete", "k") == 1
    assert "Erro: Chave 'k' não encontrada" in capsys.readouterr().err


def test_delete_wildcard_confirmation(run, capsys, monkeypatch, store):
    for key in ("test-1", "test-2", "prod-1"):
        run("set", key, "x")
    capsys.readouterr()

    _answer(monkeypatch, "não")
    assert run("delete", "test-*") == 1
    out = capsys.readouterr().out
    assert "• test-1" in out
    assert "• test-2" in out
    assert "Remoção cancelada." in out
    assert "envpocket:test-1" in store

    _answer(monkeypatch, "sim")
    assert run("delete", "test-*") == 0
    assert "2 chaves removidas" in capsys.readouterr().out
    assert "envpocket:test-1" not in store
    assert "envpocket:prod-1" in store


def test_delete_wildcard_force(run, capsys, store):
    run("set", "v1", "x")
    run("set", "v2", "x")

    assert run("delete", "v?", "-f") == 0
    assert len(store) == 0


def test_delete_wildcard_no_match(run, capsys):
    assert run("delete", "nada-*") == 1
    assert "Nenhuma chave corresponde ao padrão 'nada-*'" in capsys.readouterr().err


def test_export_and_import(run, capsys, tmp_path):
    run("set", "db", "v1")
    run("set", "db", "v2")
    bundle = tmp_path / "db.envpocket"
    capsys.readouterr()

    assert run("export", "db", str(bundle), "--password", PASSWORD) == 0
    assert "Arquivo cifrado exportado" in capsys.readouterr().out
    assert bundle.read_bytes().startswith(b"ENVPOCKET_V1")

    assert run("--vault", "staging", "import", "db", str(bundle), "--password", PASSWORD) == 0
    assert "'db' importada com 1 versão de histórico" in capsys.readouterr().out

    run("--vault", "staging", "get", "db", "--version", "0")
    assert capsys.readouterr().out == "v1\n"


def test_export_default_filename(run, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    run("set", "db", "x")

    assert run("export", "db", "--password", PASSWORD) == 0
    assert (tmp_path / "db.envpocket").exists()


def test_export_password_mismatch(run, capsys, monkeypatch):
    run("set", "db", "x")
    answers = iter(["uma", "outra"])
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(answers))

    assert run("export", "db") == 1
    assert "As senhas não conferem" in capsys.readouterr().err


def test_import_wrong_password(run, capsys, tmp_path):
    run("set", "db", "x")
    bundle = tmp_path / "db.envpocket"
    run("export", "db", str(bundle), "--password", PASSWORD)
    capsys.readouterr()

    assert run("import", "db2", str(bundle), "--password", "errada") == 1
    assert "Erro: Falha ao decifrar" in capsys.readouterr().err


def test_import_invalid_file(run, capsys, tmp_path):
    bogus = tmp_path / "bogus.envpocket"
    bogus.write_bytes(b"isto nao e uma exportacao")

    assert run("import", "k", str(bogus), "--password", PASSWORD) == 1
    assert "Cabeçalho inválido" in capsys.readouterr().err


def test_import_missing_file(run, capsys, tmp_path):
    assert run("import", "k", str(tmp_path / "nope"), "--password", PASSWORD) == 1
    assert "Não foi possível ler o arquivo" in capsys.readouterr().err


def test_file_store_from_environment(capsys, monkeypatch, tmp_path):
    """Testa o fluxo completo com o armazenamento em arquivo configurado."""
    store_path = tmp_path / "store.json"
    monkeypatch.setenv("ENVPOCKET_STORE", str(store_path))
    monkeypatch.setenv("ENVPOCKET_PASSPHRASE", "senha-mestra")
    monkeypatch.setenv("ENVPOCKET_KDF_ITERATIONS", "1000")

    assert main(["set", "k", "persistido"]) == 0
    assert store_path.exists()
    capsys.readouterr()

    assert main(["get", "k"]) == 0
    assert capsys.readouterr().out == "persistido\n"


def test_env_file_option(capsys, tmp_path):
    env_file = tmp_path / "envpocket.env"
    env_file.write_text(
        f'ENVPOCKET_STORE="{tmp_path / "store.json"}"\n'
        'ENVPOCKET_PASSPHRASE="senha-mestra"\n'
        "ENVPOCKET_KDF_ITERATIONS=1000\n"
        "EP_VAULT=prod\n",
        encoding="utf-8",
    )

    assert main(["--env-file", str(env_file), "set", "k", "v"]) == 0
    assert (tmp_path / "store.json").exists()


def test_missing_passphrase(capsys, monkeypatch, tmp_path):
    monkeypatch.setenv("ENVPOCKET_STORE", str(tmp_path / "store.json"))
    monkeypatch.setattr("getpass.getpass", lambda prompt="": "")

    assert main(["list"]) == 1
    assert "Senha mestra do armazenamento não configurada" in capsys.readouterr().err


def test_wrong_master_passphrase(capsys, monkeypatch, tmp_path):
    monkeypatch.setenv("ENVPOCKET_STORE", str(tmp_path / "store.json"))
    monkeypatch.setenv("ENVPOCKET_KDF_ITERATIONS", "1000")
    monkeypatch.setenv("ENVPOCKET_PASSPHRASE", "certa")
    main(["set", "k", "v"])
    capsys.readouterr()

    monkeypatch.setenv("ENVPOCKET_PASSPHRASE", "errada")
    assert main(["get", "k"]) == 1
    err = capsys.readouterr().err
    assert "status -25293" in err
    assert "Verifique a senha mestra" in err
