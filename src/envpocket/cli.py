"""Interface de linha de comando do envpocket."""

import argparse
import getpass
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import PASSPHRASE_ENV, VAULT_ENV, EnvPocketConfig
from .entries import DIRECT_VALUE_LABEL, EntryStore
from .errors import BulkDeleteError, EnvPocketError, StoreFailureError
from .export import FILE_EXTENSION
from .store import SecureStore, describe_status
from .wildcard import has_wildcards

_YES = ("s", "sim", "y", "yes")


def _success(message: str) -> None:
    print(f"✓ {message}")


def _info(message: str) -> None:
    print(message)


def _warning(message: str) -> None:
    print(f"Aviso: {message}", file=sys.stderr)


def _error(message: str) -> None:
    print(f"Erro: {message}", file=sys.stderr)


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def _confirm(prompt: str) -> bool:
    try:
        response = input(prompt)
    except EOFError:
        return False
    return response.strip().lower() in _YES


def _read_password(prompt: str) -> Optional[str]:
    try:
        password = getpass.getpass(prompt)
    except EOFError:
        return None
    return password or None


def _format_moment(moment) -> str:
    return moment.astimezone().strftime("%d/%m/%Y %H:%M:%S")


def build_parser() -> argparse.ArgumentParser:
    """Cria o parser de argumentos."""
    parser = argparse.ArgumentParser(
        prog="envpocket",
        description="Armazenamento seguro de arquivos .env e segredos, com histórico e vaults",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Vaults:
  Organize chaves em namespaces isolados.

  Via variável de ambiente:
    export {VAULT_ENV}=prod/sql
    envpocket save database-url .env

  Ou com --vault em qualquer comando:
    envpocket --vault staging/api save api-key .env
    envpocket --vault prod list
    envpocket list --vaults

  A senha mestra do armazenamento vem de {PASSPHRASE_ENV} ou é solicitada.
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--vault", help=f"Vault ativo (padrão: ${VAULT_ENV})")
    parser.add_argument("--store", help="Caminho do arquivo do armazenamento")
    parser.add_argument("--env-file", help="Arquivo .env com a configuração do envpocket")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log detalhado")

    subparsers = parser.add_subparsers(dest="command", required=True)

    save_parser = subparsers.add_parser("save", help="Salva um arquivo")
    save_parser.add_argument("key", help="Chave sob a qual o arquivo será salvo")
    save_parser.add_argument("file", help="Caminho do arquivo")

    set_parser = subparsers.add_parser("set", help="Define um valor diretamente (sem arquivo)")
    set_parser.add_argument("key", help="Chave sob a qual o valor será salvo")
    set_parser.add_argument("value", nargs="?", help="Valor (omita para digitar)")

    get_parser = subparsers.add_parser("get", help="Recupera um arquivo ou valor")
    get_parser.add_argument("key", help="Chave a recuperar")
    get_parser.add_argument(
        "output", nargs="?", help="Arquivo de saída ('-' para stdout sem quebra de linha)"
    )
    get_parser.add_argument(
        "--version", dest="version_index", type=int, help="Índice no histórico (0 = mais recente)"
    )
    get_parser.add_argument("-f", "--force", action="store_true", help="Sobrescreve sem confirmar")

    delete_parser = subparsers.add_parser("delete", help="Remove chaves (aceita '*' e '?')")
    delete_parser.add_argument("key", help="Chave ou padrão curinga")
    delete_parser.add_argument("-f", "--force", action="store_true", help="Remove sem confirmar")

    list_parser = subparsers.add_parser("list", help="Lista as chaves do vault ativo")
    list_parser.add_argument("--vaults", action="store_true", help="Lista todos os vaults")

    history_parser = subparsers.add_parser("history", help="Mostra o histórico de versões")
    history_parser.add_argument("key", help="Chave")

    export_parser = subparsers.add_parser("export", help="Exporta uma entrada cifrada")
    export_parser.add_argument("key", help="Chave a exportar")
    export_parser.add_argument(
        "output", nargs="?", help=f"Arquivo de saída (padrão: <chave>{FILE_EXTENSION})"
    )
    export_parser.add_argument("--password", help="Senha de exportação (omita para digitar)")

    import_parser = subparsers.add_parser("import", help="Importa uma entrada cifrada")
    import_parser.add_argument("key", help="Chave sob a qual importar")
    import_parser.add_argument("file", help="Arquivo exportado")
    import_parser.add_argument("--password", help="Senha de exportação (omita para digitar)")

    return parser


def _build_entries(args: argparse.Namespace, store: Optional[SecureStore]) -> EntryStore:
    overrides = {"vault": args.vault, "store_path": args.store}
    if args.env_file:
        config = EnvPocketConfig.from_file(args.env_file, **overrides)
    else:
        config = EnvPocketConfig.from_environment(**overrides)

    if args.command == "list" and args.vaults:
        config.vault = None

    if store is None and not config.passphrase:
        config.passphrase = _read_password("Senha mestra do armazenamento: ")
    return EntryStore.from_config(config, store=store)


def _cmd_save(entries: EntryStore, args: argparse.Namespace) -> int:
    result = entries.save_file(args.key, args.file)
    _success(f"Arquivo salvo sob a chave '{args.key}' a partir de {Path(args.file).absolute()}")
    if result.had_previous:
        _info("Versão anterior copiada para o histórico")
        if not result.history_saved:
            _warning("Falha ao salvar o histórico da versão anterior")
    return 0


def _cmd_set(entries: EntryStore, args: argparse.Namespace) -> int:
    value = args.value
    if value is None:
        try:
            value = input(f"Digite o valor para '{args.key}': ")
        except EOFError:
            _error("Nenhum valor informado")
            return 1
    result = entries.set_value(args.key, value)
    _success(f"Valor salvo sob a chave '{args.key}'")
    if result.had_previous:
        _info("Versão anterior copiada para o histórico")
        if not result.history_saved:
            _warning("Falha ao salvar o histórico da versão anterior")
    return 0


def _cmd_get(entries: EntryStore, args: argparse.Namespace) -> int:
    entry = entries.get(args.key, args.version_index)

    if args.output == "-":
        sys.stdout.buffer.write(entry.data)
        sys.stdout.flush()
        return 0

    if args.output is None:
        if entry.label is None or entry.label == DIRECT_VALUE_LABEL:
            sys.stdout.buffer.write(entry.data)
            if not entry.data.endswith(b"\n"):
                sys.stdout.buffer.write(b"\n")
            sys.stdout.flush()
            return 0
        output = Path(Path(entry.label).name)
    else:
        output = Path(args.output)

    if output.exists() and not args.force:
        _warning(f"O arquivo '{output}' já existe.")
        if not _confirm("Sobrescrever? (s/n): "):
            _info("Operação cancelada.")
            return 1

    try:
        output.write_bytes(entry.data)
    except OSError as e:
        _error(f"Não foi possível gravar {output}: {e.strerror}")
        return 1

    _success(f"Arquivo recuperado e salvo em {output}")
    if entry.is_history:
        _info("(Versão do histórico recuperada)")
    return 0


def _cmd_delete(entries: EntryStore, args: argparse.Namespace) -> int:
    if has_wildcards(args.key) and not args.force:
        matched = entries.match_keys(args.key)
        if not matched:
            _error(f"Nenhuma chave corresponde ao padrão '{args.key}'")
            return 1
        _info("As seguintes chaves serão removidas:")
        for key in matched:
            count = len(entries.history(key))
            suffix = f" (mais {_plural(count, 'versão', 'versões')} no histórico)" if count else ""
            _info(f"  • {key}{suffix}")
        if not _confirm(f"\nConfirma a remoção de {_plural(len(matched), 'chave', 'chaves')}? (sim/não): "):
            _info("Remoção cancelada.")
            return 1

    try:
        result = entries.delete(args.key)
    except BulkDeleteError as e:
        for key, reason in sorted(e.result.failures.items()):
            _error(f"{key}: {reason}")
        _error(f"{_plural(len(e.result.keys), 'chave removida', 'chaves removidas')}, "
               f"{len(e.result.failures)} com falha")
        return 1

    if has_wildcards(args.key):
        _success(f"{_plural(len(result.keys), 'chave removida', 'chaves removidas')}.")
    else:
        message = f"Chave '{args.key}' removida"
        if result.history_deleted:
            message += (
                f"\nTambém removidas {_plural(result.history_deleted, 'versão', 'versões')} do histórico"
            )
        _success(message)
    return 0


def _cmd_list(entries: EntryStore, args: argparse.Namespace) -> int:
    if args.vaults:
        summary = entries.list_vaults()
        if not summary.vaults and not summary.default_count:
            _info("Nenhum vault ou entrada encontrado")
            return 0
        _info("Vaults disponíveis:")
        for vault in summary.vaults:
            _info(f"  • {vault}")
        if summary.default_count:
            _info(f"  • (padrão) - {_plural(summary.default_count, 'entrada', 'entradas')} sem vault")
        return 0

    rows = entries.list()
    if not rows:
        _info("Nenhuma entrada do envpocket encontrada.")
        return 0

    _info("Entradas do envpocket:")
    for row in rows:
        line = f"  • {row.key}"
        if row.label:
            line += f" ({row.label})"
        if row.last_modified:
            line += f" [modificado: {_format_moment(row.last_modified)}]"
        if row.history_count:
            line += f" [{_plural(row.history_count, 'versão', 'versões')} no histórico]"
        _info(line)
    _info("\nUse 'envpocket history <chave>' para ver o histórico de versões")
    return 0


def _cmd_history(entries: EntryStore, args: argparse.Namespace) -> int:
    versions = entries.history(args.key)
    if not versions:
        _info(f"Nenhum histórico encontrado para a chave '{args.key}'")
        return 0

    _info(f"Histórico de '{args.key}':")
    for index, version in enumerate(versions):
        _info(f"  {index}: {_format_moment(version.timestamp)}")
    _info(
        f"\nUse 'envpocket get {args.key} --version <índice> <arquivo>' "
        "para recuperar uma versão específica"
    )
    return 0


def _cmd_export(entries: EntryStore, args: argparse.Namespace) -> int:
    password = args.password
    if password is None:
        password = _read_password("Senha para a exportação: ")
        if password is None:
            _error("A senha é obrigatória")
            return 1
        if _read_password("Confirme a senha: ") != password:
            _error("As senhas não conferem")
            return 1

    blob = entries.export_entry(args.key, password)

    output = args.output or f"{args.key}{FILE_EXTENSION}"
    if output == "-":
        sys.stdout.buffer.write(blob)
        sys.stdout.flush()
        return 0

    try:
        Path(output).write_bytes(blob)
    except OSError as e:
        _error(f"Não foi possível gravar {output}: {e.strerror}")
        return 1
    _success(
        f"Arquivo cifrado exportado para '{output}'\n"
        "Compartilhe o arquivo e a senha com sua equipe para conceder acesso"
    )
    return 0


def _cmd_import(entries: EntryStore, args: argparse.Namespace) -> int:
    password = args.password
    if password is None:
        password = _read_password("Senha da exportação: ")
        if password is None:
            _error("A senha é obrigatória")
            return 1

    try:
        blob = Path(args.file).read_bytes()
    except OSError as e:
        _error(f"Não foi possível ler o arquivo {args.file} ({e.strerror})")
        return 1

    result = entries.import_entry(args.key, blob, password)
    if result.history_imported:
        _success(
            f"'{args.key}' importada com "
            f"{_plural(result.history_imported, 'versão', 'versões')} de histórico"
        )
    else:
        _success(f"'{args.key}' importada")
    if result.replaced_existing:
        _info("Versão anterior copiada para o histórico")
    return 0


_COMMANDS = {
    "save": _cmd_save,
    "set": _cmd_set,
    "get": _cmd_get,
    "delete": _cmd_delete,
    "list": _cmd_list,
    "history": _cmd_history,
    "export": _cmd_export,
    "import": _cmd_import,
}


def main(argv: Optional[List[str]] = None, store: Optional[SecureStore] = None) -> int:
    """Executa o envpocket e devolve o código de saída.

    Args:
        argv: Argumentos (padrão: sys.argv[1:])
        store: Armazenamento a usar no lugar do configurado (testes)
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        entries = _build_entries(args, store)
        return _COMMANDS[args.command](entries, args)
    except StoreFailureError as e:
        _error(f"{e}. {describe_status(e.status)}")
    except EnvPocketError as e:
        _error(str(e))
    except (ValueError, FileNotFoundError) as e:
        _error(str(e))
    except KeyboardInterrupt:
        _info("\nOperação cancelada.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
