"""Funções auxiliares para o envpocket."""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Dict, Iterator, TextIO

from dotenv import dotenv_values


def parse_env_stream(stream: TextIO) -> Dict[str, str]:
    """Parseia um stream .env usando python-dotenv."""
    data = dotenv_values(stream=stream)
    return {key: value for key, value in data.items() if value is not None}


def parse_env_file(path: Path) -> Dict[str, str]:
    """Parseia um arquivo .env usando python-dotenv."""
    with path.open("r", encoding="utf-8", errors="strict") as f:
        return parse_env_stream(f)


def _lock_file(file_handle: IO) -> None:
    if os.name == "nt":
        import msvcrt

        file_handle.seek(0)
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_LOCK, 1)
        return

    import fcntl

    fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX)


def _unlock_file(file_handle: IO) -> None:
    if os.name == "nt":
        import msvcrt

        file_handle.seek(0)
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)
        return

    import fcntl

    fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)


@contextmanager
def locked_file(path: Path, mode: int = 0o600) -> Iterator[TextIO]:
    """Abre (criando se preciso) o arquivo com lock exclusivo enquanto em uso.

    Arquivos novos são criados com as permissões ``mode``.
    """
    fd = os.open(path, os.O_RDWR | os.O_CREAT, mode)
    file_handle = os.fdopen(fd, "r+", encoding="utf-8", errors="strict")
    _lock_file(file_handle)
    try:
        yield file_handle
    finally:
        _unlock_file(file_handle)
        file_handle.close()
