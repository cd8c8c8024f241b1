"""Atomic file replacement helpers.

Content is written to a temporary file in the destination directory and moved
into place with :func:`os.replace`, so readers only ever observe the previous
or the complete new file under the final name.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, Iterator, Mapping

_TMP_PREFIX = ".tmp_pki_"


def _fsync_dir(path: Path) -> None:
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def _stage(path: Path, data: bytes, mode: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=_TMP_PREFIX)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb", closefd=True) as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()
        raise
    return tmp_path


@contextlib.contextmanager
def atomic_replace(path: str | os.PathLike[str], *, mode: int = 0o644) -> Iterator[IO[bytes]]:
    """Yield a binary handle whose content replaces *path* on success.

    If the block raises, the temporary file is removed and *path* is left
    untouched.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=_TMP_PREFIX)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb", closefd=True) as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, target)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()
        raise
    _fsync_dir(target.parent)


def _backup(path: Path) -> Path | None:
    if not path.exists():
        return None
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=_TMP_PREFIX)
    os.close(fd)
    backup = Path(tmp_name)
    try:
        shutil.copy2(path, backup)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            backup.unlink()
        raise
    return backup


def _rollback(replaced: list[Path], backups: Mapping[Path, Path | None]) -> None:
    for target in reversed(replaced):
        backup = backups.get(target)
        # the original error is re-raised by the caller
        with contextlib.suppress(OSError):
            if backup is None:
                target.unlink()
            else:
                os.replace(backup, target)


def write_files_atomically(files: Mapping[str | os.PathLike[str], tuple[bytes, int]]) -> None:
    """Replace several files, staging every one of them before any rename.

    *files* maps a destination path to ``(content, mode)``.  A failure while
    staging leaves all destinations unchanged.  Existing destinations are
    copied aside before the renames, and a failed rename puts the already
    replaced destinations back so the set never mixes old and new content.
    """

    staged: list[tuple[Path, Path]] = []
    backups: dict[Path, Path | None] = {}
    try:
        for raw_path, (data, mode) in files.items():
            target = Path(raw_path)
            staged.append((_stage(target, data, mode), target))
        for _, target in staged:
            backups[target] = _backup(target)

        replaced: list[Path] = []
        try:
            for tmp_path, target in staged:
                os.replace(tmp_path, target)
                replaced.append(target)
        except BaseException:
            _rollback(replaced, backups)
            raise
    finally:
        leftovers = [tmp_path for tmp_path, _ in staged]
        leftovers.extend(backup for backup in backups.values() if backup is not None)
        for tmp_path in leftovers:
            with contextlib.suppress(FileNotFoundError):
                tmp_path.unlink()
    for parent in {target.parent for _, target in staged}:
        _fsync_dir(parent)


__all__ = ["atomic_replace", "write_files_atomically"]
