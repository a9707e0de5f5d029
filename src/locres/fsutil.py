import logging
import os
import pathlib
import stat
import tempfile

logger = logging.getLogger(__name__)


def atomic_write(path: str | os.PathLike, data: bytes) -> None:
    """Replace ``path`` with ``data`` through a temporary file in the same folder."""
    target = pathlib.Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
    )
    try:
        with os.fdopen(fd, "wb") as fp:
            fp.write(data)
            fp.flush()
            os.fsync(fp.fileno())
        os.chmod(temp_name, _file_mode(target))
        os.replace(temp_name, target)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
    logger.debug(f"Wrote {len(data)} bytes to {target}")


def _file_mode(target: pathlib.Path) -> int:
    # mkstemp creates 0600 files; keep the mode of the file being replaced
    if target.exists():
        return stat.S_IMODE(target.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def remove_if_empty(folder: str | os.PathLike) -> bool:
    path = pathlib.Path(folder)
    if path.is_dir() and not any(path.iterdir()):
        path.rmdir()
        logger.info(f"Removed empty folder {path}")
        return True
    return False
