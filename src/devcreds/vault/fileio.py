# Vault - Private File I/O
#
# Owner-only directories and files, written atomically
# (temp file in the same directory + fsync + os.replace).

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


def ensure_private_dir(path: Path) -> Path:
    """Create ``path`` (and parents) and force mode 700 on it."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
    if sys.platform != "win32":
        os.chmod(path, DIR_MODE)
    return path


def atomic_write(path: Path, data: Union[str, bytes], mode: int = FILE_MODE) -> None:
    """Replace ``path`` with ``data`` so readers see the old or new file, never a torn one."""
    path = Path(path)
    payload = data.encode("utf-8") if isinstance(data, str) else data

    fd, tmp_path = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except Exception:
        # Clean up temp file on failure
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
