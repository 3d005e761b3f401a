"""Short-lived service-account key files.

Only used when the Firebase client is configured to read its key from a
path. The file lives in a private directory, is readable by the owner only,
and is removed as soon as the ``with`` block exits, whatever the outcome.
Files still open at interpreter exit are removed by an ``atexit`` hook.
"""

import atexit
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import json
import logging
import os
from pathlib import Path
import shutil
import tempfile
import threading

logger = logging.getLogger(__name__)

_live_dirs: set[str] = set()
_live_lock = threading.Lock()


def _remove_dir(path: str) -> None:
    shutil.rmtree(path, ignore_errors=True)
    with _live_lock:
        _live_dirs.discard(path)


@atexit.register
def _remove_leftover_key_files() -> None:
    with _live_lock:
        leftovers = list(_live_dirs)
    for path in leftovers:
        _remove_dir(path)


@contextmanager
def temporary_key_file(
    info: Mapping[str, str],
    *,
    parent_dir: str | None = None,
    prefix: str = "firebase-key-",
) -> Iterator[Path]:
    """Write ``info`` as a service-account JSON file and yield its path.

    Args:
        info: Service-account mapping, including the private key.
        parent_dir: Where to create the private directory; defaults to the
            system temp directory.
        prefix: Prefix of the private directory name.

    Yields:
        Path of the key file, valid only inside the ``with`` block.
    """
    key_dir = tempfile.mkdtemp(prefix=prefix, dir=parent_dir)
    with _live_lock:
        _live_dirs.add(key_dir)

    try:
        os.chmod(key_dir, 0o700)
        key_path = Path(key_dir) / "service-account.json"
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as key_file:
            json.dump(dict(info), key_file)
        logger.debug("Created temporary key file in %s", key_dir)
        yield key_path
    finally:
        _remove_dir(key_dir)
        logger.debug("Removed temporary key file directory %s", key_dir)
