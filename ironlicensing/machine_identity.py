import logging
import os
import platform
import sys
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import psutil

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

# Serializes first-time generation between threads of this process
_generation_lock = threading.Lock()


@contextmanager
def _exclusive_file_lock(lock_path: Path):
    """Hold an OS-level exclusive lock on ``lock_path`` (shared across processes)."""
    fd = os.open(str(lock_path), os.O_CREAT | os.O_RDWR, 0o600)
    try:
        if sys.platform == "win32":
            msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
        else:
            fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            yield
        finally:
            if sys.platform == "win32":
                os.lseek(fd, 0, os.SEEK_SET)
                msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


class MachineIdentity:
    """
    Stable per-machine identifier persisted as a plain string file.

    Once written the file is never rewritten; concurrent first runs (threads
    or processes) all end up with the identifier that reached disk first.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._value: Optional[str] = None

    def _read(self) -> Optional[str]:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return value or None

    def _create(self) -> str:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.path.with_name(self.path.name + ".lock")

        with _exclusive_file_lock(lock_path):
            existing = self._read()
            if existing:
                return existing

            new_id = str(uuid.uuid4())
            tmp_path = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
            tmp_path.write_text(new_id, encoding="utf-8")
            os.replace(tmp_path, self.path)
            logger.info(f"Generated new machine id at {self.path}")

            return self._read() or new_id

    def get_or_create(self) -> str:
        if self._value:
            return self._value

        with _generation_lock:
            if self._value:
                return self._value

            try:
                value = self._read()
                if not value:
                    value = self._create()
            except OSError as e:
                # Unwritable home: keep a process-local id so the client still works
                value = str(uuid.uuid4())
                logger.warning(f"Could not persist machine id to {self.path}: {e}")

            self._value = value
            return value


def get_hostname() -> str:
    """Default machine name reported on activation."""
    return platform.node() or "unknown"


def get_platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("linux"):
        return "linux"
    return "unknown"


def get_system_info() -> dict:
    """Host details reported by the local service's health endpoint."""
    memory = psutil.virtual_memory()
    return {
        "platform": get_platform(),
        "hostname": get_hostname(),
        "os": f"{platform.system()} {platform.release()}",
        "python": platform.python_version(),
        "cpus": psutil.cpu_count(logical=True),
        "memory_mb": memory.total // (1024 * 1024),
    }
