"""JSON-file credential store with atomic writes.

Each mutation re-reads the file, applies the change and writes the whole
document to a temporary file that is fsynced and renamed over the original,
so readers never observe a partial write. Blocking file I/O runs in the
default executor; an asyncio lock serializes writers in this process and an
``fcntl`` lock file serializes writers across processes.
"""

from __future__ import annotations

import asyncio
import fcntl
import json
import logging
import os
import stat
import tempfile
from pathlib import Path

from ..auth.models import Provider, TokenRole
from .base import CredentialStore


class FileCredentialStore(CredentialStore):
    """Credential store persisted as a ``{key: value}`` JSON object (mode 0600)."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        if not isinstance(path, str | os.PathLike):
            raise TypeError("path must be str or os.PathLike")
        super().__init__()
        self.path = Path(os.path.expanduser(str(path)))
        self._io_lock = asyncio.Lock()

    async def get(self, provider: Provider, role: TokenRole) -> str | None:
        async with self._io_lock:
            data = await self._run(self._read)
        value = data.get(role.key(provider))
        return value if isinstance(value, str) else None

    async def set(self, provider: Provider, role: TokenRole, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("credential values must be strings")
        key = role.key(provider)
        async with self._io_lock:
            await self._run(self._update, key, value)

    async def clear(self, provider: Provider, role: TokenRole) -> None:
        key = role.key(provider)
        async with self._io_lock:
            await self._run(self._update, key, None)

    async def _run(self, func, *args):  # noqa: ANN001, ANN202
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _read(self) -> dict[str, str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logging.error(f"💥 Credential store unreadable path={self.path} error={type(e).__name__}")
            raise
        if not isinstance(data, dict):
            logging.warning(f"⚠️ Credential store root is not an object path={self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def _update(self, key: str, value: str | None) -> None:
        self._prepare_dir()
        lock_path = self.path.with_name(f".{self.path.name}.lock")
        with open(lock_path, "w", encoding="utf-8") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            data = self._read()
            if value is None:
                if key not in data:
                    return
                del data[key]
            else:
                if data.get(key) == value:
                    return
                data[key] = value
            self._atomic_write(data)

    def _prepare_dir(self) -> None:
        """Create the store directory (owner-only) if it doesn't exist."""
        store_dir = self.path.parent
        if store_dir.exists():
            return
        store_dir.mkdir(parents=True, exist_ok=True)
        try:
            if stat.S_IMODE(store_dir.stat().st_mode) != 0o700:
                os.chmod(store_dir, 0o700)
        except (PermissionError, FileNotFoundError):
            pass

    def _atomic_write(self, data: dict[str, str]) -> None:
        temp_path: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as tmp:
                temp_path = tmp.name
                os.chmod(temp_path, 0o600)
                json.dump(data, tmp, indent=2, sort_keys=True)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(temp_path, self.path)
            logging.debug(f"💾 Credential store saved keys={len(data)}")
        except (OSError, ValueError) as e:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
            logging.error(f"💥 Atomic credential save failed: {type(e).__name__}")
            raise
