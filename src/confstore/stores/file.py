"""
File store: an in-memory store that can persist itself to disk.
"""

import asyncio
import os
from typing import Any, Dict, Optional

from confstore.core.exceptions import ConfigurationError, ParseError, StoreIOError
from confstore.core.logging import logger, perf_logger
from confstore.formats import FormatAdapter, get_format
from confstore.options import FileStoreOptions, build_options
from confstore.resolver import resolve_file
from confstore.secure import SecureEnvelope, WarningCallback
from confstore.stores.memory import MemoryStore

BOM = "\ufeff"


class FileStore:
    """
    Configuration store backed by a single file.

    Owns a ``MemoryStore`` and forwards get/set/clear/merge/reset to it.
    ``load``/``save`` run their file-system call in the default executor;
    ``load_sync``/``save_sync`` block and are meant for startup and shutdown.

    There is no locking: a save serializes whatever the store holds when it
    starts, and concurrent saves to one path race (last write wins).

    Example:
        >>> store = FileStore(file="app.json", search=True, secure="0" * 32)
        >>> store.load_sync()
        >>> store.set("database:host", "localhost")
        >>> await store.save()

    Args:
        options: Prebuilt ``FileStoreOptions``. Mutually exclusive with kwargs
        on_warning: Receives non-fatal warnings (legacy envelopes)
        **kwargs: Raw options, see ``confstore.options.build_options``
    """

    type = "file"

    def __init__(
        self,
        options: Optional[FileStoreOptions] = None,
        *,
        on_warning: Optional[WarningCallback] = None,
        **kwargs: Any,
    ) -> None:
        if options is None:
            options = build_options(**kwargs)
        elif kwargs:
            raise ConfigurationError(
                "Pass either FileStoreOptions or keyword options, not both",
                context={"kwargs": sorted(kwargs)},
            )

        self.options = options
        self.file: str = options.file
        self.dir: str = options.dir
        self.format: FormatAdapter = options.adapter
        self.secure = options.secure
        self.spacing: int = options.spacing
        self.on_warning = on_warning
        self._memory = MemoryStore(options.logical_separator, options.read_only)

        if options.search:
            self.search(self.dir)

    def __repr__(self) -> str:
        name = getattr(self.format, "name", type(self.format).__name__)
        return f"<FileStore file={self.file!r} format={name!r} secure={bool(self.secure)}>"

    # ------------------------------------------------------------------
    # Forwarded key/value API
    # ------------------------------------------------------------------

    @property
    def store(self) -> Dict[str, Any]:
        return self._memory.store

    @property
    def read_only(self) -> bool:
        return self._memory.read_only

    def get(self, key: Optional[str] = None) -> Any:
        return self._memory.get(key)

    def set(self, key: Optional[str], value: Any) -> bool:
        return self._memory.set(key, value)

    def clear(self, key: str) -> bool:
        return self._memory.clear(key)

    def merge(self, key: Optional[str], value: Any) -> bool:
        return self._memory.merge(key, value)

    def reset(self) -> bool:
        return self._memory.reset()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def search(self, base: Optional[str] = None) -> Optional[str]:
        """
        Look for ``self.file`` from ``base`` upwards, then in ``self.dir``.

        On success ``self.file`` becomes the resolved path; on failure it is
        left untouched.

        Returns:
            The resolved path or None
        """
        resolved = resolve_file(self.file, base or os.getcwd(), self.dir)
        if resolved:
            logger.debug("Config file resolved", file=self.file, resolved=resolved)
            self.file = resolved
        return resolved

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _envelope(self, format: FormatAdapter) -> SecureEnvelope:
        return SecureEnvelope(self.secure.alg, self.secure.secret, format, self.on_warning)

    def stringify(self, format: Any = None) -> str:
        """
        Serialize the current contents, sealing each top-level value in
        secure mode.
        """
        adapter = get_format(format) if format is not None else self.format
        data = self.store
        if self.secure:
            data = self._envelope(adapter).seal(data)
        return adapter.stringify(data, self.spacing)

    def parse(self, contents: str) -> Dict[str, Any]:
        """
        Parse file contents, opening envelopes in secure mode.

        An empty document (e.g. an empty YAML file) parses to ``{}``.
        """
        parsed = self.format.parse(contents)
        if parsed is None:
            parsed = {}

        if self.secure:
            parsed = self._envelope(self.format).open(parsed)

        if not isinstance(parsed, dict):
            raise ValueError(
                f"configuration document must be a mapping, got {type(parsed).__name__}"
            )
        return parsed

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def _read_bytes(self) -> Optional[bytes]:
        """Raw file content, or None when the file does not exist."""
        path = self.file
        if not os.path.exists(path):
            return None

        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("Cannot read config file", file=path, error=str(e))
            raise StoreIOError(
                f"Cannot read configuration file: [{path}]: {e}",
                context={"file": path},
                cause=e,
            ) from e

    def _decode(self, data: Optional[bytes]) -> Dict[str, Any]:
        if data is None:
            return {}

        path = self.file
        try:
            text = data.decode("utf-8")
            if text.startswith(BOM):
                text = text[1:]
            return self.parse(text)
        except Exception as e:
            logger.error("Cannot parse config file", file=path, error=str(e))
            raise ParseError(
                f"Error parsing your configuration file: [{path}]: {e}",
                context={"file": path},
                cause=e,
            ) from e

    def _commit(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return self._memory.load_from(document)

    async def load(self) -> Dict[str, Any]:
        """
        Load the file into the store.

        A missing file yields an empty store. On any failure the previous
        contents are kept.

        Raises:
            StoreIOError: the file exists but cannot be read
            ParseError: decoding, parsing or decryption failed
        """
        loop = asyncio.get_running_loop()
        with perf_logger.measure("load", file=self.file):
            data = await loop.run_in_executor(None, self._read_bytes)
            document = self._decode(data)
        return self._commit(document)

    def load_sync(self) -> Dict[str, Any]:
        """Blocking ``load``. Same failure semantics: previous contents are kept."""
        with perf_logger.measure("load_sync", file=self.file):
            document = self._decode(self._read_bytes())
        return self._commit(document)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    @staticmethod
    def _write(path: str, text: str) -> None:
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error("Cannot write config file", file=path, error=str(e))
            raise StoreIOError(
                f"Cannot write configuration file: [{path}]: {e}",
                context={"file": path},
                cause=e,
            ) from e

    async def save(self) -> str:
        """Write the store to ``self.file``. Returns the text written."""
        return await self.save_to_file(self.file)

    async def save_to_file(self, path: Any, format: Any = None) -> str:
        """
        Write the store to ``path``, optionally with another format.

        The store is serialized before the write is scheduled.

        Raises:
            StoreIOError: the write failed
            EncryptionError: a value could not be sealed
        """
        target = os.fspath(path)
        text = self.stringify(format)
        loop = asyncio.get_running_loop()
        with perf_logger.measure("save", file=target):
            await loop.run_in_executor(None, self._write, target, text)
        return text

    def save_sync(self) -> str:
        """Blocking ``save``."""
        return self.save_to_file_sync(self.file)

    def save_to_file_sync(self, path: Any, format: Any = None) -> str:
        """Blocking ``save_to_file``."""
        target = os.fspath(path)
        text = self.stringify(format)
        with perf_logger.measure("save_sync", file=target):
            self._write(target, text)
        return text
