"""
confstore - file persistence for layered configuration stores.

Loads a configuration document from disk into an in-memory key/value store and
writes it back through a pluggable format, with optional per-value encryption
and upward directory search for the target file.
"""

from confstore._version import __version__, __version_info__

# Core components
from confstore.core import (
    logger,
    ConfstoreError,
    ConfigurationError,
    StoreIOError,
    ParseError,
    SecureEnvelopeError,
    EncryptionError,
    DecryptionError,
)

# Formats
from confstore.formats import (
    FormatAdapter,
    JsonFormat,
    YamlFormat,
    json_format,
    yaml_format,
    get_format,
    register_format,
)

# Options
from confstore.options import FileStoreOptions, SecureOptions, build_options

# Resolution and encryption
from confstore.resolver import resolve_file
from confstore.secure import SecureEnvelope, seal, open_document

# Stores
from confstore.stores import MemoryStore, FileStore

__all__ = [
    # Version info
    "__version__",
    "__version_info__",
    # Core
    "logger",
    # Exceptions
    "ConfstoreError",
    "ConfigurationError",
    "StoreIOError",
    "ParseError",
    "SecureEnvelopeError",
    "EncryptionError",
    "DecryptionError",
    # Formats
    "FormatAdapter",
    "JsonFormat",
    "YamlFormat",
    "json_format",
    "yaml_format",
    "get_format",
    "register_format",
    # Options
    "FileStoreOptions",
    "SecureOptions",
    "build_options",
    # Resolution and encryption
    "resolve_file",
    "SecureEnvelope",
    "seal",
    "open_document",
    # Stores
    "MemoryStore",
    "FileStore",
]
