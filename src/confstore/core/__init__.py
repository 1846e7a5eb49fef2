"""
confstore core module.

Exports the fundamental components shared by every store.
"""

# Exceptions
from confstore.core.exceptions import (
    ConfstoreError,
    ConfigurationError,
    StoreIOError,
    ParseError,
    SecureEnvelopeError,
    EncryptionError,
    DecryptionError,
)

# Logging
from confstore.core.logging import (
    AsyncLogger,
    PerformanceLogger,
    logger,  # Pre-configured global logger
    perf_logger,
)

__all__ = [
    # Exceptions
    "ConfstoreError",
    "ConfigurationError",
    "StoreIOError",
    "ParseError",
    "SecureEnvelopeError",
    "EncryptionError",
    "DecryptionError",
    # Logging
    "AsyncLogger",
    "PerformanceLogger",
    "logger",
    "perf_logger",
]
