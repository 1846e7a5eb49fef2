"""
Construction options for file stores.

Options are validated once into frozen models. Caller-supplied dicts are
copied, never normalized in place.
"""

import os
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from confstore.core.exceptions import ConfigurationError
from confstore.core.logging import logger
from confstore.formats import FormatAdapter, get_format
from confstore.secure import DEFAULT_ALGORITHM

DEFAULT_SPACING = 2

SecureInput = Union[None, str, bytes, Dict[str, Any], "SecureOptions"]


class SecureOptions(BaseModel):
    """
    Resolved secure-mode configuration.

    ``secret`` is never empty: a model only exists once a secret was found.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    secret: str = Field(..., min_length=1, description="Shared secret")
    alg: str = Field(default=DEFAULT_ALGORITHM, description="OpenSSL cipher name")
    secret_path: Optional[str] = Field(
        default=None, alias="secretPath", description="File the secret was read from"
    )


class FileStoreOptions(BaseModel):
    """Validated, immutable options of a ``FileStore``."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    file: str = Field(..., min_length=1)
    dir: str = Field(default_factory=os.getcwd)
    format: Any = Field(default=None, description="Resolved FormatAdapter")
    search: bool = False
    secure: Optional[SecureOptions] = None
    spacing: int = Field(default=DEFAULT_SPACING, ge=0)
    logical_separator: str = Field(default=":", min_length=1)
    read_only: bool = False

    @property
    def adapter(self) -> FormatAdapter:
        return self.format


def _read_secret(secret_path: str) -> str:
    try:
        with open(secret_path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        logger.error("Cannot read secret file", secret_path=secret_path, error=str(e))
        raise ConfigurationError(
            f"Cannot read secure.secretPath: {secret_path}",
            context={"secret_path": secret_path},
            cause=e,
        ) from e


def normalize_secure(value: SecureInput) -> Optional[SecureOptions]:
    """
    Turn the ``secure`` option into ``SecureOptions``.

    ``None``, ``False`` and an empty string disable secure mode. Anything
    else asks for it and must resolve to a non-empty secret.

    Accepted forms:
    - a raw secret (str or bytes)
    - a mapping with ``secret``, ``secret_path``/``secretPath`` and ``alg``
    - an existing ``SecureOptions``

    A secret read from ``secret_path`` wins over an inline ``secret``.
    The file content is used verbatim.

    Raises:
        ConfigurationError: secure mode requested without a resolvable secret
    """
    if value is None or value is False or value == "":
        return None

    if isinstance(value, SecureOptions):
        return value

    if isinstance(value, bytes):
        value = value.decode("utf-8")

    if isinstance(value, str):
        raw: Dict[str, Any] = {"secret": value}
    elif isinstance(value, dict):
        raw = dict(value)
    else:
        raise ConfigurationError(
            "secure must be a secret string, bytes or a mapping",
            context={"type": type(value).__name__},
        )

    aliases = (raw.pop("secret_path", None), raw.pop("secretPath", None))
    secret_path = next((path for path in aliases if path), None)
    if secret_path:
        raw["secret"] = _read_secret(os.fspath(secret_path))
        raw["secret_path"] = os.fspath(secret_path)

    if isinstance(raw.get("secret"), bytes):
        raw["secret"] = raw["secret"].decode("utf-8")

    if not raw.get("secret"):
        error = ConfigurationError("secure.secret option is required")
        error.add_suggestion("Pass secure='<secret>' or secure={'secret_path': '<file>'}")
        raise error

    raw["alg"] = raw.get("alg") or DEFAULT_ALGORITHM

    try:
        return SecureOptions(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid secure options: {e}", cause=e) from e


def build_options(
    file: Any = None,
    dir: Any = None,
    format: Any = None,
    search: bool = False,
    secure: SecureInput = None,
    json_spacing: Optional[int] = None,
    spacing: Optional[int] = None,
    logical_separator: str = ":",
    read_only: bool = False,
) -> FileStoreOptions:
    """
    Validate raw keyword options into ``FileStoreOptions``.

    ``json_spacing`` takes precedence over ``spacing``. Unset or 0 falls
    through to the next one, then to 2.

    Raises:
        ConfigurationError: missing ``file``, bad secret, unknown format or
            otherwise invalid values
    """
    if not file:
        raise ConfigurationError("Missing required option `file`")

    resolved_spacing = json_spacing or spacing or DEFAULT_SPACING

    fields: Dict[str, Any] = {
        "file": os.fspath(file),
        "format": get_format(format),
        "search": bool(search),
        "secure": normalize_secure(secure),
        "spacing": resolved_spacing,
        "logical_separator": logical_separator,
        "read_only": read_only,
    }
    if dir:
        fields["dir"] = os.fspath(dir)

    try:
        return FileStoreOptions(**fields)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid file store options: {e}", cause=e) from e
