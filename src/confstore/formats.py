"""
Format adapters.

A format adapter turns a structured value into text and back. Stores only rely
on the ``FormatAdapter`` protocol, so any object with ``parse`` and
``stringify`` can be plugged in.
"""

import json
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import yaml

from confstore.core.exceptions import ConfigurationError


@runtime_checkable
class FormatAdapter(Protocol):
    """Serializer/deserializer used by the file store."""

    def parse(self, text: str) -> Any:
        """Parse text into a value."""
        ...  # pragma: no cover

    def stringify(self, value: Any, spacing: Optional[int] = None) -> str:
        """Serialize a value. ``spacing=None`` means compact output."""
        ...  # pragma: no cover


class JsonFormat:
    """
    JSON adapter.

    Compact output has no whitespace at all, indented output keeps non-ASCII
    characters as-is, so files interoperate with JavaScript tooling.
    """

    name = "json"

    def parse(self, text: str) -> Any:
        return json.loads(text)

    def stringify(self, value: Any, spacing: Optional[int] = None) -> str:
        if spacing is None:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return json.dumps(value, ensure_ascii=False, indent=spacing)


class YamlFormat:
    """YAML adapter (safe loader/dumper only)."""

    name = "yaml"

    def parse(self, text: str) -> Any:
        return yaml.safe_load(text)

    def stringify(self, value: Any, spacing: Optional[int] = None) -> str:
        return yaml.safe_dump(
            value,
            indent=spacing if spacing and spacing >= 2 else 2,
            default_flow_style=None if spacing is None else False,
            sort_keys=False,
            allow_unicode=True,
        )


json_format = JsonFormat()
yaml_format = YamlFormat()

_REGISTRY: Dict[str, FormatAdapter] = {
    "json": json_format,
    "yaml": yaml_format,
    "yml": yaml_format,
}


def register_format(name: str, adapter: FormatAdapter) -> None:
    """Register an adapter under a name usable in ``FileStore(format=...)``."""
    _REGISTRY[name.lower()] = adapter


def get_format(format: Any = None) -> FormatAdapter:
    """
    Resolve a format option to an adapter.

    Accepts None (JSON), a registered name or an adapter instance.
    """
    if format is None:
        return json_format

    if isinstance(format, str):
        try:
            return _REGISTRY[format.lower()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown format: {format}",
                context={"format": format, "available": sorted(_REGISTRY)},
            )

    if isinstance(format, FormatAdapter):
        return format

    raise ConfigurationError(
        "format must be a registered name or expose parse() and stringify()",
        context={"format": repr(format)},
    )
