"""
In-memory key/value store.

Keys are paths through nested mappings joined by a separator, e.g.
``"database:host"`` addresses ``store["database"]["host"]``.
"""

from typing import Any, Dict, List, Optional


class MemoryStore:
    """
    Mapping of key paths to values.

    Args:
        logical_separator: Separator between path segments
        read_only: Reject every mutation (mutators return False)
    """

    type = "memory"

    def __init__(self, logical_separator: str = ":", read_only: bool = False) -> None:
        self.logical_separator = logical_separator
        self.read_only = read_only
        self.store: Dict[str, Any] = {}

    def _path(self, key: str) -> List[str]:
        return str(key).split(self.logical_separator)

    def get(self, key: Optional[str] = None) -> Any:
        """Value at ``key``, the whole store for None, or None if missing."""
        if key is None:
            return self.store

        target: Any = self.store
        for part in self._path(key):
            if not isinstance(target, dict) or part not in target:
                return None
            target = target[part]
        return target

    def set(self, key: Optional[str], value: Any) -> bool:
        """
        Set ``key`` to ``value``, creating intermediate mappings.

        ``key=None`` with a mapping replaces the whole store.
        """
        if self.read_only:
            return False

        if key is None:
            if not isinstance(value, dict):
                return False
            self.store = value
            return True

        path = self._path(key)
        target = self.store
        for part in path[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]

        target[path[-1]] = value
        return True

    def clear(self, key: str) -> bool:
        """Remove ``key``. Missing keys are not an error."""
        if self.read_only:
            return False

        path = self._path(key)
        target: Any = self.store
        for part in path[:-1]:
            if not isinstance(target, dict) or part not in target:
                return True
            target = target[part]

        if isinstance(target, dict):
            target.pop(path[-1], None)
        return True

    def merge(self, key: Optional[str], value: Any) -> bool:
        """Deep-merge a mapping into ``key``. Non-mappings behave like ``set``."""
        if self.read_only:
            return False

        if not isinstance(value, dict):
            return self.set(key, value)

        if key is None:
            _deep_merge(self.store, value)
            return True

        current = self.get(key)
        if not isinstance(current, dict):
            return self.set(key, _deep_merge({}, value))

        _deep_merge(current, value)
        return True

    def reset(self) -> bool:
        """Empty the store."""
        if self.read_only:
            return False
        self.store = {}
        return True

    def load_from(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the contents with ``document`` (ignores read_only, used by loaders)."""
        self.store = document
        return self.store


def _deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge of dictionaries."""
    for key, value in update.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif isinstance(value, dict):
            base[key] = _deep_merge({}, value)
        else:
            base[key] = value
    return base
