"""Which installed version of each package the shims currently point at."""

from abc import ABC, abstractmethod
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError


class ActiveVersionStore(ABC):
    """Abstract interface for the package -> active version mapping."""

    @abstractmethod
    def get_active(self, name: str) -> str | None:
        """Return the active version of ``name``, or None if unset."""
        ...

    @abstractmethod
    def set_active(self, name: str, version: str) -> None:
        ...

    @abstractmethod
    def list_active(self) -> dict[str, str]:
        ...


class FilesystemActiveVersionStore(ActiveVersionStore):
    """Production implementation backed by ``<root>/config/active.toml``.

    Written with tomlkit so hand edits and comments in the file survive.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def get_active(self, name: str) -> str | None:
        return self.list_active().get(name)

    def set_active(self, name: str, version: str) -> None:
        doc = self._load_document()
        if "active" not in doc:
            doc["active"] = tomlkit.table()
        doc["active"][name] = version  # type: ignore[index]

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(tomlkit.dumps(doc), encoding="utf-8")

    def list_active(self) -> dict[str, str]:
        doc = self._load_document()
        table = doc.get("active", {})
        return {str(name): str(version) for name, version in table.items()}

    def _load_document(self) -> tomlkit.TOMLDocument:
        if not self._path.exists():
            return tomlkit.document()
        try:
            return tomlkit.parse(self._path.read_text(encoding="utf-8"))
        except TOMLKitError as e:
            raise ValueError(f"Malformed active versions file {self._path}: {e}") from e


class InMemoryActiveVersionStore(ActiveVersionStore):
    """Test implementation holding the mapping in a dict."""

    def __init__(self, active: dict[str, str] | None = None) -> None:
        self._active = dict(active) if active is not None else {}

    def get_active(self, name: str) -> str | None:
        return self._active.get(name)

    def set_active(self, name: str, version: str) -> None:
        self._active[name] = version

    def list_active(self) -> dict[str, str]:
        return dict(self._active)
