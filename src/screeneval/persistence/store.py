"""File-backed key-value store for session configurations."""

import json
import re
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError

from ..config.settings import settings
from ..utils.logging import get_logger
from .models import PersistedConfiguration

logger = get_logger(__name__)


class _MappingLoader(yaml.SafeLoader):
    """Safe loader that keeps yes/no/on/off as text.

    YAML 1.1 resolves unquoted `yes: include` keys to booleans, which would
    lose the label vocabulary of a hand-written mapping file.  Only the
    literals `true` and `false` are read as booleans.
    """


_MappingLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag != "tag:yaml.org,2002:bool"
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_MappingLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


class ConfigStore:
    """
    Store persisted configurations as JSON documents, one file per key.

    Unreadable or malformed documents are logged and treated as absent so
    that a broken save never blocks loading a table.
    """

    def __init__(self, store_dir: Optional[Path] = None) -> None:
        self.store_dir = store_dir or settings.cache_dir / "configs"
        self.store_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in name) or "default"
        return self.store_dir / f"{safe}.json"

    def save(self, name: str, config: PersistedConfiguration) -> Path:
        path = self._path(name)
        path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Saved configuration {name!r} to {path}")
        return path

    def load(self, name: str) -> Optional[PersistedConfiguration]:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return PersistedConfiguration.model_validate_json(path.read_text(encoding="utf-8"))
        except (ValidationError, json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable configuration {path}: {e}")
            return None

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if path.exists():
            path.unlink()
            return True
        return False

    def names(self) -> List[str]:
        return sorted(p.stem for p in self.store_dir.glob("*.json"))


def read_configuration(path: Path) -> PersistedConfiguration:
    """Read a configuration file (JSON or YAML) exported by a reviewer."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.load(text, Loader=_MappingLoader) or {}
    else:
        data = json.loads(text)
    return PersistedConfiguration.model_validate(data)


def write_configuration(path: Path, config: PersistedConfiguration) -> None:
    data = config.model_dump(mode="json")
    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
