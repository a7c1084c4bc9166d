from typing import Dict
from typing import Hashable
from typing import List
from typing import Optional

import dataclasses
import json
import os

from permutate.base.errors import ManifestError
from permutate.base.init import log_info

META_SUFFIX = ".json"

@dataclasses.dataclass
class ModuleMeta:
    """
    A dataclass that represents the metadata of a compiled shader module.

    Attributes:
        entry_points (List[str]): The entry point names the module exports.
        module (str): The path of the compiled module.
    """
    entry_points: List[str]
    module: str

    def __contains__(self, entry_point: str) -> bool:
        return entry_point in self.entry_points

    def to_dict(self) -> Dict:
        return {"entry_points": list(self.entry_points), "module": self.module}

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def loads(cls, text: str, source: str = "<string>") -> "ModuleMeta":
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Failed to parse module meta {source}: {e.msg}", e.lineno, e.colno) from e

        if not isinstance(document, dict):
            raise ManifestError(f"Module meta {source} must contain a JSON object")

        entry_points = document.get("entry_points")

        if not isinstance(entry_points, list) or not all(isinstance(name, str) for name in entry_points):
            raise ManifestError(f"Module meta {source} must list its entry_points as strings")

        module = document.get("module", "")

        if not isinstance(module, str):
            raise ManifestError(f"Module meta {source} has a non-string module path")

        return cls(entry_points, module)

def meta_path_for(module_path: str) -> str:
    return module_path + META_SUFFIX

def read_module_meta(path: str) -> ModuleMeta:
    with open(path, "r", encoding="utf-8") as f:
        return ModuleMeta.loads(f.read(), path)

def write_module_meta(meta: ModuleMeta, path: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(meta.dumps())

class ModuleRegistry:
    """
    A class which owns the metadata of every compiled shader module the host
    has loaded, keyed by the host's module handle. One registry is created by
    the host and passed by reference to every resolution call site.

    Attributes:
        generation (`int`): Incremented on every change, so hosts can tell
            when previously specialized pipelines must be specialized again.
    """

    _metas: Dict[Hashable, ModuleMeta]
    generation: int

    def __init__(self) -> None:
        self._metas = {}
        self.generation = 0

    def __enter__(self) -> "ModuleRegistry":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.clear()

    def __len__(self) -> int:
        return len(self._metas)

    def __contains__(self, handle: Hashable) -> bool:
        return handle in self._metas

    def insert(self, handle: Hashable, meta: ModuleMeta) -> None:
        log_info(f"Updating shader meta for {handle!r}")

        self._metas[handle] = meta
        self.generation += 1

    def load(self, path: str, handle: Optional[Hashable] = None) -> Hashable:
        """
        Read a module meta document and register it.

        Args:
            path (`str`): The module meta path.
            handle (`Optional[Hashable]`): The handle to register it under,
                defaults to the path itself.

        Returns:
            `Hashable`: The handle the meta was registered under.
        """

        if handle is None:
            handle = path

        self.insert(handle, read_module_meta(path))

        return handle

    def get(self, handle: Hashable) -> Optional[ModuleMeta]:
        return self._metas.get(handle)

    def entry_points(self, handle: Hashable) -> Optional[List[str]]:
        meta = self._metas.get(handle)

        if meta is None:
            return None

        return list(meta.entry_points)

    def remove(self, handle: Hashable) -> Optional[ModuleMeta]:
        meta = self._metas.pop(handle, None)

        if meta is not None:
            log_info(f"Removing shader meta for {handle!r}")
            self.generation += 1

        return meta

    def clear(self) -> None:
        if len(self._metas) > 0:
            self._metas.clear()
            self.generation += 1
