from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

import json
import os
import tempfile

from .errors import ManifestError
from .init import log_verbose

ENTRY_POINTS_KEY = "entry_points"

PathLike = Union[str, "os.PathLike[str]"]

def entry_point_key(module_path: Optional[str], function_name: str) -> str:
    """
    Build the manifest key of an entry point family, `module::path::function`.
    """

    if not module_path:
        return function_name

    return f"{module_path}::{function_name}"

class Manifest:
    """
    The persisted record of permutations per entry point family. It is written
    by the missing entry point ledger and read back by `FilePermutations` on
    the next build.

    Attributes:
        entry_points (`Dict[str, List[Tuple[str, ...]]]`): Permutation tuples
            per `module::path::function` key.
    """

    entry_points: Dict[str, List[Tuple[str, ...]]]

    def __init__(self, entry_points: Optional[Dict[str, Iterable[Iterable[str]]]] = None) -> None:
        self.entry_points = {}

        if entry_points is not None:
            for key, permutations in entry_points.items():
                for permutation in permutations:
                    self.add(key, permutation)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented

        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Manifest({self.to_dict()})"

    def add(self, key: str, permutation: Iterable[str]) -> bool:
        permutation = tuple(permutation)
        permutations = self.entry_points.setdefault(key, [])

        if permutation in permutations:
            return False

        permutations.append(permutation)
        return True

    def get(self, key: str) -> List[Tuple[str, ...]]:
        return list(self.entry_points.get(key, []))

    def to_dict(self) -> Dict[str, List[List[str]]]:
        return {
            key: [list(permutation) for permutation in sorted(self.entry_points[key])]
            for key in sorted(self.entry_points.keys())
        }

    def dumps(self) -> str:
        # Keys and tuples are sorted and every tuple sits on its own block so
        # the file diffs line by line between build cycles.
        return json.dumps({ENTRY_POINTS_KEY: self.to_dict()}, indent=2, sort_keys=True) + "\n"

    @classmethod
    def loads(cls, text: str, source: str = "<string>") -> "Manifest":
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Failed to parse permutations file {source}: {e.msg}", e.lineno, e.colno) from e

        if not isinstance(document, dict):
            raise ManifestError(f"Permutations file {source} must contain a JSON object")

        if ENTRY_POINTS_KEY not in document:
            raise ManifestError(f"No top-level {ENTRY_POINTS_KEY} key in permutations file {source}")

        entry_points = document[ENTRY_POINTS_KEY]

        if not isinstance(entry_points, dict):
            raise ManifestError(f"{ENTRY_POINTS_KEY} in {source} must be an object")

        manifest = cls()

        for key, permutations in entry_points.items():
            if not isinstance(permutations, list):
                raise ManifestError(f"Entry point {key} in {source} must map to a list of permutations")

            manifest.entry_points.setdefault(key, [])

            for permutation in permutations:
                if not isinstance(permutation, list) or not all(isinstance(variant, str) for variant in permutation):
                    raise ManifestError(f"Permutation {permutation!r} of {key} in {source} must be a list of strings")

                manifest.add(key, permutation)

        return manifest

def read_manifest(path: PathLike) -> Manifest:
    """
    Read a manifest from disk.

    Raises:
        FileNotFoundError: If the file does not exist.
        ManifestError: If the file is not a valid manifest.
    """

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    return Manifest.loads(text, os.fspath(path))

def write_manifest(manifest: Manifest, path: PathLike) -> None:
    """
    Write a manifest to disk. The document is written to a temporary file in
    the same directory and renamed into place, so readers never observe a
    partially written manifest.
    """

    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(prefix=".permutations-", suffix=".json", dir=directory)

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(manifest.dumps())

        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    log_verbose(f"Wrote permutations file {path}")
