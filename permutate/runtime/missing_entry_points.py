from typing import Callable
from typing import Dict
from typing import Iterable
from typing import Optional
from typing import Set
from typing import Tuple

import dataclasses
import os
import queue

from permutate.base.init import log_error, log_info, log_verbose, log_warning
from permutate.base.manifest import Manifest
from permutate.base.manifest import PathLike
from permutate.base.manifest import read_manifest
from permutate.base.manifest import write_manifest

DEFAULT_CAPACITY = 32

@dataclasses.dataclass(frozen=True)
class MissingEntryPoint:
    """
    A dataclass that represents one entry point a material asked for that the
    compiled module does not export.

    Attributes:
        family (str): The entry point family name, such as `mesh::vertex`.
        permutation (Tuple[str, ...]): The suffixes the active flags selected.
    """
    family: str
    permutation: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "permutation", tuple(self.permutation))

class MissingEntryPointSender:
    """
    The producer handle of a ledger. Any number of resolution call sites, on
    any thread, may hold one. Sending never blocks: when the channel is full
    the record is dropped with a warning and will be reported again the next
    time the same entry point is resolved.
    """

    _channel: "queue.Queue[MissingEntryPoint]"

    def __init__(self, channel: "queue.Queue[MissingEntryPoint]") -> None:
        self._channel = channel

    def send(self, missing: MissingEntryPoint) -> bool:
        try:
            self._channel.put_nowait(missing)
        except queue.Full:
            log_warning(f"Missing entry point channel is full, dropping {missing.family} {list(missing.permutation)}")
            return False

        return True

    def record(self, family: str, permutation: Iterable[str]) -> bool:
        return self.send(MissingEntryPoint(family, tuple(permutation)))

ManifestWriterFn = Callable[[Manifest], None]

class ManifestWriter:
    """
    The default persistence collaborator of a ledger: writes the snapshot it
    is handed to a permutations file, atomically.

    Attributes:
        path (`str`): The permutations file, read back by the next build.
    """

    path: str

    def __init__(self, path: PathLike) -> None:
        self.path = os.fspath(path)

    def __call__(self, manifest: Manifest) -> None:
        log_info(f"Writing {self.path}")
        write_manifest(manifest, self.path)

class MissingEntryPointLedger:
    """
    A class which collects the entry points materials asked for but the
    compiled modules do not export, so the next build can generate them.

    Producers call `record` (or hold a `sender()`), a single consumer calls
    `process_cycle` once per processing cycle. Only the consumer touches the
    collected permutations; the bounded channel between them is the only
    shared state.

    Attributes:
        capacity (`int`): The number of records the channel holds before
            further records are dropped.
        dirty (`bool`): Set when permutations were collected that have not
            been written yet.
    """

    capacity: int
    dirty: bool
    _channel: "queue.Queue[MissingEntryPoint]"
    _entry_points: Dict[str, Set[Tuple[str, ...]]]

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Ledger capacity must be at least 1")

        self.capacity = capacity
        self.dirty = False
        self._channel = queue.Queue(maxsize=capacity)
        self._entry_points = {}

    def __len__(self) -> int:
        return sum(len(permutations) for permutations in self._entry_points.values())

    def __contains__(self, missing: MissingEntryPoint) -> bool:
        return missing.permutation in self._entry_points.get(missing.family, set())

    def sender(self) -> MissingEntryPointSender:
        return MissingEntryPointSender(self._channel)

    def record(self, family: str, permutation: Iterable[str]) -> bool:
        """
        Queue a missing entry point for the next `drain`.

        Returns:
            `bool`: False if the channel was full and the record was dropped.
        """

        return self.sender().record(family, permutation)

    def permutations(self, family: str) -> Set[Tuple[str, ...]]:
        return set(self._entry_points.get(family, set()))

    def families(self):
        return sorted(self._entry_points.keys())

    def _insert(self, missing: MissingEntryPoint) -> bool:
        permutations = self._entry_points.get(missing.family)

        if permutations is None:
            log_info(f"New entry point {missing.family}")
            permutations = set()
            self._entry_points[missing.family] = permutations

        if missing.permutation in permutations:
            return False

        log_info(f"New permutation {missing.family} {list(missing.permutation)}")
        permutations.add(missing.permutation)

        return True

    def drain(self) -> bool:
        """
        Move every queued record into the collected permutations.

        Returns:
            `bool`: True if any record was new. The ledger then stays dirty
                until it is flushed.
        """

        changed = False

        while True:
            try:
                missing = self._channel.get_nowait()
            except queue.Empty:
                break

            if self._insert(missing):
                changed = True

        if changed:
            self.dirty = True

        return changed

    def to_manifest(self) -> Manifest:
        return Manifest({family: sorted(permutations) for family, permutations in self._entry_points.items()})

    def flush(self, writer: ManifestWriterFn) -> bool:
        """
        Hand a snapshot to the writer if the ledger is dirty.

        Args:
            writer (`Callable[[Manifest], None]`): Persists the snapshot, for
                example a `ManifestWriter`.

        Returns:
            `bool`: True if a snapshot was written. A writer raising `OSError`
                is logged and the ledger stays dirty, so the write is retried
                on the next cycle.
        """

        if not self.dirty:
            return False

        try:
            writer(self.to_manifest())
        except OSError as e:
            log_error(f"Failed to write missing entry points: {e}")
            return False

        self.dirty = False

        return True

    def process_cycle(self, writer: ManifestWriterFn) -> bool:
        """
        Drain the channel and write at most once. Hosts call this once per
        processing cycle, so a burst of misses costs a single write.
        """

        self.drain()

        return self.flush(writer)

    def load(self, path: PathLike, missing_ok: bool = True) -> "MissingEntryPointLedger":
        """
        Seed the ledger with the permutations an existing permutations file
        already lists, so flushing keeps them. Loading does not make the
        ledger dirty.

        Args:
            path (`PathLike`): The permutations file.
            missing_ok (`bool`): Whether a missing file is ignored.
        """

        try:
            manifest = read_manifest(path)
        except FileNotFoundError:
            if not missing_ok:
                raise

            log_verbose(f"No permutations file at {os.fspath(path)}, starting empty")
            return self

        for family, permutations in manifest.entry_points.items():
            self._entry_points.setdefault(family, set()).update(permutations)

        return self

def create_ledger(path: Optional[PathLike] = None, capacity: int = DEFAULT_CAPACITY) -> Tuple[MissingEntryPointLedger, Optional[ManifestWriter]]:
    """
    Create a ledger, seeded from and writing back to a permutations file.

    Returns:
        `Tuple[MissingEntryPointLedger, Optional[ManifestWriter]]`: The ledger
            and the writer to pass to `process_cycle`, `None` without a path.
    """

    ledger = MissingEntryPointLedger(capacity)

    if path is None:
        return ledger, None

    ledger.load(path)

    return ledger, ManifestWriter(path)
