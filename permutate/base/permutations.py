from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

import dataclasses
import itertools
import os

import numpy as np

from .errors import InvalidVariant
from .errors import PermutationArityError
from .manifest import entry_point_key
from .manifest import read_manifest
from .init import log_warning, log_verbose
from .parameters import ParameterTable
from .parameters import PermutationTuple

WILDCARD = "*"

@dataclasses.dataclass(frozen=True)
class PermutationVariant:
    """
    A dataclass that represents one position of an explicit permutation.

    Attributes:
        variants (Tuple[str, ...]): The literal variants listed for this
            position. More than one variant is an alternation (`a | b`).
            Empty for the `*` wildcard.
        line (Optional[int]): The template line the position was written on.
        column (Optional[int]): The template column the position was written on.
    """
    variants: Tuple[str, ...]
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def is_wildcard(self) -> bool:
        return len(self.variants) == 0

    @classmethod
    def from_value(cls, value: Union[str, Sequence[str], "PermutationVariant"]) -> "PermutationVariant":
        if isinstance(value, PermutationVariant):
            return value

        if isinstance(value, str):
            parts = [part.strip() for part in value.split("|")]
        else:
            parts = [str(part).strip() for part in value]

        if WILDCARD in parts:
            return cls(())

        return cls(tuple(parts))

    def validate(self, table: ParameterTable, position: int) -> None:
        for variant in self.variants:
            if variant not in table[position].variants:
                raise InvalidVariant(variant, position, table[position].variants, self.line, self.column)

    def indices(self, table: ParameterTable, position: int) -> List[int]:
        if self.is_wildcard:
            return list(range(len(table[position].variants)))

        return [table[position].index_of(variant, position) for variant in self.variants]

    def __str__(self) -> str:
        if self.is_wildcard:
            return WILDCARD

        return " | ".join(self.variants)

class PermutationSource:
    """
    The base class of every permutation source. A source produces rows of
    variant indices aligned to a parameter table.
    """

    def validate(self, table: ParameterTable) -> None:
        pass

    def index_rows(self, table: ParameterTable, function_name: Optional[str], base_dir: Optional[str]) -> List[Tuple[int, ...]]:
        raise NotImplementedError()

    def file_path(self) -> Optional[str]:
        return None

class ExplicitPermutations(PermutationSource):
    """
    A permutation source listing partial or full tuples. Every position of a
    tuple is a literal variant, an alternation of variants or the `*`
    wildcard. Tuples shorter than the table are padded with wildcards.

    Attributes:
        permutations (`List[Tuple[PermutationVariant, ...]]`): The listed tuples.
    """

    permutations: List[Tuple[PermutationVariant, ...]]

    def __init__(self, permutations: Iterable[Sequence[Union[str, Sequence[str], PermutationVariant]]]) -> None:
        self.permutations = [
            tuple(PermutationVariant.from_value(value) for value in permutation)
            for permutation in permutations
        ]

    def __repr__(self) -> str:
        inner = ", ".join("(" + ", ".join(str(variant) for variant in permutation) + ")" for permutation in self.permutations)
        return f"ExplicitPermutations([{inner}])"

    def validate(self, table: ParameterTable) -> None:
        for permutation in self.permutations:
            if len(permutation) > len(table):
                first = permutation[0] if len(permutation) > 0 else PermutationVariant(())
                raise PermutationArityError(
                    f"Permutation ({', '.join(str(variant) for variant in permutation)}) has {len(permutation)} positions, "
                    f"but only {len(table)} parameters are declared ({', '.join(table.names)})",
                    first.line,
                    first.column
                )

            for ii, variant in enumerate(permutation):
                variant.validate(table, ii)

    def index_rows(self, table: ParameterTable, function_name: Optional[str], base_dir: Optional[str]) -> List[Tuple[int, ...]]:
        self.validate(table)

        rows = []

        for permutation in self.permutations:
            padded = list(permutation) + [PermutationVariant(())] * (len(table) - len(permutation))
            rows.extend(itertools.product(*[variant.indices(table, ii) for ii, variant in enumerate(padded)]))

        return rows

class FilePermutations(PermutationSource):
    """
    A permutation source reading a manifest written by the missing entry
    point ledger. The tuples for a function are stored under the key
    `module_path::function_name`. A missing key, or a missing file, yields no
    permutations: that is how a brand-new entry point family starts out.

    Attributes:
        path (`str`): The manifest path, relative paths resolve against the
            directory of the template being expanded.
        module_path (`str`): The module path prefix of the manifest key.
    """

    path: str
    module_path: str

    def __init__(self, path: str, module_path: str) -> None:
        self.path = path
        self.module_path = module_path

    def __repr__(self) -> str:
        return f"FilePermutations({self.path!r}, {self.module_path!r})"

    def file_path(self) -> Optional[str]:
        return self.path

    def resolved_path(self, base_dir: Optional[str]) -> str:
        if base_dir is None or os.path.isabs(self.path):
            return self.path

        return os.path.join(base_dir, self.path)

    def index_rows(self, table: ParameterTable, function_name: Optional[str], base_dir: Optional[str]) -> List[Tuple[int, ...]]:
        if function_name is None:
            raise ValueError("A function name is required to look up permutations in a file")

        path = self.resolved_path(base_dir)

        try:
            manifest = read_manifest(path)
        except FileNotFoundError:
            log_warning(f"Permutations file {path} does not exist, no permutations loaded for {function_name}")
            return []

        key = entry_point_key(self.module_path, function_name)
        permutations = manifest.get(key)

        log_verbose(f"Loaded {len(permutations)} permutations for {key} from {path}")

        return [tuple(table.to_indices(table.validate_tuple(permutation))) for permutation in permutations]

PermutationSpec = Union[PermutationSource, Sequence[PermutationSource]]

def _as_sources(sources: PermutationSpec) -> List[PermutationSource]:
    if isinstance(sources, PermutationSource):
        return [sources]

    return list(sources)

def resolve(table: ParameterTable,
            sources: PermutationSpec,
            function_name: Optional[str] = None,
            base_dir: Optional[str] = None) -> List[PermutationTuple]:
    """
    Resolve a permutation specification into full tuples.

    Args:
        table (`ParameterTable`): The parameters the tuples are aligned to.
        sources (`PermutationSpec`): One source or a list of sources, unioned.
        function_name (`Optional[str]`): The templated function, used as the
            manifest lookup key of file sources.
        base_dir (`Optional[str]`): Directory relative manifest paths resolve against.

    Returns:
        `List[Tuple[str, ...]]`: The deduplicated tuples, sorted by identifier
            text position by position, the order `Manifest` writes them in.

    Raises:
        InvalidVariant: If an identifier is not a variant of its position.
        PermutationArityError: If a tuple does not fit the table.
    """

    rows = []

    for source in _as_sources(sources):
        rows.extend(source.index_rows(table, function_name, base_dir))

    if len(rows) == 0:
        return []

    if len(table) == 0:
        return [()]

    unique_rows = np.unique(np.array(rows, dtype=np.int64).reshape(len(rows), len(table)), axis=0)

    return sorted(table.from_indices(row) for row in unique_rows)

def full_product(table: ParameterTable) -> List[PermutationTuple]:
    """
    Every tuple of the table's cartesian product, sorted like `resolve`.
    """

    return resolve(table, ExplicitPermutations([[WILDCARD] * len(table)]))

def file_paths(sources: PermutationSpec) -> List[str]:
    """
    List the manifest paths a permutation specification reads.
    """

    return [source.file_path() for source in _as_sources(sources) if source.file_path() is not None]
