from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

import dataclasses

from permutate.base.errors import MappingMismatch
from permutate.base.parameters import ParameterTable

ENTRY_POINT_SEPARATOR = "__"

@dataclasses.dataclass(frozen=True)
class Mapping:
    """
    A dataclass that represents how one parameter of an entry point family is
    chosen from the active shader defs.

    Attributes:
        preconditions (Tuple[Tuple[str, str], ...]): `(flag, suffix)` pairs,
            scanned in order; the first active flag chooses its suffix.
        default (str): The suffix used when no precondition flag is active.
    """
    preconditions: Tuple[Tuple[str, str], ...]
    default: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "preconditions", tuple((flag, suffix) for flag, suffix in self.preconditions))

    def suffixes(self) -> List[str]:
        result = [suffix for _, suffix in self.preconditions]

        if self.default not in result:
            result.append(self.default)

        return result

    def choose(self, active_flags) -> str:
        for flag, suffix in self.preconditions:
            if flag in active_flags:
                return suffix

        return self.default

def permutation(mappings: Sequence[Mapping], active_flags: Iterable[str]) -> List[str]:
    """
    Choose one suffix per mapping for a set of active flags.

    Args:
        mappings (`Sequence[Mapping]`): The mapping list, in table order.
        active_flags (`Iterable[str]`): The active shader defs.

    Returns:
        `List[str]`: The permutation tuple the active flags select.
    """

    active_flags = set(active_flags)

    return [mapping.choose(active_flags) for mapping in mappings]

def build(base_name: str, mappings: Sequence[Mapping], active_flags: Iterable[str]) -> str:
    """
    Compute the entry point name generated for the permutation the active
    flags select: `base_name__suffix__suffix...`.

    Args:
        base_name (`str`): The entry point family name.
        mappings (`Sequence[Mapping]`): The mapping list, in table order.
        active_flags (`Iterable[str]`): The active shader defs.

    Returns:
        `str`: The entry point name.
    """

    return base_name + "".join(ENTRY_POINT_SEPARATOR + suffix for suffix in permutation(mappings, active_flags))

def validate_mappings(table: ParameterTable, mappings: Sequence[Mapping]) -> None:
    """
    Check that a mapping list lines up with the parameter table of the
    functions it names, mapping `i` choosing among the variants of parameter `i`.

    Raises:
        MappingMismatch: If the counts differ or a suffix is not a variant of its parameter.
    """

    if len(mappings) != len(table):
        raise MappingMismatch(
            f"Mapping list has {len(mappings)} mappings but the parameter table "
            f"declares {len(table)} parameters {table.names}"
        )

    for ii, (mapping, parameter) in enumerate(zip(mappings, table)):
        for suffix in mapping.suffixes():
            if suffix not in parameter.variants:
                raise MappingMismatch(
                    f"Mapping {ii} chooses {suffix}, which is not a variant of parameter "
                    f"{parameter.name}. Valid variants are {list(parameter.variants)}."
                )

@dataclasses.dataclass(frozen=True)
class EntryPoint:
    """
    A dataclass that represents one entry point family as the renderer sees it.

    Attributes:
        name (str): The family name, qualified the way the compiled module
            qualifies its entry points (for example `mesh::vertex`).
        mappings (Tuple[Mapping, ...]): The mapping list, in table order.
        fallback (Optional[str]): The entry point used when the resolved one
            was not compiled, `None` to keep the host's default.
    """
    name: str
    mappings: Tuple[Mapping, ...] = ()
    fallback: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "mappings", tuple(self.mappings))

    def build(self, active_flags: Iterable[str]) -> str:
        return build(self.name, self.mappings, active_flags)

    def permutation(self, active_flags: Iterable[str]) -> List[str]:
        return permutation(self.mappings, active_flags)

    def validate(self, table: ParameterTable) -> None:
        validate_mappings(table, self.mappings)

def extra_shader_defs(webgl: bool = False) -> List[str]:
    """
    The renderer shader defs that are not available during specialization
    and must be added by hand.
    """

    # Read-only storage buffers cannot be bound by generated modules yet.
    defs = ["NO_STORAGE_BUFFERS_SUPPORT"]

    if webgl:
        defs.extend(["NO_TEXTURE_ARRAYS_SUPPORT", "SIXTEEN_BYTE_ALIGNMENT"])

    return defs
