from typing import Dict
from typing import Iterable
from typing import List
from typing import Sequence
from typing import Tuple

import dataclasses

import numpy as np

from .errors import ConfigurationError
from .errors import InvalidParameter
from .errors import InvalidVariant
from .errors import PermutationArityError

PermutationTuple = Tuple[str, ...]

@dataclasses.dataclass(frozen=True)
class Parameter:
    """
    A dataclass that represents one named permutation parameter.

    Attributes:
        name (str): The name of the parameter, as used by guards.
        variants (Tuple[str, ...]): The ordered variant tags of the parameter.
    """
    name: str
    variants: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "variants", tuple(self.variants))

        if len(self.variants) == 0:
            raise ConfigurationError(f"Parameter {self.name} must declare at least one variant")

        if len(set(self.variants)) != len(self.variants):
            raise ConfigurationError(f"Parameter {self.name} declares a variant more than once: {list(self.variants)}")

    def index_of(self, variant: str, position: int) -> int:
        try:
            return self.variants.index(variant)
        except ValueError:
            raise InvalidVariant(variant, position, self.variants) from None

class ParameterTable:
    """
    A class that holds the ordered parameters of one entry point family. The
    position of a parameter in the table is its table order index, which
    permutation tuples, entry point mappings and generated names all share.

    Attributes:
        parameters (`List[Parameter]`): The parameters in table order.
    """

    parameters: List[Parameter]
    _positions: Dict[str, int]

    def __init__(self, parameters: Iterable[Parameter]) -> None:
        self.parameters = list(parameters)
        self._positions = {}

        for ii, parameter in enumerate(self.parameters):
            if parameter.name in self._positions:
                raise ConfigurationError(f"Parameter {parameter.name} is declared more than once")

            self._positions[parameter.name] = ii

    @classmethod
    def from_dict(cls, parameters: Dict[str, Sequence[str]]) -> "ParameterTable":
        return cls(Parameter(name, tuple(variants)) for name, variants in parameters.items())

    def __len__(self) -> int:
        return len(self.parameters)

    def __iter__(self):
        return iter(self.parameters)

    def __getitem__(self, position: int) -> Parameter:
        return self.parameters[position]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterTable):
            return NotImplemented

        return self.parameters == other.parameters

    def __repr__(self) -> str:
        inner = ", ".join(f"{parameter.name}: {' | '.join(parameter.variants)}" for parameter in self.parameters)
        return f"ParameterTable({{{inner}}})"

    @property
    def names(self) -> List[str]:
        return [parameter.name for parameter in self.parameters]

    def position(self, name: str) -> int:
        """
        Get the table position of a parameter.

        Raises:
            InvalidParameter: If no parameter with that name is declared.
        """

        if name not in self._positions:
            raise InvalidParameter(name, self.names)

        return self._positions[name]

    def product_size(self) -> int:
        """
        The number of tuples in the full cartesian product of the table.
        """

        return int(np.prod([len(parameter.variants) for parameter in self.parameters], dtype=np.int64))

    def validate_tuple(self, permutation: Sequence[str]) -> PermutationTuple:
        """
        Check that a full tuple is aligned to the table and return it as a tuple.

        Raises:
            PermutationArityError: If the tuple length differs from the table length.
            InvalidVariant: If an identifier is not a variant of its position.
        """

        if len(permutation) != len(self.parameters):
            raise PermutationArityError(
                f"Permutation {list(permutation)} has {len(permutation)} positions, expected {len(self.parameters)} ({', '.join(self.names)})"
            )

        for ii, variant in enumerate(permutation):
            self.parameters[ii].index_of(variant, ii)

        return tuple(permutation)

    def to_indices(self, permutation: Sequence[str]) -> List[int]:
        return [self.parameters[ii].index_of(variant, ii) for ii, variant in enumerate(permutation)]

    def from_indices(self, indices: Sequence[int]) -> PermutationTuple:
        return tuple(self.parameters[ii].variants[int(index)] for ii, index in enumerate(indices))
