from typing import Iterable
from typing import Optional

def format_choices(choices: Iterable[str]) -> str:
    return "[" + ", ".join(str(choice) for choice in choices) + "]"

class PermutateError(Exception):
    """
    Base class of every error raised by permutate.
    """

class ConfigurationError(PermutateError):
    """
    Raised at build time when parameter tables, permutation lists, templates or
    entry point mappings are malformed. Always fatal.

    Attributes:
        line (`Optional[int]`): The 1-based template line of the offending construct, if known.
        column (`Optional[int]`): The 1-based template column of the offending construct, if known.
    """

    line: Optional[int]
    column: Optional[int]

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> None:
        self.message = message
        self.line = line
        self.column = column

        if line is not None:
            message = f"{message} (line {line}, column {column})"

        super().__init__(message)

class InvalidParameter(ConfigurationError):
    """
    Raised when a guard names a parameter that is not declared in the parameter table.
    """

    def __init__(self, parameter: str, valid_parameters: Iterable[str], line: Optional[int] = None, column: Optional[int] = None) -> None:
        self.parameter = parameter
        self.valid_parameters = list(valid_parameters)

        super().__init__(
            f"Invalid parameter {parameter}. Valid parameters are {format_choices(self.valid_parameters)}.",
            line,
            column
        )

class InvalidVariant(ConfigurationError):
    """
    Raised when an identifier is not a declared variant of the parameter at its position.

    Attributes:
        variant (`str`): The offending identifier.
        position (`int`): The table position the identifier was supplied for.
        valid_variants (`List[str]`): The declared variants of that position.
    """

    def __init__(self, variant: str, position: int, valid_variants: Iterable[str], line: Optional[int] = None, column: Optional[int] = None) -> None:
        self.variant = variant
        self.position = position
        self.valid_variants = list(valid_variants)

        super().__init__(
            f"Invalid variant {variant} at position {position}. Valid variants are {format_choices(self.valid_variants)}.",
            line,
            column
        )

class AmbiguousGuard(ConfigurationError):
    """
    Raised when one template element is guarded on the same parameter with different variants.
    """

    def __init__(self, parameter: str, variants: Iterable[str], line: Optional[int] = None, column: Optional[int] = None) -> None:
        self.parameter = parameter
        self.variants = list(variants)

        super().__init__(
            f"Ambiguous guards on parameter {parameter}: {format_choices(self.variants)}. An element can only be guarded on one variant per parameter.",
            line,
            column
        )

class PermutationArityError(ConfigurationError):
    """
    Raised when a permutation tuple has more positions than the parameter table.
    """

class MappingMismatch(ConfigurationError):
    """
    Raised when an entry point mapping list is not aligned with the parameter table it names.
    """

class TemplateSyntaxError(ConfigurationError):
    """
    Raised when a template file cannot be parsed.
    """

class ManifestError(ConfigurationError):
    """
    Raised when a permutation manifest or module meta document is malformed.
    """
