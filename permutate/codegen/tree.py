from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

import dataclasses

from permutate.base.errors import AmbiguousGuard
from permutate.base.errors import InvalidParameter
from permutate.base.errors import InvalidVariant
from permutate.base.parameters import ParameterTable
from permutate.base.permutations import PermutationSource

@dataclasses.dataclass(frozen=True)
class Guard:
    """
    A dataclass that represents a `@permutate(parameter = variant)` annotation.

    Attributes:
        parameter (str): The guarded parameter.
        variant (str): The variant the parameter must take for the element to be kept.
        line (Optional[int]): The template line of the annotation.
        column (Optional[int]): The template column of the annotation.
    """
    parameter: str
    variant: str
    line: Optional[int] = dataclasses.field(default=None, compare=False)
    column: Optional[int] = dataclasses.field(default=None, compare=False)

    def __str__(self) -> str:
        return f"@permutate({self.parameter} = {self.variant})"

def validate_guards(guards: Sequence[Guard], table: ParameterTable) -> None:
    """
    Check the guards of one element against a parameter table.

    Raises:
        InvalidParameter: If a guard names an undeclared parameter.
        InvalidVariant: If a guard names an undeclared variant.
        AmbiguousGuard: If two guards name the same parameter with different variants.
    """

    seen: Dict[str, Guard] = {}

    for guard in guards:
        if guard.parameter not in table.names:
            raise InvalidParameter(guard.parameter, table.names, guard.line, guard.column)

        position = table.position(guard.parameter)

        if guard.variant not in table[position].variants:
            raise InvalidVariant(guard.variant, position, table[position].variants, guard.line, guard.column)

        previous = seen.get(guard.parameter)

        if previous is not None and previous.variant != guard.variant:
            raise AmbiguousGuard(guard.parameter, [previous.variant, guard.variant], guard.line, guard.column)

        seen[guard.parameter] = guard

def guards_match(guards: Sequence[Guard], table: ParameterTable, permutation: Sequence[str]) -> bool:
    for guard in guards:
        if permutation[table.position(guard.parameter)] != guard.variant:
            return False

    return True

@dataclasses.dataclass(frozen=True)
class Argument:
    """
    A dataclass that represents one argument of a call expression.

    Attributes:
        text (str): The argument expression, verbatim.
        guards (Tuple[Guard, ...]): The guards annotating the argument.
        leading (str): Whitespace and comments before the argument.
        trailing (str): Whitespace and comments between the argument and the next separator.
    """
    text: str
    guards: Tuple[Guard, ...] = ()
    leading: str = ""
    trailing: str = ""

@dataclasses.dataclass(frozen=True)
class CallExpression:
    """
    A dataclass that represents the call expression of a statement, such as
    `fragment_impl(a, b);` or `return mix(a, b, t);`.

    Attributes:
        prefix (str): The statement text up to and including the callee.
        callee (str): The called function name.
        arguments (Tuple[Argument, ...]): The call arguments.
        closing (str): Whitespace and comments between the last argument and `)`.
        suffix (str): The statement text after `)`.
    """
    prefix: str
    callee: str
    arguments: Tuple[Argument, ...]
    closing: str = ""
    suffix: str = ""

    def render(self) -> str:
        return self.prefix + "(" + render_list(self.arguments, self.closing) + ")" + self.suffix

@dataclasses.dataclass(frozen=True)
class Statement:
    """
    A dataclass that represents one top-level statement of a function body.

    Attributes:
        text (str): The statement, verbatim, without its annotations.
        guards (Tuple[Guard, ...]): The guards annotating the statement.
        leading (str): Whitespace and comments before the statement.
        call (Optional[CallExpression]): The call expression directly in the
            statement, if it has one.
        line (int): The template line the statement starts on.
        rewritten (bool): Set once guarded call arguments were dropped, the
            statement is then rendered from its call expression.
    """
    text: str
    guards: Tuple[Guard, ...] = ()
    leading: str = ""
    call: Optional[CallExpression] = None
    line: int = 0
    rewritten: bool = False

    def render(self) -> str:
        if self.call is None or not self.rewritten:
            return self.leading + self.text

        return self.leading + self.call.render()

@dataclasses.dataclass(frozen=True)
class FunctionParameter:
    """
    A dataclass that represents one entry of a function parameter list.

    Attributes:
        text (str): The parameter declaration, verbatim.
        guards (Tuple[Guard, ...]): The guards annotating the parameter.
        leading (str): Whitespace and comments before the parameter.
        trailing (str): Whitespace and comments between the parameter and the next separator.
    """
    text: str
    guards: Tuple[Guard, ...] = ()
    leading: str = ""
    trailing: str = ""

def render_list(items: Sequence, closing: str) -> str:
    """
    Render a comma separated list of parameters or arguments. The first kept
    item borrows the leading text of the first written item, so dropping the
    head of `f(a, b)` renders `f(b)` rather than `f( b)`.
    """

    if len(items) == 0:
        return closing if "\n" in closing else ""

    pieces = []

    for ii, item in enumerate(items):
        leading = item.leading

        if ii == 0 and "\n" not in leading:
            leading = leading.lstrip(" \t")

        pieces.append(leading + item.text + item.trailing)

    return ",".join(pieces) + closing

@dataclasses.dataclass
class FunctionTemplate:
    """
    A dataclass that represents a function annotated with
    `@permutate(parameters = {...}, permutations = [...])`.

    Attributes:
        name (str): The base name of the function.
        table (ParameterTable): The declared parameters.
        permutations (List[PermutationSource]): The permutation sources, unioned.
        parameters (List[FunctionParameter]): The parameter list.
        statements (List[Statement]): The top-level body statements.
        prefix (str): The text before the name, such as the return type.
        closing (str): The text between the last parameter and `)`.
        between (str): The text between `)` and `{`.
        body_closing (str): The text between the last statement and `}`.
        line (int): The template line of the annotation.
    """
    name: str
    table: ParameterTable
    permutations: List[PermutationSource]
    parameters: List[FunctionParameter]
    statements: List[Statement]
    prefix: str = "void "
    closing: str = ""
    between: str = " "
    body_closing: str = "\n"
    line: int = 0

    def elements(self) -> List:
        result = list(self.parameters) + list(self.statements)

        for statement in self.statements:
            if statement.call is not None:
                result.extend(statement.call.arguments)

        return result

    def validate(self) -> None:
        """
        Check every guard of the template and every explicit permutation.

        Raises:
            ConfigurationError: On the first invalid construct.
        """

        for element in self.elements():
            validate_guards(element.guards, self.table)

        for source in self.permutations:
            source.validate(self.table)

@dataclasses.dataclass(frozen=True)
class GeneratedFunction:
    """
    A dataclass that represents one expanded permutation of a function template.

    Attributes:
        name (str): The generated name, `base_name__variant__variant...`.
        base_name (str): The template name.
        permutation (Tuple[str, ...]): The tuple the function was generated for.
        parameters (Tuple[FunctionParameter, ...]): The kept parameters.
        body (Tuple[Statement, ...]): The kept statements, call arguments filtered.
    """
    name: str
    base_name: str
    permutation: Tuple[str, ...]
    parameters: Tuple[FunctionParameter, ...]
    body: Tuple[Statement, ...]
    prefix: str = "void "
    closing: str = ""
    between: str = " "
    body_closing: str = "\n"

    def render(self) -> str:
        source = self.prefix + self.name
        source += "(" + render_list(self.parameters, self.closing) + ")"
        source += self.between + "{"
        source += "".join(statement.render() for statement in self.body)
        source += self.body_closing + "}"

        return source
