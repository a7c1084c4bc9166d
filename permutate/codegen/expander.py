from typing import List
from typing import Optional
from typing import Sequence

import dataclasses

from permutate.base.init import log_info, log_verbose
from permutate.base.parameters import PermutationTuple
from permutate.base.permutations import resolve
from permutate.runtime.entry_point import ENTRY_POINT_SEPARATOR

from .tree import FunctionTemplate
from .tree import GeneratedFunction
from .tree import Statement
from .tree import guards_match

def permutation_name(base_name: str, permutation: Sequence[str]) -> str:
    """
    The name of the function generated for one permutation:
    `base_name__variant__variant...` in table order.
    """

    return base_name + "".join(ENTRY_POINT_SEPARATOR + variant for variant in permutation)

def _expand_statement(template: FunctionTemplate, statement: Statement, permutation: PermutationTuple) -> Statement:
    call = statement.call

    if call is None or not any(len(argument.guards) > 0 for argument in call.arguments):
        return statement

    arguments = tuple(
        argument for argument in call.arguments
        if guards_match(argument.guards, template.table, permutation)
    )

    return dataclasses.replace(statement, call=dataclasses.replace(call, arguments=arguments), rewritten=True)

def expand_one(template: FunctionTemplate, permutation: PermutationTuple) -> GeneratedFunction:
    """
    Expand a template for a single permutation tuple.
    """

    permutation = template.table.validate_tuple(permutation)

    parameters = tuple(
        parameter for parameter in template.parameters
        if guards_match(parameter.guards, template.table, permutation)
    )

    body = tuple(
        _expand_statement(template, statement, permutation)
        for statement in template.statements
        if guards_match(statement.guards, template.table, permutation)
    )

    name = permutation_name(template.name, permutation)

    log_verbose(
        f"Expanded {name}: kept {len(parameters)}/{len(template.parameters)} parameters "
        f"and {len(body)}/{len(template.statements)} statements"
    )

    return GeneratedFunction(
        name=name,
        base_name=template.name,
        permutation=permutation,
        parameters=parameters,
        body=body,
        prefix=template.prefix,
        closing=template.closing,
        between=template.between,
        body_closing=template.body_closing
    )

def expand(template: FunctionTemplate, permutations: Sequence[Sequence[str]]) -> List[GeneratedFunction]:
    """
    Expand a template into one generated function per permutation tuple.

    Args:
        template (`FunctionTemplate`): The template to expand.
        permutations (`Sequence[Sequence[str]]`): Full permutation tuples, as
            returned by `resolve`. They are expanded in the given order.

    Returns:
        `List[GeneratedFunction]`: The generated functions.

    Raises:
        ConfigurationError: If the template's guards are invalid or a tuple
            does not fit the template's parameter table.
    """

    template.validate()

    return [expand_one(template, tuple(permutation)) for permutation in permutations]

def expand_template(template: FunctionTemplate, base_dir: Optional[str] = None) -> List[GeneratedFunction]:
    """
    Resolve the permutations a template declares and expand it.

    Args:
        template (`FunctionTemplate`): The template to expand.
        base_dir (`Optional[str]`): Directory relative permutation files resolve against.
    """

    permutations = resolve(template.table, template.permutations, template.name, base_dir)

    log_info(f"Generating {len(permutations)} permutations of {template.name}")

    return expand(template, permutations)

def render_functions(functions: Sequence[GeneratedFunction]) -> str:
    return "\n\n".join(function.render() for function in functions)
