import permutate as pm

from permutate.codegen.expander import permutation_name
from permutate.base.permutations import resolve

import os

try:
    import click
except ImportError:
    raise ImportError("permutate.cli requires the 'click' package to be installed. Please install it using 'pip install click'.")

def parse_mapping(text: str) -> pm.Mapping:
    """
    Parse a mapping given on the command line: comma separated `FLAG=suffix`
    preconditions followed by the default suffix, as in `NORMAL_MAP=normal_map,none`.
    """

    items = [item.strip() for item in text.split(",") if item.strip() != ""]

    if len(items) == 0 or "=" in items[-1]:
        raise click.BadParameter(f"'{text}' must end with a default suffix, as in FLAG=suffix,default")

    preconditions = []

    for item in items[:-1]:
        flag, sep, suffix = item.partition("=")

        if sep == "" or flag.strip() == "" or suffix.strip() == "":
            raise click.BadParameter(f"'{item}' is not a FLAG=suffix precondition")

        preconditions.append((flag.strip(), suffix.strip()))

    return pm.Mapping(preconditions, items[-1])

@click.group()
@click.option('--log-level', type=click.Choice([level.name for level in pm.LogLevel], case_sensitive=False), default=None, help="The log level, defaults to PERMUTATE_LOG_LEVEL or WARNING.")
@click.version_option(version=pm.__version__)
def cli_entrypoint(log_level):
    pm.initialize(log_level=None if log_level is None else pm.LogLevel[log_level.upper()])

@cli_entrypoint.command()
@click.argument('template', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False), help="Where to write the generated source.")
@click.option('--module-path', default=None, help="The module path entry points are qualified with, such as mesh::entry_points.")
def build(template, output, module_path):
    """Expand a template file and write the generated source and its metadata."""

    try:
        result = pm.build_module(template, output, module_path=module_path)
    except pm.PermutateError as e:
        raise click.ClickException(str(e))

    click.echo(f"Wrote {len(result.functions)} functions to {result.output_path}")
    click.echo(f"Wrote {len(result.meta.entry_points)} entry points to {result.meta_path}")

@cli_entrypoint.command()
@click.argument('template', type=click.Path(exists=True, dir_okay=False))
@click.option('--function', 'function_name', default=None, help="Only list the permutations of this function.")
def permutations(template, function_name):
    """List the entry point names a template file generates."""

    base_dir = os.path.dirname(os.path.abspath(template))

    try:
        module = pm.parse_template_file(template)
        functions = module.functions

        if function_name is not None:
            functions = [function for function in functions if function.name == function_name]

            if len(functions) == 0:
                raise click.ClickException(f"No templated function named {function_name} in {template}")

        for function in functions:
            for perm in resolve(function.table, function.permutations, function.name, base_dir):
                click.echo(permutation_name(function.name, perm))
    except pm.PermutateError as e:
        raise click.ClickException(str(e))

@cli_entrypoint.command('entry-point')
@click.argument('name')
@click.option('--mapping', '-m', 'mappings', multiple=True, help="A mapping, as in FLAG=suffix,default. Give one per parameter, in order.")
@click.option('--flag', '-f', 'flags', multiple=True, help="An active shader def.")
def entry_point(name, mappings, flags):
    """Print the entry point name the active flags resolve to."""

    family = pm.EntryPoint(name, [parse_mapping(mapping) for mapping in mappings])

    click.echo(family.build(flags))
