from typing import List
from typing import Optional
from typing import Tuple

import dataclasses
import os

from permutate.base.init import log_info
from permutate.base.manifest import entry_point_key
from permutate.base.permutations import file_paths
from permutate.runtime.shader_meta import ModuleMeta
from permutate.runtime.shader_meta import meta_path_for
from permutate.runtime.shader_meta import write_module_meta

from .expander import expand_template
from .expander import render_functions
from .lexer import TokenKind
from .lexer import tokenize
from .parser import TemplateModule
from .parser import parse_template_file
from .tree import GeneratedFunction

class ShaderCompiler:
    """
    The interface of the shader compiler collaborator: compile a generated
    module and list the entry point names it exports.
    """

    def compile(self, source_path: str) -> List[str]:
        raise NotImplementedError()

class ReflectionCompiler(ShaderCompiler):
    """
    A compiler stand-in that reports every function defined at the top level
    of a generated source file, qualified by a module path the way the
    SPIR-V backend names its entry points (`module::path::function`).
    """

    module_path: Optional[str]

    def __init__(self, module_path: Optional[str] = None) -> None:
        self.module_path = module_path

    def compile(self, source_path: str) -> List[str]:
        with open(source_path, "r", encoding="utf-8") as f:
            source = f.read()

        return [entry_point_key(self.module_path, name) for name in defined_functions(source)]

def defined_functions(source: str) -> List[str]:
    """
    List the names of the functions defined at the top level of a source file.
    """

    tokens = tokenize(source)

    names = []
    depth = 0

    for ii, token in enumerate(tokens):
        if token.kind != TokenKind.PUNCT:
            continue

        if token.text == "{":
            if depth == 0 and ii > 0 and tokens[ii - 1].is_punct(")"):
                name = _function_name(tokens, ii - 1)

                if name is not None:
                    names.append(name)

            depth += 1
        elif token.text == "}":
            depth -= 1

    return names

def _function_name(tokens, close_paren: int) -> Optional[str]:
    depth = 0

    for ii in range(close_paren, -1, -1):
        token = tokens[ii]

        if token.is_punct(")"):
            depth += 1
        elif token.is_punct("("):
            depth -= 1

            if depth == 0:
                if ii > 0 and tokens[ii - 1].kind == TokenKind.IDENT:
                    return tokens[ii - 1].text

                return None

    return None

@dataclasses.dataclass
class BuildResult:
    """
    A dataclass that represents the outcome of one build step.

    Attributes:
        source (str): The generated source.
        functions (List[GeneratedFunction]): Every generated function.
        meta (ModuleMeta): The compiled module's metadata.
        output_path (str): Where the generated source was written.
        meta_path (str): Where the module metadata was written.
        dependencies (List[str]): The permutation files the build read.
    """
    source: str
    functions: List[GeneratedFunction]
    meta: ModuleMeta
    output_path: str
    meta_path: str
    dependencies: List[str]

def expand_module(module: TemplateModule, base_dir: Optional[str] = None) -> Tuple[str, List[GeneratedFunction]]:
    """
    Expand every templated function of a module, keeping the text around them.

    Returns:
        `Tuple[str, List[GeneratedFunction]]`: The generated source and the generated functions.
    """

    pieces = []
    functions = []

    for item in module.items:
        if isinstance(item, str):
            pieces.append(item)
            continue

        generated = expand_template(item, base_dir)
        functions.extend(generated)
        pieces.append(render_functions(generated))

    return "".join(pieces), functions

def module_dependencies(module: TemplateModule, base_dir: Optional[str] = None) -> List[str]:
    dependencies = []

    for function in module.functions:
        for path in file_paths(function.permutations):
            if base_dir is not None and not os.path.isabs(path):
                path = os.path.join(base_dir, path)

            if path not in dependencies:
                dependencies.append(path)

    return dependencies

def build_module(template_path: str,
                 output_path: str,
                 module_path: Optional[str] = None,
                 compiler: Optional[ShaderCompiler] = None) -> BuildResult:
    """
    Run the build step for one template file: expand it, write the generated
    source, compile it and write the module metadata next to it.

    Args:
        template_path (`str`): The template file.
        output_path (`str`): Where to write the generated source.
        module_path (`Optional[str]`): The module path entry points are
            qualified with, such as `pbr::entry_points`.
        compiler (`Optional[ShaderCompiler]`): The compiler collaborator,
            defaults to a `ReflectionCompiler` for `module_path`.

    Returns:
        `BuildResult`: What was generated and written.
    """

    module = parse_template_file(template_path)
    base_dir = os.path.dirname(os.path.abspath(template_path))

    source, functions = expand_module(module, base_dir)

    output_directory = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(output_directory, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(source)

    if compiler is None:
        compiler = ReflectionCompiler(module_path)

    meta = ModuleMeta(compiler.compile(output_path), output_path)
    meta_path = meta_path_for(output_path)
    write_module_meta(meta, meta_path)

    log_info(f"Built {output_path} with {len(functions)} generated functions and {len(meta.entry_points)} entry points")

    return BuildResult(
        source=source,
        functions=functions,
        meta=meta,
        output_path=output_path,
        meta_path=meta_path,
        dependencies=module_dependencies(module, base_dir)
    )
