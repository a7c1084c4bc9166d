from .lexer import Token, TokenKind, tokenize

from .tree import Guard, Argument, CallExpression, Statement
from .tree import FunctionParameter, FunctionTemplate, GeneratedFunction
from .tree import guards_match, validate_guards

from .parser import TemplateModule, TemplateParser
from .parser import parse_template, parse_template_file

from .expander import ENTRY_POINT_SEPARATOR, permutation_name
from .expander import expand, expand_one, expand_template, render_functions

from .module_builder import BuildResult, ShaderCompiler, ReflectionCompiler
from .module_builder import build_module, defined_functions, expand_module, module_dependencies
