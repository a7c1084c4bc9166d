from .base.errors import PermutateError
from .base.errors import ConfigurationError
from .base.errors import InvalidParameter
from .base.errors import InvalidVariant
from .base.errors import AmbiguousGuard
from .base.errors import PermutationArityError
from .base.errors import MappingMismatch
from .base.errors import TemplateSyntaxError
from .base.errors import ManifestError

from .base.init import LogLevel
from .base.init import initialize
from .base.init import is_initialized
from .base.init import log, log_error, log_warning, log_info, log_verbose, set_log_level

from .base.parameters import Parameter
from .base.parameters import ParameterTable
from .base.parameters import PermutationTuple

from .base.permutations import WILDCARD
from .base.permutations import PermutationVariant
from .base.permutations import PermutationSource
from .base.permutations import ExplicitPermutations
from .base.permutations import FilePermutations
from .base.permutations import resolve, full_product, file_paths

from .base.manifest import Manifest
from .base.manifest import entry_point_key
from .base.manifest import read_manifest
from .base.manifest import write_manifest

from .runtime.entry_point import Mapping
from .runtime.entry_point import EntryPoint
from .runtime.entry_point import build, permutation, validate_mappings, extra_shader_defs

from .runtime.shader_meta import ModuleMeta
from .runtime.shader_meta import ModuleRegistry
from .runtime.shader_meta import read_module_meta, write_module_meta, meta_path_for

from .runtime.missing_entry_points import MissingEntryPoint
from .runtime.missing_entry_points import MissingEntryPointSender
from .runtime.missing_entry_points import MissingEntryPointLedger
from .runtime.missing_entry_points import ManifestWriter
from .runtime.missing_entry_points import create_ledger

from .runtime.material import StageDescriptor
from .runtime.material import RenderPipelineDescriptor
from .runtime.material import ShaderMaterialKey
from .runtime.material import EntryPointResolver
from .runtime.material import MaterialPipeline

from .codegen.parser import parse_template, parse_template_file
from .codegen.expander import expand, expand_template
from .codegen.module_builder import build_module, ReflectionCompiler, ShaderCompiler

__version__ = "0.1.0"
