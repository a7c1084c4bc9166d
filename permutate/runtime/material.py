from typing import Hashable
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple

import dataclasses

from permutate.base.init import log_info, log_warning

from .entry_point import EntryPoint
from .missing_entry_points import MissingEntryPointSender
from .shader_meta import ModuleRegistry

NORMAL_MAP_DEF = "STANDARDMATERIAL_NORMAL_MAP"
LABEL_PREFIX = "shader_"

@dataclasses.dataclass
class StageDescriptor:
    """
    A dataclass that represents one programmable stage of a render pipeline.

    Attributes:
        shader (Optional[Hashable]): The host's handle of the shader module.
        entry_point (str): The entry point the stage runs.
        shader_defs (List[str]): The shader defs the host set for the stage.
    """
    shader: Optional[Hashable] = None
    entry_point: str = "main"
    shader_defs: List[str] = dataclasses.field(default_factory=list)

@dataclasses.dataclass
class RenderPipelineDescriptor:
    """
    A dataclass that represents the parts of a render pipeline descriptor a
    material specializes.
    """
    vertex: StageDescriptor
    fragment: Optional[StageDescriptor] = None
    label: Optional[str] = None
    cull_mode: Optional[str] = "back"

@dataclasses.dataclass(frozen=True)
class ShaderMaterialKey:
    """
    A dataclass that represents the per-material data pipeline specialization
    depends on.

    Attributes:
        vertex_shader (Optional[Hashable]): The generated vertex module.
        vertex_meta (Optional[Hashable]): The registry handle of its metadata.
        vertex_defs (Tuple[str, ...]): Extra shader defs for the vertex stage.
        fragment_shader (Optional[Hashable]): The generated fragment module.
        fragment_meta (Optional[Hashable]): The registry handle of its metadata.
        fragment_defs (Tuple[str, ...]): Extra shader defs for the fragment stage.
        normal_map (bool): Whether the material has a normal map texture.
        cull_mode (Optional[str]): The face culling mode.
    """
    vertex_shader: Optional[Hashable] = None
    vertex_meta: Optional[Hashable] = None
    vertex_defs: Tuple[str, ...] = ()
    fragment_shader: Optional[Hashable] = None
    fragment_meta: Optional[Hashable] = None
    fragment_defs: Tuple[str, ...] = ()
    normal_map: bool = False
    cull_mode: Optional[str] = "back"

    def __post_init__(self) -> None:
        object.__setattr__(self, "vertex_defs", tuple(self.vertex_defs))
        object.__setattr__(self, "fragment_defs", tuple(self.fragment_defs))

class EntryPointResolver:
    """
    A class which maps the active shader defs of a material to the generated
    entry point it should run, reporting the entry points the compiled
    modules lack.

    Attributes:
        registry (`ModuleRegistry`): The metadata of the loaded modules.
        sender (`Optional[MissingEntryPointSender]`): Where misses are reported.
    """

    registry: ModuleRegistry
    sender: Optional[MissingEntryPointSender]

    def __init__(self, registry: ModuleRegistry, sender: Optional[MissingEntryPointSender] = None) -> None:
        self.registry = registry
        self.sender = sender

    def resolve_entry_point(self,
                            family: EntryPoint,
                            active_flags: Iterable[str],
                            module: Optional[Hashable] = None) -> Tuple[Optional[str], bool]:
        """
        Resolve the entry point a family should use for a set of active flags.

        Args:
            family (`EntryPoint`): The entry point family.
            active_flags (`Iterable[str]`): The active shader defs.
            module (`Optional[Hashable]`): The registry handle of the compiled
                module's metadata. Without registered metadata the exports are
                unknown and the computed name is trusted.

        Returns:
            `Tuple[Optional[str], bool]`: The entry point name and whether the
                module exports it. On a miss the name is the family's
                fallback, `None` when the host default should be kept.
        """

        active_flags = set(active_flags)
        name = family.build(active_flags)

        meta = None if module is None else self.registry.get(module)

        if meta is None or name in meta.entry_points:
            return name, True

        log_warning(f"Missing entry point {name}, falling back to {family.fallback or 'the default shader'}")

        if self.sender is not None:
            self.sender.record(family.name, family.permutation(active_flags))

        return family.fallback, False

class MaterialPipeline:
    """
    A class which specializes render pipelines for materials whose vertex and
    fragment stages run generated entry points.

    Attributes:
        resolver (`EntryPointResolver`): Resolves entry point names.
        vertex (`EntryPoint`): The vertex entry point family.
        fragment (`EntryPoint`): The fragment entry point family.
    """

    resolver: EntryPointResolver
    vertex: EntryPoint
    fragment: EntryPoint

    def __init__(self, resolver: EntryPointResolver, vertex: EntryPoint, fragment: EntryPoint) -> None:
        self.resolver = resolver
        self.vertex = vertex
        self.fragment = fragment

    def _specialize_stage(self,
                          stage: StageDescriptor,
                          family: EntryPoint,
                          shader: Optional[Hashable],
                          meta: Optional[Hashable],
                          extra_defs: Tuple[str, ...]) -> bool:
        if shader is None:
            return False

        shader_defs = list(stage.shader_defs) + list(extra_defs)
        entry_point, found = self.resolver.resolve_entry_point(family, shader_defs, meta)

        if entry_point is None:
            return False

        stage.shader = shader
        stage.entry_point = entry_point

        return found

    def specialize(self, descriptor: RenderPipelineDescriptor, key: ShaderMaterialKey) -> RenderPipelineDescriptor:
        """
        Install the generated modules and their resolved entry points into a
        pipeline descriptor. A stage whose entry point is missing keeps the
        host's default shader unless its family names a fallback.

        Args:
            descriptor (`RenderPipelineDescriptor`): The descriptor, modified in place.
            key (`ShaderMaterialKey`): The material's specialization data.

        Returns:
            `RenderPipelineDescriptor`: The descriptor.
        """

        log_info("Specializing shader material")

        self._specialize_stage(descriptor.vertex, self.vertex, key.vertex_shader, key.vertex_meta, key.vertex_defs)

        if descriptor.fragment is not None:
            if key.normal_map:
                descriptor.fragment.shader_defs.append(NORMAL_MAP_DEF)

            self._specialize_stage(descriptor.fragment, self.fragment, key.fragment_shader, key.fragment_meta, key.fragment_defs)

        descriptor.cull_mode = key.cull_mode

        if descriptor.label is not None:
            descriptor.label = LABEL_PREFIX + descriptor.label

        return descriptor
