import permutate as pm

VERTEX = pm.EntryPoint("mesh::vertex", [
    pm.Mapping([("VERTEX_TANGENTS", "tangent")], "none"),
    pm.Mapping([("VERTEX_COLORS", "color")], "none"),
])

FRAGMENT = pm.EntryPoint("pbr::fragment", [
    pm.Mapping([("STANDARDMATERIAL_NORMAL_MAP", "normal_map")], "none"),
], fallback="pbr::fragment__none")

def make_registry():
    registry = pm.ModuleRegistry()

    registry.insert("mesh.spv", pm.ModuleMeta(["mesh::vertex__none__none", "mesh::vertex__tangent__none"], "mesh.spv"))
    registry.insert("pbr.spv", pm.ModuleMeta(["pbr::fragment__none"], "pbr.spv"))

    return registry

def test_found():
    ledger = pm.MissingEntryPointLedger()
    resolver = pm.EntryPointResolver(make_registry(), ledger.sender())

    assert resolver.resolve_entry_point(VERTEX, {"VERTEX_TANGENTS"}, "mesh.spv") == ("mesh::vertex__tangent__none", True)

    assert not ledger.drain()

def test_miss_is_recorded():
    ledger = pm.MissingEntryPointLedger()
    resolver = pm.EntryPointResolver(make_registry(), ledger.sender())

    assert resolver.resolve_entry_point(FRAGMENT, {"STANDARDMATERIAL_NORMAL_MAP"}, "pbr.spv") == ("pbr::fragment__none", False)
    assert resolver.resolve_entry_point(VERTEX, {"VERTEX_COLORS"}, "mesh.spv") == (None, False)

    assert ledger.drain()
    assert ledger.permutations("pbr::fragment") == {("normal_map",)}
    assert ledger.permutations("mesh::vertex") == {("none", "color")}

def test_unknown_module_is_trusted():
    ledger = pm.MissingEntryPointLedger()
    resolver = pm.EntryPointResolver(make_registry(), ledger.sender())

    assert resolver.resolve_entry_point(VERTEX, {"VERTEX_COLORS"}, "other.spv") == ("mesh::vertex__none__color", True)
    assert resolver.resolve_entry_point(VERTEX, {"VERTEX_COLORS"}) == ("mesh::vertex__none__color", True)

    assert not ledger.drain()

def test_miss_without_sender():
    resolver = pm.EntryPointResolver(make_registry())

    assert resolver.resolve_entry_point(FRAGMENT, {"STANDARDMATERIAL_NORMAL_MAP"}, "pbr.spv") == ("pbr::fragment__none", False)

def make_descriptor():
    return pm.RenderPipelineDescriptor(
        vertex=pm.StageDescriptor("default.wgsl", "vertex", ["VERTEX_TANGENTS"]),
        fragment=pm.StageDescriptor("default.wgsl", "fragment", []),
        label="opaque_mesh_pipeline",
    )

def test_specialize():
    ledger = pm.MissingEntryPointLedger()
    pipeline = pm.MaterialPipeline(pm.EntryPointResolver(make_registry(), ledger.sender()), VERTEX, FRAGMENT)

    key = pm.ShaderMaterialKey(
        vertex_shader="mesh.spv",
        vertex_meta="mesh.spv",
        vertex_defs=pm.extra_shader_defs(),
        fragment_shader="pbr.spv",
        fragment_meta="pbr.spv",
        normal_map=False,
        cull_mode=None,
    )

    descriptor = pipeline.specialize(make_descriptor(), key)

    assert descriptor.vertex.shader == "mesh.spv"
    assert descriptor.vertex.entry_point == "mesh::vertex__tangent__none"
    assert descriptor.vertex.shader_defs == ["VERTEX_TANGENTS"]
    assert descriptor.fragment.shader == "pbr.spv"
    assert descriptor.fragment.entry_point == "pbr::fragment__none"
    assert descriptor.cull_mode is None
    assert descriptor.label == "shader_opaque_mesh_pipeline"

    assert not ledger.drain()

def test_specialize_miss_keeps_default():
    ledger = pm.MissingEntryPointLedger()
    pipeline = pm.MaterialPipeline(pm.EntryPointResolver(make_registry(), ledger.sender()), VERTEX, FRAGMENT)

    key = pm.ShaderMaterialKey(
        vertex_shader="mesh.spv",
        vertex_meta="mesh.spv",
        vertex_defs=["VERTEX_COLORS"],
        fragment_shader="pbr.spv",
        fragment_meta="pbr.spv",
        normal_map=True,
    )

    descriptor = pipeline.specialize(make_descriptor(), key)

    assert descriptor.vertex.shader == "default.wgsl"
    assert descriptor.vertex.entry_point == "vertex"

    assert descriptor.fragment.shader_defs == ["STANDARDMATERIAL_NORMAL_MAP"]
    assert descriptor.fragment.shader == "pbr.spv"
    assert descriptor.fragment.entry_point == "pbr::fragment__none"

    assert descriptor.cull_mode == "back"

    assert ledger.drain()
    assert ledger.permutations("mesh::vertex") == {("tangent", "color")}
    assert ledger.permutations("pbr::fragment") == {("normal_map",)}

def test_specialize_without_generated_shaders():
    pipeline = pm.MaterialPipeline(pm.EntryPointResolver(make_registry()), VERTEX, FRAGMENT)

    descriptor = pm.RenderPipelineDescriptor(vertex=pm.StageDescriptor("default.wgsl", "vertex"))
    pipeline.specialize(descriptor, pm.ShaderMaterialKey())

    assert descriptor.vertex.shader == "default.wgsl"
    assert descriptor.vertex.entry_point == "vertex"
    assert descriptor.fragment is None
    assert descriptor.label is None

def test_registry_lifecycle(tmp_path):
    meta_path = tmp_path / "mesh.spv.json"
    meta_path.write_text('{"entry_points": ["mesh::vertex__none__none"], "module": "mesh.spv"}')

    with pm.ModuleRegistry() as registry:
        assert registry.generation == 0

        handle = registry.load(str(meta_path))

        assert handle == str(meta_path)
        assert registry.generation == 1
        assert registry.entry_points(handle) == ["mesh::vertex__none__none"]
        assert "mesh::vertex__none__none" in registry.get(handle)

        assert registry.remove(handle).module == "mesh.spv"
        assert registry.remove(handle) is None
        assert registry.generation == 2
        assert registry.entry_points(handle) is None

        registry.insert("pbr", pm.ModuleMeta([], "pbr.spv"))

    assert len(registry) == 0
    assert registry.generation == 4
