import permutate as pm
import permutate.codegen as pc

import json

PBR_TEMPLATE = """#version 450

@permutate(parameters = { normal_map: normal_map | none }, permutations = [ (none), file("entry_points.json", "pbr") ])
vec4 fragment(vec4 color, @permutate(normal_map = normal_map) vec3 normal) {
    @permutate(normal_map = normal_map) color.rgb *= normal;
    return color;
}

vec4 fragment(vec4 color) { return color; }
"""

FRAGMENT = pm.EntryPoint("pbr::fragment", [
    pm.Mapping([("STANDARDMATERIAL_NORMAL_MAP", "normal_map")], "none"),
], fallback="pbr::fragment")

def test_defined_functions():
    source = "struct S { float x; };\nvoid a(int b) { if (b) { c(); } }\nfloat d() { return 1.0; }\n"

    assert pc.defined_functions(source) == ["a", "d"]

def test_build_module(tmp_path):
    template_path = tmp_path / "pbr.glsl"
    template_path.write_text(PBR_TEMPLATE)
    output_path = tmp_path / "out" / "pbr.gen.glsl"

    result = pm.build_module(str(template_path), str(output_path), module_path="pbr")

    assert [function.name for function in result.functions] == ["fragment__none"]
    assert output_path.read_text() == result.source
    assert "vec4 fragment__none(vec4 color) {\n    return color;\n}" in result.source

    assert result.meta_path == str(output_path) + ".json"
    assert json.loads((tmp_path / "out" / "pbr.gen.glsl.json").read_text()) == {
        "entry_points": ["pbr::fragment__none", "pbr::fragment"],
        "module": str(output_path),
    }
    assert result.dependencies == [str(tmp_path / "entry_points.json")]

class FixedCompiler(pm.ShaderCompiler):
    def __init__(self, names):
        self.names = names
        self.compiled = []

    def compile(self, source_path):
        self.compiled.append(source_path)
        return list(self.names)

def test_build_module_with_compiler(tmp_path):
    template_path = tmp_path / "pbr.glsl"
    template_path.write_text(PBR_TEMPLATE)
    output_path = tmp_path / "pbr.gen.glsl"

    compiler = FixedCompiler(["main"])
    result = pm.build_module(str(template_path), str(output_path), compiler=compiler)

    assert compiler.compiled == [str(output_path)]
    assert result.meta.entry_points == ["main"]

def test_missing_entry_point_round_trip(tmp_path):
    template_path = tmp_path / "pbr.glsl"
    template_path.write_text(PBR_TEMPLATE)
    output_path = tmp_path / "pbr.gen.glsl"

    ledger, writer = pm.create_ledger(tmp_path / "entry_points.json")

    with pm.ModuleRegistry() as registry:
        resolver = pm.EntryPointResolver(registry, ledger.sender())

        result = pm.build_module(str(template_path), str(output_path), module_path="pbr")
        handle = registry.load(result.meta_path)

        assert resolver.resolve_entry_point(FRAGMENT, {"STANDARDMATERIAL_NORMAL_MAP"}, handle) == ("pbr::fragment", False)
        assert ledger.process_cycle(writer)

        template = pm.parse_template_file(str(template_path)).function("fragment")

        assert pm.resolve(template.table, template.permutations, "fragment", str(tmp_path)) == [("none",), ("normal_map",)]

        result = pm.build_module(str(template_path), str(output_path), module_path="pbr")
        registry.load(result.meta_path, handle)

        assert [function.name for function in result.functions] == ["fragment__none", "fragment__normal_map"]
        assert "vec4 fragment__normal_map(vec4 color, vec3 normal) {\n    color.rgb *= normal;\n    return color;\n}" in result.source

        assert resolver.resolve_entry_point(FRAGMENT, {"STANDARDMATERIAL_NORMAL_MAP"}, handle) == ("pbr::fragment__normal_map", True)
        assert resolver.resolve_entry_point(FRAGMENT, set(), handle) == ("pbr::fragment__none", True)

    assert not ledger.process_cycle(writer)
