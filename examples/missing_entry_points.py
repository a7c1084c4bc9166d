import permutate as pm

import os

pm.initialize(log_level=pm.LogLevel.INFO)

example_dir = os.path.dirname(os.path.abspath(__file__))
template_path = os.path.join(example_dir, "pbr.glsl")
output_path = os.path.join(example_dir, "build", "pbr.gen.glsl")

vertex = pm.EntryPoint("pbr::vertex", [
    pm.Mapping([("VERTEX_TANGENTS", "tangent")], "none"),
    pm.Mapping([("VERTEX_COLORS", "color")], "none"),
], fallback="pbr::vertex__none__none")

fragment = pm.EntryPoint("pbr::fragment", [
    pm.Mapping([("STANDARDMATERIAL_NORMAL_MAP", "normal_map")], "none"),
], fallback="pbr::fragment__none")

# The ledger writes next to the template, where the next build reads it
ledger, writer = pm.create_ledger(os.path.join(example_dir, "entry_points.json"))

with pm.ModuleRegistry() as registry:
    resolver = pm.EntryPointResolver(registry, ledger.sender())

    result = pm.build_module(template_path, output_path, module_path="pbr")
    handle = registry.load(result.meta_path)

    print(f"Compiled entry points: {result.meta.entry_points}")

    for flags in [set(), {"VERTEX_TANGENTS"}, {"VERTEX_COLORS", "STANDARDMATERIAL_NORMAL_MAP"}]:
        flags = flags | set(pm.extra_shader_defs())

        print(f"{sorted(flags)}")
        print(f"\tvertex: {resolver.resolve_entry_point(vertex, flags, handle)}")
        print(f"\tfragment: {resolver.resolve_entry_point(fragment, flags, handle)}")

    if ledger.process_cycle(writer):
        print(f"Wrote {writer.path}, run again to generate the missing entry points")
