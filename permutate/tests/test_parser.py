import permutate as pm
import permutate.codegen as pc

import pytest

MESH_TEMPLATE = """struct Mesh { mat4 model; };

// fragment entry points come from the ledger
@permutate(
    mappings = { normal_map: normal_map | none, tonemap: tonemap | none },
    permutations = [ (none, *), file("entry_points.json", "pbr::entry_points"), ]
)
vec4 fragment(vec4 color, @permutate(normal_map = normal_map) vec4 tangent,) {
    @permutate(tonemap = tonemap) color = tonemap(color);
    return color;
}

float helper(float x) { return x * 2.0; }
"""

def test_module_structure():
    module = pc.parse_template(MESH_TEMPLATE, "pbr.glsl")

    assert module.path == "pbr.glsl"
    assert [function.name for function in module.functions] == ["fragment"]

    assert module.items[0] == "struct Mesh { mat4 model; };\n\n// fragment entry points come from the ledger\n"
    assert module.items[-1] == "\n\nfloat helper(float x) { return x * 2.0; }\n"

    with pytest.raises(KeyError):
        module.function("vertex")

def test_attribute():
    template = pc.parse_template(MESH_TEMPLATE).function("fragment")

    assert template.table.names == ["normal_map", "tonemap"]
    assert template.table[0].variants == ("normal_map", "none")
    assert template.prefix == "vec4 "
    assert template.line == 4

    explicit, from_file = template.permutations

    assert isinstance(explicit, pm.ExplicitPermutations)
    assert isinstance(from_file, pm.FilePermutations)
    assert from_file.path == "entry_points.json"
    assert from_file.module_path == "pbr::entry_points"

def test_trailing_comma_in_parameter_list():
    template = pc.parse_template(MESH_TEMPLATE).function("fragment")

    assert [parameter.text for parameter in template.parameters] == ["vec4 color", "vec4 tangent"]

    with_normal_map = pc.expand_one(template, ("normal_map", "none"))

    assert with_normal_map.render().startswith("vec4 fragment__normal_map__none(vec4 color, vec4 tangent) {")

def test_statements():
    template = pc.parse_template(MESH_TEMPLATE).function("fragment")

    assert [statement.text for statement in template.statements] == ["color = tonemap(color);", "return color;"]
    assert template.statements[0].guards == (pm.codegen.Guard("tonemap", "tonemap"),)
    assert template.statements[0].call.callee == "tonemap"
    assert template.statements[1].call is None

def test_text_without_templates():
    source = "void main() {\n    gl_Position = vec4(0.0);\n}\n"

    module = pc.parse_template(source)

    assert module.items == [source]
    assert pc.expand_module(module) == (source, [])

@pytest.mark.parametrize("source, line", [
    ("@permutate(parameters = { a: x }, permutations = [ (x) ])\n", 2),
    ("@permutate(parameters = { a: x })\nvoid f() {}\n", 1),
    ("@permutate(permutations = [ (x) ])\nvoid f() {}\n", 1),
    ("@permutate(parameters = { a: x }, permutations = [ (x) ], colors = [])\nvoid f() {}\n", 1),
    ("@permutate(parameters = { a: x | x }, permutations = [ (x) ])\nvoid f() {}\n", 1),
    ("@permutate(parameters = { a: x }, permutations = [ (x) ])\nvoid f() {\n    g()\n}\n", 3),
    ("@permutate(parameters = { a: x }, permutations = [ (x) ])\nvoid f() {\n    if (@permutate(a = x) b) {}\n}\n", 3),
    ("@permutate(parameters = { a: x }, permutations = [ (x) ])\nvoid f() {\n    @permutate(a = x)\n}\n", 3),
    ("@permutate(parameters = { a: x }, permutations = [ (x) ])\nvoid f() {\n    $\n}\n", 3),
    ("void f() {\n    @permutate(a = x) g();\n}\n", 2),
    ("@other(a = x)\nvoid f() {}\n", 1),
])
def test_syntax_errors(source, line):
    with pytest.raises(pm.TemplateSyntaxError) as info:
        pc.parse_template(source, "broken.glsl")

    assert info.value.line == line
    assert f"line {line}" in str(info.value)

def test_explicit_permutations_are_checked_when_parsed():
    with pytest.raises(pm.InvalidVariant) as info:
        pc.parse_template("@permutate(parameters = { a: x | y }, permutations = [ (x), (w) ])\nvoid f() {}\n")

    assert info.value.variant == "w"
    assert info.value.line == 1
    assert info.value.column == 62

    with pytest.raises(pm.PermutationArityError):
        pc.parse_template("@permutate(parameters = { a: x | y }, permutations = [ (x, y) ])\nvoid f() {}\n")

def test_file_permutations_resolve_next_to_template(tmp_path):
    (tmp_path / "entry_points.json").write_text(
        '{"entry_points": {"pbr::entry_points::fragment": [["normal_map", "tonemap"]]}}'
    )
    template_path = tmp_path / "pbr.glsl"
    template_path.write_text(MESH_TEMPLATE)

    template = pc.parse_template_file(str(template_path)).function("fragment")
    functions = pc.expand_template(template, str(tmp_path))

    assert [function.name for function in functions] == [
        "fragment__none__none",
        "fragment__none__tonemap",
        "fragment__normal_map__tonemap",
    ]

def test_macro_continuations_are_kept():
    prelude = "#version 450\n#define SCALE(x) \\\n    ((x) * 2.0)\n\n"
    source = prelude + "@permutate(parameters = { a: x | y }, permutations = [ (*) ])\nvoid f() { g(); }\n"

    module = pc.parse_template(source)

    assert module.items[0] == prelude

    expanded, functions = pc.expand_module(module)

    assert [function.name for function in functions] == ["f__x", "f__y"]
    assert expanded.startswith(prelude)

    assert pc.expand_module(pc.parse_template(prelude)) == (prelude, [])

def test_unknown_characters_are_tokens():
    tokens = pc.tokenize("a \\\n$b")

    assert [(token.kind, token.text) for token in tokens[:-1]] == [
        (pc.TokenKind.IDENT, "a"),
        (pc.TokenKind.PUNCT, "\\"),
        (pc.TokenKind.PUNCT, "$"),
        (pc.TokenKind.IDENT, "b"),
    ]
    assert tokens[3].line == 2
