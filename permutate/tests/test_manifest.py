import permutate as pm

import pytest

def test_dumps_is_stable():
    manifest = pm.Manifest({
        "pbr::fragment": [["none", "tonemap"], ["normal_map", "none"], ["none", "tonemap"]],
        "mesh::vertex": [["none"]],
    })

    assert manifest.dumps() == """{
  "entry_points": {
    "mesh::vertex": [
      [
        "none"
      ]
    ],
    "pbr::fragment": [
      [
        "none",
        "tonemap"
      ],
      [
        "normal_map",
        "none"
      ]
    ]
  }
}
"""

    assert pm.Manifest.loads(manifest.dumps()) == manifest

def test_add_and_get():
    manifest = pm.Manifest()

    assert manifest.add("mesh::vertex", ["none", "none"])
    assert not manifest.add("mesh::vertex", ("none", "none"))

    assert manifest.get("mesh::vertex") == [("none", "none")]
    assert manifest.get("mesh::fragment") == []

def test_entry_point_key():
    assert pm.entry_point_key("pbr::entry_points", "fragment") == "pbr::entry_points::fragment"
    assert pm.entry_point_key(None, "fragment") == "fragment"
    assert pm.entry_point_key("", "fragment") == "fragment"

@pytest.mark.parametrize("text", [
    "{",
    "[]",
    "{}",
    '{"entry_points": []}',
    '{"entry_points": {"mesh::vertex": "none"}}',
    '{"entry_points": {"mesh::vertex": [["none", 1]]}}',
])
def test_malformed(text):
    with pytest.raises(pm.ManifestError):
        pm.Manifest.loads(text, "entry_points.json")

def test_parse_error_location():
    with pytest.raises(pm.ManifestError) as info:
        pm.Manifest.loads('{\n  "entry_points": {,\n}', "entry_points.json")

    assert info.value.line == 2

def test_write_replaces_file(tmp_path):
    path = tmp_path / "entry_points.json"
    path.write_text("stale")

    pm.write_manifest(pm.Manifest({"pbr::fragment": [["none"]]}), path)

    assert pm.read_manifest(path) == pm.Manifest({"pbr::fragment": [["none"]]})
    assert sorted(entry.name for entry in tmp_path.iterdir()) == ["entry_points.json"]

def test_module_meta(tmp_path):
    meta = pm.ModuleMeta(["pbr::fragment__none"], "pbr.spv")
    path = tmp_path / "pbr.spv.json"

    pm.write_module_meta(meta, str(path))

    assert pm.read_module_meta(str(path)) == meta
    assert pm.meta_path_for("pbr.spv") == "pbr.spv.json"

    with pytest.raises(pm.ManifestError):
        pm.ModuleMeta.loads('{"entry_points": "pbr::fragment__none"}')
