import permutate as pm

import json
import threading

import pytest

class RecordingWriter:
    def __init__(self, fail: int = 0) -> None:
        self.snapshots = []
        self.fail = fail

    def __call__(self, manifest):
        if self.fail > 0:
            self.fail -= 1
            raise OSError("disk full")

        self.snapshots.append(manifest.to_dict())

def test_duplicate_records():
    ledger = pm.MissingEntryPointLedger()

    assert ledger.record("pbr::fragment", ["normal_map"])
    assert ledger.record("pbr::fragment", ("normal_map",))

    assert ledger.drain()
    assert ledger.dirty
    assert len(ledger) == 1
    assert ledger.permutations("pbr::fragment") == {("normal_map",)}

    writer = RecordingWriter()

    assert ledger.flush(writer)
    assert not ledger.dirty

    ledger.record("pbr::fragment", ["normal_map"])

    assert not ledger.drain()
    assert not ledger.dirty
    assert len(ledger) == 1
    assert not ledger.flush(writer)
    assert len(writer.snapshots) == 1

def test_one_write_per_cycle():
    ledger = pm.MissingEntryPointLedger()
    sender = ledger.sender()

    for ii in range(10):
        sender.record("mesh::vertex", ["none", "color" if ii % 2 == 0 else "none"])

    writer = RecordingWriter()

    assert ledger.process_cycle(writer)
    assert not ledger.process_cycle(writer)

    assert writer.snapshots == [{"mesh::vertex": [["none", "color"], ["none", "none"]]}]

def test_full_channel_drops_records():
    ledger = pm.MissingEntryPointLedger(capacity=2)

    assert ledger.record("a", ["x"])
    assert ledger.record("a", ["y"])
    assert not ledger.record("a", ["z"])

    ledger.drain()

    assert ledger.permutations("a") == {("x",), ("y",)}

    # Draining frees the channel again.
    assert ledger.record("a", ["z"])

def test_failed_flush_is_retried():
    ledger = pm.MissingEntryPointLedger()
    writer = RecordingWriter(fail=1)

    ledger.record("pbr::fragment", ["none"])

    assert not ledger.process_cycle(writer)
    assert ledger.dirty

    assert ledger.process_cycle(writer)
    assert not ledger.dirty
    assert writer.snapshots == [{"pbr::fragment": [["none"]]}]

def test_concurrent_producers():
    ledger = pm.MissingEntryPointLedger(capacity=1000)

    def produce(family):
        sender = ledger.sender()

        for ii in range(50):
            sender.record(family, [str(ii % 5)])

    threads = [threading.Thread(target=produce, args=(f"family{ii}",)) for ii in range(4)]

    for thread in threads:
        thread.start()

    for thread in threads:
        thread.join()

    assert ledger.drain()
    assert ledger.families() == ["family0", "family1", "family2", "family3"]
    assert len(ledger) == 20

def test_manifest_writer(tmp_path):
    path = tmp_path / "shaders" / "entry_points.json"

    ledger, writer = pm.create_ledger(path)

    ledger.record("pbr::entry_points::fragment", ["normal_map", "none"])
    ledger.record("mesh::entry_points::vertex", ["none", "none"])
    ledger.record("pbr::entry_points::fragment", ["none", "none"])

    assert ledger.process_cycle(writer)

    text = path.read_text()

    assert text.endswith("\n")
    assert json.loads(text) == {
        "entry_points": {
            "mesh::entry_points::vertex": [["none", "none"]],
            "pbr::entry_points::fragment": [["none", "none"], ["normal_map", "none"]],
        }
    }
    assert text.index("mesh::entry_points::vertex") < text.index("pbr::entry_points::fragment")

    assert [entry.name for entry in path.parent.iterdir()] == ["entry_points.json"]

def test_load_keeps_known_permutations(tmp_path):
    path = tmp_path / "entry_points.json"
    path.write_text(json.dumps({"entry_points": {"pbr::fragment": [["normal_map"]]}}))

    ledger, writer = pm.create_ledger(path)

    assert not ledger.dirty
    assert pm.MissingEntryPoint("pbr::fragment", ["normal_map"]) in ledger

    ledger.record("pbr::fragment", ["normal_map"])
    assert not ledger.process_cycle(writer)

    ledger.record("pbr::fragment", ["none"])
    assert ledger.process_cycle(writer)

    assert pm.read_manifest(path).get("pbr::fragment") == [("none",), ("normal_map",)]

def test_load_missing_file(tmp_path):
    ledger = pm.MissingEntryPointLedger().load(tmp_path / "entry_points.json")

    assert len(ledger) == 0

    with pytest.raises(FileNotFoundError):
        pm.MissingEntryPointLedger().load(tmp_path / "entry_points.json", missing_ok=False)

def test_invalid_capacity():
    with pytest.raises(ValueError):
        pm.MissingEntryPointLedger(capacity=0)
