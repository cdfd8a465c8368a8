"""Tests for state persistence."""

import json
import threading
import pytest
from deploygraph.state import ObservedResource, RemoteState, STATE_FORMAT_VERSION, load_state, save_state
from deploygraph.utils.errors import StateError

NSG = "Microsoft.Network/networkSecurityGroups/nsg-a"


@pytest.fixture
def sample_state():
    state = RemoteState(scope_id="/subscriptions/abc/resourceGroups/rg")
    state.put(ObservedResource(
        type="Microsoft.Network/networkSecurityGroups",
        name="nsg-a",
        attributes={"id": "/subscriptions/abc/resourceGroups/rg/providers/" + NSG, "location": "westeurope"},
    ))
    state.put(ObservedResource(
        type="Microsoft.Network/virtualNetworks/subnets",
        name="vnet-a/snet-a",
        attributes={"properties": {"addressPrefix": "10.0.0.0/24"}},
        dependencies=[NSG],
    ))
    return state


class TestRemoteState:
    """Test in-memory state operations."""

    def test_put_and_get(self, sample_state):
        assert sample_state.get(NSG).name == "nsg-a"
        assert "Microsoft.Network/virtualNetworks/vnet-a/subnets/snet-a" in sample_state
        assert len(sample_state) == 2
        assert sample_state.serial == 2

    def test_remove_bumps_serial(self, sample_state):
        removed = sample_state.remove(NSG)
        assert removed.name == "nsg-a"
        assert sample_state.serial == 3
        assert sample_state.remove(NSG) is None
        assert sample_state.serial == 3

    def test_snapshot_is_independent(self, sample_state):
        snapshot = sample_state.snapshot()
        snapshot.get(NSG).attributes["location"] = "eastus"

        assert sample_state.get(NSG).attributes["location"] == "westeurope"
        assert snapshot.serial == sample_state.serial

    def test_concurrent_puts(self):
        state = RemoteState()

        def writer(offset):
            for idx in range(50):
                state.put(ObservedResource(type="Microsoft.Network/networkSecurityGroups", name=f"nsg-{offset}-{idx}"))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(state) == 200
        assert state.serial == 200


class TestStateStore:
    """Test state file load/save."""

    def test_missing_file_is_empty_state(self, tmp_path):
        state = load_state(tmp_path / "state.json")
        assert len(state) == 0
        assert state.scope_id is None

    def test_save_and_load(self, sample_state, tmp_path):
        path = tmp_path / "nested" / "state.json"
        save_state(sample_state, path)
        loaded = load_state(path)

        assert loaded.scope_id == sample_state.scope_id
        assert loaded.serial == sample_state.serial
        assert loaded.resources == sample_state.resources
        assert loaded.get("Microsoft.Network/virtualNetworks/vnet-a/subnets/snet-a").dependencies == [NSG]

    def test_saved_file_format(self, sample_state, tmp_path):
        path = tmp_path / "state.json"
        save_state(sample_state, path)
        data = json.loads(path.read_text(encoding='utf-8'))

        assert data["version"] == STATE_FORMAT_VERSION
        assert sorted(data["resources"]) == sorted(sample_state.addresses())
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_save_is_deterministic(self, sample_state, tmp_path):
        save_state(sample_state, tmp_path / "a.json")
        save_state(sample_state, tmp_path / "b.json")
        assert (tmp_path / "a.json").read_text() == (tmp_path / "b.json").read_text()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding='utf-8')
        with pytest.raises(StateError, match="Invalid JSON"):
            load_state(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[]", encoding='utf-8')
        with pytest.raises(StateError, match="JSON object"):
            load_state(path)

    def test_wrong_version(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": 99, "resources": {}}), encoding='utf-8')
        with pytest.raises(StateError, match="Unsupported state format version"):
            load_state(path)

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"version": STATE_FORMAT_VERSION, "resources": {"x": {"name": "n"}}}), encoding='utf-8')
        with pytest.raises(StateError, match="Invalid state file"):
            load_state(path)
