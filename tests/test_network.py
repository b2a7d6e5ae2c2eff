"""Tests for contact networks."""

import pytest

from outbreak_detection.errors import ValidationError
from outbreak_detection.network import Network


class TestNetworkConstruction:
    """Test network constructors."""

    def test_complete(self):
        network = Network.complete(5)
        assert network.name == "completegraph_staff5"
        assert network.vertices() == {2, 3, 4, 5, 6}
        for v in network.vertices():
            assert sorted(network.neighbors(v)) == sorted(network.vertices() - {v})

    def test_neighboring(self):
        network = Network.neighboring(10, 4)
        assert network.name == "neighboringgraph_staff10_degree4"
        assert network.min_label() == 2
        assert sorted(network.neighbors(2)) == [3, 4, 10, 11]
        assert all(len(network.neighbors(v)) == 4 for v in network.vertices())

    def test_crossing(self):
        network = Network.crossing(10, 4)
        # offsets 4 and 3 from vertex 2 (index 0)
        assert sorted(network.neighbors(2)) == [5, 6, 8, 9]
        assert all(len(network.neighbors(v)) == 4 for v in network.vertices())

    def test_bad_offsets(self):
        with pytest.raises(ValidationError):
            Network.circulant(5, [0, 1])

    def test_start_label(self):
        network = Network.complete(3, start=10)
        assert network.vertices() == {10, 11, 12}


class TestNetworkEditing:
    """Test vertex and edge updates."""

    def test_no_self_loops(self):
        network = Network("ring")
        with pytest.raises(ValidationError):
            network.add_edge(3, 3)

    def test_add_edges(self):
        network = Network.complete(3)
        network.add_vertex(1)
        network.add_edges(1, [2, 3, 4])
        assert sorted(network.neighbors(1)) == [2, 3, 4]

    def test_copy_is_independent(self):
        network = Network.complete(3)
        clone = network.copy()
        clone.add_vertex(1)
        assert 1 not in network.vertices()
        assert clone.name == network.name

    def test_relabel(self):
        network = Network.complete(3, start=0).relabel(2)
        assert network.vertices() == {2, 3, 4}
        assert len(network.neighbors(2)) == 2

    def test_relabel_keeps_gaps(self):
        network = Network("gaps")
        network.add_edge(0, 5)
        network.add_edge(5, 7)
        shifted = network.relabel(2)
        assert shifted.vertices() == {2, 7, 9}
        assert sorted(shifted.neighbors(7)) == [2, 9]


class TestNetworkFiles:
    """Test edge-list round trips."""

    def test_round_trip(self, tmp_path):
        network = Network.neighboring(8, 2)
        path = tmp_path / "ring.txt"
        network.write_edge_list(path)

        loaded = Network.from_edge_list(path)
        assert loaded.name == "ring"
        assert loaded.vertices() == network.vertices()
        for v in network.vertices():
            assert sorted(loaded.neighbors(v)) == sorted(network.neighbors(v))

    def test_comma_separated_by_default(self, tmp_path):
        path = tmp_path / "triangle.txt"
        Network.complete(3).write_edge_list(path)
        assert all("," in line for line in path.read_text().splitlines())

        path.write_text("2,3\n3,4\n4,2\n")
        assert Network.from_edge_list(path).vertices() == {2, 3, 4}

    def test_whitespace_separator(self, tmp_path):
        path = tmp_path / "spaced.txt"
        Network.complete(3).write_edge_list(path, delimiter=" ")
        loaded = Network.from_edge_list(path, separator=None)
        assert loaded.vertices() == {2, 3, 4}

    def test_wrong_separator(self, tmp_path):
        path = tmp_path / "spaced.txt"
        path.write_text("2 3\n3 4\n")
        with pytest.raises(ValidationError, match="separator"):
            Network.from_edge_list(path)

    def test_self_loops_dropped(self, tmp_path):
        path = tmp_path / "loops.txt"
        path.write_text("2,3\n3,3\n3,4\n")
        loaded = Network.from_edge_list(path, name="loops")
        assert 3 not in loaded.neighbors(3)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Network.from_edge_list(tmp_path / "missing.txt")
