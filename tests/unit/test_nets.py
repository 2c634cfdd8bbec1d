"""Tests for net grouping."""

from gridroute.models import NetLabel, SolderBridge, Wire
from gridroute.nets import NetIndex, points_match, same_net


class TestPointsMatch:
    """Tests for epsilon point matching."""

    def test_exact_and_near(self):
        assert points_match((1, 1), (1, 1))
        assert points_match((1, 1), (1.2, 0.8))
        assert not points_match((1, 1), (1.3, 1))

    def test_epsilon_override(self):
        assert points_match((1, 1), (1.4, 1), epsilon=0.5)


class TestSameNet:
    """Tests for same-net queries."""

    def test_transitive_through_shared_endpoints(self, chain_wires):
        """Test that w1-w2-w3 form one net regardless of seed end."""
        assert same_net([(0, 0)], chain_wires) == {"w1", "w2", "w3"}
        assert same_net([(5, 3)], chain_wires) == {"w1", "w2", "w3"}

    def test_reflexive(self, chain_wires):
        assert "w4" in same_net([(9, 8)], chain_wires)

    def test_seed_touching_nothing(self, chain_wires):
        assert same_net([(20, 20)], chain_wires) == set()

    def test_real_valued_seed(self, chain_wires):
        assert same_net([(0.2, -0.1)], chain_wires) == {"w1", "w2", "w3"}

    def test_bridges_join_nets(self):
        connections = [
            Wire("w1", ((0, 0), (3, 0))),
            SolderBridge("b1", (3, 0), (4, 0)),
            Wire("w2", ((4, 0), (4, 5))),
        ]
        assert same_net([(4, 5)], connections) == {"w1", "b1", "w2"}

    def test_labels_join_disjoint_wires(self):
        connections = [Wire("w1", ((0, 0), (3, 0))), Wire("w2", ((10, 10), (12, 10)))]
        labels = [NetLabel("VCC", (3, 0)), NetLabel("VCC", (12, 10))]
        assert same_net([(0, 0)], connections, labels=labels) == {"w1", "w2"}
        assert same_net([(0, 0)], connections) == {"w1"}


class TestNetIndex:
    """Tests for NetIndex grouping and naming."""

    def test_groups_in_order_of_first_appearance(self, chain_wires):
        index = NetIndex(chain_wires)
        assert index.groups() == [{"w1", "w2", "w3"}, {"w4"}]

    def test_net_names(self, chain_wires):
        index = NetIndex(chain_wires, [NetLabel("GND", (9, 8))])
        names = index.net_names()
        assert names["w1"] == names["w3"] == "Net-1"
        assert names["w4"] == "GND"

    def test_net_names_pick_first_label_alphabetically(self):
        index = NetIndex([Wire("w1", ((0, 0), (3, 0)))], [NetLabel("VCC", (0, 0)), NetLabel("5V", (3, 0))])
        assert index.net_names() == {"w1": "5V"}

    def test_net_of(self, chain_wires):
        index = NetIndex(chain_wires)
        assert index.net_of("w2") == {"w1", "w2", "w3"}
        assert index.net_of("missing") is None

    def test_touching_and_net_points(self, chain_wires):
        index = NetIndex(chain_wires)
        assert index.touching((2, 0)) == {"w1", "w2"}
        points = index.net_points([(8, 8)])
        assert (8, 8) in points
        assert (9, 8) in points
        assert len(index.graph.edges) == 2
