"""Tests for the bulk autorouter."""

import networkx as nx
import pytest

from gridroute.autorouter import (
    Autorouter,
    RouteOptions,
    RouteResult,
    congestion_map,
    edge_priority,
    is_power_net,
    mst_edges,
)
from gridroute.errors import NoticeKind
from gridroute.geometry import path_cells
from gridroute.models import Board, GridPosition, Side, SolderBridge, Wire
from gridroute.tracer import RoutingTrace


def pins(*items):
    return [(comp_id, GridPosition(*pos)) for comp_id, pos in items]


class TestMstEdges:
    """Tests for per-net spanning trees."""

    def test_nearest_pins_are_joined(self):
        edges = mst_edges(pins(("R1", (0, 0)), ("R2", (5, 0)), ("R3", (1, 0))))
        assert sorted(edges) == [(0, 2), (1, 2)]

    def test_same_component_pairs_are_skipped(self):
        edges = mst_edges(pins(("R1", (0, 0)), ("R1", (1, 0)), ("R2", (5, 0))))
        assert sorted(edges) == [(0, 2), (1, 2)]

    def test_same_component_allowed_when_needed(self):
        assert mst_edges(pins(("R1", (0, 0)), ("R1", (3, 0)))) == [(0, 1)]

    def test_coincident_pins_need_no_route(self):
        edges = mst_edges(pins(("R1", (0, 0)), ("R2", (0, 0)), ("R3", (4, 0))))
        assert len(edges) == 1

    def test_already_joined_pins(self):
        joined = nx.Graph()
        joined.add_edge((0, 0), (6, 0))
        assert mst_edges(pins(("R1", (0, 0)), ("R2", (6, 0))), joined) == []

    def test_single_pin(self):
        assert mst_edges(pins(("R1", (0, 0)))) == []


class TestPriorities:
    """Tests for edge ordering helpers."""

    def test_adjacent_edges_first(self):
        assert edge_priority(1, False, 2) == -1049

    def test_power_nets_last(self):
        assert edge_priority(10, True, 3) == 510

    def test_short_two_pin_bonus(self):
        assert edge_priority(4, False, 2) == -46
        assert edge_priority(6, False, 2) == 6
        assert edge_priority(4, False, 3) == 4

    @pytest.mark.parametrize("name,expected", [("GND", True), ("vcc", True), ("+5V", True), ("SIG", False)])
    def test_is_power_net(self, name, expected):
        assert is_power_net(name) is expected


class TestCongestionMap:
    """Tests for congestion_map."""

    def test_trace_and_neighbour_weights(self):
        costs = congestion_map([Wire("w", ((0, 0), (1, 0)))])
        assert costs[(0, 0)] == 4
        assert costs[(1, 0)] == 4
        assert costs[(0, 1)] == 1
        assert costs[(2, 0)] == 1
        assert (1, 1) in costs
        assert (2, 1) not in costs

    def test_empty(self):
        assert congestion_map([]) == {}


class TestAutorouter:
    """Tests for Autorouter.route."""

    def test_routes_every_net(self, board, two_resistor_netlist):
        components, nets = two_resistor_netlist
        result = Autorouter(RouteOptions(board)).route(components, nets)

        assert result.routed == 2
        assert result.failed == 0
        assert result.notices == []
        assert [conn.id for conn in result.connections] == ["wire-A-1", "wire-B-2"]
        wire_a, wire_b = result.connections
        assert set(path_cells(wire_a.points)).isdisjoint(path_cells(wire_b.points))
        assert all(conn.side == Side.BOTTOM for conn in result.connections)

    def test_adjacent_pins_get_solder_bridge(self, board, resistor, net):
        components = [resistor("R1", (0, 0)), resistor("R2", (3, 0))]
        result = Autorouter(RouteOptions(board)).route(components, [net("N", ("R1", "2"), ("R2", "1"))])

        assert len(result.connections) == 1
        bridge = result.connections[0]
        assert isinstance(bridge, SolderBridge)
        assert bridge.id == "bridge-N-1"
        assert bridge.net_id == "N"

    def test_unplaced_component_fails_its_net(self, board, resistor, net):
        components = [resistor("R1", (2, 2)), resistor("R2"), resistor("R3", (2, 6))]
        nets = [
            net("A", ("R1", "1"), ("R2", "1")),
            net("B", ("R1", "2"), ("R3", "2")),
            net("C", ("R1", "1"), ("R99", "1")),
        ]
        result = Autorouter(RouteOptions(board)).route(components, nets)

        assert result.routed == 1
        assert result.failed == 1
        assert result.total == 2
        assert result.failed_nets == ["A"]
        assert result.notices[0].kind == NoticeKind.PARTIAL_BATCH_FAILURE
        assert "1 of 2" in result.notices[0].message

    def test_failed_net_is_removed_atomically(self, test_point, net):
        """Test that a routed edge is dropped when its net's other edge fails."""
        components = [
            test_point("P", (0, 0)),
            test_point("Q", (2, 0)),
            test_point("X", (6, 2)),
            test_point("B1", (5, 2)),
            test_point("B2", (6, 1)),
        ]
        nets = [net("N", ("P", "1"), ("Q", "1"), ("X", "1"))]
        result = Autorouter(RouteOptions(Board(7, 3))).route(components, nets)

        assert result.failed == 1
        assert result.failed_nets == ["N"]
        assert result.connections == []

    def test_existing_connections_kept(self, board, two_resistor_netlist):
        components, nets = two_resistor_netlist
        existing = [Wire("w0", ((2, 2), (2, 6)))]
        result = Autorouter(RouteOptions(board, clear_existing=False)).route(components, nets, existing)

        assert result.routed == 2
        assert [conn.net_id for conn in result.connections] == ["B"]

    def test_existing_connections_cleared(self, board, two_resistor_netlist):
        components, nets = two_resistor_netlist
        existing = [Wire("w0", ((2, 2), (2, 6)))]
        result = Autorouter(RouteOptions(board)).route(components, nets, existing)
        assert len(result.connections) == 2

    def test_ids_do_not_clash_with_existing(self, board, two_resistor_netlist):
        components, nets = two_resistor_netlist
        existing = [Wire("wire-A-1", ((10, 10), (15, 10)))]
        result = Autorouter(RouteOptions(board, clear_existing=False)).route(components, nets, existing)
        assert [conn.id for conn in result.connections] == ["wire-A-2", "wire-B-3"]

    def test_trace(self, board, two_resistor_netlist):
        components, nets = two_resistor_netlist
        trace = RoutingTrace()
        Autorouter(RouteOptions(board)).route(components, nets, trace=trace)

        assert trace.operation == "autoroute"
        assert [stage.name for stage in trace.stages] == ["pass_1"]
        grid = trace.get_grid_at_stage("pass_1")
        assert len(grid) == board.height
        assert grid[2][2] == "o"
        assert grid[4][2] == "*"
        assert len(trace.get_steps_by_method("astar")) == 2

    def test_failing_run_records_every_pass(self, test_point, net):
        components = [test_point("P", (0, 0)), test_point("X", (4, 0)), test_point("B", (3, 0))]
        trace = RoutingTrace()
        result = Autorouter(RouteOptions(Board(5, 1))).route(components, [net("N", ("P", "1"), ("X", "1"))], trace=trace)

        assert result.failed == 1
        assert [stage.name for stage in trace.stages] == ["pass_1", "pass_2", "pass_3"]
        assert trace.get_failed_steps()


class TestRouteResult:
    """Tests for RouteResult."""

    def test_total(self):
        assert RouteResult(routed=3, failed=2).total == 5
