"""Pytest configuration and shared fixtures for gridroute tests."""

import pytest

from gridroute import BBox, Board, Component, Net, NetConnection, Pad, Snapshot, Wire


def make_resistor(comp_id, position=None, **kwargs):
    """Two-pad part with pads two holes apart and a one-cell body between them."""
    pads = (Pad("1", (0, 0)), Pad("2", (2, 0)))
    kwargs.setdefault("reference", comp_id)
    return Component(comp_id, pads, position, body=BBox(1, 0, 1, 0), **kwargs)


def make_pad(comp_id, position=None, **kwargs):
    """Single-pad part (test point, power symbol)."""
    kwargs.setdefault("reference", comp_id)
    return Component(comp_id, (Pad("1", (0, 0)),), position, **kwargs)


def make_net(name, *pins):
    """Net from (component_id, pin_number) pairs."""
    return Net(name, tuple(NetConnection(cid, pin) for cid, pin in pins))


@pytest.fixture
def board():
    """Medium perfboard."""
    return Board(30, 20)


@pytest.fixture
def resistor():
    """Factory for two-pad resistors."""
    return make_resistor


@pytest.fixture
def test_point():
    """Factory for single-pad parts."""
    return make_pad


@pytest.fixture
def net():
    """Factory for nets."""
    return make_net


@pytest.fixture
def chain_wires():
    """Three wires joined end to end plus one unrelated wire."""
    return [
        Wire("w1", ((0, 0), (2, 0))),
        Wire("w2", ((2, 0), (2, 3))),
        Wire("w3", ((2, 3), (5, 3))),
        Wire("w4", ((8, 8), (9, 8))),
    ]


@pytest.fixture
def wired_snapshot():
    """R1 at (2, 2) with a wire from its second pin to (10, 2)."""
    r1 = make_resistor("R1", (2, 2))
    return Snapshot(components=(r1,), connections=(Wire("w1", ((4, 2), (10, 2))),))


@pytest.fixture
def two_resistor_netlist():
    """Two resistors stacked vertically, joined pin to pin by two nets."""
    components = [make_resistor("R1", (2, 2)), make_resistor("R2", (2, 6))]
    nets = [
        make_net("A", ("R1", "1"), ("R2", "1")),
        make_net("B", ("R1", "2"), ("R2", "2")),
    ]
    return components, nets
