import pytest

from ownmesh.topology import (
    FullMeshSelector,
    RingSelector,
    Topology,
    select_ring_neighbors,
)


def test_topology_is_abstract():
    with pytest.raises(TypeError):
        Topology()


def test_fullmesh_keeps_every_peer():
    sel = FullMeshSelector()
    peers = [f"peer{i}" for i in range(10)]
    got = sel.select_preferred("self", peers)
    assert len(got) == len(peers)
    for p in peers:
        assert p in got


def test_fullmesh_empty_peer_list_returns_empty():
    assert FullMeshSelector().select_preferred("self", []) == set()


def test_ring_empty_peer_list_returns_empty():
    assert select_ring_neighbors("self", [], 3) == set()


def test_ring_below_capacity_returns_everyone():
    assert select_ring_neighbors("self", ["a", "b"], 3) == {"a", "b"}


def test_five_node_ring_picks_neighbors_plus_shortcut():
    got = select_ring_neighbors("a", ["b", "c", "d", "e"], 3)
    assert "b" in got
    assert "e" in got
    assert len(got) == 3
    assert "c" in got or "d" in got


def test_immediate_ring_neighbors_are_reciprocal():
    all_nodes = ["alice", "bob", "carol", "dave", "eve"]
    ordered = sorted(all_nodes)
    preferred = {
        node: select_ring_neighbors(node, [x for x in all_nodes if x != node], 3)
        for node in all_nodes
    }
    n = len(ordered)
    for i, node in enumerate(ordered):
        cw = ordered[(i + 1) % n]
        ccw = ordered[(i - 1) % n]
        assert cw in preferred[node], f"{node} must pick {cw}"
        assert ccw in preferred[node], f"{node} must pick {ccw}"


def test_shortcut_asymmetry_is_expected():
    all_nodes = ["alice", "bob", "carol", "dave", "eve"]

    def others(me):
        return [x for x in all_nodes if x != me]

    alice = select_ring_neighbors("alice", others("alice"), 3)
    carol = select_ring_neighbors("carol", others("carol"), 3)
    assert "carol" in alice
    assert "alice" not in carol


def test_deterministic_across_runs():
    peers = ["b", "c", "d", "e", "f", "g", "h"]
    first = select_ring_neighbors("a", peers, 3)
    second = select_ring_neighbors("a", peers, 3)
    assert first == {"b", "h", "c"}
    assert second == first


def test_input_order_does_not_matter():
    r1 = select_ring_neighbors("a", ["b", "c", "d", "e", "f"], 3)
    r2 = select_ring_neighbors("a", ["f", "e", "d", "c", "b"], 3)
    assert r1 == r2


def test_result_never_contains_self_and_is_subset():
    peers = ["b", "c", "d", "e", "f", "g", "h"]
    for n in range(1, 8):
        got = select_ring_neighbors("a", peers, n)
        assert "a" not in got
        assert got <= set(peers)


@pytest.mark.parametrize("n", [2, 3, 4, 5])
def test_result_size_matches_n_above_capacity(n):
    peers = ["b", "c", "d", "e", "f", "g", "h"]
    assert len(select_ring_neighbors("a", peers, n)) == n


def test_negative_n_preferred_rejected():
    with pytest.raises(ValueError):
        select_ring_neighbors("a", ["b"], -1)


def test_ring_selector_default_uses_three():
    peers = ["b", "c", "d", "e", "f", "g"]
    assert RingSelector().select_preferred("a", peers) == select_ring_neighbors(
        "a", peers, 3
    )


def test_ring_selector_custom_n():
    peers = ["b", "c", "d", "e", "f", "g"]
    got = RingSelector(n_preferred=5).select_preferred("a", peers)
    assert len(got) == 5
    assert {"b", "g"} <= got