"""Tests for run-order tiering."""

from pipewright._graph import topological_tiers


class TestTopologicalTiers:
    def test_independent_nodes_share_tier(self):
        assert topological_tiers({"b": [], "a": []}) == [["a", "b"]]

    def test_chain(self):
        tiers = topological_tiers({"a": [], "b": ["a"], "c": ["b"]})
        assert tiers == [["a"], ["b"], ["c"]]

    def test_diamond(self):
        edges = {"a": [], "b": ["a"], "c": ["a"], "d": ["b", "c"]}
        assert topological_tiers(edges) == [["a"], ["b", "c"], ["d"]]

    def test_duplicate_edges_counted_once(self):
        # A consumer reading two artifacts from the same producer.
        edges = {"Source/Checkout": [], "Build/Compile": ["Source/Checkout"] * 2}
        tiers = topological_tiers(edges)
        assert tiers == [["Source/Checkout"], ["Build/Compile"]]

    def test_empty(self):
        assert topological_tiers({}) == []
