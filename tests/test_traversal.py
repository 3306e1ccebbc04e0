import pytest

from contextweave.engine import ActivationFilter, TraversalEngine, TraversalMode
from contextweave.graph import EdgeRole, EdgeStrength

from conftest import add_conversation, add_note, ids


@pytest.fixture
def traversal():
    return TraversalEngine(ActivationFilter())


def walk(traversal, store, target, max_depth=2, mode=TraversalMode.ALL):
    return traversal.traverse(store.snapshot(), target, max_depth, mode).contributors


# ------------------------------------------------------------------
# Core walks
# ------------------------------------------------------------------

def test_single_inbound_reference(store, traversal):
    add_note(store, "N1")
    add_conversation(store, "C1")
    store.add_edge("N1", "C1", role="reference")

    traversed = traversal.traverse(store.snapshot(), "C1", 2)
    result = traversed.contributors

    assert traversed.count == 1

    assert len(result) == 1
    assert result[0].node_id == "N1"
    assert result[0].depth == 1
    assert result[0].role is EdgeRole.REFERENCE


def test_chain_respects_max_depth(store, traversal):
    add_note(store, "N1")
    add_note(store, "N2")
    add_conversation(store, "C1")
    store.add_edge("N1", "N2")
    store.add_edge("N2", "C1")

    shallow = walk(traversal, store, "C1", max_depth=1)
    deep = walk(traversal, store, "C1", max_depth=2)

    assert ids(shallow) == ["N2"]
    assert [(c.node_id, c.depth) for c in deep] == [("N2", 1), ("N1", 2)]


def test_mutual_links_do_not_loop(store, traversal):
    add_note(store, "N1")
    add_note(store, "N2")
    store.add_edge("N1", "N2")
    store.add_edge("N2", "N1")

    result = walk(traversal, store, "N2", max_depth=10)

    assert ids(result) == ["N1"]
    assert result[0].depth == 1


def test_disabled_edge_contributes_nothing(store, traversal):
    add_note(store, "N1")
    add_conversation(store, "C1")
    store.add_edge("N1", "C1", enabled=False)

    assert traversal.traverse(store.snapshot(), "C1", 2).count == 0


def test_zero_depth_yields_nothing(store, traversal):
    add_note(store, "N1")
    add_conversation(store, "C1")
    store.add_edge("N1", "C1")

    assert walk(traversal, store, "C1", max_depth=0) == ()


def test_unknown_target_yields_nothing(store, traversal):
    add_note(store, "N1")
    assert walk(traversal, store, "missing") == ()


def test_outbound_edges_are_ignored(store, traversal):
    add_note(store, "N1")
    add_conversation(store, "C1")
    store.add_edge("C1", "N1")

    assert walk(traversal, store, "C1") == ()


# ------------------------------------------------------------------
# Ordering and uniqueness
# ------------------------------------------------------------------

def test_diamond_emits_each_node_once(store, traversal):
    for nid in ("root", "a", "b", "shared"):
        add_note(store, nid)
    store.add_edge("a", "root")
    store.add_edge("b", "root")
    store.add_edge("shared", "a")
    store.add_edge("shared", "b")

    result = walk(traversal, store, "root", max_depth=3)

    assert ids(result) == ["a", "b", "shared"]
    assert len(set(ids(result))) == len(result)


def test_siblings_follow_edge_creation_order(store, traversal):
    add_conversation(store, "C1")
    for nid in ("z", "y", "x"):
        add_note(store, nid)
        store.add_edge(nid, "C1")

    assert ids(walk(traversal, store, "C1")) == ["z", "y", "x"]


def test_depth_is_non_decreasing(store, traversal):
    add_conversation(store, "C1")
    for nid in ("a", "b", "a1", "b1", "a2"):
        add_note(store, nid)
    store.add_edge("a", "C1")
    store.add_edge("b", "C1")
    store.add_edge("a1", "a")
    store.add_edge("b1", "b")
    store.add_edge("a2", "a1")

    depths = [c.depth for c in walk(traversal, store, "C1", max_depth=5)]

    assert depths == sorted(depths)
    assert depths == [1, 1, 2, 2, 3]


def test_target_never_contributes_to_itself(store, traversal):
    add_note(store, "a")
    add_note(store, "b")
    store.add_edge("a", "b")
    store.add_edge("b", "a")
    store.add_edge("a", "a")

    assert "a" not in ids(walk(traversal, store, "a", max_depth=4))


# ------------------------------------------------------------------
# Pruning
# ------------------------------------------------------------------

def test_excluded_edge_prunes_branch(store, traversal):
    for nid in ("target", "mid", "far"):
        add_note(store, nid)
    store.add_edge("mid", "target", enabled=False)
    store.add_edge("far", "mid")

    assert walk(traversal, store, "target", max_depth=5) == ()


def test_opted_out_node_is_skipped(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "private", include_in_context=False)
    add_note(store, "public")
    store.add_edge("private", "C1")
    store.add_edge("public", "C1")

    assert ids(walk(traversal, store, "C1")) == ["public"]


def test_excluded_kind_is_skipped(store):
    traversal = TraversalEngine(ActivationFilter(excluded_kinds=["task"]))
    add_conversation(store, "C1")
    store.add_node("task", "Todo", {"description": "x"}, node_id="T1")
    add_note(store, "N1")
    store.add_edge("T1", "C1")
    store.add_edge("N1", "C1")

    assert ids(walk(traversal, store, "C1")) == ["N1"]


def test_dangling_edge_is_skipped(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "N1")
    store.add_edge("ghost", "C1")
    store.add_edge("N1", "C1")

    assert ids(walk(traversal, store, "C1")) == ["N1"]


def test_node_rejected_by_one_edge_can_enter_through_another(store):
    traversal = TraversalEngine(
        ActivationFilter(predicate=lambda edge, source, target: edge.role is not EdgeRole.EXAMPLE)
    )
    for nid in ("target", "mid", "shared"):
        add_note(store, nid)
    store.add_edge("shared", "target", role="example")
    store.add_edge("mid", "target")
    store.add_edge("shared", "mid")

    result = walk(traversal, store, "target")

    assert [(c.node_id, c.depth) for c in result] == [("mid", 1), ("shared", 2)]


# ------------------------------------------------------------------
# Strength threshold mode
# ------------------------------------------------------------------

def test_strength_threshold_mode(store):
    traversal = TraversalEngine(ActivationFilter(), strength_threshold=EdgeStrength.NORMAL)
    add_conversation(store, "C1")
    for nid, strength in (("weak", "light"), ("mid", "normal"), ("hard", "strong")):
        add_note(store, nid)
        store.add_edge(nid, "C1", strength=strength)

    all_mode = walk(traversal, store, "C1")
    thresholded = walk(traversal, store, "C1", mode=TraversalMode.STRENGTH_THRESHOLD)

    assert ids(all_mode) == ["weak", "mid", "hard"]
    assert ids(thresholded) == ["mid", "hard"]


def test_strength_threshold_accepts_string_mode(store):
    traversal = TraversalEngine(ActivationFilter(), strength_threshold=EdgeStrength.STRONG)
    add_conversation(store, "C1")
    add_note(store, "mid")
    store.add_edge("mid", "C1", strength="normal")

    assert walk(traversal, store, "C1", mode="strength-threshold") == ()


# ------------------------------------------------------------------
# Bidirectional edges
# ------------------------------------------------------------------

def test_bidirectional_edge_feeds_both_ends(store, traversal):
    add_note(store, "A")
    add_note(store, "B")
    store.add_edge("A", "B", direction="bidirectional")

    assert ids(walk(traversal, store, "B")) == ["A"]
    assert ids(walk(traversal, store, "A")) == ["B"]


def test_bidirectional_can_be_disabled(store):
    traversal = TraversalEngine(ActivationFilter(), follow_bidirectional=False)
    add_note(store, "A")
    add_note(store, "B")
    store.add_edge("A", "B", direction="bidirectional")

    assert walk(traversal, store, "A") == ()


def test_inbound_edges_precede_reverse_bidirectional(store, traversal):
    for nid in ("target", "reverse", "inbound"):
        add_note(store, nid)
    store.add_edge("target", "reverse", direction="bidirectional")
    store.add_edge("inbound", "target")

    assert ids(walk(traversal, store, "target")) == ["inbound", "reverse"]


# ------------------------------------------------------------------
# Container fan-out
# ------------------------------------------------------------------

def test_container_members_follow_container(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "m1")
    add_note(store, "m2")
    add_note(store, "other")
    store.add_node("project", "Launch", node_id="P1", member_ids=["m1", "m2"])
    store.add_edge("P1", "C1", role="scope", strength="strong")
    store.add_edge("other", "C1")

    result = walk(traversal, store, "C1")

    assert ids(result) == ["P1", "m1", "m2", "other"]
    members = [c for c in result if c.node_id in ("m1", "m2")]
    assert all(c.depth == 1 for c in members)
    assert all(c.role is EdgeRole.SCOPE for c in members)
    assert all(c.strength is EdgeStrength.STRONG for c in members)
    assert all(c.via_edge_id is None for c in members)


def test_nested_containers_are_flattened(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "leaf")
    add_note(store, "sibling")
    store.add_node("project", "Inner", node_id="inner", member_ids=["leaf"])
    store.add_node("workspace", "Outer", node_id="outer", member_ids=["inner", "sibling"])
    store.add_edge("outer", "C1")

    assert ids(walk(traversal, store, "C1")) == ["outer", "inner", "sibling", "leaf"]


def test_container_member_filtered_by_node_policy(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "hidden", include_in_context=False)
    add_note(store, "shown")
    store.add_node("project", "P", node_id="P1", member_ids=["hidden", "shown", "gone"])
    store.add_edge("P1", "C1")

    assert ids(walk(traversal, store, "C1")) == ["P1", "shown"]


def test_non_aggregate_kind_does_not_fan_out(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "child")
    store.add_node("note", "Parent", {"content": "x"}, node_id="N1", member_ids=["child"])
    store.add_edge("N1", "C1")

    assert ids(walk(traversal, store, "C1")) == ["N1"]


def test_member_already_visited_is_not_repeated(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "m1")
    store.add_node("project", "P", node_id="P1", member_ids=["m1"])
    store.add_edge("m1", "C1")
    store.add_edge("P1", "C1")

    assert ids(walk(traversal, store, "C1")) == ["m1", "P1"]


# ------------------------------------------------------------------
# Contributor payload
# ------------------------------------------------------------------

def test_contributor_tokens_from_body(store, traversal):
    add_conversation(store, "C1")
    add_note(store, "N1", content="x" * 9)
    store.add_edge("N1", "C1")

    contributor = walk(traversal, store, "C1")[0]

    assert contributor.content == "x" * 9
    assert contributor.estimated_tokens == 3
    assert contributor.title == "N1"


def test_contributor_carries_label_and_priority(store, traversal):
    add_conversation(store, "C1")
    store.add_node(
        "note",
        "Raw title",
        {"content": "Body", "contextLabel": "Pinned", "contextPriority": "HIGH"},
        node_id="N1",
    )
    store.add_edge("N1", "C1")

    contributor = walk(traversal, store, "C1")[0]

    assert contributor.title == "Pinned"
    assert contributor.context_priority == "high"
    assert contributor.high_priority


def test_malformed_payloads_do_not_break_the_walk(store, traversal):
    add_conversation(store, "C1")
    store.add_node("conversation", "Chat", {"messages": ["hello", None]}, node_id="bad-chat")
    store.add_node("note", 42, {"content": 42}, node_id="odd-note")
    store.add_node(
        "artifact",
        "Parser",
        {"content": ["x"], "injection_format": ["chunked"]},
        node_id="A1",
    )
    for source in ("bad-chat", "odd-note", "A1"):
        store.add_edge(source, "C1")

    traversed = traversal.traverse(store.snapshot(), "C1", 2)

    assert traversed.count == 3
    assert ids(traversed.contributors) == ["bad-chat", "odd-note", "A1"]
    assert traversed.contributors[0].content == ""
    assert traversed.contributors[1].content == "42"
    assert traversed.contributors[1].title == "42"
