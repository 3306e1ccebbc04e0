import pytest

from contextweave.graph import (
    Edge,
    EdgeDirection,
    EdgeRole,
    EdgeStrength,
    GraphStore,
    Node,
    NodeKind,
)

from conftest import add_note


# ------------------------------------------------------------------
# Nodes
# ------------------------------------------------------------------

def test_node_kind_from_string():
    node = Node(id="n1", kind="note")
    assert node.kind is NodeKind.NOTE


def test_node_rejects_unknown_kind():
    with pytest.raises(ValueError):
        Node(id="n1", kind="spreadsheet")


def test_node_requires_id():
    with pytest.raises(ValueError):
        Node(id="", kind="note")


def test_container_kinds_expose_members():
    assert NodeKind.CONTAINER.exposes_members
    assert NodeKind.WORKSPACE.exposes_members
    assert not NodeKind.NOTE.exposes_members
    assert not NodeKind.CONVERSATION.exposes_members


def test_members_hidden_for_non_aggregate_kind():
    note = Node(id="n1", kind="note", member_ids=("a", "b"))
    project = Node(id="p1", kind="project", member_ids=["a", "b"])

    assert note.members == ()
    assert project.members == ("a", "b")


def test_display_title_fallbacks():
    assert Node(id="n1", kind="note", title="Brief").display_title == "Brief"
    assert Node(id="n2", kind="note", content={"label": "Lbl"}).display_title == "Lbl"
    assert Node(id="n3", kind="task").display_title == "Untitled task"


def test_conversation_body_keeps_recent_messages():
    messages = [{"role": "user", "content": f"m{i}"} for i in range(8)]
    node = Node(id="c1", kind="conversation", content={"messages": messages})

    body = node.body()

    assert "m2" not in body
    assert body.splitlines() == [f"user: m{i}" for i in range(3, 8)]


def test_task_body_has_status_header():
    node = Node(
        id="t1",
        kind="task",
        content={"status": "todo", "priority": "high", "description": "Ship it"},
    )
    assert node.body() == "Status: todo\nPriority: high\nShip it"


def test_artifact_injection_formats():
    content = "x" * 100

    full = Node(id="a1", kind="artifact", title="Brief", content={"content": content})
    ref = Node(
        id="a2",
        kind="artifact",
        title="Brief",
        content={"content": content, "injection_format": "reference-only", "content_type": "code"},
    )
    chunked = Node(
        id="a3",
        kind="artifact",
        content={"content": content, "injection_format": "chunked", "max_injection_tokens": 5},
    )
    summary = Node(
        id="a4",
        kind="artifact",
        content={"content": content, "injection_format": "summary", "summary": "short"},
    )

    assert full.body() == content
    assert ref.body() == "[Reference: Brief (code)]"
    assert chunked.body() == "x" * 20 + "\n[...truncated]"
    assert summary.body() == "short"


def test_container_body_is_description():
    node = Node(id="p1", kind="project", content={"description": "Q3 launch"})
    assert node.body() == "Q3 launch"


# ------------------------------------------------------------------
# Malformed payloads
# ------------------------------------------------------------------

def test_non_mapping_content_rejected():
    with pytest.raises(ValueError):
        Node(id="n1", kind="note", content=["not", "a", "dict"])


def test_non_string_values_are_stringified():
    note = Node(id="n1", kind="note", title=7, content={"content": 42})
    task = Node(id="t1", kind="task", content={"status": 3, "description": ["a"]})

    assert note.title == "7"
    assert note.body() == "42"
    assert task.body() == "Status: 3\n['a']"


def test_conversation_skips_non_mapping_messages():
    node = Node(
        id="c1",
        kind="conversation",
        content={"messages": ["hello", None, {"role": "user", "content": 5}]},
    )
    assert node.body() == "user: 5"


def test_conversation_with_non_list_messages_is_empty():
    node = Node(id="c1", kind="conversation", content={"messages": "hello"})
    assert node.body() == ""


def test_chunked_artifact_with_bad_token_limit_uses_default():
    node = Node(
        id="a1",
        kind="artifact",
        content={
            "content": "x" * 9000,
            "injection_format": "chunked",
            "max_injection_tokens": "lots",
        },
    )
    assert node.body() == "x" * 8000 + "\n[...truncated]"


def test_unhashable_injection_format_falls_back_to_full():
    node = Node(id="a1", kind="artifact", content={"content": "abc", "injection_format": ["x"]})
    assert node.body() == "abc"


def test_member_ids_normalized_to_strings():
    project = Node(id="p1", kind="project", member_ids=[1, None, "b"])
    assert project.member_ids == ("1", "b")


# ------------------------------------------------------------------
# Context header
# ------------------------------------------------------------------

def test_context_label_overrides_title():
    node = Node(id="n1", kind="note", title="Raw", content={"contextLabel": "Style guide"})
    assert node.context_label == "Style guide"
    assert node.display_title == "Raw"


def test_artifact_label_includes_language():
    node = Node(id="a1", kind="artifact", title="Parser", content={"language": "python"})
    assert node.context_label == "Parser (python)"


def test_context_priority_defaults_to_medium():
    assert Node(id="n1", kind="note").context_priority == "medium"
    assert Node(id="n2", kind="note", content={"contextPriority": "HIGH"}).context_priority == "high"
    assert Node(id="n3", kind="note", content={"contextPriority": "urgent"}).context_priority == "medium"


def test_metadata_and_summary_lines():
    node = Node(
        id="n1",
        kind="note",
        content={
            "content": "Body",
            "tags": ["launch", "q3"],
            "keyEntities": ["beta"],
            "relationshipType": "depends-on",
            "summary": "Short version",
        },
    )

    assert node.context_text() == (
        "Metadata: Tags: launch, q3 | Key concepts: beta | Relationship: depends on\n"
        "Summary: Short version\n"
        "Body"
    )


def test_property_tags_win_over_plain_tags():
    node = Node(id="n1", kind="note", content={"properties": {"tags": ["a"]}, "tags": ["b"]})
    assert node.header() == ["Metadata: Tags: a"]


def test_aggregate_member_counts():
    project = Node(id="p1", kind="project", content={"description": "D"}, member_ids=["a", "b"])
    workspace = Node(
        id="w1",
        kind="workspace",
        member_ids=["a"],
        content={
            "llmSettings": {"provider": "anthropic", "model": "claude-sonnet-4"},
            "contextRules": {"maxDepth": 2, "traversalMode": "all"},
        },
    )

    assert project.context_text() == "Contains 2 items\nD"
    assert workspace.header() == [
        "Members: 1 nodes included",
        "LLM Configuration: Provider: anthropic | Model: claude-sonnet-4",
        "Context rules: Max context depth: 2 | Traversal: all",
    ]


def test_conversation_provider_and_orchestrator_facts():
    chat = Node(
        id="c1",
        kind="conversation",
        content={"provider": "openai", "messages": [{"role": "user", "content": "hi"}]},
    )
    orchestrator = Node(
        id="o1",
        kind="orchestrator",
        content={"strategy": "sequential", "connectedAgents": ["a", "b"], "description": "Run"},
    )

    assert chat.context_text() == "Provider: openai\nuser: hi"
    assert orchestrator.context_text() == "Strategy: sequential\nAgents: 2\nRun"


def test_attachments_block():
    node = Node(
        id="n1",
        kind="note",
        title="Specs",
        content={
            "content": "See files",
            "attachments": [
                {"filename": "plan.pdf", "mimeType": "application/pdf", "size": 4096},
                {"filename": "a.txt", "mimeType": "text/plain", "size": 12},
                "junk",
            ],
        },
    )

    assert node.context_text() == (
        "See files\n"
        "[Attached files: Specs]\n"
        "  - plan.pdf (application/pdf, 4KB)\n"
        "  - a.txt (text/plain, 12B)"
    )


def test_plain_note_has_no_header():
    node = Node(id="n1", kind="note", content={"content": "Only body"})

    assert node.header() == []
    assert node.attachments() == ""
    assert node.context_text() == "Only body"


# ------------------------------------------------------------------
# Edges
# ------------------------------------------------------------------

def test_edge_defaults():
    edge = Edge(id="e1", source="a", target="b")

    assert edge.role is EdgeRole.REFERENCE
    assert edge.strength is EdgeStrength.NORMAL
    assert edge.enabled
    assert not edge.is_bidirectional


def test_edge_normalizes_strings():
    edge = Edge(
        id="e1",
        source="a",
        target="b",
        role="instruction",
        strength="strong",
        direction="bidirectional",
    )

    assert edge.role is EdgeRole.INSTRUCTION
    assert edge.strength is EdgeStrength.STRONG
    assert edge.direction is EdgeDirection.BIDIRECTIONAL


@pytest.mark.parametrize(
    "weight, expected",
    [
        (1, EdgeStrength.LIGHT),
        (3, EdgeStrength.LIGHT),
        (5, EdgeStrength.NORMAL),
        (8, EdgeStrength.STRONG),
        (10, EdgeStrength.STRONG),
    ],
)
def test_legacy_weight_migrates_to_strength(weight, expected):
    assert Edge(id="e", source="a", target="b", weight=weight).strength is expected


def test_explicit_strength_wins_over_weight():
    edge = Edge(id="e", source="a", target="b", strength="light", weight=10)
    assert edge.strength is EdgeStrength.LIGHT


def test_role_ordering_is_total():
    ordered = sorted(EdgeRole, key=lambda r: r.rank)
    assert ordered == [
        EdgeRole.INSTRUCTION,
        EdgeRole.SCOPE,
        EdgeRole.REFERENCE,
        EdgeRole.EXAMPLE,
        EdgeRole.BACKGROUND,
    ]


def test_edge_rejects_non_callable_predicate():
    with pytest.raises(TypeError):
        Edge(id="e", source="a", target="b", predicate="yes")


# ------------------------------------------------------------------
# Store
# ------------------------------------------------------------------

def test_every_mutation_advances_version():
    store = GraphStore()
    assert store.version == 0

    add_note(store, "a")
    assert store.version == 1

    add_note(store, "b")
    edge_id = store.add_edge("a", "b")
    assert store.version == 3

    store.update_node("a", title="A")
    assert store.version == 4

    store.update_edge(edge_id, enabled=False)
    assert store.version == 5

    store.remove_edge(edge_id)
    assert store.version == 6

    store.remove_node("b")
    assert store.version == 7


def test_remove_node_cascades_edges():
    store = GraphStore()
    add_note(store, "a")
    add_note(store, "b")
    add_note(store, "c")
    e1 = store.add_edge("a", "b")
    e2 = store.add_edge("c", "a")
    e3 = store.add_edge("b", "c")

    node, removed = store.remove_node("a")

    assert node.id == "a"
    assert sorted(e.id for e in removed) == sorted([e1, e2])
    assert [e.id for e in store.edges()] == [e3]


def test_update_keeps_edge_creation_order():
    store = GraphStore()
    add_note(store, "a")
    add_note(store, "b")
    first = store.add_edge("a", "b")
    second = store.add_edge("b", "a")

    store.update_edge(first, role="example")

    assert [e.id for e in store.edges()] == [first, second]
    assert store.get_edge(first).role is EdgeRole.EXAMPLE


def test_unknown_ids_raise_key_error():
    store = GraphStore()

    with pytest.raises(KeyError):
        store.update_node("missing", title="x")
    with pytest.raises(KeyError):
        store.remove_edge("missing")
    with pytest.raises(KeyError):
        store.remove_node("missing")


def test_duplicate_ids_rejected():
    store = GraphStore()
    add_note(store, "a")

    with pytest.raises(ValueError):
        add_note(store, "a")


def test_node_id_cannot_change():
    store = GraphStore()
    add_note(store, "a")

    with pytest.raises(ValueError):
        store.update_node("a", id="b")


def test_snapshot_reused_until_mutation():
    store = GraphStore()
    add_note(store, "a")

    first = store.snapshot()
    assert store.snapshot() is first

    add_note(store, "b")
    second = store.snapshot()

    assert second is not first
    assert second.version == store.version
    assert first.node("b") is None


def test_snapshot_indexes_edges_in_creation_order():
    store = GraphStore()
    for nid in ("a", "b", "c"):
        add_note(store, nid)
    e1 = store.add_edge("b", "a")
    e2 = store.add_edge("c", "a")

    snap = store.snapshot()

    assert [e.id for e in snap.inbound_edges("a")] == [e1, e2]
    assert [e.id for e in snap.outbound_edges("b")] == [e1]
    assert snap.inbound_edges("c") == ()


def test_dangling_edge_is_stored():
    store = GraphStore()
    add_note(store, "a")

    edge_id = store.add_edge("ghost", "a")

    assert store.get_edge(edge_id).source == "ghost"


def test_load_state_is_single_mutation():
    store = GraphStore()
    nodes = [Node(id="a", kind="note"), Node(id="b", kind="note")]
    edges = [Edge(id="e", source="a", target="b")]

    store.load_state(nodes, edges)

    assert store.version == 1
    assert len(store.snapshot()) == 2
