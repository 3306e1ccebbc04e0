import pytest

from contextweave import ContextWeaveApp, GraphStore


@pytest.fixture
def store():
    return GraphStore()


@pytest.fixture
def make_engine(store):
    def _make(**settings):
        return ContextWeaveApp.create(graph=store, **settings)
    return _make


def add_note(store, node_id, content="", title=None, **kwargs):
    return store.add_node(
        "note",
        title or node_id,
        {"content": content or f"content of {node_id}"},
        node_id=node_id,
        **kwargs,
    )


def add_conversation(store, node_id, messages=()):
    return store.add_node(
        "conversation",
        node_id,
        {"messages": list(messages)},
        node_id=node_id,
    )


def ids(contributors):
    return [c.node_id for c in contributors]
