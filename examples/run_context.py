from contextweave import ContextWeaveApp, GraphStore
from contextweave.render import format_cost, format_token_count

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

# --------------------------------
# Consumer graph
# --------------------------------

store = GraphStore()

chat = store.add_node("conversation", "Launch planning", node_id="chat")

brief = store.add_node(
    "note",
    "Product brief",
    {"content": "We are launching a note-taking app for researchers in Q3."},
    node_id="brief",
)

style = store.add_node(
    "note",
    "Tone guide",
    {"content": "Answer in short bullet points. Avoid marketing language."},
    node_id="style",
)

task = store.add_node(
    "task",
    "Write launch email",
    {"status": "in-progress", "priority": "high", "description": "Draft for beta users."},
    node_id="task",
)

research = store.add_node(
    "note",
    "User interviews",
    {"content": "Researchers want citation export and offline sync."},
    node_id="research",
)

project = store.add_node(
    "project",
    "Launch",
    {"description": "Everything related to the Q3 launch."},
    node_id="project",
    member_ids=["task"],
)

store.add_edge(style, chat, role="instruction", strength="strong")
store.add_edge(brief, chat, role="scope")
store.add_edge(project, chat, role="reference")
store.add_edge(research, brief, role="background", strength="light")

# --------------------------------
# Create Engine
# --------------------------------

engine = ContextWeaveApp.create(graph=store, max_depth=2, max_tokens=8000)

# --------------------------------
# Inspect context
# --------------------------------

traversal = engine.get_context_traversal_for_node(chat)

print(f"\n=== Context Sources ({traversal.node_count}) ===\n")
for c in traversal.nodes:
    print(f"{'  ' * c.depth}[{c.role.value}] {c.title} (depth={c.depth}, tokens={c.estimated_tokens})")

print("\n=== Context Text ===\n")
print(engine.get_context_for_node(chat))

rendered = engine.render_for_node(chat)

print("\n=== Cost Estimates ===\n")
print(f"Context tokens: {format_token_count(rendered.total_tokens)}")
for model, cost in rendered.per_model_cost.items():
    print(f"{model}: {format_cost(cost.total_cost)}")

# --------------------------------
# Mutate and recompute
# --------------------------------

edge_id = store.edges()[0].id
store.update_edge(edge_id, enabled=False)

print("\n=== After disabling the tone guide link ===\n")
print(f"Sources: {engine.get_context_traversal_for_node(chat).node_count}")
print(f"Cache: {engine.cache.stats()}")
