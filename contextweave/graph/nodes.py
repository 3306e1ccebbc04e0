from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple


class NodeKind(str, Enum):
    """
    Closed enumeration of workspace entity kinds.

    Values match the identifiers used by the canvas, so a kind can be
    built directly from raw graph data: ``NodeKind("note")``.
    """

    CONVERSATION = "conversation"
    NOTE = "note"
    TEXT = "text"
    TASK = "task"
    ARTIFACT = "artifact"
    CONTAINER = "project"
    WORKSPACE = "workspace"
    AUTOMATION = "action"
    ORCHESTRATOR = "orchestrator"

    @property
    def exposes_members(self) -> bool:
        """
        Capability query: does this kind act as a transparent bundle of
        member nodes for context purposes?
        """
        return self in MEMBER_EXPOSING_KINDS


MEMBER_EXPOSING_KINDS = frozenset({NodeKind.CONTAINER, NodeKind.WORKSPACE})

# Conversation nodes contribute only their most recent messages
RECENT_MESSAGE_COUNT = 5

ARTIFACT_FORMATS = {"full", "summary", "chunked", "reference-only"}
DEFAULT_MAX_INJECTION_TOKENS = 2000
TRUNCATION_MARKER = "\n[...truncated]"

CONTEXT_PRIORITIES = ("high", "medium", "low")

SUMMARY_KINDS = frozenset({NodeKind.NOTE, NodeKind.TEXT, NodeKind.CONTAINER, NodeKind.WORKSPACE})

RELATIONSHIP_LABELS = {
    "depends-on": "depends on",
    "related-to": "related to",
    "implements": "implements",
    "references": "references",
    "blocks": "blocks/blocked by",
}


@dataclass(frozen=True)
class Node:
    """
    Immutable snapshot of a workspace entity.

    Nodes are owned and mutated exclusively by the GraphStore, which
    replaces the whole object on every update. The context engine only
    reads them.

    ``content`` is the kind-specific payload (messages for conversations,
    ``content`` for notes, ``description``/``status`` for tasks, ...).
    It comes straight from the canvas and is read leniently: values of
    the wrong type are stringified or skipped, never trusted.
    ``member_ids`` lists child nodes of aggregate kinds in the order the
    user added them.
    """

    id: str
    kind: NodeKind
    title: str = ""
    content: Dict[str, Any] = field(default_factory=dict, compare=False)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    include_in_context: bool = True
    member_ids: Tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Node id must be a non-empty string.")

        if not isinstance(self.kind, NodeKind):
            object.__setattr__(self, "kind", NodeKind(self.kind))

        if self.content is None:
            object.__setattr__(self, "content", {})
        elif not isinstance(self.content, Mapping):
            raise ValueError("Node content must be a mapping.")

        if not isinstance(self.title, str):
            object.__setattr__(self, "title", _text(self.title))

        members = self.member_ids or ()
        if isinstance(members, str):
            members = (members,)
        object.__setattr__(self, "member_ids", tuple(_text(m) for m in members if m is not None))

    # ------------------------------------------------------------------
    # Context Payload
    # ------------------------------------------------------------------

    @property
    def display_title(self) -> str:
        return self.title or _text(self.content.get("label")) or f"Untitled {self.kind.value}"

    @property
    def context_label(self) -> str:
        """Title shown in rendered context; ``contextLabel`` overrides it."""
        label = _text(self.content.get("contextLabel")) or self.display_title
        language = _text(self.content.get("language"))
        if self.kind is NodeKind.ARTIFACT and language:
            label += f" ({language})"
        return label

    @property
    def context_priority(self) -> str:
        priority = _text(self.content.get("contextPriority")).lower()
        return priority if priority in CONTEXT_PRIORITIES else "medium"

    @property
    def members(self) -> Tuple[str, ...]:
        """Member ids visible to traversal (empty for non-aggregate kinds)."""
        return self.member_ids if self.kind.exposes_members else ()

    def body(self) -> str:
        """Payload text this node contributes when it is used as context."""

        data = self.content

        if self.kind is NodeKind.CONVERSATION:
            return _conversation_body(data)

        if self.kind in (NodeKind.NOTE, NodeKind.TEXT):
            return _text(data.get("content"))

        if self.kind is NodeKind.TASK:
            return _task_body(data)

        if self.kind is NodeKind.ARTIFACT:
            return _artifact_body(self.display_title, data)

        if self.kind in (
            NodeKind.CONTAINER,
            NodeKind.WORKSPACE,
            NodeKind.ORCHESTRATOR,
            NodeKind.AUTOMATION,
        ):
            return _text(data.get("description"))

        return _text(data.get("content")) or _text(data.get("description"))

    def header(self) -> List[str]:
        """
        Descriptive lines rendered between a node's label and its body.

        Metadata (tags, key concepts, relationship), summary, and the
        kind-specific facts: member counts for aggregates, provider for
        conversations, strategy and agent count for orchestrators.
        """
        data = self.content
        lines: List[str] = []

        meta = []
        properties = data.get("properties")
        tags = _strings(properties.get("tags") if isinstance(properties, Mapping) else None)
        tags = tags or _strings(data.get("tags"))
        if tags:
            meta.append(f"Tags: {', '.join(tags)}")
        concepts = _strings(data.get("keyEntities"))
        if concepts:
            meta.append(f"Key concepts: {', '.join(concepts)}")
        relationship = RELATIONSHIP_LABELS.get(_text(data.get("relationshipType")))
        if relationship:
            meta.append(f"Relationship: {relationship}")
        if meta:
            lines.append(f"Metadata: {' | '.join(meta)}")

        summary = _text(data.get("summary"))
        if summary and self.kind in SUMMARY_KINDS:
            lines.append(f"Summary: {summary}")

        if self.kind is NodeKind.CONTAINER and self.member_ids:
            lines.append(f"Contains {len(self.member_ids)} items")

        if self.kind is NodeKind.WORKSPACE:
            if self.member_ids:
                lines.append(f"Members: {len(self.member_ids)} nodes included")
            lines.extend(_workspace_settings(data))

        if self.kind is NodeKind.CONVERSATION and data.get("provider"):
            lines.append(f"Provider: {_text(data['provider'])}")

        if self.kind is NodeKind.ORCHESTRATOR:
            if data.get("strategy"):
                lines.append(f"Strategy: {_text(data['strategy'])}")
            agents = data.get("connectedAgents")
            lines.append(f"Agents: {len(agents) if isinstance(agents, (list, tuple)) else 0}")

        return lines

    def attachments(self) -> str:
        """``[Attached files: title]`` block, or "" without attachments."""
        entries = self.content.get("attachments")
        if not isinstance(entries, (list, tuple)):
            return ""

        lines = []
        for item in entries:
            if not isinstance(item, Mapping):
                continue
            size = _number(item.get("size"))
            shown = f"{size / 1024:.0f}KB" if size > 1024 else f"{size:.0f}B"
            lines.append(
                f"  - {_text(item.get('filename'))} ({_text(item.get('mimeType'))}, {shown})"
            )

        if not lines:
            return ""
        return f"[Attached files: {self.display_title}]\n" + "\n".join(lines)

    def context_text(self) -> str:
        """Header, body and attachments joined as one context entry."""
        parts = self.header()
        body = self.body()
        if body:
            parts.append(body)
        attached = self.attachments()
        if attached:
            parts.append(attached)
        return "\n".join(parts)


# ------------------------------------------------------------------
# Payload helpers
# ------------------------------------------------------------------

def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _strings(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [_text(v) for v in value if v is not None and _text(v)]


def _number(value: Any) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


def _conversation_body(data: Mapping[str, Any]) -> str:
    messages = data.get("messages")
    if not isinstance(messages, (list, tuple)):
        return ""

    recent = [m for m in messages if isinstance(m, Mapping)][-RECENT_MESSAGE_COUNT:]
    return "\n".join(
        f"{_text(m.get('role')) or 'unknown'}: {_text(m.get('content'))}" for m in recent
    )


def _task_body(data: Mapping[str, Any]) -> str:
    lines = []

    if data.get("status"):
        lines.append(f"Status: {_text(data['status'])}")
    if data.get("priority"):
        lines.append(f"Priority: {_text(data['priority'])}")
    if data.get("due_date"):
        lines.append(f"Due: {_text(data['due_date'])}")

    description = _text(data.get("description"))
    if description:
        lines.append(description)

    return "\n".join(lines)


def _artifact_body(title: str, data: Mapping[str, Any]) -> str:
    content = _text(data.get("content"))
    content_type = _text(data.get("content_type")) or "text"
    fmt = _text(data.get("injection_format")) or "full"

    if fmt not in ARTIFACT_FORMATS:
        fmt = "full"

    if fmt == "summary":
        return _text(data.get("summary")) or f"[{content_type} artifact: {title}]"

    if fmt == "reference-only":
        return f"[Reference: {title} ({content_type})]"

    if fmt == "chunked":
        max_tokens = int(_number(data.get("max_injection_tokens"))) or DEFAULT_MAX_INJECTION_TOKENS
        max_chars = max_tokens * 4
        if len(content) > max_chars:
            return content[:max_chars] + TRUNCATION_MARKER

    return content


def _workspace_settings(data: Mapping[str, Any]) -> List[str]:
    lines = []

    llm = data.get("llmSettings")
    if isinstance(llm, Mapping):
        parts = []
        if llm.get("provider"):
            parts.append(f"Provider: {_text(llm['provider'])}")
        if llm.get("model"):
            parts.append(f"Model: {_text(llm['model'])}")
        if llm.get("systemPrompt"):
            parts.append(f"System instructions: {_text(llm['systemPrompt'])}")
        if parts:
            lines.append(f"LLM Configuration: {' | '.join(parts)}")

    rules = data.get("contextRules")
    if isinstance(rules, Mapping):
        parts = []
        if rules.get("maxDepth") is not None:
            parts.append(f"Max context depth: {_text(rules['maxDepth'])}")
        if rules.get("maxTokens") is not None:
            parts.append(f"Max tokens: {_text(rules['maxTokens'])}")
        if rules.get("traversalMode"):
            parts.append(f"Traversal: {_text(rules['traversalMode'])}")
        if parts:
            lines.append(f"Context rules: {' | '.join(parts)}")

    return lines
