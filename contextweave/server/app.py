from fastapi import FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional

from contextweave.app import ContextWeaveApp
from contextweave.config import ContextConfig
from contextweave.graph.store import GraphStore

import logging

# ============================================================
# LOGGING
# ============================================================

logger = logging.getLogger("contextweave.server")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

# ============================================================
# CONTEXT RULES
# ============================================================

MAX_DEPTH = 2
MAX_TOKENS = 8000
TRAVERSAL_MODE = "all"

# ============================================================
# Engine Manager
# ============================================================

class EngineManager:
    """Owns the process-local graph store and the engine reading it."""

    def __init__(self):
        logger.info("[ENGINE MANAGER] Initializing...")
        self.store = GraphStore()
        self._build_engine()
        logger.info("[ENGINE MANAGER] Ready")

    def _build_engine(self):
        self.engine = ContextWeaveApp.create(
            graph=self.store,
            max_depth=MAX_DEPTH,
            max_tokens=MAX_TOKENS,
            traversal_mode=TRAVERSAL_MODE,
        )

    def reset(self):
        logger.warning("[ENGINE MANAGER] Clearing graph and settings")
        self.store = GraphStore()
        self._build_engine()

    def update_settings(self, changes: Dict[str, Any]) -> ContextConfig:
        config = self.engine.config.replace(**changes)
        self.engine.configure(config)
        return config

    def require_node(self, node_id: str):
        try:
            return self.store.get_node(node_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Node '{node_id}' not found")


# ============================================================
# Instantiate Manager
# ============================================================

manager = EngineManager()

# ============================================================
# FastAPI App
# ============================================================

app = FastAPI(title="ContextWeave", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# Models
# ============================================================

class NodeCreateRequest(BaseModel):
    id: Optional[str] = None
    kind: str
    title: str = ""
    content: Dict[str, Any] = Field(default_factory=dict)
    member_ids: List[str] = Field(default_factory=list)
    include_in_context: bool = True

class NodeUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    member_ids: Optional[List[str]] = None
    include_in_context: Optional[bool] = None

class EdgeCreateRequest(BaseModel):
    id: Optional[str] = None
    source: str
    target: str
    role: str = "reference"
    strength: Optional[str] = None
    weight: Optional[float] = None
    enabled: bool = True
    direction: str = "unidirectional"

class EdgeUpdateRequest(BaseModel):
    role: Optional[str] = None
    strength: Optional[str] = None
    enabled: Optional[bool] = None
    direction: Optional[str] = None

class SettingsRequest(BaseModel):
    max_depth: Optional[int] = None
    max_tokens: Optional[int] = None
    traversal_mode: Optional[str] = None
    strength_threshold: Optional[str] = None
    excluded_kinds: Optional[List[str]] = None
    follow_bidirectional: Optional[bool] = None
    context_text_max_chars: Optional[int] = None
    section_content_chars: Optional[int] = None
    estimated_output_tokens: Optional[int] = None
    cost_models: Optional[List[str]] = None
    cache_max_entries: Optional[int] = None

class EstimateRequest(BaseModel):
    model: Optional[str] = None
    messages: List[Dict[str, str]] = Field(default_factory=list)
    system_prompt: str = ""
    current_input: str = ""


def _changes(request: BaseModel) -> Dict[str, Any]:
    return {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}


# ============================================================
# Health
# ============================================================

@app.get("/health")
def health():
    return {
        "status": "ok",
        "graph_version": manager.store.version,
        "node_count": len(manager.store.nodes()),
        "edge_count": len(manager.store.edges()),
    }


# ============================================================
# Nodes
# ============================================================

@app.post("/nodes", status_code=status.HTTP_201_CREATED)
def create_node(request: NodeCreateRequest):
    try:
        node_id = manager.store.add_node(
            request.kind,
            request.title,
            request.content,
            node_id=request.id,
            member_ids=request.member_ids,
            include_in_context=request.include_in_context,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("[SERVER] Node created | id=%s | kind=%s", node_id, request.kind)
    return {"id": node_id, "graph_version": manager.store.version}


@app.patch("/nodes/{node_id}")
def update_node(node_id: str, request: NodeUpdateRequest):
    changes = _changes(request)
    if "member_ids" in changes:
        changes["member_ids"] = tuple(changes["member_ids"])

    try:
        manager.store.update_node(node_id, **changes)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Node '{node_id}' not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"id": node_id, "graph_version": manager.store.version}


@app.delete("/nodes/{node_id}")
def delete_node(node_id: str):
    try:
        _, removed_edges = manager.store.remove_node(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Node '{node_id}' not found")

    logger.info("[SERVER] Node removed | id=%s | edges=%d", node_id, len(removed_edges))
    return {
        "id": node_id,
        "removed_edges": [e.id for e in removed_edges],
        "graph_version": manager.store.version,
    }


# ============================================================
# Edges
# ============================================================

@app.post("/edges", status_code=status.HTTP_201_CREATED)
def create_edge(request: EdgeCreateRequest):
    try:
        edge_id = manager.store.add_edge(
            request.source,
            request.target,
            edge_id=request.id,
            role=request.role,
            strength=request.strength,
            weight=request.weight,
            enabled=request.enabled,
            direction=request.direction,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("[SERVER] Edge created | %s -> %s", request.source, request.target)
    return {"id": edge_id, "graph_version": manager.store.version}


@app.patch("/edges/{edge_id}")
def update_edge(edge_id: str, request: EdgeUpdateRequest):
    try:
        manager.store.update_edge(edge_id, **_changes(request))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Edge '{edge_id}' not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"id": edge_id, "graph_version": manager.store.version}


@app.delete("/edges/{edge_id}")
def delete_edge(edge_id: str):
    try:
        manager.store.remove_edge(edge_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Edge '{edge_id}' not found")

    return {"id": edge_id, "graph_version": manager.store.version}


# ============================================================
# Context
# ============================================================

@app.get("/context/{node_id}/traversal")
def context_traversal(node_id: str):
    manager.require_node(node_id)
    return manager.engine.get_context_traversal_for_node(node_id).to_dict()


@app.get("/context/{node_id}/sections")
def context_sections(node_id: str):
    manager.require_node(node_id)
    return manager.engine.render_for_node(node_id).to_dict()


@app.get("/context/{node_id}/markdown")
def context_markdown(node_id: str):
    manager.require_node(node_id)
    return Response(
        content=manager.engine.markdown_for_node(node_id),
        media_type="text/markdown",
    )


@app.post("/context/{node_id}/estimate")
def context_estimate(node_id: str, request: EstimateRequest):
    manager.require_node(node_id)
    estimate = manager.engine.estimate_for_node(
        node_id,
        model=request.model,
        messages=request.messages,
        system_prompt=request.system_prompt,
        current_input=request.current_input,
    )
    return estimate.to_dict()


@app.get("/context/{node_id}")
def context_text(node_id: str):
    manager.require_node(node_id)
    return {"id": node_id, "context": manager.engine.get_context_for_node(node_id)}


# ============================================================
# Settings
# ============================================================

@app.get("/settings")
def get_settings():
    return manager.engine.config.as_dict()


@app.put("/settings")
def put_settings(request: SettingsRequest):
    try:
        config = manager.update_settings(_changes(request))
    except TypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("[SETTINGS] Update failed")
        raise HTTPException(status_code=500, detail="Settings update failed")

    return config.as_dict()


@app.get("/cache/stats")
def cache_stats():
    return manager.engine.cache.stats()
