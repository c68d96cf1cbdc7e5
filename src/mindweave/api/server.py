"""fastapi server for mindweave.

exposes the mutation, selection and history api as REST endpoints for a
browser frontend. the frontend owns rendering; it reads laid-out nodes here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..core.layout import get_bounds
from ..core.models import Document, Node
from ..core.session import EditorSession
from ..core.tree import NodeIndex
from ..outline import render_outline


# --- pydantic models for api ---

class DocumentCreate(BaseModel):
    """request to create a new document."""
    title: str
    layout_direction: str = "horizontal"


class DocumentLoad(BaseModel):
    """request to replace the current document with a full document value."""
    document: dict
    relayout: bool = False


class DocumentUpdate(BaseModel):
    """request to change document-level fields."""
    title: Optional[str] = None
    layout_direction: Optional[str] = None
    theme: Optional[str] = None
    edge_style: Optional[str] = None


class NodeCreate(BaseModel):
    """request to create a child node."""
    parent_id: str
    content: str


class SiblingCreate(BaseModel):
    """request to create a sibling node."""
    content: str


class ChildrenCreate(BaseModel):
    """request to insert several children at once (e.g. ai suggestions)."""
    contents: list[str]
    ai_generated: bool = False
    provider_id: Optional[str] = None


class NodeUpdate(BaseModel):
    """partial node update. only fields that are sent are applied."""
    content: Optional[str] = None
    style: Optional[dict] = None
    icon: Optional[str] = None
    hyperlink: Optional[dict] = None
    notes: Optional[dict] = None
    labels: Optional[list[dict]] = None
    markers: Optional[list[dict]] = None
    task: Optional[dict] = None
    images: Optional[list[dict]] = None
    attachments: Optional[list[dict]] = None


class NodeMove(BaseModel):
    """request to move a node (drag and drop)."""
    new_parent_id: str
    position: Optional[int] = None


class BatchDelete(BaseModel):
    """request to delete several nodes; empty means the current selection."""
    node_ids: list[str] = []


class BatchStyle(BaseModel):
    """request to style several nodes; omitted ids mean the current selection."""
    style: dict
    node_ids: Optional[list[str]] = None


class RelationshipCreate(BaseModel):
    """request to connect two nodes with a relationship line."""
    from_node_id: str
    to_node_id: str
    type: str = "dashed"
    color: str = "#6b7280"
    label: Optional[str] = None
    arrow: str = "end"


class BoundaryCreate(BaseModel):
    """request to group nodes inside a boundary."""
    node_ids: list[str]
    color: str = "#3b82f6"
    shape: str = "rounded"
    label: Optional[str] = None


class NodeResponse(BaseModel):
    """node in api response."""
    id: str
    content: str
    kind: str
    parent_id: Optional[str]
    children_ids: list[str]
    collapsed: bool
    position: Optional[dict]
    size: Optional[dict]
    style: dict
    metadata: dict
    icon: Optional[str] = None
    hyperlink: Optional[dict] = None
    notes: Optional[dict] = None
    labels: list[dict] = []
    markers: list[dict] = []
    task: Optional[dict] = None
    images: list[dict] = []
    attachments: list[dict] = []

    @classmethod
    def from_node(cls, node: Node, parent_id: Optional[str]) -> "NodeResponse":
        d = node.to_dict(include_children=False)
        return cls(
            id=node.id,
            content=node.content,
            kind=node.kind.value,
            parent_id=parent_id,
            children_ids=[c.id for c in node.children],
            collapsed=node.collapsed,
            position=d["position"],
            size=d["size"],
            style=d["style"],
            metadata=d["metadata"],
            icon=node.icon,
            hyperlink=d["hyperlink"],
            notes=d["notes"],
            labels=d["labels"],
            markers=d["markers"],
            task=d["task"],
            images=d["images"],
            attachments=d["attachments"],
        )


class SelectionResponse(BaseModel):
    """selection state."""
    primary_id: Optional[str]
    multi_ids: list[str]


class DocumentResponse(BaseModel):
    """document in api response, nodes flattened by id."""
    id: str
    title: str
    root_id: str
    layout_direction: str
    theme: str
    edge_style: str
    created_at: int
    modified_at: int
    nodes: dict[str, NodeResponse]
    relationships: list[dict] = []
    boundaries: list[dict] = []
    selection: SelectionResponse
    can_undo: bool
    can_redo: bool
    is_dirty: bool = False

    @classmethod
    def from_session(cls, session: EditorSession, is_dirty: bool = False) -> "DocumentResponse":
        document = session.document
        index = NodeIndex(document.root)
        nodes = {}
        for node_id in index.ids():
            parent = index.parent_of(node_id)
            nodes[node_id] = NodeResponse.from_node(
                index.get(node_id), parent.id if parent else None
            )
        return cls(
            id=document.id,
            title=document.title,
            root_id=document.root.id,
            layout_direction=document.layout_direction.value,
            theme=document.theme,
            edge_style=document.edge_style,
            created_at=document.created_at,
            modified_at=document.modified_at,
            nodes=nodes,
            relationships=[r.to_dict() for r in document.relationships],
            boundaries=[b.to_dict() for b in document.boundaries],
            selection=SelectionResponse(**session.selection.to_dict()),
            can_undo=session.can_undo(),
            can_redo=session.can_redo(),
            is_dirty=is_dirty,
        )


# --- app state ---

class AppState:
    """shared application state: one editor session plus change tracking."""

    def __init__(self, title: Optional[str] = None, layout_direction: str = "horizontal"):
        self.session = EditorSession()
        self.session.subscribe(self._on_change)

        # dirty state tracking, driven by modified_at change notifications
        self._dirty = False
        self._last_change_at: Optional[str] = None
        self.change_count = 0

        if title:
            self.session.new(title, layout_direction)
            self.mark_clean()

    def _on_change(self, document: Document) -> None:
        self.change_count += 1
        self._dirty = True
        self._last_change_at = datetime.now().isoformat()

    @property
    def document(self) -> Optional[Document]:
        return self.session.document

    @property
    def is_dirty(self) -> bool:
        """check if the document changed since it was created or loaded."""
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False


state = AppState()


def _session() -> EditorSession:
    """current session, or 404 if no document is loaded."""
    if state.document is None:
        raise HTTPException(status_code=404, detail="no document loaded")
    return state.session


def _document_response() -> DocumentResponse:
    """helper to build DocumentResponse with current state info."""
    return DocumentResponse.from_session(_session(), is_dirty=state.is_dirty)


def _node_response(node_id: str) -> NodeResponse:
    index = NodeIndex(_session().document.root)
    node = index.get(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"node not found: {node_id}")
    parent = index.parent_of(node_id)
    return NodeResponse.from_node(node, parent.id if parent else None)


def _require_node(node_id: str) -> None:
    if node_id not in NodeIndex(_session().document.root):
        raise HTTPException(status_code=404, detail=f"node not found: {node_id}")


# --- app ---

app = FastAPI(
    title="mindweave api",
    description="REST API for the mindweave mind map editor core",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- endpoints ---

@app.get("/health")
async def health():
    """health check."""
    return {"status": "ok"}


@app.get("/status")
async def status():
    """current application status."""
    document = state.document
    return {
        "has_document": document is not None,
        "title": document.title if document else None,
        "modified_at": document.modified_at if document else None,
        "is_dirty": state.is_dirty,
        "last_change_at": state._last_change_at,
        "node_count": len(NodeIndex(document.root)) if document else 0,
    }


# --- document endpoints ---

@app.post("/document", response_model=DocumentResponse)
async def create_document(req: DocumentCreate):
    """create a new document holding only a root."""
    try:
        state.session.new(req.title, req.layout_direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    state.mark_clean()
    return _document_response()


@app.get("/document", response_model=DocumentResponse)
async def get_document():
    """get the current document."""
    return _document_response()


@app.post("/document/load", response_model=DocumentResponse)
async def load_document(req: DocumentLoad):
    """replace the current document (open file, restore autosave)."""
    try:
        document = Document.from_dict(req.document)
    except (KeyError, ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"invalid document: {e}")
    try:
        state.session.load(document, relayout=req.relayout)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    state.mark_clean()
    return _document_response()


@app.patch("/document", response_model=DocumentResponse)
async def update_document(req: DocumentUpdate):
    """change title, layout direction, theme or edge style."""
    session = _session()
    try:
        session.update_document(**req.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _document_response()


@app.post("/document/layout", response_model=DocumentResponse)
async def relayout_document():
    """drop cached sizes and lay the document out again."""
    _session().relayout()
    return _document_response()


@app.get("/document/bounds")
async def document_bounds():
    """bounding box of all visible nodes."""
    bounds = get_bounds(_session().document.root)
    return bounds.to_dict() if bounds else None


@app.get("/document/outline", response_class=PlainTextResponse)
async def document_outline():
    """plain text outline of the tree."""
    session = _session()
    return render_outline(session.document, session.selection).plain


@app.post("/document/undo", response_model=DocumentResponse)
async def undo():
    """undo last change."""
    if not _session().undo():
        raise HTTPException(status_code=400, detail="nothing to undo")
    return _document_response()


@app.post("/document/redo", response_model=DocumentResponse)
async def redo():
    """redo last undone change."""
    if not _session().redo():
        raise HTTPException(status_code=400, detail="nothing to redo")
    return _document_response()


# --- node endpoints ---

@app.post("/node", response_model=NodeResponse)
async def create_node(req: NodeCreate):
    """append a new child node."""
    _require_node(req.parent_id)
    new_id = _session().add_child(req.parent_id, req.content)
    return _node_response(new_id)


@app.post("/node/{node_id}/sibling", response_model=NodeResponse)
async def create_sibling(node_id: str, req: SiblingCreate):
    """append a sibling of node_id."""
    _require_node(node_id)
    new_id = _session().add_sibling(node_id, req.content)
    if new_id is None:
        raise HTTPException(status_code=400, detail="the root has no siblings")
    return _node_response(new_id)


@app.post("/node/{node_id}/children", response_model=list[NodeResponse])
async def create_children(node_id: str, req: ChildrenCreate):
    """insert several children at once."""
    _require_node(node_id)
    new_ids = _session().add_children(
        node_id, req.contents, ai_generated=req.ai_generated, provider_id=req.provider_id
    )
    return [_node_response(nid) for nid in new_ids]


@app.get("/node/{node_id}", response_model=NodeResponse)
async def get_node(node_id: str):
    """get a single node."""
    return _node_response(node_id)


@app.put("/node/{node_id}", response_model=NodeResponse)
async def edit_node(node_id: str, req: NodeUpdate):
    """merge the sent fields into a node."""
    _require_node(node_id)
    try:
        _session().update_node(node_id, req.model_dump(exclude_unset=True))
    except (ValueError, KeyError, TypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _node_response(node_id)


@app.delete("/node/{node_id}")
async def delete_node(node_id: str):
    """delete a node and its descendants."""
    session = _session()
    _require_node(node_id)
    if node_id == session.document.root.id:
        raise HTTPException(status_code=400, detail="cannot delete root node")
    session.delete_node(node_id)
    return {"deleted": node_id}


@app.post("/nodes/delete", response_model=DocumentResponse)
async def delete_nodes(req: BatchDelete):
    """delete several nodes as one change; defaults to the selection."""
    session = _session()
    if req.node_ids:
        changed = session.delete_batch(req.node_ids)
    else:
        changed = session.delete_selected()
    if not changed:
        raise HTTPException(status_code=400, detail="nothing to delete")
    return _document_response()


@app.post("/node/{node_id}/move", response_model=DocumentResponse)
async def move_node(node_id: str, req: NodeMove):
    """reparent a node (drop target)."""
    session = _session()
    _require_node(node_id)
    _require_node(req.new_parent_id)
    if not session.move_node(node_id, req.new_parent_id, req.position):
        raise HTTPException(status_code=400, detail="move refused")
    return _document_response()


@app.post("/node/{node_id}/toggle-collapse", response_model=NodeResponse)
async def toggle_collapse(node_id: str):
    """collapse or expand a node."""
    _require_node(node_id)
    _session().toggle_collapse(node_id)
    return _node_response(node_id)


@app.post("/nodes/style", response_model=DocumentResponse)
async def style_nodes(req: BatchStyle):
    """apply one partial style to several nodes; defaults to the selection."""
    try:
        _session().apply_style(req.style, req.node_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _document_response()


@app.post("/node/{node_id}/copy")
async def copy_node(node_id: str):
    """copy a subtree to the clipboard."""
    _require_node(node_id)
    _session().copy(node_id)
    return {"copied": node_id}


@app.post("/node/{node_id}/paste", response_model=NodeResponse)
async def paste_node(node_id: str):
    """paste the clipboard under node_id."""
    _require_node(node_id)
    new_id = _session().paste(node_id)
    if new_id is None:
        raise HTTPException(status_code=400, detail="clipboard is empty")
    return _node_response(new_id)


# --- relationship and boundary endpoints ---

@app.post("/relationships", response_model=DocumentResponse)
async def add_relationship(req: RelationshipCreate):
    """draw a relationship line between two nodes."""
    _require_node(req.from_node_id)
    _require_node(req.to_node_id)
    fields = req.model_dump()
    if not _session().add_relationship(fields.pop("from_node_id"), fields.pop("to_node_id"), **fields):
        raise HTTPException(status_code=400, detail="relationship refused")
    return _document_response()


@app.delete("/relationships/{relationship_id}", response_model=DocumentResponse)
async def remove_relationship(relationship_id: str):
    if not _session().remove_relationship(relationship_id):
        raise HTTPException(status_code=404, detail=f"relationship not found: {relationship_id}")
    return _document_response()


@app.post("/boundaries", response_model=DocumentResponse)
async def add_boundary(req: BoundaryCreate):
    """draw a boundary around several nodes."""
    fields = req.model_dump()
    if not _session().add_boundary(fields.pop("node_ids"), **fields):
        raise HTTPException(status_code=400, detail="no known nodes in scope")
    return _document_response()


@app.delete("/boundaries/{boundary_id}", response_model=DocumentResponse)
async def remove_boundary(boundary_id: str):
    if not _session().remove_boundary(boundary_id):
        raise HTTPException(status_code=404, detail=f"boundary not found: {boundary_id}")
    return _document_response()


# --- selection endpoints ---

@app.get("/selection", response_model=SelectionResponse)
async def get_selection():
    """current selection."""
    return SelectionResponse(**_session().selection.to_dict())


@app.post("/selection/select/{node_id}", response_model=SelectionResponse)
async def select_node(node_id: str):
    """select a single node."""
    _require_node(node_id)
    session = _session()
    session.selection.select(node_id)
    return SelectionResponse(**session.selection.to_dict())


@app.post("/selection/toggle/{node_id}", response_model=SelectionResponse)
async def toggle_selection(node_id: str):
    """add or remove a node from the multi-selection."""
    _require_node(node_id)
    session = _session()
    session.selection.toggle_multi(node_id, session.document.root.id)
    return SelectionResponse(**session.selection.to_dict())


@app.post("/selection/all", response_model=SelectionResponse)
async def select_all():
    """multi-select every non-root node."""
    session = _session()
    session.selection.select_all(session.document)
    return SelectionResponse(**session.selection.to_dict())


@app.delete("/selection", response_model=SelectionResponse)
async def clear_selection():
    """clear the selection."""
    session = _session()
    session.selection.clear()
    return SelectionResponse(**session.selection.to_dict())


# --- entrypoint ---

def main():
    """run the api server."""
    import argparse

    parser = argparse.ArgumentParser(description="mindweave api server")
    parser.add_argument("--host", default="127.0.0.1", help="host to bind")
    parser.add_argument("--port", "-p", type=int, default=8000, help="port to bind")
    parser.add_argument("--title", "-t", help="create a document with this root topic on startup")
    parser.add_argument(
        "--direction",
        choices=["horizontal", "vertical", "free"],
        default="horizontal",
        help="layout direction for the startup document",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    args = parser.parse_args()
    serve(args.host, args.port, args.title, args.direction, args.verbose)


def serve(
    host: str,
    port: int,
    title: Optional[str] = None,
    direction: str = "horizontal",
    verbose: bool = False,
) -> None:
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)

    global state
    state = AppState(title=title, layout_direction=direction)

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
