import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response

from domainmap.api.serializers import serialize_context, serialize_ir
from domainmap.api.sessions import get_session_store
from domainmap.compiler.layout import LayoutOrchestrator
from domainmap.db.session import record_build
from domainmap.ir.errors import DuplicateKeyConflict, LayoutFailure, ValidationError
from domainmap.pipeline.context import DiagramContext
from domainmap.pipeline.controller import PipelineController
from domainmap.renderer.svg_renderer import render_svg
from domainmap.schemas import (
    BuildRequest,
    GraphResponse,
    IngestRequest,
    LayoutRequest,
    LayoutResponse,
    SearchResponse,
)
from domainmap.search import search_nodes
from domainmap.validation import validate_diagram

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_context(graph_id: str) -> DiagramContext:
    context = get_session_store().get(graph_id)
    if context is None:
        raise HTTPException(status_code=404, detail=f"Unknown graph '{graph_id}'")
    return context


def _ingest(controller: PipelineController, context: DiagramContext, graph_id: str, rows: list) -> None:
    try:
        controller.ingest(context, rows)
    except ValidationError as e:
        logger.info("[API] rejected batch for %s: %s", graph_id, e.message)
        record_build(graph_id, len(rows), len(context.graph), len(context.graph.edges), "invalid", e.message)
        raise HTTPException(status_code=422, detail=e.to_dict())
    except DuplicateKeyConflict as e:
        raise HTTPException(status_code=409, detail=str(e))

    record_build(graph_id, len(rows), len(context.graph), len(context.graph.edges), "success")


@router.post("/graphs", response_model=GraphResponse)
def create_graph(request: BuildRequest):
    try:
        if request.duplicate_edges is not None:
            controller = PipelineController(duplicate_edges=request.duplicate_edges)
        else:
            controller = PipelineController()
        context = controller.new_context()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    store = get_session_store()
    graph_id = store.add(context)
    try:
        _ingest(controller, context, graph_id, request.rows)
    except HTTPException:
        store.remove(graph_id)
        raise

    logger.info("[API] graph %s: %d nodes, %d edges", graph_id, len(context.graph), len(context.graph.edges))
    return serialize_context(graph_id, context)


@router.get("/graphs/{graph_id}", response_model=GraphResponse)
def get_graph(graph_id: str):
    return serialize_context(graph_id, _get_context(graph_id))


@router.delete("/graphs/{graph_id}")
def delete_graph(graph_id: str):
    if not get_session_store().remove(graph_id):
        raise HTTPException(status_code=404, detail=f"Unknown graph '{graph_id}'")
    return {"status": "deleted", "id": graph_id}


@router.post("/graphs/{graph_id}/rows", response_model=GraphResponse)
def ingest_rows(graph_id: str, request: IngestRequest):
    context = _get_context(graph_id)
    controller = PipelineController(duplicate_edges=context.builder.duplicate_edges)
    _ingest(controller, context, graph_id, request.rows)
    return serialize_context(graph_id, context)


def _fold(graph_id: str, node_id: str, collapse: bool) -> dict:
    context = _get_context(graph_id)
    try:
        if collapse:
            context.view.collapse(node_id)
        else:
            context.view.expand(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown node '{node_id}'")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    # Routes from an earlier layout no longer match the visible edges.
    context.last_layout = None
    return serialize_context(graph_id, context)


@router.post("/graphs/{graph_id}/groups/{node_id}/collapse", response_model=GraphResponse)
def collapse_group(graph_id: str, node_id: str):
    return _fold(graph_id, node_id, collapse=True)


@router.post("/graphs/{graph_id}/groups/{node_id}/expand", response_model=GraphResponse)
def expand_group(graph_id: str, node_id: str):
    return _fold(graph_id, node_id, collapse=False)


@router.post("/graphs/{graph_id}/layout", response_model=LayoutResponse)
async def layout_graph(graph_id: str, request: Optional[LayoutRequest] = None):
    context = _get_context(graph_id)
    if context.orchestrator is None:
        # No one watches the frames over HTTP.
        context.orchestrator = LayoutOrchestrator(animation_duration=0, animation_frames=1)
    timeout = request.timeout if request is not None else None

    try:
        result = await PipelineController().layout(context, timeout=timeout)
    except LayoutFailure as e:
        logger.warning("[API] layout failed for %s: %s", graph_id, e.message)
        raise HTTPException(status_code=502, detail=e.message)

    return {"id": graph_id, **result.to_dict()}


@router.get("/graphs/{graph_id}/search", response_model=SearchResponse)
def search_graph(graph_id: str, q: str, kind: Optional[str] = None, visible_only: bool = False):
    context = _get_context(graph_id)
    view = context.view if visible_only else None
    hits = search_nodes(context.graph, q, view=view, kind=kind)
    return {"query": q, "hits": [h.to_dict() for h in hits]}


@router.get("/graphs/{graph_id}/validate")
def validate_graph(graph_id: str, strict: bool = False):
    context = _get_context(graph_id)
    result = validate_diagram(context.graph, context.registry, strict=strict)
    return serialize_ir(result)


@router.get("/graphs/{graph_id}/export.svg")
def export_svg(graph_id: str):
    context = _get_context(graph_id)
    svg = render_svg(context.view, context.last_layout)
    return Response(content=svg, media_type="image/svg+xml")
