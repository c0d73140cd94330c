"""Tests for the orthogonal engine and the async LayoutOrchestrator"""

import asyncio
import itertools
import time

import networkx as nx
import pytest

from conftest import find
from domainmap.compiler.builder import build_graph
from domainmap.compiler.engines import (
    LayoutInput,
    LayoutItem,
    LayoutLink,
    LayoutOutput,
    OrthogonalLayoutEngine,
    count_crossings,
    get_layout_engine,
)
from domainmap.compiler.engines.remote import RemoteLayoutEngine
from domainmap.compiler.folding import FoldingView
from domainmap.compiler.layout import LayoutOrchestrator, build_layout_input
from domainmap.ir.errors import LayoutFailure
from domainmap.visual.visual_style import FOLDER_SIZE


def make_orchestrator(engine=None, **kwargs):
    kwargs.setdefault("animation_duration", 0)
    kwargs.setdefault("animation_frames", 3)
    kwargs.setdefault("timeout", 5)
    return LayoutOrchestrator(engine=engine or OrthogonalLayoutEngine(), **kwargs)


def assert_no_overlaps(view):
    """Siblings never overlap and children sit inside their expanded group."""
    nodes = view.visible_nodes()
    for a, b in itertools.combinations(nodes, 2):
        if a.parent == b.parent:
            assert not view.display_geometry(a).overlaps(view.display_geometry(b)), (a.label, b.label)
    for node in nodes:
        parent = view.graph.get_parent(node)
        if parent is not None and view.is_visible(parent):
            assert view.display_geometry(parent).contains(view.display_geometry(node)), node.label


class SlowEngine:
    def __init__(self, delay):
        self.delay = delay

    def layout(self, data):
        time.sleep(self.delay)
        return OrthogonalLayoutEngine().layout(data)


class BrokenEngine:
    def layout(self, data):
        raise RuntimeError("engine exploded")


class EmptyEngine:
    def layout(self, data):
        return LayoutOutput()


def test_layout_input_reflects_view(graph, view):
    d1 = find(graph, "domain", "D1")
    view.collapse(d1)

    data = build_layout_input(view)
    items = {i.id: i for i in data.nodes}

    assert (items[d1.id].width, items[d1.id].height) == FOLDER_SIZE
    assert items[d1.id].container is False
    assert items[find(graph, "domain", "D2").id].container is True
    assert items[find(graph, "system", "B").id].parent == find(graph, "domain", "D2").id
    assert len(data.edges) == 2


def test_layout_places_without_overlap(view):
    result = asyncio.run(make_orchestrator().layout(view))

    assert set(result.new) == {n.id for n in view.visible_nodes()}
    assert_no_overlaps(view)
    for node_id, geometry in result.new.items():
        assert view.display_geometry(node_id) == geometry
        assert geometry.x % 10 == 0 and geometry.y % 10 == 0


def test_layout_routes_are_orthogonal(view):
    result = asyncio.run(make_orchestrator().layout(view))

    assert set(result.routes) == {e.id for e in view.visible_edges()}
    for points in result.routes.values():
        assert len(points) >= 2
        for (x1, y1), (x2, y2) in zip(points, points[1:]):
            assert x1 == x2 or y1 == y2


def test_layout_is_stable_on_rerun(view):
    orchestrator = make_orchestrator()

    first = asyncio.run(orchestrator.layout(view))
    second = asyncio.run(orchestrator.layout(view))

    assert second.new == first.new
    assert second.crossings <= first.crossings
    assert second.moved == []
    assert orchestrator.runs == 2


def test_layout_after_collapse_then_expand(graph, view):
    orchestrator = make_orchestrator()
    asyncio.run(orchestrator.layout(view))
    d1 = find(graph, "domain", "D1")
    expanded_box = d1.geometry.copy()

    view.collapse(d1)
    folded = asyncio.run(orchestrator.layout(view))
    assert (folded.new[d1.id].width, folded.new[d1.id].height) == FOLDER_SIZE
    assert d1.geometry == expanded_box
    assert_no_overlaps(view)

    view.expand(d1)
    asyncio.run(orchestrator.layout(view))
    assert_no_overlaps(view)


def test_frames_are_reported_in_order(view):
    seen = []

    def on_frame(frame, t):
        seen.append((t, set(frame)))

    result = asyncio.run(make_orchestrator(animation_frames=4).layout(view, on_frame=on_frame))

    assert [t for t, _ in seen] == [0.25, 0.5, 0.75, 1.0]
    assert all(ids == set(result.new) for _, ids in seen)
    assert result.interpolate(1.0) == result.new
    assert result.interpolate(0.0) == result.old


def test_cancel_keeps_previous_geometry(graph, view):
    before = {n.id: n.geometry.copy() for n in graph.nodes}
    outcome = {}

    async def run():
        orchestrator = make_orchestrator(animation_frames=5)
        holder = {}

        def on_frame(frame, t):
            holder["handle"].cancel()

        handle = orchestrator.start(view, on_frame=on_frame)
        holder["handle"] = handle
        handle.add_done_callback(lambda result, error: outcome.update(result=result, error=error))

        with pytest.raises(asyncio.CancelledError):
            await handle
        await asyncio.sleep(0)
        assert handle.cancelled()
        return orchestrator

    orchestrator = asyncio.run(run())

    assert {n.id: n.geometry for n in graph.nodes} == before
    assert orchestrator.runs == 0
    assert outcome["result"] is None
    assert isinstance(outcome["error"], asyncio.CancelledError)


def test_engine_error_becomes_layout_failure(graph, view):
    before = {n.id: n.geometry.copy() for n in graph.nodes}

    with pytest.raises(LayoutFailure) as exc_info:
        asyncio.run(make_orchestrator(BrokenEngine()).layout(view))

    assert isinstance(exc_info.value.cause, RuntimeError)
    assert {n.id: n.geometry for n in graph.nodes} == before


def test_timeout_becomes_layout_failure(graph, view):
    before = {n.id: n.geometry.copy() for n in graph.nodes}

    with pytest.raises(LayoutFailure, match="timed out"):
        asyncio.run(make_orchestrator(SlowEngine(0.3), timeout=0.05).layout(view))

    assert {n.id: n.geometry for n in graph.nodes} == before


def test_per_call_timeout_does_not_stick(view):
    orchestrator = make_orchestrator(SlowEngine(0.3), timeout=5)

    with pytest.raises(LayoutFailure, match="timed out after 0.05s"):
        asyncio.run(orchestrator.layout(view, timeout=0.05))

    assert orchestrator.timeout == 5
    result = asyncio.run(orchestrator.layout(view))
    assert set(result.new) == {n.id for n in view.visible_nodes()}


def test_missing_geometry_is_a_failure(view):
    with pytest.raises(LayoutFailure, match="no geometry"):
        asyncio.run(make_orchestrator(EmptyEngine()).layout(view))


def test_done_callback_reports_success(view):
    outcome = {}

    async def run():
        handle = make_orchestrator().start(view)
        handle.add_done_callback(lambda result, error: outcome.update(result=result, error=error))
        result = await handle
        await asyncio.sleep(0)
        return result

    result = asyncio.run(run())
    assert outcome["result"] is result
    assert outcome["error"] is None


def test_barycenter_sweep_removes_crossing():
    # Input order a, b / x, y with a -> y and b -> x crosses once
    data = LayoutInput(
        nodes=[
            LayoutItem("a", "a", 100, 50),
            LayoutItem("b", "b", 100, 50),
            LayoutItem("x", "x", 60, 30),
            LayoutItem("y", "y", 60, 30),
        ],
        edges=[LayoutLink("e1", "a", "y"), LayoutLink("e2", "b", "x")],
    )

    output = OrthogonalLayoutEngine().layout(data)

    assert output.crossings == 0
    assert output.geometry["y"].x < output.geometry["x"].x
    assert output.geometry["a"].bottom < output.geometry["y"].y


def test_cross_domain_reference_orders_domains():
    graph = build_graph([
        {"domain": "Sales", "source_system": "CRM", "table": "Customers"},
        {"domain": "Billing", "source_system": "ERP", "table": "Customers"},
    ])
    view = FoldingView(graph)

    result = asyncio.run(make_orchestrator().layout(view))

    sales = find(graph, "domain", "Sales")
    billing = find(graph, "domain", "Billing")
    # ERP -> Customers points from Billing into Sales, so Billing sits above
    assert result.new[billing.id].bottom < result.new[sales.id].y
    assert_no_overlaps(view)


def test_count_crossings():
    g = nx.DiGraph([("a", "y"), ("b", "x")])
    assert count_crossings([["a", "b"], ["x", "y"]], g) == 1
    assert count_crossings([["a", "b"], ["y", "x"]], g) == 0


def test_get_layout_engine():
    assert isinstance(get_layout_engine("orthogonal"), OrthogonalLayoutEngine)
    assert isinstance(get_layout_engine("remote"), RemoteLayoutEngine)
    with pytest.raises(ValueError):
        get_layout_engine("circular")
