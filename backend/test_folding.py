"""Tests for FoldingView: collapse/expand, edge redirection, group navigation"""

import pytest

from conftest import find
from domainmap.compiler.folding import FoldingView
from domainmap.compiler.types import Geometry, GraphModel
from domainmap.visual.visual_style import FOLDER_SIZE, resolve_style


def visible_labels(view):
    return sorted(n.label for n in view.visible_nodes())


def test_everything_visible_initially(graph, view):
    assert len(view.visible_nodes()) == len(graph.nodes)
    assert [e.id for e in view.visible_edges()] == [e.id for e in graph.edges]
    assert not any(e.is_folded for e in view.visible_edges())


def test_collapse_hides_exactly_descendants(graph, view):
    d1 = find(graph, "domain", "D1")
    hidden = {n.id for n in graph.descendants(d1)}

    view.collapse(d1)

    visible = {n.id for n in view.visible_nodes()}
    assert visible == {n.id for n in graph.nodes} - hidden
    assert view.is_visible(d1)
    assert view.is_collapsed(d1)


def test_edges_redirect_to_folder(graph, view):
    d1 = find(graph, "domain", "D1")
    b = find(graph, "system", "B")
    t3 = find(graph, "table", "T3")

    view.collapse(d1)
    edges = view.visible_edges()

    # A -> T1 and A -> T2 fold inside D1 and disappear
    assert [(e.source, e.target) for e in edges] == [(b.id, t3.id), (b.id, d1.id)]
    assert [e.is_folded for e in edges] == [False, True]
    assert edges[1].edge.target == find(graph, "table", "T1").id


def test_expand_restores_view(graph, view):
    d1 = find(graph, "domain", "D1")
    nodes_before = [n.id for n in view.visible_nodes()]
    edges_before = [(e.id, e.source, e.target) for e in view.visible_edges()]
    geometry_before = {n.id: n.geometry.copy() for n in graph.nodes}

    view.collapse(d1)
    view.expand(d1)

    assert [n.id for n in view.visible_nodes()] == nodes_before
    assert [(e.id, e.source, e.target) for e in view.visible_edges()] == edges_before
    assert {n.id: n.geometry for n in graph.nodes} == geometry_before


def test_folder_geometry_is_separate(graph, view):
    d1 = find(graph, "domain", "D1")
    d1.geometry = Geometry(10, 20, 300, 200)

    view.collapse(d1)
    assert view.display_size(d1) == FOLDER_SIZE
    assert view.display_geometry(d1) == Geometry(10, 20, *FOLDER_SIZE)

    view.set_display_geometry(d1, Geometry(500, 40, *FOLDER_SIZE))
    assert view.display_geometry(d1).x == 500
    assert d1.geometry == Geometry(10, 20, 300, 200)

    view.expand(d1)
    assert view.display_geometry(d1) == Geometry(10, 20, 300, 200)


def test_toggle(graph, view):
    d2 = find(graph, "domain", "D2")
    assert view.toggle(d2) is True
    assert view.collapsed_groups == [d2.id]
    assert view.toggle(d2.id) is False
    assert view.collapsed_groups == []


def test_collapse_all_and_expand_all(graph, view):
    view.collapse_all()
    assert visible_labels(view) == ["D1", "D2"]
    assert [(e.source, e.target) for e in view.visible_edges()] == [
        (find(graph, "domain", "D2").id, find(graph, "domain", "D1").id),
    ]

    view.expand_all()
    assert len(view.visible_nodes()) == len(graph.nodes)


def test_fold_non_group_rejected(graph, view):
    t1 = find(graph, "table", "T1")
    with pytest.raises(ValueError, match="not a group"):
        view.collapse(t1)
    with pytest.raises(ValueError):
        view.expand(t1.id)


def test_unknown_node_rejected(view):
    with pytest.raises(KeyError):
        view.collapse("n999")


def test_enter_and_exit_group(graph, view):
    d2 = find(graph, "domain", "D2")
    view.collapse(d2)

    view.enter(d2)

    assert view.local_root is d2
    assert not view.is_collapsed(d2)
    assert visible_labels(view) == ["B", "T3"]
    # B -> T1 leaves the entered group, so it is not shown
    assert [(e.source, e.target) for e in view.visible_edges()] == [
        (find(graph, "system", "B").id, find(graph, "table", "T3").id),
    ]
    assert [c.label for c in view.visible_children(None)] == ["B", "T3"]

    assert view.exit() is d2
    assert view.local_root is None
    assert view.exit() is None
    assert len(view.visible_nodes()) == len(graph.nodes)


def test_cannot_enter_hidden_group():
    graph, outer, inner, _ = nested_graph()
    view = FoldingView(graph)
    view.collapse(outer)
    with pytest.raises(ValueError):
        view.enter(inner)


def nested_graph():
    graph = GraphModel()
    style = resolve_style("domain")
    outer = graph.create_group_node("domain", "Outer", "Outer", Geometry(0, 0, 120, 60), style)
    inner = graph.create_group_node("domain", "Inner", "Inner", Geometry(0, 0, 120, 60), style, parent=outer)
    leaf = graph.create_node("table", "Leaf", "Leaf", Geometry(0, 0, 60, 30), resolve_style("table"), parent=inner)
    return graph, outer, inner, leaf


def test_outermost_collapsed_ancestor_represents_hidden_node():
    graph, outer, inner, leaf = nested_graph()
    view = FoldingView(graph)

    view.collapse(inner)
    view.collapse(outer)
    assert view.representative(leaf) is outer

    # Inner keeps its own state while the outer group hides it
    view.expand(outer)
    assert view.representative(leaf) is inner
    assert view.is_collapsed(inner)
    assert [n.label for n in view.visible_nodes()] == ["Outer", "Inner"]
    assert view.visible_children(outer) == [inner]
    assert view.visible_children(inner) == []


def test_view_does_not_mutate_model(graph, view):
    nodes = [(n.id, n.parent, n.is_group) for n in graph.nodes]
    edges = [(e.id, e.source, e.target) for e in graph.edges]

    view.collapse_all()
    view.visible_edges()
    view.expand_all()

    assert [(n.id, n.parent, n.is_group) for n in graph.nodes] == nodes
    assert [(e.id, e.source, e.target) for e in graph.edges] == edges
