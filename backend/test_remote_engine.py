"""Tests for the ELK-compatible remote layout engine (HTTP mocked)"""

import asyncio

import pytest
import requests

from conftest import find
from domainmap.compiler.engines.remote import RemoteLayoutEngine
from domainmap.compiler.layout import LayoutOrchestrator, build_layout_input
from domainmap.ir.errors import LayoutFailure


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def elk_echo(payload):
    """Lay children out in a column, the way a layout service would fill in x/y."""

    def place(children):
        y = 10
        for child in children:
            child["x"] = 10
            child["y"] = y
            place(child.get("children", []))
            if child.get("children"):
                child["width"] = 200
                child["height"] = 40 + sum(c["height"] + 10 for c in child["children"])
            y += child["height"] + 10

    place(payload["children"])
    for edge in payload["edges"]:
        edge["sections"] = [{
            "startPoint": {"x": 0, "y": 0},
            "bendPoints": [{"x": 0, "y": 5}],
            "endPoint": {"x": 5, "y": 5},
        }]
    return payload


def test_to_elk_nests_children(graph, view):
    engine = RemoteLayoutEngine("http://layout:8090/")
    payload = engine.to_elk(build_layout_input(view))

    assert payload["layoutOptions"]["elk.edgeRouting"] == "ORTHOGONAL"
    assert [c["labels"][0]["text"] for c in payload["children"]] == ["D1", "D2"]
    d1 = payload["children"][0]
    assert [c["labels"][0]["text"] for c in d1["children"]] == ["A", "T1", "T2"]
    assert len(payload["edges"]) == 4
    assert payload["edges"][0]["sources"] == [find(graph, "system", "A").id]


def test_layout_resolves_absolute_coordinates(monkeypatch, graph, view):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, timeout))
        return FakeResponse(elk_echo(json))

    monkeypatch.setattr(requests, "post", fake_post)

    engine = RemoteLayoutEngine("http://layout:8090/", timeout=7)
    output = engine.layout(build_layout_input(view))

    assert calls == [("http://layout:8090/layout", 7)]
    d1 = output.geometry[find(graph, "domain", "D1").id]
    a = output.geometry[find(graph, "system", "A").id]
    # Child coordinates are relative to the parent in ELK
    assert (a.x, a.y) == (d1.x + 10, d1.y + 10)
    assert output.routes[graph.edges[0].id] == [(0.0, 0.0), (0.0, 5.0), (5.0, 5.0)]


def test_http_error_is_layout_failure(monkeypatch, view):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse({}, status_code=503))

    with pytest.raises(LayoutFailure) as exc_info:
        RemoteLayoutEngine("http://layout").layout(build_layout_input(view))
    assert isinstance(exc_info.value.cause, requests.HTTPError)


def test_connection_error_is_layout_failure(monkeypatch, view):
    def refuse(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", refuse)

    with pytest.raises(LayoutFailure, match="request failed"):
        RemoteLayoutEngine("http://layout").layout(build_layout_input(view))


def test_bad_json_is_layout_failure(monkeypatch, view):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(ValueError("not json")))

    with pytest.raises(LayoutFailure):
        RemoteLayoutEngine("http://layout").layout(build_layout_input(view))


def test_missing_nodes_is_layout_failure(monkeypatch, view):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse({"children": [], "edges": []}))

    with pytest.raises(LayoutFailure, match="no position"):
        RemoteLayoutEngine("http://layout").layout(build_layout_input(view))


def test_orchestrator_keeps_geometry_when_service_fails(monkeypatch, graph, view):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse({}, status_code=500))
    before = {n.id: n.geometry.copy() for n in graph.nodes}

    orchestrator = LayoutOrchestrator(
        engine=RemoteLayoutEngine("http://layout"),
        animation_duration=0,
    )
    with pytest.raises(LayoutFailure):
        asyncio.run(orchestrator.layout(view))

    assert {n.id: n.geometry for n in graph.nodes} == before
