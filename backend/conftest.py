import os

# Keep build logs out of the working tree
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402

from domainmap.compiler.builder import GraphBuilder  # noqa: E402
from domainmap.compiler.folding import FoldingView  # noqa: E402


CALIBRATION_ROWS = [
    {"Domain": "D1", "SourceSystem": "A", "Table": "T1"},
    {"Domain": "D1", "SourceSystem": "A", "Table": "T2"},
    {"Domain": "D2", "SourceSystem": "B", "Table": "T3"},
    {"Domain": "D2", "SourceSystem": "B", "Table": "T1"},
]


@pytest.fixture
def calibration_rows():
    return [dict(row) for row in CALIBRATION_ROWS]


@pytest.fixture
def builder(calibration_rows):
    b = GraphBuilder()
    b.build(calibration_rows)
    return b


@pytest.fixture
def graph(builder):
    return builder.graph


@pytest.fixture
def view(graph):
    return FoldingView(graph)


def find(graph, kind, label):
    """Look up a node by kind and label."""
    for node in graph.nodes_of_kind(kind):
        if node.label == label:
            return node
    raise AssertionError(f"no {kind} labelled {label!r}")
