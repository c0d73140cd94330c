from conftest import find
from domainmap.compiler.builder import build_graph
from domainmap.compiler.folding import FoldingView
from domainmap.search import search_nodes


def make_graph():
    return build_graph([
        {"domain": "Sales", "source_system": "SalesForce", "table": "Sales"},
        {"domain": "Sales", "source_system": "CRM", "table": "PreSales"},
        {"domain": "Billing", "source_system": "ERP", "table": "Invoices"},
    ])


def test_exact_then_prefix_then_substring():
    graph = make_graph()
    hits = search_nodes(graph, "sales")

    assert [(h.node.label, h.score) for h in hits] == [
        ("Sales", 3),        # domain
        ("Sales", 3),        # table
        ("SalesForce", 2),
        ("PreSales", 1),
    ]
    assert [h.node.kind for h in hits[:2]] == ["domain", "table"]


def test_kind_filter():
    hits = search_nodes(make_graph(), "SALES", kind="table")
    assert [h.node.label for h in hits] == ["Sales", "PreSales"]


def test_view_restricts_to_visible_nodes():
    graph = make_graph()
    view = FoldingView(graph)
    view.collapse(find(graph, "domain", "Sales"))

    hits = search_nodes(graph, "sales", view=view)
    assert [(h.node.kind, h.node.label) for h in hits] == [("domain", "Sales")]


def test_blank_query_and_limits():
    graph = make_graph()
    assert search_nodes(graph, "   ") == []
    assert search_nodes(graph, "nothing") == []
    assert len(search_nodes(graph, "s", max_results=2)) == 2


def test_hit_to_dict():
    hit = search_nodes(make_graph(), "erp")[0]
    assert hit.to_dict() == {"id": hit.node.id, "kind": "system", "label": "ERP", "key": "Billing-ERP", "score": 3}
