"""
Diagram Validator - Checks the structural integrity of a built graph.

Catches issues like:
- Nodes sharing an entity key
- Leaves not parented under a domain group
- Containment cycles
- Edges with missing endpoints or the wrong direction
- Orphaned leaves, duplicate edges, empty labels
- Registry key conflicts (a table claimed by several domains)
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from domainmap.compiler.registry import EntityRegistry
from domainmap.compiler.types import GraphModel

logger = logging.getLogger(__name__)


class ValidationSeverity(Enum):
    ERROR = "error"      # Model breaks an invariant
    WARNING = "warning"  # Model is usable but suspicious
    INFO = "info"        # Worth knowing


@dataclass
class ValidationIssue:
    """A single validation issue found in the graph"""
    severity: ValidationSeverity
    code: str           # Machine-readable issue code
    message: str        # Human-readable description
    node_id: Optional[str] = None
    edge_info: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "edge_info": self.edge_info,
            "suggestion": self.suggestion,
        }


@dataclass
class DiagramValidationResult:
    """Result of graph validation"""
    is_valid: bool
    is_complete: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.INFO)

    def codes(self) -> Set[str]:
        return {i.code for i in self.issues}

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "is_complete": self.is_complete,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "issues": [i.to_dict() for i in self.issues],
            "stats": self.stats,
        }

    def get_summary(self) -> str:
        """Get human-readable summary"""
        status = "Valid" if self.is_valid else "Invalid"
        completeness = "Complete" if self.is_complete else "Incomplete"
        return (
            f"{status} | {completeness} | "
            f"Errors: {self.error_count}, Warnings: {self.warning_count}, Info: {self.info_count}"
        )


class DiagramValidator:
    """
    Validates a GraphModel against the containment and dedup invariants.

    Usage:
        validator = DiagramValidator()
        result = validator.validate(graph, registry)

        if not result.is_valid:
            for issue in result.issues:
                print(f"[{issue.severity.value}] {issue.message}")
    """

    LEAF_KINDS = {"system", "table"}
    GROUP_KINDS = {"domain"}

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode

    def validate(self, graph: GraphModel, registry: Optional[EntityRegistry] = None) -> DiagramValidationResult:
        issues: List[ValidationIssue] = []

        issues.extend(self._check_empty_graph(graph))
        issues.extend(self._check_duplicate_keys(graph))
        issues.extend(self._check_empty_labels(graph))
        issues.extend(self._check_containment(graph))
        issues.extend(self._check_edges(graph))
        issues.extend(self._check_duplicate_edges(graph))
        issues.extend(self._check_orphaned_leaves(graph))
        if registry is not None:
            issues.extend(self._check_key_conflicts(registry))

        stats = self._calculate_stats(graph)

        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        has_warnings = any(i.severity == ValidationSeverity.WARNING for i in issues)

        is_valid = not has_errors
        if self.strict_mode:
            is_valid = not has_errors and not has_warnings

        is_complete = not has_errors and stats.get("orphaned_nodes", 0) == 0

        logger.debug("[VALIDATOR] %d issues (%d nodes, %d edges)", len(issues), stats["nodes"], stats["edges"])

        return DiagramValidationResult(
            is_valid=is_valid,
            is_complete=is_complete,
            issues=issues,
            stats=stats,
        )

    def _check_empty_graph(self, graph: GraphModel) -> List[ValidationIssue]:
        if graph.nodes:
            return []
        return [ValidationIssue(
            severity=ValidationSeverity.WARNING,
            code="NO_NODES",
            message="Graph has no nodes",
            suggestion="Ingest at least one row",
        )]

    def _check_duplicate_keys(self, graph: GraphModel) -> List[ValidationIssue]:
        issues = []
        seen: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        for node in graph.nodes:
            seen[(node.kind, node.key)].append(node.id)
        for (kind, key), node_ids in seen.items():
            if len(node_ids) > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="DUPLICATE_KEY",
                    message=f"{kind} key '{key}' is held by {len(node_ids)} nodes: {', '.join(node_ids)}",
                    node_id=node_ids[0],
                    suggestion="Create nodes through the EntityRegistry only",
                ))
        return issues

    def _check_empty_labels(self, graph: GraphModel) -> List[ValidationIssue]:
        issues = []
        for node in graph.nodes:
            if not node.label or not node.label.strip():
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="EMPTY_LABEL",
                    message=f"Node '{node.id}' has empty label",
                    node_id=node.id,
                ))
        return issues

    def _check_containment(self, graph: GraphModel) -> List[ValidationIssue]:
        issues = []
        for node in graph.nodes:
            try:
                list(graph.ancestors(node))
            except ValueError:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="CONTAINMENT_CYCLE",
                    message=f"Node '{node.label}' ({node.id}) is its own ancestor",
                    node_id=node.id,
                ))
                continue

            parent = graph.get_parent(node)
            if node.kind in self.GROUP_KINDS:
                if parent is not None:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="NESTED_DOMAIN",
                        message=f"Domain '{node.label}' is nested under '{parent.label}'",
                        node_id=node.id,
                    ))
            elif parent is None or parent.kind not in self.GROUP_KINDS or not parent.is_group:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="INVALID_PARENT",
                    message=f"{node.kind.title()} '{node.label}' ({node.id}) is not inside a domain group",
                    node_id=node.id,
                    suggestion="Parent every system and table under its domain",
                ))
        return issues

    def _check_edges(self, graph: GraphModel) -> List[ValidationIssue]:
        issues = []
        for edge in graph.edges:
            edge_info = f"{edge.source} -> {edge.target}"
            if not graph.has_node(edge.source):
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="MISSING_SOURCE_NODE",
                    message=f"Edge references non-existent source node '{edge.source}'",
                    edge_info=edge_info,
                ))
                continue
            if not graph.has_node(edge.target):
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="MISSING_TARGET_NODE",
                    message=f"Edge references non-existent target node '{edge.target}'",
                    edge_info=edge_info,
                ))
                continue
            if edge.source == edge.target:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="SELF_LOOP",
                    message=f"Edge creates self-loop on node '{edge.source}'",
                    node_id=edge.source,
                    edge_info=edge_info,
                ))
            source = graph.node(edge.source)
            target = graph.node(edge.target)
            if source.kind != "system" or target.kind != "table":
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="INVALID_EDGE_KIND",
                    message=f"Edge {edge.id} goes {source.kind} -> {target.kind}, expected system -> table",
                    edge_info=edge_info,
                ))
        return issues

    def _check_duplicate_edges(self, graph: GraphModel) -> List[ValidationIssue]:
        issues = []
        edge_counts: Dict[Tuple[str, str], int] = defaultdict(int)
        for edge in graph.edges:
            edge_counts[(edge.source, edge.target)] += edge.multiplicity
        for (source, target), count in edge_counts.items():
            if count > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.INFO,
                    code="DUPLICATE_EDGE",
                    message=f"Reference '{source}' -> '{target}' appears {count} times",
                    edge_info=f"{source} -> {target}",
                    suggestion="Use the 'merge' duplicate edge policy to collapse repeats",
                ))
        return issues

    def _check_orphaned_leaves(self, graph: GraphModel) -> List[ValidationIssue]:
        issues = []
        connected = self._connected(graph)
        for node in graph.nodes:
            if node.kind in self.LEAF_KINDS and node.id not in connected:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="ORPHANED_NODE",
                    message=f"{node.kind.title()} '{node.label}' ({node.id}) has no connections",
                    node_id=node.id,
                ))
        return issues

    def _check_key_conflicts(self, registry: EntityRegistry) -> List[ValidationIssue]:
        issues = []
        for conflict in registry.conflicts:
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                code="KEY_CONFLICT",
                message=(
                    f"{conflict.scope} '{conflict.key}' stays under {conflict.first_identity!r}, "
                    f"also referenced from {conflict.other_identity!r}"
                ),
                suggestion="Tables are shared across domains; only reference edges cross domains",
            ))
        return issues

    @staticmethod
    def _connected(graph: GraphModel) -> Set[str]:
        connected: Set[str] = set()
        for edge in graph.edges:
            connected.add(edge.source)
            connected.add(edge.target)
        return connected

    def _calculate_stats(self, graph: GraphModel) -> Dict[str, int]:
        type_counts: Dict[str, int] = defaultdict(int)
        for node in graph.nodes:
            type_counts[node.kind] += 1
        leaves = {n.id for n in graph.nodes if n.kind in self.LEAF_KINDS}
        return {
            "nodes": len(graph.nodes),
            "edges": len(graph.edges),
            "orphaned_nodes": len(leaves - self._connected(graph)),
            "domains": type_counts.get("domain", 0),
            "systems": type_counts.get("system", 0),
            "tables": type_counts.get("table", 0),
        }


def validate_diagram(graph: GraphModel, registry: Optional[EntityRegistry] = None,
                     strict: bool = False) -> DiagramValidationResult:
    """Convenience function to validate a graph."""
    validator = DiagramValidator(strict_mode=strict)
    return validator.validate(graph, registry)


def raise_on_errors(graph: GraphModel) -> None:
    """Validate graph and raise exception if errors found."""
    result = validate_diagram(graph)
    if not result.is_valid:
        error_messages = [
            f"[{i.code}] {i.message}"
            for i in result.issues
            if i.severity == ValidationSeverity.ERROR
        ]
        raise ValueError(
            f"Graph validation failed with {result.error_count} errors:\n" +
            "\n".join(error_messages)
        )
