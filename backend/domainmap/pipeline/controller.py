import logging
from typing import Dict, Iterable, Optional

from domainmap.compiler.builder import GraphBuilder
from domainmap.compiler.folding import FoldingView
from domainmap.compiler.layout import LayoutOrchestrator, LayoutResult
from domainmap.compiler.registry import EntityRegistry
from domainmap.config import DUPLICATE_EDGE_POLICY
from domainmap.ir.rows import RowLike
from domainmap.pipeline.context import DiagramContext
from domainmap.validation.diagram_validator import ValidationSeverity, validate_diagram

logger = logging.getLogger(__name__)


class PipelineController:
    """
    rows -> builder -> validation, then layout on demand.

    Every batch for one diagram goes through the same context, so ingestion
    is serialized through a single builder and registry.
    """

    def __init__(
        self,
        duplicate_edges: str = DUPLICATE_EDGE_POLICY,
        orchestrator: Optional[LayoutOrchestrator] = None,
        strict_keys: bool = False,
        glyphs: Optional[Dict[str, str]] = None,
    ):
        self.duplicate_edges = duplicate_edges
        self.orchestrator = orchestrator
        self.strict_keys = strict_keys
        self.glyphs = glyphs

    def new_context(self) -> DiagramContext:
        builder = GraphBuilder(
            registry=EntityRegistry(strict=self.strict_keys),
            duplicate_edges=self.duplicate_edges,
            glyphs=self.glyphs,
        )
        return DiagramContext(
            builder=builder,
            view=FoldingView(builder.graph),
            orchestrator=self.orchestrator,
        )

    def run(self, rows: Iterable[RowLike]) -> DiagramContext:
        """Start a new diagram from the first batch."""
        context = self.new_context()
        return self.ingest(context, rows)

    def ingest(self, context: DiagramContext, rows: Iterable[RowLike]) -> DiagramContext:
        """
        Add one batch to an existing diagram. Row validation errors propagate
        unchanged and leave the context exactly as it was.
        """
        rows = list(rows)
        context.builder.build(rows)
        context.batches += 1
        context.rows_ingested += len(rows)
        # New nodes sit at the origin until the next layout.
        context.last_layout = None

        context.validation = validate_diagram(context.graph, context.registry)
        context.errors = []
        for issue in context.validation.issues:
            if issue.severity != ValidationSeverity.INFO:
                context.add_error(f"[{issue.code}] {issue.message}")

        logger.info(
            "[PIPELINE] batch %d: %d rows, %s",
            context.batches, len(rows), context.validation.get_summary(),
        )
        return context

    async def layout(self, context: DiagramContext, timeout: Optional[float] = None) -> LayoutResult:
        if context.orchestrator is None:
            context.orchestrator = LayoutOrchestrator()
        context.last_layout = await context.orchestrator.layout(context.view, timeout=timeout)
        return context.last_layout
