from dataclasses import dataclass, field
from typing import List, Optional

from domainmap.compiler.builder import GraphBuilder
from domainmap.compiler.folding import FoldingView
from domainmap.compiler.layout import LayoutOrchestrator, LayoutResult
from domainmap.compiler.registry import EntityRegistry
from domainmap.compiler.types import GraphModel
from domainmap.validation.diagram_validator import DiagramValidationResult


@dataclass
class DiagramContext:
    # One diagram session: the model plus everything that works on it
    builder: GraphBuilder
    view: FoldingView
    orchestrator: Optional[LayoutOrchestrator] = None

    # Batch bookkeeping
    batches: int = 0
    rows_ingested: int = 0

    # Last outputs
    validation: Optional[DiagramValidationResult] = None
    last_layout: Optional[LayoutResult] = None

    errors: List[str] = field(default_factory=list)

    @property
    def graph(self) -> GraphModel:
        return self.builder.graph

    @property
    def registry(self) -> EntityRegistry:
        return self.builder.registry

    def add_error(self, message: str):
        self.errors.append(message)
