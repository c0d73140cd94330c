"""
Validation module for built graphs.
"""

from domainmap.validation.diagram_validator import (
    DiagramValidator,
    DiagramValidationResult,
    ValidationIssue,
    ValidationSeverity,
    validate_diagram,
    raise_on_errors,
)

__all__ = [
    "DiagramValidator",
    "DiagramValidationResult",
    "ValidationIssue",
    "ValidationSeverity",
    "validate_diagram",
    "raise_on_errors",
]
