"""Request analysis: workload category and token cost estimation."""

from .complexity import (
    Complexity,
    QuestionType,
    ComplexityClassification,
    ComplexityClassifier,
    DEFAULT_CLASSIFICATION,
)

__all__ = [
    'Complexity',
    'QuestionType',
    'ComplexityClassification',
    'ComplexityClassifier',
    'DEFAULT_CLASSIFICATION',
]
