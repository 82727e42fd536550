"""Heuristic question complexity classifier with a bounded FIFO cache."""

import re
from collections import deque
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Deque, Dict, List, Pattern


class Complexity(Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    HIGH = "high"


class QuestionType(Enum):
    YES_NO = "yes_no"
    MATH = "math"
    DEFINITION = "definition"
    COMPLEX = "complex"
    GENERAL = "general"


@dataclass(frozen=True)
class ComplexityClassification:
    """Workload category and expected response length for a question."""
    question_type: QuestionType
    complexity: Complexity
    estimated_tokens: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.question_type.value,
            'complexity': self.complexity.value,
            'estimated_tokens': self.estimated_tokens,
        }


DEFAULT_CLASSIFICATION = ComplexityClassification(QuestionType.GENERAL, Complexity.MEDIUM, 50)

_YES_NO_PATTERNS = [
    re.compile(r'^(is|are|was|were|do|does|did|can|could|would|should|will|has|have|had)\s'),
    re.compile(r'^(true|false)'),
    re.compile(r'\?$'),
]

_MATH_PATTERNS = [
    re.compile(r'\d+\s*[+\-*/×÷]\s*\d+'),
    re.compile(r'(calculate|compute|solve)'),
    re.compile(r'(equation|formula|sum|product|difference)'),
    re.compile(r'\d+.*\d+'),
]

_DEFINITION_PATTERNS = [
    re.compile(r'^(what|who|when|where)\s(is|are|was|were)\s'),
    re.compile(r'^define\s'),
    re.compile(r'^name\s'),
]

_COMPLEX_PATTERNS = [
    re.compile(r'(why|how|explain|describe|compare|contrast|analyze)'),
    re.compile(r'(tell me about|what do you think)'),
    re.compile(r'(difference between|similar to)'),
]


def _matches_any(patterns: List[Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


class ComplexityClassifier:
    """Classify question text into a workload category.

    Rules are evaluated in order and the first match wins:
    yes/no, math, definition, complex, then a general default.
    Results are cached by normalized text; when the cache is full the
    oldest-inserted key is evicted regardless of how recently it was read.
    """

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError(f"Cache size must be positive, got {max_size}")
        self.max_size = max_size
        self._lock = Lock()
        self._cache: Dict[str, ComplexityClassification] = {}
        self._order: Deque[str] = deque()

    def analyze_question(self, question: Any) -> ComplexityClassification:
        if not isinstance(question, str):
            return DEFAULT_CLASSIFICATION

        q = question.lower().strip()
        if not q:
            return DEFAULT_CLASSIFICATION

        with self._lock:
            cached = self._cache.get(q)
        if cached is not None:
            return cached

        result = self._classify(q)
        self._store(q, result)
        return result

    def _classify(self, q: str) -> ComplexityClassification:
        word_count = len(q.split())

        if _matches_any(_YES_NO_PATTERNS, q) and word_count < 15:
            return ComplexityClassification(QuestionType.YES_NO, Complexity.SIMPLE, 10)

        if _matches_any(_MATH_PATTERNS, q):
            return ComplexityClassification(QuestionType.MATH, Complexity.MEDIUM, 30)

        if _matches_any(_DEFINITION_PATTERNS, q) and word_count < 10:
            return ComplexityClassification(QuestionType.DEFINITION, Complexity.SIMPLE, 25)

        if _matches_any(_COMPLEX_PATTERNS, q) or word_count > 15:
            return ComplexityClassification(QuestionType.COMPLEX, Complexity.HIGH, 100)

        return DEFAULT_CLASSIFICATION

    def _store(self, key: str, result: ComplexityClassification) -> None:
        with self._lock:
            if key in self._cache:
                return
            while len(self._order) >= self.max_size:
                oldest = self._order.popleft()
                del self._cache[oldest]
            self._cache[key] = result
            self._order.append(key)

    def cached_keys(self) -> List[str]:
        """Cached keys, oldest insertion first."""
        with self._lock:
            return list(self._order)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, question: Any) -> bool:
        return isinstance(question, str) and question.lower().strip() in self._cache
