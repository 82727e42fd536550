"""
Unit tests for the question complexity classifier.
"""

import pytest

from analysis import Complexity, ComplexityClassifier, QuestionType, DEFAULT_CLASSIFICATION


@pytest.fixture
def classifier():
    return ComplexityClassifier(max_size=1000)


class TestRules:
    """Test rule groups and their ordering."""

    def test_yes_no(self, classifier):
        result = classifier.analyze_question("Is water wet?")

        assert result.question_type == QuestionType.YES_NO
        assert result.complexity == Complexity.SIMPLE
        assert result.estimated_tokens == 10

    def test_true_false_prefix(self, classifier):
        result = classifier.analyze_question("True or false: whales are mammals")
        assert result.question_type == QuestionType.YES_NO

    def test_long_question_mark_is_not_yes_no(self, classifier):
        question = ("could you walk me through every single step that happens when "
                    "a star collapses into a black hole?")
        result = classifier.analyze_question(question)

        assert result.question_type == QuestionType.COMPLEX
        assert result.estimated_tokens == 100

    def test_math_operator(self, classifier):
        result = classifier.analyze_question("12 * 7")

        assert result.question_type == QuestionType.MATH
        assert result.complexity == Complexity.MEDIUM
        assert result.estimated_tokens == 30

    def test_math_keyword(self, classifier):
        assert classifier.analyze_question("Solve for x").question_type == QuestionType.MATH

    def test_math_two_numbers(self, classifier):
        assert classifier.analyze_question("between 1990 and 2000").question_type == QuestionType.MATH

    def test_definition(self, classifier):
        result = classifier.analyze_question("Define entropy")

        assert result.question_type == QuestionType.DEFINITION
        assert result.complexity == Complexity.SIMPLE
        assert result.estimated_tokens == 25

    def test_what_is_prefix_is_definition(self, classifier):
        assert classifier.analyze_question("What is photosynthesis").question_type == QuestionType.DEFINITION

    def test_complex_keyword(self, classifier):
        result = classifier.analyze_question("Explain why the sky is blue")

        assert result.complexity == Complexity.HIGH
        assert result.estimated_tokens == 100

    def test_tell_me_about(self, classifier):
        assert classifier.analyze_question("Tell me about Rome").complexity == Complexity.HIGH

    def test_default(self, classifier):
        result = classifier.analyze_question("Photosynthesis in plants")

        assert result.question_type == QuestionType.GENERAL
        assert result.complexity == Complexity.MEDIUM
        assert result.estimated_tokens == 50

    def test_case_and_whitespace_normalized(self, classifier):
        assert classifier.analyze_question("   IS WATER WET?  ") == classifier.analyze_question("is water wet?")

    def test_to_dict(self, classifier):
        assert classifier.analyze_question("Is water wet?").to_dict() == {
            "type": "yes_no",
            "complexity": "simple",
            "estimated_tokens": 10,
        }


class TestMalformedInput:
    """Test non-string and empty questions."""

    @pytest.mark.parametrize("question", [None, 42, "", "   ", ["is it?"]])
    def test_defaults_without_caching(self, classifier, question):
        assert classifier.analyze_question(question) == DEFAULT_CLASSIFICATION
        assert len(classifier) == 0


class TestCache:
    """Test the bounded FIFO cache."""

    def test_results_cached(self, classifier):
        first = classifier.analyze_question("Is water wet?")
        second = classifier.analyze_question("is water wet?")

        assert first is second
        assert len(classifier) == 1

    def test_never_exceeds_max_size(self):
        classifier = ComplexityClassifier(max_size=3)
        for i in range(10):
            classifier.analyze_question(f"question number {i}")

        assert len(classifier) == 3

    def test_evicts_oldest_inserted_not_least_recent(self):
        classifier = ComplexityClassifier(max_size=2)
        classifier.analyze_question("alpha")
        classifier.analyze_question("beta")
        # Reading alpha again must not protect it from eviction
        classifier.analyze_question("alpha")
        classifier.analyze_question("gamma")

        assert "alpha" not in classifier
        assert classifier.cached_keys() == ["beta", "gamma"]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            ComplexityClassifier(max_size=0)

    @pytest.mark.parametrize("key", [None, 42, ("is it?",)])
    def test_membership_with_non_string(self, classifier, key):
        classifier.analyze_question("Is water wet?")

        assert key not in classifier
        assert "is water wet?" in classifier
