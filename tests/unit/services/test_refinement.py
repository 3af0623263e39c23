"""Unit tests for search term refinement."""

import pytest

from pubmed_assistant.services.refinement import RefinementType, refine_mesh_terms
from pubmed_assistant.services.term_converter import InvalidQuery


class TestBroaden:
    """refinement_type=increase"""

    def test_multi_term_drops_last_term(self):
        result = refine_mesh_terms(
            "lung cancer treatment", "lung+AND+cancer+AND+treatment", "increase"
        )
        assert result == "lung+AND+cancer"

    def test_two_terms_leaves_one(self):
        assert refine_mesh_terms("q", "cancer+AND+therapy", "increase") == "cancer"

    def test_single_term_appends_review_filter(self):
        result = refine_mesh_terms("cancer", "cancer", RefinementType.INCREASE)
        assert result == "cancer+OR+review[pt]"

    def test_or_expression_counts_as_single_term(self):
        result = refine_mesh_terms("cancer", "cancer+OR+review[pt]", "increase")
        assert result == "cancer+OR+review[pt]+OR+review[pt]"


class TestNarrow:
    """refinement_type=decrease"""

    def test_with_criteria_appends_converted_terms(self):
        result = refine_mesh_terms(
            "cancer therapy", "cancer+AND+therapy", "decrease", "diabetes"
        )
        assert result == "cancer+AND+therapy+AND+diabetes"

    def test_multi_word_criteria_are_converted(self):
        result = refine_mesh_terms(
            "cancer", "cancer", "decrease", "in elderly patients, 2020"
        )
        assert result == "cancer+AND+elderly+AND+patients+AND+2020"

    @pytest.mark.parametrize("criteria", [None, "", "   "])
    def test_without_criteria_appends_recency_filter(self, criteria):
        result = refine_mesh_terms("cancer", "cancer", "decrease", criteria)
        assert result == 'cancer+AND+("last+5+years"[PDat])'

    def test_criteria_without_usable_terms_falls_back_to_recency(self):
        result = refine_mesh_terms("cancer", "cancer", "decrease", "in a")
        assert result == 'cancer+AND+("last+5+years"[PDat])'


class TestKeep:
    @pytest.mark.parametrize(
        "previous, criteria",
        [
            ("lung+AND+cancer", None),
            ("lung+AND+cancer", "diabetes"),
            ("cancer+OR+review[pt]", "whatever text"),
        ],
    )
    def test_keep_is_identity(self, previous, criteria):
        assert refine_mesh_terms("any query", previous, "keep", criteria) == previous


def test_unknown_refinement_type_raises_invalid_query():
    with pytest.raises(InvalidQuery, match="Unknown refinement type"):
        refine_mesh_terms("q", "cancer", "sideways")
