"""Search term refinement: broaden, narrow or keep a previous expression."""

import logging
from enum import Enum

from pubmed_assistant.constants import (
    AND_CONNECTOR,
    BROADENING_CLAUSE,
    OR_CONNECTOR,
    RECENCY_CLAUSE,
)
from pubmed_assistant.services.term_converter import (
    InvalidQuery,
    convert_to_mesh_terms,
)

logger = logging.getLogger(__name__)


class RefinementType(str, Enum):
    """Direction of a refinement, named the way the LLM tool exposes it."""

    INCREASE = "increase"  # broaden: more results
    DECREASE = "decrease"  # narrow: fewer results
    KEEP = "keep"


def refine_mesh_terms(
    original_query: str,
    previous_mesh_terms: str,
    refinement_type: RefinementType | str,
    additional_criteria: str | None = None,
) -> str:
    """Return a new search term expression derived from the previous one.

    increase: drop the last AND-connected term; a single term instead gets
        an OR-connected review filter.
    decrease: AND the converted additional criteria onto the expression;
        with no criteria, AND a last-5-years publication date filter.
    keep: the previous expression unchanged.

    ``original_query`` is accepted for context only; the refinement works on
    the previous expression, not by re-deriving terms from the query.
    """
    try:
        refinement_type = RefinementType(refinement_type)
    except ValueError as e:
        raise InvalidQuery(f"Unknown refinement type: {refinement_type!r}") from e

    if refinement_type is RefinementType.INCREASE:
        terms = previous_mesh_terms.split(AND_CONNECTOR)
        if len(terms) > 1:
            refined = AND_CONNECTOR.join(terms[:-1])
        else:
            refined = f"{terms[0]}{OR_CONNECTOR}{BROADENING_CLAUSE}"

    elif refinement_type is RefinementType.DECREASE:
        extra = ""
        if additional_criteria and additional_criteria.strip():
            extra = convert_to_mesh_terms(additional_criteria)
        if extra:
            refined = f"{previous_mesh_terms}{AND_CONNECTOR}{extra}"
        else:
            # criteria made only of short words would leave a dangling AND
            refined = f"{previous_mesh_terms}{AND_CONNECTOR}{RECENCY_CLAUSE}"

    else:
        refined = previous_mesh_terms

    logger.info(
        "Refined (%s) %r -> %r [query=%r]",
        refinement_type.value,
        previous_mesh_terms,
        refined,
        original_query,
    )
    return refined
