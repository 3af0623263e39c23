"""Free-text query to PubMed search term conversion.

This is a plain tokenizer, not a MeSH vocabulary mapper: punctuation is
stripped, short words are dropped and what remains is AND-joined.
"""

import logging
import re

from pubmed_assistant.constants import AND_CONNECTOR, MIN_TERM_LENGTH

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^A-Za-z0-9_\s]")


class InvalidQuery(ValueError):
    """Raised when a query cannot be turned into search terms."""

    pass


def convert_to_mesh_terms(query: str) -> str:
    """Convert a user query into an AND-joined search term expression.

    Args:
        query: Free text, e.g. "lung cancer treatment".

    Returns:
        e.g. "lung+AND+cancer+AND+treatment". Empty if no word is longer
        than two characters.
    """
    if not isinstance(query, str):
        raise InvalidQuery(f"query must be a string, got {type(query).__name__}")

    sanitized = _NON_WORD.sub("", query)
    terms = [term for term in sanitized.split() if len(term) >= MIN_TERM_LENGTH]
    mesh_terms = AND_CONNECTOR.join(terms)

    logger.debug("Converted %r -> %r", query, mesh_terms)
    return mesh_terms
