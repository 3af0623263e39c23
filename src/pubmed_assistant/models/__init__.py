"""Data models for the PubMed assistant."""

from pubmed_assistant.models.model_pubmed import PaperRecord, SearchResult

__all__ = ["PaperRecord", "SearchResult"]
