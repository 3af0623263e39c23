"""
Pydantic models for PubMed data.

These are the data contracts between the PubMed client, the capabilities
exposed to the LLM, and the CLI.  Consumers receive these models - they
never see raw API responses.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Serializes with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaperRecord(_CamelModel):
    """A single PubMed article with summary metadata and abstract."""

    pmid: str  # PubMed identifier (e.g. "38472913")
    title: str = ""
    authors: list[str] = []  # in byline order
    journal: str = ""  # full journal name
    publication_date: str = ""  # as reported by esummary, e.g. "2024 Mar 5"
    doi: str | None = None  # esummary elocationid, e.g. "doi: 10.1056/..."
    abstract: str = ""  # filled in by the abstract stage
    url: str = ""

    @property
    def author_line(self) -> str:
        return ", ".join(self.authors)


class SearchResult(_CamelModel):
    """Outcome of one search against PubMed."""

    mesh_terms: str  # the search term expression that was run
    search_url: str
    total_results: int = 0  # count reported by esearch, may exceed len(papers)
    papers: list[PaperRecord] = Field(default_factory=list)
