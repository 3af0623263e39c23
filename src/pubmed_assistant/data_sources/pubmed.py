"""
PubMed API client.

Three stages, run in order by `search`:
  1. search_ids       — Find PMIDs and the total hit count for an expression
  2. fetch_summaries  — Batch esummary metadata for the first N PMIDs
  3. fetch_abstract   — efetch one article as XML and pull out its abstract
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

from pubmed_assistant.config import get_settings
from pubmed_assistant.constants import (
    ABSTRACT_ERROR,
    ABSTRACT_NOT_AVAILABLE,
    DEFAULT_MAX_RESULTS,
    ID_LOOKUP_RETMAX,
    PUBMED_FETCH_URL,
    PUBMED_SEARCH_URL,
    PUBMED_SUMMARY_URL,
    PUBMED_WEB_URL,
)
from pubmed_assistant.data_sources.base_client import (
    AbstractUnavailable,
    BaseClient,
    ClientConfig,
    DataSourceError,
    RequestContext,
    RetrievalFailed,
)
from pubmed_assistant.models.model_pubmed import PaperRecord, SearchResult
from pubmed_assistant.services.term_converter import InvalidQuery

logger = logging.getLogger(__name__)


def query_term(mesh_terms: str) -> str:
    """Return the expression as a query-string value.

    Expressions use `+` where a browser URL would have a space; the HTTP
    layer encodes spaces itself.
    """
    return mesh_terms.replace("+", " ")


def search_url(mesh_terms: str) -> str:
    """Human-browsable PubMed link for an expression."""
    return f"{PUBMED_WEB_URL}?term={mesh_terms}"


def paper_url(pmid: str) -> str:
    return f"{PUBMED_WEB_URL}{pmid}/"


class PubMedClient(BaseClient):
    """Client for querying PubMed/NCBI E-utilities."""

    SEARCH_URL = PUBMED_SEARCH_URL
    SUMMARY_URL = PUBMED_SUMMARY_URL
    FETCH_URL = PUBMED_FETCH_URL

    def __init__(
        self,
        api_key: str | None = None,
        delay_seconds: float | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        super().__init__(
            ClientConfig(
                delay_seconds=(
                    settings.request_delay_seconds
                    if delay_seconds is None
                    else delay_seconds
                ),
                timeout_seconds=(
                    settings.request_timeout_seconds
                    if timeout_seconds is None
                    else timeout_seconds
                ),
            )
        )
        self.api_key = settings.ncbi_api_key if api_key is None else api_key

    @property
    def _source_name(self) -> str:
        return "pubmed"

    def _with_api_key(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.api_key:
            return {**params, "api_key": self.api_key}
        return params

    # -- Stage 1 -------------------------------------------------------------

    async def search_ids(self, mesh_terms: str) -> tuple[list[str], int]:
        """Run esearch and return (PMIDs by relevance, total hit count)."""
        params = self._with_api_key(
            {
                "db": "pubmed",
                "term": query_term(mesh_terms),
                "retmax": ID_LOOKUP_RETMAX,
                "retmode": "json",
                "sort": "relevance",
            }
        )
        ctx = RequestContext(source=self._source_name, method="search_ids")

        try:
            data = await self._rest_get(self.SEARCH_URL, params, context=ctx)
            result = data["esearchresult"]
            pmids = [str(pmid) for pmid in result.get("idlist", [])]
            count = int(result["count"])
        except DataSourceError as e:
            logger.error("esearch failed for %r: %s", mesh_terms, e)
            raise RetrievalFailed(self._source_name, f"esearch failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Malformed esearch response for %r: %r", mesh_terms, e)
            raise RetrievalFailed(
                self._source_name, f"Malformed esearch response: {e!r}"
            ) from e

        return pmids, count

    # -- Stage 2 -------------------------------------------------------------

    async def fetch_summaries(self, pmids: list[str]) -> list[PaperRecord]:
        """Run one esummary call for all PMIDs; one record per PMID, in order."""
        if not pmids:
            return []

        params = self._with_api_key(
            {"db": "pubmed", "id": ",".join(pmids), "retmode": "json"}
        )
        ctx = RequestContext(source=self._source_name, method="fetch_summaries")

        try:
            data = await self._rest_get(self.SUMMARY_URL, params, context=ctx)
            result = data["result"]
            return [self._parse_summary(pmid, result[pmid]) for pmid in pmids]
        except DataSourceError as e:
            logger.error("esummary failed for %d ids: %s", len(pmids), e)
            raise RetrievalFailed(self._source_name, f"esummary failed: {e}") from e
        except (KeyError, TypeError, AttributeError) as e:
            logger.error("Malformed esummary response: %r", e)
            raise RetrievalFailed(
                self._source_name, f"Malformed esummary response: {e!r}"
            ) from e

    @staticmethod
    def _parse_summary(pmid: str, summary: dict[str, Any]) -> PaperRecord:
        authors = [
            author["name"]
            for author in summary.get("authors") or []
            if author.get("name")
        ]
        return PaperRecord(
            pmid=pmid,
            title=summary.get("title") or "",
            authors=authors,
            journal=summary.get("fulljournalname") or "",
            publication_date=summary.get("pubdate") or "",
            doi=summary.get("elocationid") or None,
            abstract="",
            url=paper_url(pmid),
        )

    # -- Stage 3 -------------------------------------------------------------

    async def fetch_abstract(self, pmid: str) -> str:
        """Fetch one article as XML and return its abstract text.

        Returns ``ABSTRACT_NOT_AVAILABLE`` when the article has no abstract.
        Raises AbstractUnavailable when the fetch or the parse fails.
        """
        params = self._with_api_key({"db": "pubmed", "id": pmid, "retmode": "xml"})
        ctx = RequestContext(source=self._source_name, method="fetch_abstract")

        try:
            xml_text = await self._rest_get_xml(self.FETCH_URL, params, context=ctx)
        except DataSourceError as e:
            raise AbstractUnavailable(
                self._source_name, f"efetch failed for {pmid}: {e}"
            ) from e

        return self._parse_abstract_xml(pmid, xml_text)

    def _parse_abstract_xml(self, pmid: str, xml_text: str) -> str:
        """Extract the abstract of the first article in an efetch response.

        Labelled sections become "LABEL: text", one per line, in document
        order.  Unlabelled sections are kept as plain text.
        """
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise AbstractUnavailable(
                self._source_name, f"Failed to parse XML for {pmid}: {e}"
            )

        article = root.find("./PubmedArticle/MedlineCitation/Article")
        if article is None:
            raise AbstractUnavailable(
                self._source_name, f"No article element in efetch response for {pmid}"
            )

        sections = article.findall("./Abstract/AbstractText")
        if not any("".join(s.itertext()).strip() for s in sections):
            return ABSTRACT_NOT_AVAILABLE

        parts = []
        for section in sections:
            text = "".join(section.itertext())
            label = section.get("Label")
            parts.append(f"{label}: {text}" if label else text)
        return "\n".join(parts)

    # -- Pipeline ------------------------------------------------------------

    async def search(
        self, mesh_terms: str, max_results: int = DEFAULT_MAX_RESULTS
    ) -> SearchResult:
        """Search PubMed and return summaries plus abstracts for the top hits.

        The esearch id list is truncated to ``max_results`` as returned
        (relevance order).  The pacer delay precedes the esummary call and
        every efetch call.  A failed abstract degrades to a sentinel string;
        esearch/esummary failures raise RetrievalFailed.
        """
        if max_results < 1:
            raise InvalidQuery(f"max_results must be >= 1, got {max_results}")

        pmids, total_results = await self.search_ids(mesh_terms)

        if total_results == 0:
            logger.info("No results for %r", mesh_terms)
            return SearchResult(
                mesh_terms=mesh_terms,
                search_url=search_url(mesh_terms),
                total_results=0,
                papers=[],
            )

        limited = pmids[:max_results]

        await self.pacer.wait()
        papers = await self.fetch_summaries(limited)

        async for paper in self.pacer.paced(papers):
            try:
                paper.abstract = await self.fetch_abstract(paper.pmid)
            except AbstractUnavailable as e:
                logger.warning(
                    "Error fetching abstract for paper %s: %s", paper.pmid, e
                )
                paper.abstract = ABSTRACT_ERROR

        logger.info(
            "Search %r: total=%d returned=%d", mesh_terms, total_results, len(papers)
        )
        return SearchResult(
            mesh_terms=mesh_terms,
            search_url=search_url(mesh_terms),
            total_results=total_results,
            papers=papers,
        )
