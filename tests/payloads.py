"""Canned E-utilities payloads shared by the unit tests."""


def efetch_xml(abstract: str | None) -> str:
    """Minimal efetch document; `abstract` is the inner XML of <Abstract>."""
    abstract_xml = f"<Abstract>{abstract}</Abstract>" if abstract is not None else ""
    return f"""<?xml version="1.0"?>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>1</PMID>
      <Article>
        <ArticleTitle>Title</ArticleTitle>
        {abstract_xml}
      </Article>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>
"""


def esummary_payload(pmids: list[str]) -> dict:
    """esummary JSON with one predictable entry per PMID."""
    result: dict = {"uids": pmids}
    for pmid in pmids:
        result[pmid] = {
            "uid": pmid,
            "title": f"Paper {pmid}",
            "authors": [
                {"name": f"Author {pmid}A", "authtype": "Author"},
                {"name": f"Author {pmid}B", "authtype": "Author"},
            ],
            "fulljournalname": "Journal of Testing",
            "pubdate": "2024 Mar 5",
            "elocationid": f"doi: 10.1000/{pmid}",
        }
    return {"header": {"type": "esummary"}, "result": result}


def esearch_payload(pmids: list[str], count: int | None = None) -> dict:
    return {
        "header": {"type": "esearch"},
        "esearchresult": {
            "count": str(len(pmids) if count is None else count),
            "retmax": str(len(pmids)),
            "idlist": pmids,
        },
    }


