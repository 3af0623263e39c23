"""Project-wide constants."""

# -- HTTP client defaults ---------------------------------------------------
DEFAULT_TIMEOUT: float = 30.0
DEFAULT_REQUEST_DELAY: float = 0.3  # NCBI asks for <= 3 requests/second without a key

# -- PubMed / NCBI ----------------------------------------------------------
NCBI_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_SEARCH_URL: str = f"{NCBI_BASE_URL}/esearch.fcgi"
PUBMED_SUMMARY_URL: str = f"{NCBI_BASE_URL}/esummary.fcgi"
PUBMED_FETCH_URL: str = f"{NCBI_BASE_URL}/efetch.fcgi"
PUBMED_WEB_URL: str = "https://pubmed.ncbi.nlm.nih.gov/"

# Number of ids requested from esearch; the summary stage truncates further.
ID_LOOKUP_RETMAX: int = 100
DEFAULT_MAX_RESULTS: int = 5

# -- Search term expressions ------------------------------------------------
AND_CONNECTOR: str = "+AND+"
OR_CONNECTOR: str = "+OR+"
MIN_TERM_LENGTH: int = 3
BROADENING_CLAUSE: str = "review[pt]"
RECENCY_CLAUSE: str = '("last+5+years"[PDat])'

# -- Abstract sentinels -----------------------------------------------------
ABSTRACT_NOT_AVAILABLE: str = "Abstract not available"
ABSTRACT_ERROR: str = "Error retrieving abstract"
