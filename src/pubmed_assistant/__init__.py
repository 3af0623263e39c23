"""PubMed search assistant: conversational literature search over NCBI E-utilities."""

__version__ = "0.1.0"
