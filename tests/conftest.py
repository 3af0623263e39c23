"""Pytest configuration and fixtures."""

import pytest

from tests.payloads import esummary_payload


@pytest.fixture
def sample_pmids() -> list[str]:
    return ["38472913", "37111111", "36222222"]


@pytest.fixture
def sample_esummary(sample_pmids) -> dict:
    return esummary_payload(sample_pmids)
