"""Capabilities the LLM can invoke, as a closed set of typed tool calls.

Each capability is a pydantic model tagged by its tool name; a tool request
from the LLM is validated into exactly one of them before anything runs.
"""

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from pubmed_assistant.config import get_settings
from pubmed_assistant.data_sources.pubmed import PubMedClient
from pubmed_assistant.models.model_pubmed import SearchResult
from pubmed_assistant.services.refinement import refine_mesh_terms
from pubmed_assistant.services.term_converter import InvalidQuery, convert_to_mesh_terms

logger = logging.getLogger(__name__)


class UnknownCapability(LookupError):
    """Raised when the LLM asks for a tool that is not in the capability set."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Function {name} not implemented")


class _CapabilityArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchArgs(_CapabilityArgs):
    query: str = Field(description="User's research topic or keywords.")
    max_results: int | None = Field(
        default=None,
        ge=1,
        alias="maxResults",
        description="Maximum number of results to return (default: 5).",
    )


class RefineArgs(_CapabilityArgs):
    original_query: str = Field(
        alias="originalQuery", description="Original search query."
    )
    previous_mesh_terms: str = Field(
        alias="previousMeshTerms", description="Previous MeSH terms used for search."
    )
    refinement_type: Literal["increase", "decrease", "keep"] = Field(
        alias="refinementType",
        description='Type of refinement: "increase", "decrease", or "keep".',
    )
    additional_criteria: str | None = Field(
        default=None,
        alias="additionalCriteria",
        description="Additional criteria to refine the search.",
    )
    max_results: int | None = Field(
        default=None,
        ge=1,
        alias="maxResults",
        description="Maximum number of results to return (default: 5).",
    )


class SearchCapability(BaseModel):
    name: Literal["searchPubMedWithQuery"] = "searchPubMedWithQuery"
    arguments: SearchArgs


class RefineCapability(BaseModel):
    name: Literal["refinePubMedSearch"] = "refinePubMedSearch"
    arguments: RefineArgs


CapabilityCall = Annotated[
    Union[SearchCapability, RefineCapability], Field(discriminator="name")
]

_CAPABILITY_ADAPTER: TypeAdapter[CapabilityCall] = TypeAdapter(CapabilityCall)

_DESCRIPTIONS: dict[str, tuple[str, type[_CapabilityArgs]]] = {
    "searchPubMedWithQuery": (
        "Searches PubMed using MeSH terms based on user query and returns "
        "relevant papers.",
        SearchArgs,
    ),
    "refinePubMedSearch": (
        "Refines PubMed search by modifying MeSH terms to increase or decrease "
        "result count.",
        RefineArgs,
    ),
}

CAPABILITY_NAMES: frozenset[str] = frozenset(_DESCRIPTIONS)


def tool_definitions() -> list[dict[str, Any]]:
    """Tool schemas in the shape the Anthropic Messages API expects."""
    return [
        {
            "name": name,
            "description": description,
            "input_schema": args_model.model_json_schema(by_alias=True),
        }
        for name, (description, args_model) in _DESCRIPTIONS.items()
    ]


def parse_capability_call(
    name: str, arguments: dict[str, Any]
) -> SearchCapability | RefineCapability:
    """Validate a raw tool request into a typed capability call."""
    if name not in CAPABILITY_NAMES:
        raise UnknownCapability(name)
    try:
        return _CAPABILITY_ADAPTER.validate_python(
            {"name": name, "arguments": arguments}
        )
    except ValidationError as e:
        raise InvalidQuery(f"Invalid arguments for {name}: {e}") from e


async def execute_capability(
    call: SearchCapability | RefineCapability, client: PubMedClient
) -> SearchResult:
    """Run a capability against PubMed and return its search result."""
    args = call.arguments
    max_results = args.max_results or get_settings().default_max_results

    if isinstance(call, SearchCapability):
        mesh_terms = convert_to_mesh_terms(args.query)
    elif isinstance(call, RefineCapability):
        mesh_terms = refine_mesh_terms(
            args.original_query,
            args.previous_mesh_terms,
            args.refinement_type,
            args.additional_criteria,
        )
    else:
        raise UnknownCapability(getattr(call, "name", repr(call)))

    logger.info(
        "Running %s with %r (max_results=%d)", call.name, mesh_terms, max_results
    )
    return await client.search(mesh_terms, max_results)
