from dataclasses import dataclass
from typing import TypedDict, Optional, List, Dict, Any

from graph.errors import PipelineError

DEFAULT_LIMIT = 10
MAX_LIMIT = 10


@dataclass(frozen=True)
class SearchCriteria:
    """Validated search request. Built once per request."""
    title: str
    location: str
    industry: Optional[str] = None
    limit: int = DEFAULT_LIMIT


class EnrichmentDetail(TypedDict, total=False):
    """Identity fields sent to the bulk match endpoint; blank keys are omitted."""
    first_name: str
    last_name: str
    linkedin_url: str


class Contact(TypedDict):
    name: str
    title: str
    email: str
    company: str
    domain: str
    location: str
    email_status: str


class PipelineDebug(TypedDict):
    search: Any
    enrichment: Optional[Any]
    selectedPersonIds: List[str]
    bulkDetails: List[EnrichmentDetail]


class PipelineResult(TypedDict):
    contacts: List[Contact]
    debug: PipelineDebug


class ContactSearchState(TypedDict, total=False):
    """State shape for the verified contact workflow."""
    raw: Dict[str, Any]                      # request body as received
    criteria: SearchCriteria
    search_response: Any                     # raw people search response
    candidates: List[Dict[str, Any]]         # verified candidates, in search order
    selected_person_ids: List[str]
    bulk_details: List[EnrichmentDetail]
    enrichment_response: Optional[Any]       # raw bulk match response
    contacts: List[Contact]
    failure: Optional[PipelineError]         # set by the node that failed
