from typing import Any, Dict, List
from graph.state import ContactSearchState, EnrichmentDetail
from graph.errors import PipelineError
from tools.apollo import ApolloClient
from tools.payloads import as_dict, first_present, is_blank
from loguru import logger

LINKEDIN_FIELDS = ("linkedin_url", "linked_in_url", "linkedin", "linkedin_profile_url")


def build_detail(candidate: Dict[str, Any]) -> EnrichmentDetail:
    """Project a search candidate onto the identity fields bulk match needs.

    Apollo treats a missing key differently from an empty one, so blank values
    are dropped rather than sent.
    """
    person = candidate.get("person")
    source = person if isinstance(person, dict) else as_dict(candidate)

    detail = {
        "first_name": source.get("first_name"),
        "last_name": source.get("last_name"),
        "linkedin_url": first_present(source, *LINKEDIN_FIELDS),
    }
    return {key: value for key, value in detail.items() if not is_blank(value)}


def build_details(candidates: List[Dict[str, Any]]) -> List[EnrichmentDetail]:
    return [build_detail(candidate) for candidate in candidates]


def selected_person_ids(candidates: List[Dict[str, Any]]) -> List[str]:
    """Identifiers of the selected candidates; candidates without one are skipped."""
    ids = []
    for candidate in candidates:
        person_id = first_present(as_dict(candidate), "id", "person_id")
        if person_id is not None:
            ids.append(str(person_id))
    return ids


def make_enrich(client: ApolloClient):
    """Build the enrich node bound to an Apollo client."""

    async def enrich(state: ContactSearchState) -> ContactSearchState:
        """Reveal work emails for the selected candidates via bulk match."""
        candidates = state.get("candidates", [])
        details = build_details(candidates)

        state["selected_person_ids"] = selected_person_ids(candidates)
        state["bulk_details"] = details
        logger.info(f"Starting bulk enrichment for {len(details)} candidates")

        try:
            state["enrichment_response"] = await client.bulk_match(details)
        except PipelineError as e:
            logger.error(f"Bulk enrichment failed ({e.status_code}): {e.error}")
            state["failure"] = e
            return state

        logger.info("Bulk enrichment completed")
        return state

    return enrich
