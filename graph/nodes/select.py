from typing import Any, Dict, Iterator, List
from graph.state import ContactSearchState
from tools.payloads import SEARCH_COLLECTION_KEYS, as_dict, as_list, resolve_collection
from loguru import logger

STATUS_FIELDS = ("email_status", "status")
VERIFIED = "verified"


def _status_values(obj: Any) -> Iterator[Any]:
    if isinstance(obj, dict):
        for field in STATUS_FIELDS:
            yield obj.get(field)


def _collect_statuses(fragment: Dict[str, Any]) -> Iterator[Any]:
    person = as_dict(fragment.get("person"))

    yield from _status_values(fragment)
    yield from _status_values(person)
    yield from _status_values(fragment.get("email"))

    for item in as_list(fragment.get("emails")) + as_list(person.get("emails")):
        yield from _status_values(item)


def is_verified_status(value: Any) -> bool:
    return isinstance(value, str) and value.strip().casefold() == VERIFIED


def is_verified(fragment: Any) -> bool:
    """True if any email status carried by ``fragment`` is exactly "verified".

    Looks at the fragment itself, its ``person`` and ``email`` sub-objects, and
    every entry of ``emails`` / ``person.emails``. Anything that is not the
    expected shape counts as unverified.
    """
    if not isinstance(fragment, dict):
        return False
    return any(is_verified_status(value) for value in _collect_statuses(fragment))


def select_verified(search_response: Any, limit: int) -> List[Dict[str, Any]]:
    """Keep candidates with a verified email signal, in search order, up to ``limit``."""
    collection = resolve_collection(search_response, SEARCH_COLLECTION_KEYS)
    verified = [candidate for candidate in collection if is_verified(candidate)]
    return verified[:max(limit, 0)]


def select(state: ContactSearchState) -> ContactSearchState:
    """Pick the verified candidates worth enriching."""
    criteria = state["criteria"]
    candidates = select_verified(state.get("search_response"), criteria.limit)

    state["candidates"] = candidates
    if candidates:
        logger.info(f"Selected {len(candidates)} verified candidates for enrichment")
    else:
        logger.info("No verified candidates in search results, skipping enrichment")
        state["selected_person_ids"] = []
        state["bulk_details"] = []
        state["enrichment_response"] = None
        state["contacts"] = []
    return state
