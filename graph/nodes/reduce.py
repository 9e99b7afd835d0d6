from typing import Any, Dict, List, Optional
from graph.state import ContactSearchState, Contact
from tools.payloads import BULK_COLLECTION_KEYS, as_dict, as_list, first_present, resolve_collection
from graph.nodes.select import is_verified_status
from loguru import logger


def email_candidates(entry: Dict[str, Any], person: Dict[str, Any]) -> List[Any]:
    """Every email record an entry carries, highest priority first.

    The top-level ``email``/``email_status`` pair goes first when both are set;
    Apollo fills it from the freshest lookup.
    """
    emails = (
        as_list(entry.get("emails"))
        + as_list(person.get("emails"))
        + as_list(person.get("email_statuses"))
    )
    if entry.get("email") and entry.get("email_status"):
        emails.insert(0, {"email": entry["email"], "email_status": entry["email_status"]})
    return emails


def email_status_of(item: Dict[str, Any]) -> Any:
    """``email_status``, falling back to ``status`` only when it is missing."""
    status = item.get("email_status")
    return item.get("status") if status is None else status


def pick_verified_email(emails: List[Any]) -> Optional[Dict[str, Any]]:
    for item in emails:
        if isinstance(item, dict) and is_verified_status(email_status_of(item)):
            return item
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def to_contact(entry: Any) -> Optional[Contact]:
    """Flatten one bulk match entry, or None if it has no verified email."""
    if not isinstance(entry, dict):
        return None

    person = entry["person"] if isinstance(entry.get("person"), dict) else entry
    organization = as_dict(person.get("organization") or entry.get("organization"))

    chosen = pick_verified_email(email_candidates(entry, person))
    email = chosen.get("email") if chosen else None
    if not isinstance(email, str) or not email.strip():
        return None

    name = first_present(person, "name")
    if name is None:
        parts = [person.get("first_name"), person.get("last_name")]
        name = " ".join(str(part) for part in parts if part)

    return {
        "name": _text(name),
        "title": _text(first_present(person, "title", "headline")),
        "email": email.strip(),
        "company": _text(first_present(organization, "name") or first_present(person, "organization_name")),
        "domain": _text(
            first_present(organization, "website_url", "domain")
            or first_present(entry, "organization_domain")
        ),
        "location": _text(first_present(person, "location") or first_present(entry, "location")),
        "email_status": _text(
            email_status_of(chosen) or first_present(entry, "email_status")
        ),
    }


def reduce_contacts(bulk_response: Any, limit: int) -> List[Contact]:
    """Turn a bulk match response into at most ``limit`` verified contacts."""
    contacts = []
    for entry in resolve_collection(bulk_response, BULK_COLLECTION_KEYS):
        contact = to_contact(entry)
        if contact is not None:
            contacts.append(contact)
    return contacts[:max(limit, 0)]


def reduce(state: ContactSearchState) -> ContactSearchState:
    """Build the final contact list from the enrichment response."""
    criteria = state["criteria"]
    contacts = reduce_contacts(state.get("enrichment_response"), criteria.limit)

    state["contacts"] = contacts
    logger.info(f"Resolved {len(contacts)} verified contacts")
    return state
