from typing import Any, Dict, Optional
from langgraph.graph import StateGraph, START, END
from loguru import logger

from graph.state import ContactSearchState, PipelineResult
from graph.nodes.validate import validate
from graph.nodes.search import make_search
from graph.nodes.select import select
from graph.nodes.enrich import make_enrich
from graph.nodes.reduce import reduce
from tools.apollo import ApolloClient


def _failed(state: ContactSearchState) -> bool:
    return state.get("failure") is not None


def build_workflow(client: ApolloClient):
    """Build the verified contact workflow around one Apollo client."""
    workflow = StateGraph(ContactSearchState)

    workflow.add_node("validate", validate)
    workflow.add_node("search", make_search(client))
    workflow.add_node("select", select)
    workflow.add_node("enrich", make_enrich(client))
    workflow.add_node("reduce", reduce)

    workflow.add_edge(START, "validate")

    # Any recorded failure ends the run; the caller turns it into an error response
    workflow.add_conditional_edges(
        "validate",
        lambda state: "end" if _failed(state) else "search",
        {"search": "search", "end": END},
    )
    workflow.add_conditional_edges(
        "search",
        lambda state: "end" if _failed(state) else "select",
        {"select": "select", "end": END},
    )

    def branch_decision(state: ContactSearchState) -> str:
        if not state.get("candidates"):
            return "end"
        return "enrich"

    workflow.add_conditional_edges(
        "select",
        branch_decision,
        {"enrich": "enrich", "end": END},
    )
    workflow.add_conditional_edges(
        "enrich",
        lambda state: "end" if _failed(state) else "reduce",
        {"reduce": "reduce", "end": END},
    )
    workflow.add_edge("reduce", END)

    return workflow.compile()


def to_result(state: ContactSearchState) -> PipelineResult:
    return {
        "contacts": state.get("contacts", []),
        "debug": {
            "search": state.get("search_response"),
            "enrichment": state.get("enrichment_response"),
            "selectedPersonIds": state.get("selected_person_ids", []),
            "bulkDetails": state.get("bulk_details", []),
        },
    }


async def run_pipeline(body: Optional[Dict[str, Any]], client: Optional[ApolloClient] = None) -> PipelineResult:
    """Resolve verified contacts for a people search request.

    Raises a ``PipelineError`` subclass when configuration, validation or one
    of the two Apollo calls fails. No call is retried.
    """
    client = client or ApolloClient()
    client.ensure_configured()

    graph = build_workflow(client)
    state = await graph.ainvoke({"raw": body})

    failure = state.get("failure")
    if failure is not None:
        raise failure

    result = to_result(state)
    logger.info(f"People search finished with {len(result['contacts'])} contacts")
    return result
