from graph.state import ContactSearchState
from graph.errors import PipelineError
from tools.apollo import ApolloClient
from loguru import logger


def make_search(client: ApolloClient):
    """Build the search node bound to an Apollo client."""

    async def search(state: ContactSearchState) -> ContactSearchState:
        """Query Apollo for people matching the criteria."""
        criteria = state["criteria"]
        logger.info(f"Searching Apollo for {criteria.title!r} in {criteria.location!r}")

        try:
            response = await client.search_people(
                criteria.title, criteria.location, criteria.industry
            )
        except PipelineError as e:
            logger.error(f"People search failed ({e.status_code}): {e.error}")
            state["failure"] = e
            return state

        state["search_response"] = response
        return state

    return search
