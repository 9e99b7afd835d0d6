import httpx
import pytest

from graph.errors import ConfigurationError, UpstreamError, ValidationError
from graph.nodes.validate import build_criteria, clamp_limit, validate
from graph.state import SearchCriteria
from graph.workflow import run_pipeline
from tools.apollo import ApolloClient
from conftest import FakeApollo


class TestValidate:
    """Request validation before any network call."""

    def test_builds_criteria(self):
        criteria = build_criteria({"title": " Head of Product ", "location": "CA", "industry": "fintech", "limit": 3})

        assert criteria == SearchCriteria(title="Head of Product", location="CA", industry="fintech", limit=3)

    @pytest.mark.parametrize("body", [
        {"title": "", "location": "CA"},
        {"title": "PM"},
        {"title": "   ", "location": "CA"},
        {"title": "PM", "location": 5},
    ])
    def test_title_and_location_required(self, body):
        with pytest.raises(ValidationError) as exc:
            build_criteria(body)

        assert exc.value.error == "Both title and location are required"
        assert exc.value.status_code == 400

    @pytest.mark.parametrize("body", [None, [], "title"])
    def test_body_must_be_object(self, body):
        with pytest.raises(ValidationError, match="Invalid JSON body"):
            build_criteria(body)

    @pytest.mark.parametrize("raw, expected", [
        (None, 10), (0, 1), (-4, 1), (1, 1), (7, 7), (10, 10), (50, 10), (3.9, 3), ("4", 4),
        (10**400, 10), (-(10**400), 1), (float("inf"), 10), (float("-inf"), 1), ("1e400", 10),
    ])
    def test_limit_clamped(self, raw, expected):
        assert clamp_limit(raw) == expected

    @pytest.mark.parametrize("raw", [True, "many", {}, float("nan"), "nan"])
    def test_limit_must_be_numeric(self, raw):
        with pytest.raises(ValidationError):
            clamp_limit(raw)

    def test_blank_industry_dropped(self):
        assert build_criteria({"title": "PM", "location": "CA", "industry": "  "}).industry is None

    def test_validate_node_records_failure(self):
        state = validate({"raw": {"title": "", "location": "CA"}})

        assert isinstance(state["failure"], ValidationError)
        assert "criteria" not in state


class TestPipeline:
    """End-to-end pipeline runs against a faked Apollo."""

    @pytest.mark.asyncio
    async def test_full_run(self, fake_apollo, search_response, bulk_response):
        result = await run_pipeline(
            {"title": "Head of Product", "location": "California", "industry": "fintech", "limit": 5},
            client=fake_apollo.client(),
        )

        assert [c["email"] for c in result["contacts"]] == ["ann@acme.com", "cara@globex.com"]
        assert result["debug"]["search"] == search_response
        assert result["debug"]["enrichment"] == bulk_response
        assert result["debug"]["selectedPersonIds"] == ["p1", "p3"]
        assert result["debug"]["bulkDetails"] == [
            {"first_name": "Ann", "last_name": "Lee", "linkedin_url": "https://linkedin.com/in/annlee"},
            {"first_name": "Cara", "last_name": "Diaz", "linkedin_url": "https://linkedin.com/in/cdiaz"},
        ]

    @pytest.mark.asyncio
    async def test_outbound_payloads(self, fake_apollo):
        await run_pipeline(
            {"title": "Head of Product", "location": "California", "industry": "fintech"},
            client=fake_apollo.client(),
        )

        assert [path for path, _, _ in fake_apollo.calls] == ["/mixed_people/search", "/people/bulk_match"]
        assert fake_apollo.payload("/mixed_people/search") == {
            "per_page": 25,
            "person_titles": ["Head of Product"],
            "person_locations": ["California"],
            "industries": ["fintech"],
            "q_organization_keywords": ["fintech"],
        }
        bulk = fake_apollo.payload("/people/bulk_match")
        assert bulk["reveal_personal_emails"] is False
        assert bulk["reveal_work_emails"] is True
        assert len(bulk["details"]) == 2

        headers = fake_apollo.calls[0][2]
        assert headers["x-api-key"] == "test-key"
        assert headers["accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_search_without_industry(self, fake_apollo):
        await run_pipeline({"title": "PM", "location": "CA"}, client=fake_apollo.client())

        payload = fake_apollo.payload("/mixed_people/search")
        assert "industries" not in payload
        assert "q_organization_keywords" not in payload

    @pytest.mark.asyncio
    async def test_limit_bounds_selection(self, fake_apollo):
        result = await run_pipeline({"title": "PM", "location": "CA", "limit": 1}, client=fake_apollo.client())

        assert result["debug"]["selectedPersonIds"] == ["p1"]
        assert len(result["contacts"]) == 1

    @pytest.mark.asyncio
    async def test_no_verified_candidates_skips_enrichment(self):
        fake = FakeApollo(search=httpx.Response(200, json={"matches": []}))

        result = await run_pipeline({"title": "PM", "location": "CA"}, client=fake.client())

        assert result == {
            "contacts": [],
            "debug": {
                "search": {"matches": []},
                "enrichment": None,
                "selectedPersonIds": [],
                "bulkDetails": [],
            },
        }
        assert [path for path, _, _ in fake.calls] == ["/mixed_people/search"]

    @pytest.mark.asyncio
    async def test_validation_makes_no_calls(self, fake_apollo):
        with pytest.raises(ValidationError):
            await run_pipeline({"title": "", "location": "CA"}, client=fake_apollo.client())

        assert fake_apollo.calls == []

    @pytest.mark.asyncio
    async def test_missing_api_key(self, fake_apollo):
        with pytest.raises(ConfigurationError) as exc:
            await run_pipeline({"title": "PM", "location": "CA"}, client=fake_apollo.client(api_key=""))

        assert exc.value.to_response() == {"step": "internal", "error": "Apollo API key is not configured"}
        assert fake_apollo.calls == []

    @pytest.mark.asyncio
    async def test_search_failure(self, bulk_response):
        fake = FakeApollo(search=httpx.Response(401, json={"error": "Invalid access credentials."}))

        with pytest.raises(UpstreamError) as exc:
            await run_pipeline({"title": "PM", "location": "CA"}, client=fake.client())

        assert exc.value.step == "search"
        assert exc.value.status_code == 401
        assert exc.value.error == "Invalid access credentials."
        assert len(fake.calls) == 1

    @pytest.mark.asyncio
    async def test_enrich_failure(self, search_response):
        fake = FakeApollo(
            search=httpx.Response(200, json=search_response),
            bulk=httpx.Response(503, json={"message": "rate limited"}),
        )

        with pytest.raises(UpstreamError) as exc:
            await run_pipeline({"title": "PM", "location": "CA"}, client=fake.client())

        assert exc.value.step == "enrich"
        assert exc.value.status_code == 503
        assert exc.value.to_response()["error"] == "rate limited"
        assert len(fake.calls) == 2

    @pytest.mark.asyncio
    async def test_unparseable_error_body(self, search_response):
        fake = FakeApollo(
            search=httpx.Response(200, json=search_response),
            bulk=httpx.Response(503, text="<html>Service Unavailable</html>"),
        )

        with pytest.raises(UpstreamError) as exc:
            await run_pipeline({"title": "PM", "location": "CA"}, client=fake.client())

        assert exc.value.to_response() == {
            "step": "enrich",
            "error": "Failed to parse response",
            "details": {"error": "Failed to parse response"},
        }

    @pytest.mark.asyncio
    async def test_transport_failure_is_502(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ApolloClient(api_key="test-key", transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError) as exc:
            await run_pipeline({"title": "PM", "location": "CA"}, client=client)

        assert exc.value.step == "search"
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self):
        fake = FakeApollo(search=httpx.Response(500, json={"message": "boom"}))

        with pytest.raises(UpstreamError):
            await run_pipeline({"title": "PM", "location": "CA"}, client=fake.client())

        assert len(fake.calls) == 1


class TestApolloClient:
    """Client configuration."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("APOLLO_API_KEY", "env-key")
        monkeypatch.setenv("APOLLO_BASE", "https://example.test/v1/")
        monkeypatch.setenv("APOLLO_TIMEOUT", "7.5")

        client = ApolloClient()

        assert client.api_key == "env-key"
        assert client.base_url == "https://example.test/v1"
        assert client.timeout == 7.5

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("APOLLO_BASE", raising=False)
        monkeypatch.delenv("APOLLO_TIMEOUT", raising=False)

        client = ApolloClient(api_key="k")

        assert client.base_url == "https://api.apollo.io/api/v1"
        assert client.timeout == 20.0
