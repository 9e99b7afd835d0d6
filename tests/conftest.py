"""Shared test fixtures."""

import json
import os
import sys
import tempfile

import httpx
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "survey-outreach-logs"))
os.environ["APOLLO_API_KEY"] = "test-key"
os.environ["APOLLO_BASE"] = "https://apollo.test/api/v1"
os.environ["REDIS_URL"] = "redis://localhost:1"

from tools.apollo import ApolloClient


class FakeApollo:
    """Records outbound Apollo calls and answers from canned responses."""

    def __init__(self, search=None, bulk=None):
        self.responses = {
            "/mixed_people/search": search or httpx.Response(200, json={"people": []}),
            "/people/bulk_match": bulk or httpx.Response(200, json={"people": []}),
        }
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.replace("/api/v1", "", 1)
        self.calls.append((path, json.loads(request.content), dict(request.headers)))
        return self.responses[path]

    def client(self, **kwargs) -> ApolloClient:
        kwargs.setdefault("api_key", "test-key")
        return ApolloClient(transport=httpx.MockTransport(self.handler), **kwargs)

    def payload(self, path):
        return next(body for called, body, _ in self.calls if called == path)


@pytest.fixture
def search_response():
    """A people search response with a mix of verified and unverified leads."""
    return {
        "people": [
            {
                "id": "p1",
                "first_name": "Ann",
                "last_name": "Lee",
                "linkedin_url": "https://linkedin.com/in/annlee",
                "email_status": "verified",
            },
            {
                "id": "p2",
                "first_name": "Bob",
                "last_name": "Stone",
                "email_status": "unavailable",
            },
            {
                "person_id": "p3",
                "person": {
                    "first_name": "Cara",
                    "last_name": "Diaz",
                    "linkedin": "https://linkedin.com/in/cdiaz",
                    "emails": [{"email": "cara@globex.com", "status": "Verified"}],
                },
            },
        ],
        "pagination": {"page": 1, "per_page": 25},
    }


@pytest.fixture
def bulk_response():
    """A bulk match response for the two verified leads above."""
    return {
        "status": "success",
        "matches": 2,
        "matched_people": [
            {
                "id": "p1",
                "first_name": "Ann",
                "last_name": "Lee",
                "title": "Head of Product",
                "email": "ann@acme.com",
                "email_status": "verified",
                "location": "San Francisco, CA",
                "organization": {"name": "Acme", "website_url": "https://acme.com"},
            },
            {
                "id": "p3",
                "name": "Cara Diaz",
                "headline": "VP Research",
                "email": "cara@gmail.com",
                "email_status": "unverified",
                "organization_name": "Globex",
                "organization_domain": "globex.com",
                "emails": [{"email": "cara@globex.com", "email_status": "verified"}],
            },
        ],
    }


@pytest.fixture
def fake_apollo(search_response, bulk_response):
    return FakeApollo(
        search=httpx.Response(200, json=search_response),
        bulk=httpx.Response(200, json=bulk_response),
    )
