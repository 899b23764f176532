"""Tests for the PostgREST adapter using httpx's mock transport."""

import json

import httpx
import pytest

from governor.adapters.datastore.postgrest_client import PostgRESTDataStore
from governor.core.errors import RemoteStoreAppError, is_resource_exhaustion


def _store(handler, **kwargs) -> PostgRESTDataStore:
    return PostgRESTDataStore(
        base_url="https://project.example.co/",
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_select_builds_postgrest_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": 7, "name": "Tavari"}])

    store = _store(handler)
    rows = await store.select(
        "mail_contacts", columns="id,name", filters={"business_id": 3}, limit=10
    )
    await store.aclose()

    assert rows == [{"id": 7, "name": "Tavari"}]
    request = seen[0]
    assert request.url.path == "/rest/v1/mail_contacts"
    assert request.url.params["select"] == "id,name"
    assert request.url.params["business_id"] == "eq.3"
    assert request.url.params["limit"] == "10"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_single_select_requests_object_and_handles_no_rows() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            406,
            json={"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"},
        )

    store = _store(handler)
    result = await store.select("businesses", limit=1, single=True)

    assert result is None
    assert seen[0].headers["Accept"] == "application/vnd.pgrst.object+json"


@pytest.mark.asyncio
async def test_resource_exhaustion_error_keeps_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            503,
            json={"code": "INSUFFICIENT_RESOURCES", "message": "remaining connection slots are reserved"},
        )

    store = _store(handler)
    with pytest.raises(RemoteStoreAppError) as exc_info:
        await store.select("businesses")

    assert exc_info.value.code == "INSUFFICIENT_RESOURCES"
    assert exc_info.value.details["http_status"] == 503
    assert is_resource_exhaustion(exc_info.value) is True


@pytest.mark.asyncio
async def test_error_without_json_body_uses_http_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="upstream crashed")

    store = _store(handler)
    with pytest.raises(RemoteStoreAppError) as exc_info:
        await store.select("businesses")

    assert exc_info.value.code == "http_500"
    assert exc_info.value.message == "upstream crashed"


@pytest.mark.asyncio
async def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = _store(handler)
    with pytest.raises(RemoteStoreAppError) as exc_info:
        await store.select("businesses")

    assert exc_info.value.code == "transport_error"
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_insert_returns_representation_with_schema_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 11, **json.loads(request.content)})

    store = _store(handler, schema_name="mail")
    created = await store.insert("mail_contacts", {"email": "a@example.com"})

    assert created == {"id": 11, "email": "a@example.com"}
    request = seen[0]
    assert request.method == "POST"
    assert request.headers["Prefer"] == "return=representation"
    assert request.headers["Content-Profile"] == "mail"
    assert request.headers["Accept-Profile"] == "mail"
