"""Tests for the data store factory and the in-memory store."""

import pytest

from governor.adapters.datastore.factory import create_data_store
from governor.adapters.datastore.in_memory import InMemoryDataStore
from governor.adapters.datastore.postgrest_client import PostgRESTDataStore
from governor.core.config import DataStoreSettings
from governor.core.errors import ValidationAppError


class TestCreateDataStore:
    def test_memory_provider(self) -> None:
        store = create_data_store(DataStoreSettings(provider="memory"))
        assert isinstance(store, InMemoryDataStore)

    @pytest.mark.asyncio
    async def test_postgrest_provider(self) -> None:
        store = create_data_store(
            DataStoreSettings(
                provider="PostgREST",
                base_url="https://project.example.co",
                api_key="anon-key",
            )
        )
        assert isinstance(store, PostgRESTDataStore)
        await store.aclose()

    @pytest.mark.parametrize(
        ("overrides", "code"),
        [
            ({"api_key": "anon-key"}, "datastore_missing_base_url"),
            ({"base_url": "https://project.example.co"}, "datastore_missing_api_key"),
        ],
    )
    def test_postgrest_requires_credentials(self, overrides: dict, code: str) -> None:
        cfg = DataStoreSettings(provider="postgrest", base_url=None, api_key=None)
        cfg = cfg.model_copy(update=overrides)

        with pytest.raises(ValidationAppError) as exc_info:
            create_data_store(cfg)
        assert exc_info.value.code == code

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_data_store(DataStoreSettings(provider="mongodb"))
        assert exc_info.value.code == "datastore_unknown_provider"


class TestInMemoryDataStore:
    @pytest.fixture
    def store(self) -> InMemoryDataStore:
        return InMemoryDataStore(
            {
                "businesses": [{"id": 1, "name": "Tavari", "plan": "pro"}],
                "mail_contacts": [
                    {"id": 1, "business_id": 1, "email": "a@example.com"},
                    {"id": 2, "business_id": 1, "email": "b@example.com"},
                    {"id": 3, "business_id": 2, "email": "c@example.com"},
                ],
            }
        )

    @pytest.mark.asyncio
    async def test_filters_compare_as_strings(self, store: InMemoryDataStore) -> None:
        # Query-string filters arrive as text
        rows = await store.select("mail_contacts", filters={"business_id": "1"})
        assert [r["id"] for r in rows] == [1, 2]

    @pytest.mark.asyncio
    async def test_projection_and_limit(self, store: InMemoryDataStore) -> None:
        rows = await store.select("mail_contacts", columns="id, email", limit=1)
        assert rows == [{"id": 1, "email": "a@example.com"}]

    @pytest.mark.asyncio
    async def test_single(self, store: InMemoryDataStore) -> None:
        assert await store.select("businesses", columns="id", single=True) == {"id": 1}
        assert await store.select("businesses", filters={"id": 99}, single=True) is None

    @pytest.mark.asyncio
    async def test_unknown_table_is_empty(self, store: InMemoryDataStore) -> None:
        assert await store.select("pos_sessions") == []

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_copies(self, store: InMemoryDataStore) -> None:
        created = await store.insert("mail_campaigns", {"subject": "Hello"})
        created["subject"] = "mutated"

        rows = await store.select("mail_campaigns")
        assert rows == [{"subject": "Hello", "id": created["id"]}]
