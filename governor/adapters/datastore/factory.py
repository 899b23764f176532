"""Factory pattern for creating data store instances."""

from governor.adapters.datastore.base import AbstractDataStore
from governor.adapters.datastore.in_memory import InMemoryDataStore
from governor.adapters.datastore.postgrest_client import PostgRESTDataStore
from governor.core.config import DataStoreSettings, settings
from governor.core.errors import ValidationAppError


def create_data_store(datastore_settings: DataStoreSettings | None = None) -> AbstractDataStore:
    """Factory function to instantiate the configured data store.

    Reads configuration from governor.core.config.settings (Pydantic Settings)
    unless explicit settings are passed. Validates provider-specific
    requirements and routes to the appropriate adapter.

    Returns:
        AbstractDataStore: Configured data store instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = datastore_settings or settings.datastore
    provider = cfg.provider.lower()

    if provider == "postgrest":
        if not cfg.base_url:
            raise ValidationAppError(
                code="datastore_missing_base_url",
                message="PostgREST provider requires DATASTORE_BASE_URL environment variable",
            )
        if not cfg.api_key:
            raise ValidationAppError(
                code="datastore_missing_api_key",
                message="PostgREST provider requires DATASTORE_API_KEY environment variable",
            )
        return PostgRESTDataStore(
            base_url=cfg.base_url,
            api_key=cfg.api_key,
            timeout_seconds=cfg.timeout_seconds,
            schema_name=cfg.schema_name,
        )

    if provider == "memory":
        return InMemoryDataStore()

    raise ValidationAppError(
        code="datastore_unknown_provider",
        message=(
            f"Unknown data store provider: '{provider}'. Supported providers: postgrest, memory"
        ),
    )
