"""PostgREST (Supabase REST) data store adapter."""

from typing import Any, Mapping

import httpx

from governor.adapters.datastore.base import AbstractDataStore
from governor.core.errors import RemoteStoreAppError

_SINGLE_OBJECT = "application/vnd.pgrst.object+json"
# PostgREST answers a single-object request that matched no rows with this code
_NO_ROWS_CODE = "PGRST116"


class PostgRESTDataStore(AbstractDataStore):
    """Client for a PostgREST endpoint under ``{base_url}/rest/v1``.

    Uses httpx's async client. Error bodies (``{"code", "message"}``) are
    turned into RemoteStoreAppError so the governor can recognise
    ``INSUFFICIENT_RESOURCES`` and trip its circuit.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        schema_name: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            base_url: Project URL, e.g. "https://xyz.supabase.co".
            api_key: Key sent as ``apikey`` and bearer token.
            timeout_seconds: Timeout for requests in seconds.
            schema_name: Optional schema selected via Accept-Profile.
            transport: Optional httpx transport (used by tests).
        """
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }
        if schema_name:
            headers["Accept-Profile"] = schema_name
            headers["Content-Profile"] = schema_name

        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
        single: bool = False,
    ) -> Any:
        params: dict[str, str] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if limit is not None:
            params["limit"] = str(limit)

        headers = {"Accept": _SINGLE_OBJECT} if single else None
        response = await self._send("GET", f"/{table}", params=params, headers=headers)

        if single and response.status_code == 406:
            body = _error_body(response)
            if body.get("code") == _NO_ROWS_CODE:
                return None
        _raise_for_error(response)
        return response.json()

    async def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        response = await self._send(
            "POST",
            f"/{table}",
            json=dict(row),
            headers={"Prefer": "return=representation", "Accept": _SINGLE_OBJECT},
        )
        _raise_for_error(response)
        return response.json()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteStoreAppError(
                code="transport_error",
                message=f"Data store request failed: {exc}",
                details={"provider": "postgrest"},
            ) from exc


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    body = _error_body(response)
    message = body.get("message") or response.text or response.reason_phrase
    raise RemoteStoreAppError(
        code=str(body.get("code") or f"http_{response.status_code}"),
        message=str(message),
        details={"http_status": response.status_code, "provider": "postgrest"},
    )
