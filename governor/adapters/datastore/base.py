from abc import ABC, abstractmethod
from typing import Any, Mapping


class AbstractDataStore(ABC):
	"""Interface for the remote data store the governor protects."""

	@abstractmethod
	async def select(
		self,
		table: str,
		*,
		columns: str = "*",
		filters: Mapping[str, Any] | None = None,
		limit: int | None = None,
		single: bool = False,
	) -> Any:
		"""Read rows from a table.

		Args:
			table: Table (resource) name.
			columns: Comma-separated projection, "*" for all columns.
			filters: Equality filters by column name.
			limit: Maximum number of rows.
			single: Return one object instead of a list.

		Returns:
			A list of row dicts, or one row dict (None if absent) when ``single``.

		Raises:
			RemoteStoreAppError: If the store rejects the request or is unreachable.
		"""
		...

	@abstractmethod
	async def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
		"""Insert one row and return it as stored.

		Raises:
			RemoteStoreAppError: If the store rejects the request or is unreachable.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources, if any."""
		return None
