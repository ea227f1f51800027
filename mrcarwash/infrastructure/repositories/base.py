"""
Generic CRUD repository over one API resource.

The identity map holds the last state the API acknowledged: it is filled by
`list()` and touched by create/update/delete only after the API answered.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Hashable, TypeVar

from mrcarwash.domains.errors import DecodeError
from mrcarwash.infrastructure.api.client import ApiClient, path_segment
from mrcarwash.utils.logger import get_logger

logger = get_logger()

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def expect_list(payload: Any, resource: str) -> list[Any]:
    if not isinstance(payload, list):
        raise DecodeError(
            f"Expected a list from {resource}, got {type(payload).__name__}"
        )
    return payload


class ReadRepository(Generic[T, K]):
    """List and create only; used for immutable records such as invoices."""

    resource: str = ""

    def __init__(
        self,
        api: ApiClient,
        decode: Callable[[Any], T],
        key_of: Callable[[T], K],
        resource: str | None = None,
    ) -> None:
        self._api = api
        self._decode = decode
        self._key_of = key_of
        self.resource = resource or self.resource
        self._identity: dict[K, T] = {}

    def _item_path(self, key: K) -> str:
        return f"{self.resource}/{path_segment(key)}"

    def _remember(self, entity: T) -> T:
        self._identity[self._key_of(entity)] = entity
        return entity

    def list(self) -> list[T]:
        """
        Fetch every record from the API and refresh the identity map.

        Raises:
            TransportError: API unreachable or 5xx.
            DecodeError: Payload is not a list of well-formed records.
        """
        items = expect_list(self._api.get(self.resource), self.resource)
        out = [self._decode(item) for item in items]
        self._identity = {self._key_of(e): e for e in out}
        logger.debug("Fetched %d records from %s", len(out), self.resource)
        return out

    def create(self, draft: Any) -> T:
        """
        Create a record. Not idempotent, so never retried.

        Raises:
            ValidationError: The API rejected the draft (e.g. duplicate key).
        """
        payload = self._api.post(self.resource, draft.to_api())
        entity = self._decode(payload)
        logger.info("Created %s %s", self.resource, self._key_of(entity))
        return self._remember(entity)

    def get(self, key: K) -> T | None:
        """Last acknowledged record for `key`, without calling the API."""
        return self._identity.get(key)

    def snapshot(self) -> list[T]:
        return list(self._identity.values())


class EntityRepository(ReadRepository[T, K]):
    """Full CRUD. `natural_key` is set for resources whose key the caller supplies."""

    def __init__(
        self,
        api: ApiClient,
        decode: Callable[[Any], T],
        key_of: Callable[[T], K],
        resource: str | None = None,
        natural_key: bool = False,
    ) -> None:
        super().__init__(api, decode, key_of, resource)
        self._natural_key = natural_key

    def update(self, key: K, patch: Any) -> T:
        """
        Replace the record at `key` with `patch`. When the API acknowledges
        the update with an empty or non-record body, the record as sent is
        returned.

        Raises:
            ValueError: If `patch` tries to change a natural key.
            NotFoundError: The record no longer exists.
            ValidationError: The API rejected a field.
        """
        if self._natural_key and patch.key != key:
            raise ValueError(f"{self.resource} key {key!r} cannot be changed to {patch.key!r}")
        sent = patch.to_api()
        try:
            entity = self._decode(self._api.put(self._item_path(key), sent))
        except DecodeError as e:
            # The API acknowledged the update; rebuild the record from what was sent.
            logger.info("Updated %s %s; answer ignored: %s", self.resource, key, e)
            entity = self._decode({"id": key, **sent})
        else:
            logger.info("Updated %s %s", self.resource, key)
        return self._remember(entity)

    def delete(self, key: K) -> None:
        """
        Delete the record at `key`.

        Raises:
            ConflictError: A referential constraint blocks the delete.
            NotFoundError: The record no longer exists.
        """
        self._api.delete(self._item_path(key))
        self._identity.pop(key, None)
        logger.info("Deleted %s %s", self.resource, key)
