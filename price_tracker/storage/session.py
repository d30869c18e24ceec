# price_tracker/storage/session.py

"""Opening and releasing a connection to the catalog database."""

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from price_tracker.config.settings import Settings
from price_tracker.errors import ConfigurationError, ConnectivityError
from price_tracker.storage.catalog_store import CatalogStore

logger = logging.getLogger("price_tracker.session")

ClientFactory = Callable[..., Any]


class CatalogSession:
    """A live client plus the store scoped to one user's collection.

    Use as a context manager so the client is released on every exit
    path.  ``close`` may be called any number of times.
    """

    def __init__(self, client: Any, store: CatalogStore) -> None:
        self._client = client
        self.store = store
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the client has been released."""
        return self._closed

    def close(self) -> None:
        """Disconnect the client; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._client.close()
        logger.debug("Session for %s closed", self.store.name)

    def __enter__(self) -> "CatalogSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def open_session(
    user: str,
    uri: str | None = None,
    client_factory: ClientFactory = MongoClient,
) -> CatalogSession:
    """Connect, verify liveness and ensure indexes for *user*'s catalog.

    Raises:
        ConfigurationError: no URI given and ``MONGO_URI`` is unset.
        ConnectivityError: connect, ping or index creation failed.
    """
    if not user:
        raise ConfigurationError("A user identifier is required")
    mongo_uri = uri or Settings.MONGO_URI
    if not mongo_uri:
        raise ConfigurationError("MONGO_URI is not configured")

    try:
        client = client_factory(
            mongo_uri, **Settings.mongo_client_options()
        )
    except PyMongoError as exc:
        raise ConnectivityError(f"Failed to connect: {exc}") from exc

    try:
        client.admin.command("ping")
        collection = client[Settings.DATABASE_NAME][user]
        store = CatalogStore(collection)
        store.ensure_indexes()
    except PyMongoError as exc:
        client.close()
        raise ConnectivityError(
            f"Store liveness check failed: {exc}"
        ) from exc
    except ConnectivityError:
        client.close()
        raise

    logger.info(
        "Connected to %s.%s", Settings.DATABASE_NAME, user,
    )
    return CatalogSession(client, store)
