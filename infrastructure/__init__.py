"""
Infrastructure Package - Lazy Loading Implementation.

Adapters behind the ``interfaces.repository`` ABCs:

    ServiceBusRepository        IMessagePublisher (+ per-worker receivers)
    ServiceBusBacklogProbe      IBacklogProbe
    ensure_topology             Idempotent Service Bus provisioning
    PostgreSQLContentStore      IContentStore, ITrendSource
    PostgreSQLNotificationStore INotificationStore
    HttpModerationClassifier    IClassifier
    HttpEmbeddingGenerator      IEmbeddingGenerator

Imports are deferred until a name is first accessed, so importing one
adapter (for example the HTTP clients in tests) does not pull in the
Azure SDK or psycopg, and nothing reads credentials at import time.
"""

from typing import TYPE_CHECKING

# For type checking only - doesn't actually import at runtime
if TYPE_CHECKING:
    from .service_bus import ServiceBusRepository as _ServiceBusRepository
    from .service_bus import ServiceBusBacklogProbe as _ServiceBusBacklogProbe
    from .topology import ensure_topology as _ensure_topology
    from .postgresql import PostgreSQLContentStore as _PostgreSQLContentStore
    from .postgresql import PostgreSQLNotificationStore as _PostgreSQLNotificationStore
    from .model_client import HttpModerationClassifier as _HttpModerationClassifier
    from .model_client import HttpEmbeddingGenerator as _HttpEmbeddingGenerator


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    # Service Bus
    if name == "ServiceBusRepository":
        from .service_bus import ServiceBusRepository
        return ServiceBusRepository
    elif name == "ServiceBusBacklogProbe":
        from .service_bus import ServiceBusBacklogProbe
        return ServiceBusBacklogProbe
    elif name == "ensure_topology":
        from .topology import ensure_topology
        return ensure_topology

    # PostgreSQL
    elif name == "PostgreSQLContentStore":
        from .postgresql import PostgreSQLContentStore
        return PostgreSQLContentStore
    elif name == "PostgreSQLNotificationStore":
        from .postgresql import PostgreSQLNotificationStore
        return PostgreSQLNotificationStore

    # Model endpoints
    elif name == "HttpModerationClassifier":
        from .model_client import HttpModerationClassifier
        return HttpModerationClassifier
    elif name == "HttpEmbeddingGenerator":
        from .model_client import HttpEmbeddingGenerator
        return HttpEmbeddingGenerator

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ServiceBusRepository",
    "ServiceBusBacklogProbe",
    "ensure_topology",
    "PostgreSQLContentStore",
    "PostgreSQLNotificationStore",
    "HttpModerationClassifier",
    "HttpEmbeddingGenerator",
]
