"""Stack, object store and function providers."""

from stackship.deploy.providers.base import (
    FunctionInvoker,
    ObjectStore,
    ProviderSet,
    StackProvider,
)

__all__ = [
    "FunctionInvoker",
    "ObjectStore",
    "ProviderSet",
    "StackProvider",
]
