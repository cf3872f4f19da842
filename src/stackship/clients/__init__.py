"""API clients for external services."""

from stackship.clients.aws import AWSClientFactory

__all__ = ["AWSClientFactory"]
