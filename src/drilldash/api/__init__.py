"""Backend query endpoint client."""

from drilldash.api.client import BackendClient

__all__ = ["BackendClient"]
