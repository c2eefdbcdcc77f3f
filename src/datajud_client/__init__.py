"""
datajud_client
~~~~~~~~~~~~~~
Interface pública: dj.client(**kwargs)

A implementação do cliente mora em datajud_client.datajud.DatajudClient.
"""
from importlib import import_module
from importlib.metadata import version
from typing import Any

from .exceptions import (
    AuthError,
    ConfigurationError,
    DatajudError,
    DatajudTimeoutError,
    ErrorInfo,
    RateLimitExhaustedError,
    SearchCancelledError,
    SearchFailedError,
    TransportError,
    UnknownUpstreamError,
    ValidationError,
)
from .models import (
    CourtCategory,
    CourtDescriptor,
    Instance,
    ProcessDetails,
    ProcessRecord,
    SearchFilters,
    SearchOutcome,
    SearchRequest,
    SearchResult,
    SearchType,
)


def client(*args: Any, **kwargs: Any):
    """
    Factory que devolve um :class:`DatajudClient`.

    Exemplos
    --------
    >>> import datajud_client as dj
    >>> cliente = dj.client()
    >>> cliente.search_by_number("tjsp", "1000000-00.2024.8.26.0100")
    """
    mod = import_module("datajud_client.datajud")   # importa só quando é pedido (lazy)
    return mod.DatajudClient(*args, **kwargs)


__version__ = version("datajud-client")
__all__ = [
    "client",
    "AuthError",
    "ConfigurationError",
    "CourtCategory",
    "CourtDescriptor",
    "DatajudError",
    "DatajudTimeoutError",
    "ErrorInfo",
    "Instance",
    "ProcessDetails",
    "ProcessRecord",
    "RateLimitExhaustedError",
    "SearchCancelledError",
    "SearchFailedError",
    "SearchFilters",
    "SearchOutcome",
    "SearchRequest",
    "SearchResult",
    "SearchType",
    "TransportError",
    "UnknownUpstreamError",
    "ValidationError",
]
