"""Chamada HTTP à API Pública do Datajud."""
import logging

import requests

from .exceptions import DatajudTimeoutError, TransportError
from .logging_utils import format_error_for_log

logger = logging.getLogger(__name__)

_UNRECOVERABLE = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
)


def search_url(base_url: str, endpoint: str) -> str:
    return f"{base_url.rstrip('/')}/{endpoint}/_search"


def post_search(
    session: requests.Session,
    url: str,
    body: dict,
    api_key: str,
    timeout: float,
) -> requests.Response:
    """
    Envia a query ao endpoint ``_search`` de um tribunal.

    Não interpreta o status da resposta; apenas converte as falhas de rede do
    ``requests`` nos erros do cliente.
    """
    headers = {
        "Authorization": f"APIKey {api_key}",
        "Content-Type": "application/json",
    }
    try:
        return session.post(url, json=body, headers=headers, timeout=timeout)
    except requests.exceptions.Timeout as e:
        raise DatajudTimeoutError(
            f"Tempo limite de {timeout:.0f}s excedido ao consultar o Datajud."
        ) from e
    except _UNRECOVERABLE as e:
        raise TransportError(
            f"Requisição malformada: {format_error_for_log(e)}", unrecoverable=True
        ) from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Falha de conexão com o Datajud: {format_error_for_log(e)}") from e
