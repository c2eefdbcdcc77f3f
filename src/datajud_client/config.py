"""Configuração padrão do cliente Datajud.

Os valores abaixo refletem os limites documentados da API Pública do Datajud.
Todos podem ser sobrescritos por meio de :class:`DatajudSettings`.
"""
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

API_KEY_ENV = "DATAJUD_API_KEY"
BASE_URL_ENV = "DATAJUD_BASE_URL"
REQUESTS_PER_MINUTE_ENV = "DATAJUD_REQUESTS_PER_MINUTE"

DEFAULT_BASE_URL = "https://api-publica.datajud.cnj.jus.br"

# Tempos limite, em segundos
SEARCH_TIMEOUT = 30.0
LARGE_SEARCH_TIMEOUT = 60.0
VALIDATION_TIMEOUT = 10.0
LARGE_SEARCH_THRESHOLD = 1000

MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 1.0
BACKOFF_MULTIPLIER = 2.0
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

REQUESTS_PER_MINUTE = 60
MIN_REQUEST_INTERVAL = 1.0
RATE_LIMIT_WINDOW = 60.0

NUMBER_SEARCH_TTL = 5 * 60.0
GENERIC_SEARCH_TTL = 60.0

MAX_PAGE_SIZE = 10_000


@dataclass(frozen=True)
class DatajudSettings:
    """Agrupa os parâmetros de operação do cliente."""
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    search_timeout: float = SEARCH_TIMEOUT
    large_search_timeout: float = LARGE_SEARCH_TIMEOUT
    validation_timeout: float = VALIDATION_TIMEOUT
    large_search_threshold: int = LARGE_SEARCH_THRESHOLD
    max_retries: int = MAX_RETRIES
    initial_retry_delay: float = INITIAL_RETRY_DELAY
    backoff_multiplier: float = BACKOFF_MULTIPLIER
    retryable_status_codes: FrozenSet[int] = field(default=RETRYABLE_STATUS_CODES)
    requests_per_minute: int = REQUESTS_PER_MINUTE
    min_request_interval: float = MIN_REQUEST_INTERVAL
    number_search_ttl: float = NUMBER_SEARCH_TTL
    generic_search_ttl: float = GENERIC_SEARCH_TTL

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "DatajudSettings":
        """Lê chave, URL base e limite por minuto das variáveis de ambiente."""
        environ = os.environ if environ is None else environ
        values = {
            "api_key": environ.get(API_KEY_ENV) or None,
            "base_url": environ.get(BASE_URL_ENV) or DEFAULT_BASE_URL,
        }
        rpm = environ.get(REQUESTS_PER_MINUTE_ENV)
        if rpm:
            try:
                values["requests_per_minute"] = int(rpm)
            except ValueError as e:
                from .exceptions import ConfigurationError  # exceptions importa este módulo
                raise ConfigurationError(f"{REQUESTS_PER_MINUTE_ENV} inválido: {rpm!r}.") from e
        values.update(overrides)
        return cls(**values)


def read_api_key(environ=None) -> Optional[str]:
    """Retorna a chave da API definida no ambiente, ou None se ausente ou vazia."""
    environ = os.environ if environ is None else environ
    key = environ.get(API_KEY_ENV, "")
    return key.strip() or None
