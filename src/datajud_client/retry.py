"""
Política de novas tentativas para chamadas ao Datajud.

A política só classifica falhas e gera o cronograma de espera; o laço que
efetivamente repete a chamada fica em :mod:`datajud_client.datajud`.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterator, Optional

from .config import (
    BACKOFF_MULTIPLIER,
    INITIAL_RETRY_DELAY,
    LARGE_SEARCH_THRESHOLD,
    LARGE_SEARCH_TIMEOUT,
    MAX_RETRIES,
    RETRYABLE_STATUS_CODES,
    SEARCH_TIMEOUT,
)
from .exceptions import DatajudError, TransportError


class RetryDecision(Enum):
    FATAL = "fatal"
    RETRY_AFTER_BACKOFF = "retry_after_backoff"
    RETRY_IMMEDIATE = "retry_immediate"


# Conexão reaproveitada que o servidor já havia encerrado
_STALE_CONNECTION_MARKERS = ("RemoteDisconnected", "Connection aborted")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = MAX_RETRIES
    initial_delay: float = INITIAL_RETRY_DELAY
    multiplier: float = BACKOFF_MULTIPLIER
    retryable_status_codes: FrozenSet[int] = RETRYABLE_STATUS_CODES
    search_timeout: float = SEARCH_TIMEOUT
    large_search_timeout: float = LARGE_SEARCH_TIMEOUT
    large_search_threshold: int = LARGE_SEARCH_THRESHOLD

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def classify(self, status_code: Optional[int] = None, error: Optional[BaseException] = None) -> RetryDecision:
        """
        Decide o que fazer após uma resposta HTTP ou um erro de transporte.

        401/403 e 400 nunca são repetidos; 429 e os 5xx configurados são
        repetidos com espera exponencial. Erros de rede também, exceto quando
        marcados como irrecuperáveis. Uma conexão antiga derrubada pelo
        servidor é repetida sem espera.
        """
        if error is not None:
            if isinstance(error, TransportError):
                if error.unrecoverable:
                    return RetryDecision.FATAL
                if any(m in error.message for m in _STALE_CONNECTION_MARKERS):
                    return RetryDecision.RETRY_IMMEDIATE
                return RetryDecision.RETRY_AFTER_BACKOFF
            if isinstance(error, DatajudError) and error.retryable:
                return RetryDecision.RETRY_AFTER_BACKOFF
            return RetryDecision.FATAL
        if status_code is None:
            return RetryDecision.FATAL
        if status_code in (400, 401, 403):
            return RetryDecision.FATAL
        if status_code in self.retryable_status_codes:
            return RetryDecision.RETRY_AFTER_BACKOFF
        return RetryDecision.FATAL

    def delays(self) -> Iterator[float]:
        """Esperas antes de cada nova tentativa: 1s, 2s, 4s, ..."""
        delay = self.initial_delay
        for _ in range(self.max_retries):
            yield delay
            delay *= self.multiplier

    def timeout_for(self, size: int) -> float:
        """Tempo limite da chamada, maior para páginas grandes."""
        if size > self.large_search_threshold:
            return self.large_search_timeout
        return self.search_timeout

    def worst_case_latency(self, size: int, rate_limit_wait: float) -> float:
        """Limite superior do tempo de uma consulta, somando todas as esperas."""
        per_attempt = self.timeout_for(size) + rate_limit_wait
        return per_attempt * self.max_attempts + sum(self.delays())
