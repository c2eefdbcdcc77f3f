"""
Cliente da API Pública do Datajud, com cache, limite de requisições,
novas tentativas e filtro de sigilo.
"""
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Iterator, List, Optional, Tuple

import pandas as pd
import requests
from tqdm import tqdm

from .cache import ResponseCache
from .config import DatajudSettings, read_api_key
from .courts import CourtRegistry, default_registry
from .download import post_search, search_url
from .exceptions import (
    ConfigurationError,
    DatajudError,
    ErrorInfo,
    RateLimitExhaustedError,
    SearchCancelledError,
    SearchFailedError,
    ValidationError,
    error_from_status,
)
from .logging_utils import format_error_for_log
from .models import (
    CourtDescriptor,
    ProcessDetails,
    SearchFilters,
    SearchOutcome,
    SearchRequest,
    SearchResult,
    SearchType,
)
from .parse import parse
from .privacy import apply_privacy_filter, process_details
from .query import MatchAll, SearchQuery, build
from .rate_limit import RateLimiter, default_rate_limiter
from .retry import RetryDecision, RetryPolicy
from .utils import clean_cnj, format_cnj, is_valid_cnj

logger = logging.getLogger(__name__)

VALIDATION_COURT = "stj"


class DatajudClient:
    """
    Cliente para a API Pública do Datajud.

    As operações ``search*`` nunca levantam exceções: devolvem um
    :class:`SearchOutcome` com o resultado ou com o erro estruturado.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        verbose: int = 1,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[ResponseCache] = None,
        retry_policy: Optional[RetryPolicy] = None,
        registry: Optional[CourtRegistry] = None,
        sleep: Callable[[float], None] = time.sleep,
        settings: Optional[DatajudSettings] = None,
    ):
        """
        Inicializa o cliente.

        Parâmetros:
            api_key: chave da API (Authorization: APIKey ...). Se não informada,
              é lida de DATAJUD_API_KEY na primeira consulta.
            base_url: URL base da API. Padrão: a URL pública do CNJ.
            verbose: 0 desliga a barra de progresso da paginação.
            session: sessão ``requests`` reaproveitada entre chamadas.
            rate_limiter: limitador de requisições; por padrão, o do processo.
            cache, retry_policy, registry: componentes alternativos, para testes.
            sleep: função de espera usada entre tentativas.
            settings: parâmetros de operação; por padrão, lidos do ambiente.
        """
        self.settings = settings if settings is not None else DatajudSettings.from_env()
        self._api_key = api_key
        self.base_url = base_url or self.settings.base_url
        self.verbose = verbose
        self.session = session if session is not None else requests.Session()
        if rate_limiter is None:
            rate_limiter = default_rate_limiter(
                self.settings.requests_per_minute, self.settings.min_request_interval
            )
        self.rate_limiter = rate_limiter
        if cache is None:
            cache = ResponseCache(self.settings.number_search_ttl, self.settings.generic_search_ttl)
        self.cache = cache
        if retry_policy is None:
            retry_policy = RetryPolicy(
                max_retries=self.settings.max_retries,
                initial_delay=self.settings.initial_retry_delay,
                multiplier=self.settings.backoff_multiplier,
                retryable_status_codes=self.settings.retryable_status_codes,
                search_timeout=self.settings.search_timeout,
                large_search_timeout=self.settings.large_search_timeout,
                large_search_threshold=self.settings.large_search_threshold,
            )
        self.retry_policy = retry_policy
        self.registry = registry if registry is not None else default_registry
        self._sleep = sleep

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.session.close()

    def _resolve_api_key(self) -> str:
        key = self._api_key or self.settings.api_key or read_api_key()
        if not key:
            raise ConfigurationError(
                "Chave da API do Datajud não configurada. Defina a variável de ambiente DATAJUD_API_KEY."
            )
        return key

    # ------------------------------------------------------------------
    # Orquestração
    # ------------------------------------------------------------------
    def search(self, request: SearchRequest, cancel_event: Optional[threading.Event] = None) -> SearchOutcome:
        """Executa uma consulta e devolve o resultado ou o erro estruturado."""
        try:
            result, cached = self._execute(request, cancel_event)
        except DatajudError as e:
            logger.warning("Consulta ao Datajud falhou [%s]: %s", e.code, format_error_for_log(e))
            return SearchOutcome.failure(e.to_info())
        except Exception as e:  # noqa: BLE001
            logger.error("Erro inesperado na consulta ao Datajud: %s", format_error_for_log(e))
            return SearchOutcome.failure(ErrorInfo.unknown(format_error_for_log(e)))
        return SearchOutcome.success(result, cached=cached)

    def _execute(self, request: SearchRequest, cancel_event: Optional[threading.Event]) -> Tuple[SearchResult, bool]:
        inicio = time.monotonic()
        request = request.normalized()
        court = self.registry.resolve(request.court)
        request = replace(request, court=court.alias)
        query = build(request.search_type, request.value, request.size, request.filters, request.search_after)
        api_key = self._resolve_api_key()

        key = request.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Resultado em cache para %s (%s)", court.alias, request.search_type.value)
            return cached, True
        logger.debug("Cache sem resultado para %s (%s)", court.alias, request.search_type.value)

        body = query.to_body()
        url = search_url(self.base_url, court.endpoint)
        timeout = self.retry_policy.timeout_for(request.size)
        raw = self._call_with_retry(url, body, api_key, timeout, cancel_event)

        result = parse(raw, request.size, court=court.alias, duration=time.monotonic() - inicio)
        result = replace(result, records=tuple(apply_privacy_filter(r) for r in result.records))
        self.cache.put(key, result)
        logger.info(
            "Consulta %s em %s: %d de %d processos (%.2fs)",
            request.search_type.value, court.alias, len(result), result.total, result.duration,
        )
        return result, False

    def _call_with_retry(
        self,
        url: str,
        body: dict,
        api_key: str,
        timeout: float,
        cancel_event: Optional[threading.Event],
    ) -> str:
        """Laço de tentativas: limite de requisições, chamada, classificação e espera."""
        policy = self.retry_policy
        delays = policy.delays()
        last_error: Optional[DatajudError] = None
        attempt = 0
        for attempt in range(1, policy.max_attempts + 1):
            self._check_cancelled(cancel_event)
            self.rate_limiter.acquire(cancel_event)
            self._check_cancelled(cancel_event)
            try:
                response = post_search(self.session, url, body, api_key, timeout)
            except DatajudError as e:
                error = e
                decision = policy.classify(error=e)
            else:
                if 200 <= response.status_code < 300:
                    return response.text
                error = error_from_status(response.status_code, response.text, policy.retryable_status_codes)
                decision = policy.classify(status_code=response.status_code)

            if decision is RetryDecision.FATAL:
                raise error
            last_error = error
            if attempt == policy.max_attempts:
                break
            if decision is RetryDecision.RETRY_IMMEDIATE:
                logger.warning(
                    "Tentativa %d/%d falhou (%s); repetindo imediatamente",
                    attempt, policy.max_attempts, format_error_for_log(error),
                )
                continue
            delay = next(delays)
            logger.warning(
                "Tentativa %d/%d falhou (%s); nova tentativa em %.1fs",
                attempt, policy.max_attempts, format_error_for_log(error), delay,
            )
            self._backoff(delay, cancel_event)
        raise RateLimitExhaustedError(attempt, last_error)

    def _backoff(self, delay: float, cancel_event: Optional[threading.Event]):
        if cancel_event is None:
            self._sleep(delay)
        elif cancel_event.wait(delay):
            raise SearchCancelledError("Consulta cancelada durante a espera entre tentativas.")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelledError("Consulta cancelada.")

    # ------------------------------------------------------------------
    # Operações de busca
    # ------------------------------------------------------------------
    def search_by_number(
        self,
        court: Optional[str],
        number: str,
        size: int = 10,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """
        Busca um processo pelo número CNJ, com ou sem pontuação.

        Se ``court`` for None, o tribunal é deduzido do número.
        """
        try:
            number = str(number or "")
            if not is_valid_cnj(number):
                raise ValidationError(
                    f"Número de processo inválido: esperados 20 dígitos, recebidos {len(clean_cnj(number))}."
                )
            if court is None:
                court = self.registry.resolve_from_number(number).alias
        except DatajudError as e:
            return SearchOutcome.failure(e.to_info())
        request = SearchRequest(court=court, search_type=SearchType.NUMBER, value=number, size=size)
        return self.search(request, cancel_event)

    def search_by_class(
        self,
        court: str,
        class_code,
        size: int = 50,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        instance: Optional[str] = None,
        search_after: Optional[Tuple] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """Processos de uma classe processual, com filtros de data de ajuizamento e grau."""
        request = SearchRequest(
            court=court,
            search_type=SearchType.CLASS,
            value="" if class_code is None else str(class_code),
            filters=SearchFilters(date_from=date_from, date_to=date_to, instance=instance),
            size=size,
            search_after=search_after,
        )
        return self.search(request, cancel_event)

    def search_by_party(
        self,
        court: str,
        name: str,
        size: int = 10,
        search_after: Optional[Tuple] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        request = SearchRequest(
            court=court,
            search_type=SearchType.PARTY,
            value=name or "",
            size=size,
            search_after=search_after,
        )
        return self.search(request, cancel_event)

    def search_by_date_range(
        self,
        court: str,
        date_from: str,
        date_to: str,
        size: int = 100,
        instance: Optional[str] = None,
        search_after: Optional[Tuple] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """Processos ajuizados entre ``date_from`` e ``date_to`` (inclusive)."""
        request = SearchRequest(
            court=court,
            search_type=SearchType.DATE_RANGE,
            filters=SearchFilters(date_from=date_from, date_to=date_to, instance=instance),
            size=size,
            search_after=search_after,
        )
        return self.search(request, cancel_event)

    def list_courts(self, category: Optional[str] = None) -> List[CourtDescriptor]:
        """
        Tribunais disponíveis, opcionalmente de uma categoria (ou ``"all"``).

        Categoria desconhecida devolve lista vazia.
        """
        try:
            return self.registry.list(category)
        except ValidationError as e:
            logger.warning("%s", format_error_for_log(e))
            return []

    # ------------------------------------------------------------------
    # Detalhes, paginação e utilidades
    # ------------------------------------------------------------------
    def get_process_details(
        self,
        court: Optional[str],
        number: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[ProcessDetails]:
        """
        Partes e movimentações de um processo.

        Processos sob sigilo vêm com o aviso de restrição no lugar dos detalhes.
        Retorna None se o processo não for encontrado e levanta
        ``SearchFailedError`` se a consulta falhar.
        """
        outcome = self.search_by_number(court, number, size=1, cancel_event=cancel_event)
        result = outcome.unwrap()
        if not result.records:
            logger.info("Processo %s não encontrado", format_cnj(str(number)))
            return None
        return process_details(result.records[0])

    def iter_pages(
        self,
        request: SearchRequest,
        max_pages: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[SearchResult]:
        """
        Percorre as páginas de uma consulta usando ``search_after``.

        Para quando uma página vem incompleta, sem cursor, ou ao atingir
        ``max_pages``. Levanta ``SearchFailedError`` se uma página falhar.
        """
        try:
            request = request.normalized()
        except DatajudError as e:
            raise SearchFailedError(e.to_info()) from e
        pbar = None
        pagina = 0
        obtidos = 0
        try:
            while max_pages is None or pagina < max_pages:
                result = self.search(request, cancel_event).unwrap()
                pagina += 1
                obtidos += len(result)
                if pbar is None and self.verbose:
                    n_pags = max(-(-result.total // max(len(result), 1)), 1)
                    if max_pages is not None:
                        n_pags = min(n_pags, max_pages)
                    pbar = tqdm(total=n_pags, desc="Baixando páginas", unit="página")
                if pbar is not None:
                    pbar.update(1)
                yield result
                if not result.records or result.next_cursor is None:
                    break
                if len(result) < request.size or obtidos >= result.total:
                    break
                request = replace(request, search_after=result.next_cursor)
        finally:
            if pbar is not None:
                pbar.close()

    def search_all(self, request: SearchRequest, max_pages: Optional[int] = None) -> pd.DataFrame:
        """Concatena todas as páginas de uma consulta em um DataFrame."""
        dfs = [page.to_dataframe() for page in self.iter_pages(request, max_pages=max_pages) if len(page)]
        if dfs:
            return pd.concat(dfs, ignore_index=True)
        return pd.DataFrame([])

    def validate_api_key(self, api_key: Optional[str] = None) -> Tuple[bool, str]:
        """
        Testa a chave com uma consulta mínima ao STJ.

        Retorna ``(valida, mensagem)``.
        """
        try:
            key = api_key or self._resolve_api_key()
        except ConfigurationError as e:
            return False, e.message
        url = search_url(self.base_url, self.registry.resolve(VALIDATION_COURT).endpoint)
        body = SearchQuery(query=MatchAll(), size=1).to_body()
        try:
            self.rate_limiter.acquire()
            response = post_search(self.session, url, body, key, self.settings.validation_timeout)
        except DatajudError as e:
            logger.warning("Falha ao validar a chave da API: %s", format_error_for_log(e))
            return False, e.message
        if 200 <= response.status_code < 300:
            return True, "Chave da API válida."
        error = error_from_status(response.status_code, response.text, self.retry_policy.retryable_status_codes)
        return False, error.message

    def clear_cache(self):
        self.cache.clear()
