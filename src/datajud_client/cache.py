"""Cache em memória dos resultados de busca."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import GENERIC_SEARCH_TTL, NUMBER_SEARCH_TTL
from .models import CacheKey, SearchResult, SearchType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    result: SearchResult
    created_at: float


class ResponseCache:
    """
    Resultados indexados pela chave canônica da consulta.

    O TTL é decidido pelo tipo de busca da chave no momento da leitura: buscas
    por número vivem mais que as demais. Entradas vencidas são removidas na
    leitura; não há varredura em segundo plano.
    """

    def __init__(
        self,
        number_ttl: float = NUMBER_SEARCH_TTL,
        generic_ttl: float = GENERIC_SEARCH_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.number_ttl = number_ttl
        self.generic_ttl = generic_ttl
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def ttl_for(self, key: CacheKey) -> float:
        if key.search_type is SearchType.NUMBER:
            return self.number_ttl
        return self.generic_ttl

    def get(self, key: CacheKey) -> Optional[SearchResult]:
        """Resultado guardado, ou None se ausente ou vencido."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at > self.ttl_for(key):
                del self._entries[key]
                logger.debug("Entrada de cache vencida removida (%s)", key.search_type.value)
                return None
            return entry.result

    def put(self, key: CacheKey, result: SearchResult):
        with self._lock:
            self._entries[key] = CacheEntry(result=result, created_at=self._clock())

    def clear(self):
        with self._lock:
            self._entries.clear()
        logger.info("Cache de buscas limpo")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
