"""
Limite de requisições à API do Datajud.

Duas restrições valem ao mesmo tempo: no máximo ``requests_per_minute``
chamadas em qualquer janela móvel de 60 segundos e um intervalo mínimo entre
chamadas consecutivas. O estado é compartilhado por todas as consultas do
processo e só é tocado com o lock adquirido.
"""
import logging
import threading
import time
from collections import deque
from typing import Callable, Optional

from .config import MIN_REQUEST_INTERVAL, RATE_LIMIT_WINDOW, REQUESTS_PER_MINUTE
from .exceptions import SearchCancelledError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Janela móvel de timestamps mais intervalo mínimo entre requisições."""

    def __init__(
        self,
        requests_per_minute: int = REQUESTS_PER_MINUTE,
        min_interval: float = MIN_REQUEST_INTERVAL,
        window: float = RATE_LIMIT_WINDOW,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute deve ser ao menos 1")
        self.requests_per_minute = requests_per_minute
        self.min_interval = min_interval
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._timestamps = deque()
        self._last_request: Optional[float] = None
        self._lock = threading.RLock()

    def _prune(self, now: float):
        limite = now - self.window
        while self._timestamps and self._timestamps[0] <= limite:
            self._timestamps.popleft()

    def reserve(self) -> float:
        """
        Tempo de espera, em segundos, até a próxima requisição ser permitida.

        Não registra nada: quem chama deve esperar e então chamar
        :meth:`record`, de preferência via :meth:`acquire`. Vagas já
        reservadas por :meth:`acquire` para o futuro também contam.
        """
        with self._lock:
            now = self._clock()
            return self._next_slot(now) - now

    def _next_slot(self, now: float) -> float:
        self._prune(now)
        slot = now
        if len(self._timestamps) >= self.requests_per_minute:
            # a nova requisição só cabe quando a N-ésima mais recente sair da janela
            slot = max(slot, self._timestamps[-self.requests_per_minute] + self.window)
        if self._last_request is not None:
            slot = max(slot, self._last_request + self.min_interval)
        return slot

    def record(self, at: Optional[float] = None):
        """Registra uma requisição no instante ``at`` (por padrão, agora)."""
        with self._lock:
            if at is None:
                at = self._clock()
            self._timestamps.append(at)
            self._last_request = at

    def acquire(self, cancel_event: Optional[threading.Event] = None) -> float:
        """
        Reserva a próxima vaga livre e espera até ela chegar.

        A reserva é feita com o lock adquirido; a espera, fora dele, para que
        uma consulta cancelada não fique presa atrás das que estão esperando.
        Retorna o tempo de espera. Se ``cancel_event`` já estiver sinalizado,
        levanta ``SearchCancelledError`` sem reservar; se for sinalizado
        durante a espera, a vaga reservada continua consumida.
        """
        with self._lock:
            if cancel_event is not None and cancel_event.is_set():
                raise SearchCancelledError("Consulta cancelada enquanto aguardava o limite de requisições.")
            now = self._clock()
            slot = self._next_slot(now)
            self.record(slot)
        wait = slot - now
        if wait > 0:
            logger.info("Limite de requisições ativo, aguardando %.2fs", wait)
            self._wait(wait, cancel_event)
        return wait

    def _wait(self, seconds: float, cancel_event: Optional[threading.Event]):
        if cancel_event is None:
            self._sleep(seconds)
        elif cancel_event.wait(seconds):
            raise SearchCancelledError("Consulta cancelada enquanto aguardava o limite de requisições.")

    def pending(self) -> int:
        """Quantas requisições contam na janela atual."""
        with self._lock:
            self._prune(self._clock())
            return len(self._timestamps)

    def reset(self):
        with self._lock:
            self._timestamps.clear()
            self._last_request = None


_default_limiter: Optional[RateLimiter] = None
_default_lock = threading.Lock()


def default_rate_limiter(
    requests_per_minute: int = REQUESTS_PER_MINUTE,
    min_interval: float = MIN_REQUEST_INTERVAL,
) -> RateLimiter:
    """
    Limitador único do processo, compartilhado pelos clientes que não recebem outro.

    Os parâmetros só valem na primeira chamada, quando o limitador é criado.
    """
    global _default_limiter
    with _default_lock:
        if _default_limiter is None:
            _default_limiter = RateLimiter(requests_per_minute, min_interval)
        return _default_limiter
