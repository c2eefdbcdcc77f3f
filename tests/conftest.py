"""Fixtures compartilhadas: relógio falso e sessão HTTP falsa."""
import json
import threading

import pytest

from datajud_client.cache import ResponseCache
from datajud_client.datajud import DatajudClient
from datajud_client.rate_limit import RateLimiter


class FakeClock:
    """Relógio controlado pelo teste; ``sleep`` apenas avança o tempo."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.now

    def sleep(self, seconds):
        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds

    def advance(self, seconds):
        with self._lock:
            self.now += seconds


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload if payload is not None else {})
        self.text = text


class FakeSession:
    """Devolve as respostas em ordem e guarda cada chamada a ``post``."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        pass


def hit(numero="00008323520184013202", nivel_sigilo=0, sort=None, **extra):
    source = {
        "numeroProcesso": numero,
        "classe": {"codigo": 1116, "nome": "Execução Fiscal"},
        "tribunal": "TRF1",
        "grau": "G1",
        "dataAjuizamento": "2018-10-29T00:00:00.000Z",
        "nivelSigilo": nivel_sigilo,
        "dataHoraUltimaAtualizacao": "2023-07-21T19:10:08.483Z",
        "orgaoJulgador": {"codigo": 16403, "nome": "JUIZO FEDERAL DA 1A VARA - TEFE"},
        "assuntos": [{"codigo": 6017, "nome": "Dívida Ativa"}],
    }
    source.update(extra)
    item = {"_index": "api_publica_trf1", "_id": numero, "_source": source}
    if sort is not None:
        item["sort"] = sort
    return item


def envelope(hits, total=None):
    return {"hits": {"total": {"value": len(hits) if total is None else total}, "hits": hits}}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock, sleep=clock.sleep)


@pytest.fixture
def make_client(clock, limiter):
    """Cria um cliente com sessão falsa, limitador e cache isolados."""

    def _make(responses, api_key="chave-de-teste", backoff_sleeps=None):
        session = FakeSession(responses)
        sleeps = backoff_sleeps if backoff_sleeps is not None else []
        client = DatajudClient(
            api_key=api_key,
            verbose=0,
            session=session,
            rate_limiter=limiter,
            cache=ResponseCache(clock=clock),
            sleep=sleeps.append,
        )
        return client, session

    return _make
