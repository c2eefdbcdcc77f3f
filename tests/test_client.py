"""Testes do cliente com a sessão HTTP simulada."""
import threading
from unittest import mock

import pandas as pd
import pytest
import requests

import datajud_client as dj
from conftest import FakeResponse, envelope, hit
from datajud_client.config import DatajudSettings
from datajud_client.models import SearchFilters, SearchRequest, SearchType

NUMERO = "0000832-35.2018.4.01.3202"


def _ok(*hits, total=None):
    return FakeResponse(200, envelope(list(hits), total=total))


def test_factory_devolve_cliente():
    cliente = dj.client(api_key="x", verbose=0)
    assert cliente.__class__.__name__ == "DatajudClient"


def test_factory_continua_disponivel_apos_importar_o_modulo_do_cliente():
    import datajud_client.datajud  # noqa: F401

    primeiro = dj.client(api_key="x", verbose=0)
    segundo = dj.client(api_key="y", verbose=0)
    assert callable(dj.client)
    assert type(primeiro) is type(segundo) is datajud_client.datajud.DatajudClient


class TestCache:
    def test_segunda_busca_vem_do_cache(self, make_client):
        """Duas buscas iguais dentro do TTL fazem uma só chamada HTTP."""
        client, session = make_client([_ok(hit())])
        primeira = client.search_by_number("trf1", NUMERO)
        segunda = client.search_by_number("trf1", NUMERO)
        assert primeira.ok and segunda.ok
        assert len(session.calls) == 1
        assert not primeira.cached
        assert segunda.cached
        assert segunda.result == primeira.result

    def test_numero_com_e_sem_pontuacao_compartilham_cache(self, make_client):
        client, session = make_client([_ok(hit())])
        client.search_by_number("trf1", NUMERO)
        client.search_by_number("TRF1", "00008323520184013202")
        assert len(session.calls) == 1

    def test_clear_cache(self, make_client):
        client, session = make_client([_ok(hit())])
        client.search_by_number("trf1", NUMERO)
        client.clear_cache()
        client.search_by_number("trf1", NUMERO)
        assert len(session.calls) == 2

    def test_tamanho_acima_do_maximo_e_reduzido(self, make_client):
        client, session = make_client([_ok(hit())])
        outcome = client.search_by_party("trf1", "Fulano", size=50000)
        assert outcome.ok
        assert session.calls[0]["json"]["size"] == 10000
        (key,) = list(client.cache._entries)
        assert '"size":10000' in key.canonical
        assert "50000" not in key.canonical
        # a mesma busca com o tamanho máximo usa a mesma entrada
        client.search_by_party("trf1", "Fulano", size=10000)
        assert len(session.calls) == 1


class TestRetry:
    def test_tres_503_e_depois_200(self, make_client):
        """Três 503 seguidos de 200: três novas tentativas com espera dobrando."""
        esperas = []
        client, session = make_client(
            [FakeResponse(503), FakeResponse(503), FakeResponse(503), _ok(hit())],
            backoff_sleeps=esperas,
        )
        outcome = client.search_by_number("trf1", NUMERO)
        assert outcome.ok
        assert outcome.result.records[0].number == "00008323520184013202"
        assert len(session.calls) == 4
        assert esperas == [1.0, 2.0, 4.0]

    def test_401_sem_novas_tentativas(self, make_client):
        esperas = []
        client, session = make_client([FakeResponse(401)], backoff_sleeps=esperas)
        outcome = client.search_by_number("trf1", NUMERO)
        assert not outcome.ok
        assert outcome.error.code == "AUTH"
        assert outcome.error.status_code == 401
        assert outcome.error.suggestion
        assert len(session.calls) == 1
        assert esperas == []

    def test_400_vira_erro_de_validacao(self, make_client):
        client, session = make_client([FakeResponse(400, text='{"error": "parse_exception"}')])
        outcome = client.search_by_party("trf1", "Fulano")
        assert outcome.error.code == "VALIDATION"
        assert len(session.calls) == 1

    def test_tentativas_esgotadas(self, make_client):
        esperas = []
        client, session = make_client([FakeResponse(429)], backoff_sleeps=esperas)
        outcome = client.search_by_party("trf1", "Fulano")
        assert not outcome.ok
        assert outcome.error.code == "RATE_LIMIT"
        assert "4 tentativas" in outcome.error.message
        assert len(session.calls) == 4
        assert esperas == [1.0, 2.0, 4.0]

    def test_timeout_e_repetido(self, make_client):
        client, session = make_client([requests.exceptions.ReadTimeout("lento"), _ok(hit())])
        outcome = client.search_by_number("trf1", NUMERO)
        assert outcome.ok
        assert len(session.calls) == 2

    def test_timeouts_esgotados(self, make_client):
        client, _ = make_client([requests.exceptions.ConnectTimeout("lento")])
        outcome = client.search_by_number("trf1", NUMERO)
        assert outcome.error.code == "TIMEOUT"

    def test_url_invalida_nao_e_repetida(self, make_client):
        client, session = make_client([requests.exceptions.InvalidURL("url ruim")])
        outcome = client.search_by_number("trf1", NUMERO)
        assert outcome.error.code == "UPSTREAM_ERROR"
        assert len(session.calls) == 1

    def test_cada_tentativa_passa_pelo_limitador(self, make_client, limiter):
        client, _ = make_client([FakeResponse(503), _ok(hit())])
        with mock.patch.object(limiter, "acquire", wraps=limiter.acquire) as acquire:
            client.search_by_number("trf1", NUMERO)
        assert acquire.call_count == 2

    def test_tempo_limite_maior_para_paginas_grandes(self, make_client):
        client, session = make_client([_ok(hit())])
        client.search_by_party("trf1", "Fulano", size=10)
        client.search_by_party("trf1", "Beltrano", size=5000)
        assert [c["timeout"] for c in session.calls] == [30, 60]


class TestValidacao:
    def test_tribunal_desconhecido_nao_chama_a_api(self, make_client):
        client, session = make_client([_ok(hit())])
        outcome = client.search_by_party("tjxx", "Fulano")
        assert outcome.error.code == "VALIDATION"
        assert session.calls == []

    def test_numero_com_menos_de_20_digitos(self, make_client):
        client, session = make_client([_ok(hit())])
        outcome = client.search_by_number("tjsp", "123456")
        assert outcome.error.code == "VALIDATION"
        assert session.calls == []

    def test_tribunal_deduzido_do_numero(self, make_client):
        client, session = make_client([_ok(hit())])
        outcome = client.search_by_number(None, NUMERO)
        assert outcome.ok
        assert session.calls[0]["url"].endswith("/api_publica_trf1/_search")

    def test_periodo_invertido(self, make_client):
        client, session = make_client([_ok(hit())])
        outcome = client.search_by_date_range("tjsp", "2024-02-01", "2024-01-01")
        assert outcome.error.code == "VALIDATION"
        assert session.calls == []

    def test_grau_invalido(self, make_client):
        client, _ = make_client([_ok(hit())])
        outcome = client.search_by_class("tjsp", 1116, instance="G9")
        assert outcome.error.code == "VALIDATION"

    def test_parte_vazia(self, make_client):
        client, _ = make_client([_ok(hit())])
        assert client.search_by_party("tjsp", "  ").error.code == "VALIDATION"

    def test_tamanho_zero(self, make_client):
        client, _ = make_client([_ok(hit())])
        assert client.search_by_party("tjsp", "Fulano", size=0).error.code == "VALIDATION"

    def test_sem_chave_da_api(self, make_client, monkeypatch):
        """Sem chave, o erro só aparece na consulta e tem código AUTH."""
        monkeypatch.delenv("DATAJUD_API_KEY", raising=False)
        client, session = make_client([_ok(hit())], api_key=None)
        outcome = client.search_by_number("trf1", NUMERO)
        assert not outcome.ok
        assert outcome.error.code == "AUTH"
        assert "DATAJUD_API_KEY" in outcome.error.message
        assert session.calls == []

    def test_chave_lida_do_ambiente(self, make_client, monkeypatch):
        monkeypatch.setenv("DATAJUD_API_KEY", "chave-do-ambiente")
        client, session = make_client([_ok(hit())], api_key=None)
        assert client.search_by_number("trf1", NUMERO).ok
        assert session.calls[0]["headers"]["Authorization"] == "APIKey chave-do-ambiente"


class TestRequisicao:
    def test_corpo_da_busca_por_classe(self, make_client):
        client, session = make_client([_ok(hit())])
        client.search_by_class("tjsp", 1116, date_from="2020-01-01", instance="g2")
        body = session.calls[0]["json"]
        assert body["size"] == 50
        assert {"term": {"grau": "G2"}} in body["query"]["bool"]["filter"]
        assert {"range": {"dataAjuizamento": {"gte": "2020-01-01"}}} in body["query"]["bool"]["filter"]
        assert session.calls[0]["url"] == "https://api-publica.datajud.cnj.jus.br/api_publica_tjsp/_search"

    def test_busca_por_periodo(self, make_client):
        client, session = make_client([_ok(hit())])
        outcome = client.search_by_date_range("tjsp", "2024-01-01", "2024-01-31")
        assert outcome.ok
        assert session.calls[0]["json"]["size"] == 100

    def test_erro_inesperado_vira_unknown(self, make_client):
        client, _ = make_client([_ok(hit())])
        with mock.patch("datajud_client.datajud.parse", side_effect=KeyError("APIKey segredo")):
            outcome = client.search_by_number("trf1", NUMERO)
        assert outcome.error.code == "UNKNOWN"
        assert "segredo" not in outcome.error.message

    def test_erro_nao_vaza_a_chave(self, make_client):
        client, _ = make_client(
            [requests.exceptions.InvalidHeader("Authorization: APIKey chave-de-teste")]
        )
        outcome = client.search_by_number("trf1", NUMERO)
        assert "chave-de-teste" not in outcome.error.message

    def test_unwrap(self, make_client):
        client, _ = make_client([FakeResponse(401)])
        with pytest.raises(dj.SearchFailedError) as exc_info:
            client.search_by_number("trf1", NUMERO).unwrap()
        assert exc_info.value.code == "AUTH"

    def test_cancelamento(self, make_client):
        client, session = make_client([_ok(hit())])
        evento = threading.Event()
        evento.set()
        outcome = client.search(SearchRequest("trf1", SearchType.NUMBER, NUMERO), cancel_event=evento)
        assert not outcome.ok
        assert session.calls == []

    def test_list_courts(self, make_client):
        client, _ = make_client([_ok(hit())])
        assert len(client.list_courts("federal")) == 6
        assert len(client.list_courts()) == len(client.list_courts("all"))

    def test_list_courts_categoria_desconhecida_devolve_lista_vazia(self, make_client):
        client, session = make_client([_ok()])
        assert client.list_courts("tribunal-inexistente") == []
        assert session.calls == []


class TestSigilo:
    def test_sigilo_2_sem_partes_nem_movimentos(self, make_client):
        raw = hit(
            nivel_sigilo=2,
            partes=[{"tipo": "Autor", "nome": "Fulano de Tal"}],
            movimentos=[{"dataHora": "2020-01-01", "codigo": 26, "nome": "Distribuição"}],
        )
        client, _ = make_client([_ok(raw)])
        record = client.search_by_number("trf1", NUMERO).result.records[0]
        assert record.confidentiality_level == 2
        assert record.parties is None
        assert record.movements is None
        assert record.number == "00008323520184013202"

    def test_detalhes_de_processo_sigiloso(self, make_client):
        raw = hit(nivel_sigilo=3, partes=[{"tipo": "Autor", "nome": "Fulano de Tal"}])
        client, _ = make_client([_ok(raw)])
        details = client.get_process_details("trf1", NUMERO)
        assert details.restricted
        assert "Sigilo de Estado" in details.restriction_notice
        assert details.parties is None

    def test_detalhes_de_processo_publico(self, make_client):
        raw = hit(
            partes=[{"tipo": "Autor", "nome": "Fulano de Tal"}],
            movimentos=[
                {"dataHora": "2020-01-01", "codigo": 26, "nome": "Distribuição"},
                {"dataHora": "2022-01-01", "codigo": 22, "nome": "Baixa Definitiva"},
            ],
        )
        client, _ = make_client([_ok(raw)])
        details = client.get_process_details(None, NUMERO)
        assert not details.restricted
        assert details.movements[0].name == "Baixa Definitiva"

    def test_detalhes_de_processo_inexistente(self, make_client):
        client, _ = make_client([_ok()])
        assert client.get_process_details("trf1", NUMERO) is None

    def test_sigilo_ilegivel_nao_expoe_partes(self, make_client):
        raw = hit(nivel_sigilo="SIGILOSO", partes=[{"tipo": "Autor", "nome": "Fulano de Tal"}])
        client, _ = make_client([_ok(raw)])
        record = client.search_by_number("trf1", NUMERO).result.records[0]
        assert record.confidentiality_level >= 1
        assert record.parties is None


class TestPaginacao:
    def test_iter_pages_usa_search_after(self, make_client):
        pagina1 = _ok(hit("1", sort=[1]), hit("2", sort=[2]), total=3)
        pagina2 = _ok(hit("3", sort=[3]), total=3)
        client, session = make_client([pagina1, pagina2])
        request = SearchRequest("tjsp", SearchType.PARTY, "Fulano", size=2)
        paginas = list(client.iter_pages(request))
        assert [len(p) for p in paginas] == [2, 1]
        assert "search_after" not in session.calls[0]["json"]
        assert session.calls[1]["json"]["search_after"] == [2]

    def test_iter_pages_respeita_max_pages(self, make_client):
        client, session = make_client([_ok(hit("1", sort=[1]), hit("2", sort=[2]), total=100)])
        request = SearchRequest("tjsp", SearchType.PARTY, "Fulano", size=2)
        assert len(list(client.iter_pages(request, max_pages=1))) == 1
        assert len(session.calls) == 1

    def test_search_all_devolve_dataframe(self, make_client):
        pagina1 = _ok(hit("1", sort=[1]), hit("2", sort=[2]), total=3)
        pagina2 = _ok(hit("3", sort=[3]), total=3)
        client, _ = make_client([pagina1, pagina2])
        filtros = SearchFilters(date_from="2024-01-01", date_to="2024-01-31")
        df = client.search_all(SearchRequest("tjsp", SearchType.DATE_RANGE, filters=filtros, size=2))
        assert isinstance(df, pd.DataFrame)
        assert df["numero_processo"].tolist() == ["1", "2", "3"]

    def test_iter_pages_falha_levanta(self, make_client):
        client, _ = make_client([FakeResponse(401)])
        with pytest.raises(dj.SearchFailedError):
            list(client.iter_pages(SearchRequest("tjsp", SearchType.PARTY, "Fulano")))


class TestValidacaoDaChave:
    def test_chave_valida(self, make_client):
        client, session = make_client([_ok(hit())])
        valida, mensagem = client.validate_api_key()
        assert valida
        assert session.calls[0]["url"].endswith("/api_publica_stj/_search")
        assert session.calls[0]["json"]["size"] == 1
        assert session.calls[0]["json"]["query"] == {"match_all": {}}
        assert session.calls[0]["timeout"] == 10

    def test_chave_invalida(self, make_client):
        client, _ = make_client([FakeResponse(403)])
        valida, mensagem = client.validate_api_key("outra-chave")
        assert not valida
        assert "inválida" in mensagem

    def test_sem_chave(self, make_client, monkeypatch):
        monkeypatch.delenv("DATAJUD_API_KEY", raising=False)
        client, session = make_client([_ok(hit())], api_key=None)
        valida, _ = client.validate_api_key()
        assert not valida
        assert session.calls == []


def test_configuracao_por_settings(make_client):
    settings = DatajudSettings(api_key="da-config", base_url="http://localhost:9200/")
    client = dj.client(settings=settings, verbose=0, session=mock.Mock())
    client.session.post.return_value = _ok(hit())
    assert client.search_by_number("trf1", NUMERO).ok
    args, kwargs = client.session.post.call_args
    assert args[0] == "http://localhost:9200/api_publica_trf1/_search"
    assert kwargs["headers"]["Authorization"] == "APIKey da-config"
