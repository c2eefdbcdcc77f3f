"""Testes para a tabela de tribunais."""
import pytest

from datajud_client.courts import CourtRegistry, default_registry
from datajud_client.exceptions import ValidationError
from datajud_client.models import CourtCategory


@pytest.mark.parametrize("alias", ["tjsp", "TJSP", " tjsp ", "api_publica_tjsp"])
def test_resolve_aceita_variacoes_de_alias(alias):
    court = default_registry.resolve(alias)
    assert court.alias == "tjsp"
    assert court.category is CourtCategory.STATE
    assert court.endpoint == "api_publica_tjsp"


def test_resolve_tribunal_eleitoral_com_underscore():
    assert default_registry.resolve("tre_sp").alias == "tre-sp"


def test_resolve_desconhecido_levanta_validation_error():
    with pytest.raises(ValidationError) as exc_info:
        default_registry.resolve("tjxx")
    assert exc_info.value.code == "VALIDATION"


def test_list_por_categoria():
    assert len(default_registry.list("federal")) == 6
    assert len(default_registry.list(CourtCategory.LABOR)) == 24
    assert len(default_registry.list("state")) == 27
    assert len(default_registry.list("electoral")) == 27
    assert {c.alias for c in default_registry.list("superior")} == {"stj", "tst", "tse", "stm"}


def test_list_sem_categoria_ou_all_retorna_todos():
    todos = default_registry.list()
    assert len(todos) == len(default_registry)
    assert default_registry.list("all") == todos


def test_list_categoria_invalida():
    with pytest.raises(ValidationError):
        default_registry.list("internacional")


@pytest.mark.parametrize(
    "numero, alias",
    [
        ("1000000-00.2024.8.26.0100", "tjsp"),
        ("0000832-35.2018.4.01.3202", "trf1"),
        ("0000001-00.2020.5.02.0001", "trt2"),
        ("0000001-00.2020.8.07.0001", "tjdft"),
        ("0000001-00.2020.6.26.0001", "tre-sp"),
        ("0000001-00.2020.7.00.0001", "stm"),
    ],
)
def test_resolve_from_number(numero, alias):
    assert default_registry.resolve_from_number(numero).alias == alias


def test_resolve_from_number_invalido():
    with pytest.raises(ValidationError):
        default_registry.resolve_from_number("12345")


def test_contains():
    registry = CourtRegistry()
    assert "TJRS" in registry
    assert "xpto" not in registry
