"""
Montagem das queries ElasticSearch enviadas ao Datajud.

Cada tipo de busca gera uma expressão tipada (``Match``, ``Term``, ``Range``,
``Bool``, ``MatchAll``), convertida para dicionário apenas na fronteira HTTP.
"""
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from .config import MAX_PAGE_SIZE
from .exceptions import ValidationError
from .models import SearchFilters, SearchType
from .utils import clean_cnj

NUMBER_FIELD = "numeroProcesso"
CLASS_FIELD = "classe.codigo"
PARTY_FIELD = "partes.nome"
FILING_DATE_FIELD = "dataAjuizamento"
INSTANCE_FIELD = "grau"
SORT_FIELD = "@timestamp"


@dataclass(frozen=True)
class Match:
    field: str
    value: Any

    def to_dict(self) -> dict:
        return {"match": {self.field: self.value}}


@dataclass(frozen=True)
class Term:
    field: str
    value: Any

    def to_dict(self) -> dict:
        return {"term": {self.field: self.value}}


@dataclass(frozen=True)
class Range:
    """Intervalo inclusivo; limites ausentes não aparecem na query."""
    field: str
    gte: Optional[str] = None
    lte: Optional[str] = None

    def to_dict(self) -> dict:
        bounds = {}
        if self.gte is not None:
            bounds["gte"] = self.gte
        if self.lte is not None:
            bounds["lte"] = self.lte
        return {"range": {self.field: bounds}}


@dataclass(frozen=True)
class MatchAll:
    def to_dict(self) -> dict:
        return {"match_all": {}}


Clause = Union[Match, Term, Range, MatchAll]


@dataclass(frozen=True)
class Bool:
    must: Tuple[Clause, ...] = ()
    filter: Tuple[Clause, ...] = ()

    def to_dict(self) -> dict:
        body = {}
        if self.must:
            body["must"] = [c.to_dict() for c in self.must]
        if self.filter:
            body["filter"] = [c.to_dict() for c in self.filter]
        return {"bool": body}


QueryExpression = Union[Match, Term, Range, MatchAll, Bool]


@dataclass(frozen=True)
class SearchQuery:
    """Corpo completo de uma chamada ``_search``."""
    query: QueryExpression
    size: int
    sort: Tuple[str, ...] = (SORT_FIELD,)
    search_after: Optional[Tuple] = None

    def to_body(self) -> dict:
        body = {
            "query": self.query.to_dict(),
            "size": self.size,
            "sort": [{f: {"order": "asc"}} for f in self.sort],
        }
        if self.search_after:
            body["search_after"] = list(self.search_after)
        return body


def clamp_size(size: int) -> int:
    """Limita o tamanho ao máximo aceito pela API."""
    return max(1, min(int(size), MAX_PAGE_SIZE))


def _date_range(filters: SearchFilters) -> Optional[Range]:
    if not filters.date_from and not filters.date_to:
        return None
    return Range(FILING_DATE_FIELD, gte=filters.date_from or None, lte=filters.date_to or None)


def _filter_clauses(filters: SearchFilters) -> Tuple[Clause, ...]:
    clauses = []
    date_range = _date_range(filters)
    if date_range is not None:
        clauses.append(date_range)
    if filters.instance:
        clauses.append(Term(INSTANCE_FIELD, filters.instance))
    return tuple(clauses)


def build(
    search_type: Union[str, SearchType],
    value: str,
    size: int = 10,
    filters: Optional[Union[SearchFilters, dict]] = None,
    search_after: Optional[Tuple] = None,
) -> SearchQuery:
    """
    Traduz (tipo de busca, valor, tamanho, filtros) na query do Datajud.

    - ``number``: remove tudo que não é dígito e busca pelo número.
    - ``class``: exige o código da classe; filtra por data de ajuizamento e grau
      quando informados.
    - ``party``: busca o nome nas partes; filtros não se aplicam.
    - ``date_range``: todos os processos ajuizados entre as datas (inclusivas),
      opcionalmente de um grau.

    O tamanho é limitado ao máximo da API e a ordenação é sempre estável, para
    que a paginação por ``search_after`` seja repetível.
    """
    if isinstance(filters, dict):
        filters = SearchFilters.from_mapping(filters)
    filters = filters or SearchFilters()
    try:
        search_type = SearchType(search_type)
    except ValueError as e:
        raise ValidationError(f"Tipo de busca desconhecido: {search_type!r}.") from e

    if search_type is SearchType.NUMBER:
        query = Match(NUMBER_FIELD, clean_cnj(value))
    elif search_type is SearchType.CLASS:
        query = Bool(must=(Match(CLASS_FIELD, value),), filter=_filter_clauses(filters))
    elif search_type is SearchType.PARTY:
        query = Match(PARTY_FIELD, value)
    else:
        if not filters.date_from or not filters.date_to:
            raise ValidationError("Busca por período exige data inicial e data final.")
        query = Bool(must=(MatchAll(),), filter=_filter_clauses(filters))

    return SearchQuery(query=query, size=clamp_size(size), search_after=search_after)
