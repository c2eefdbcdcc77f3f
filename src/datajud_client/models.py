"""Tipos de dados do cliente Datajud."""
import json
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Tuple

import pandas as pd

from .config import MAX_PAGE_SIZE
from .exceptions import ErrorInfo, SearchFailedError, ValidationError
from .utils import clean_cnj


class SearchType(str, Enum):
    NUMBER = "number"
    CLASS = "class"
    PARTY = "party"
    DATE_RANGE = "date_range"


class CourtCategory(str, Enum):
    SUPERIOR = "superior"
    FEDERAL = "federal"
    STATE = "state"
    LABOR = "labor"
    ELECTORAL = "electoral"
    MILITARY = "military"


class Instance(str, Enum):
    """Grau de jurisdição: primeiro grau, segundo grau e juizado especial."""
    G1 = "G1"
    G2 = "G2"
    JE = "JE"


@dataclass(frozen=True)
class CourtDescriptor:
    alias: str
    name: str
    category: CourtCategory
    jurisdiction: Optional[str] = None

    @property
    def endpoint(self) -> str:
        """Nome do índice na API pública (ex: ``api_publica_tjsp``)."""
        return f"api_publica_{self.alias}"


def _check_date(label: str, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        date.fromisoformat(value[:10])
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Data inválida em {label}: {value!r}. Use o formato AAAA-MM-DD.") from e
    return value


@dataclass(frozen=True)
class SearchFilters:
    """Filtros opcionais: datas de ajuizamento (inclusivas) e grau."""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    instance: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "SearchFilters":
        """Aceita chaves em snake_case ou camelCase (``dateFrom``, ``dateTo``)."""
        data = data or {}
        return cls(
            date_from=data.get("date_from", data.get("dateFrom")),
            date_to=data.get("date_to", data.get("dateTo")),
            instance=data.get("instance"),
        )

    def is_empty(self) -> bool:
        return self.date_from is None and self.date_to is None and self.instance is None

    def validate(self) -> "SearchFilters":
        date_from = _check_date("date_from", self.date_from or None)
        date_to = _check_date("date_to", self.date_to or None)
        if date_from and date_to and date_from[:10] > date_to[:10]:
            raise ValidationError(
                f"Intervalo de datas invertido: {date_from} é posterior a {date_to}."
            )
        instance = self.instance or None
        if instance is not None:
            if isinstance(instance, Instance):
                instance = instance.value
            try:
                instance = Instance(str(instance).upper()).value
            except ValueError as e:
                validos = ", ".join(i.value for i in Instance)
                raise ValidationError(f"Grau inválido: {self.instance!r}. Valores aceitos: {validos}.") from e
        return SearchFilters(date_from=date_from, date_to=date_to, instance=instance)

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class CacheKey:
    """Chave canônica do cache; o TTL é escolhido pelo tipo de busca."""
    search_type: SearchType
    canonical: str


@dataclass(frozen=True)
class SearchRequest:
    court: str
    search_type: SearchType
    value: str = ""
    filters: SearchFilters = field(default_factory=SearchFilters)
    size: int = 10
    search_after: Optional[Tuple] = None

    def normalized(self) -> "SearchRequest":
        """
        Valida a requisição e devolve a forma canônica usada na query e no cache.

        O tamanho acima do máximo da API é reduzido ao máximo; abaixo de 1 é
        rejeitado. Números de processo perdem a pontuação. Buscas por número e
        por parte não aceitam filtros, que são descartados.
        """
        try:
            search_type = SearchType(self.search_type)
        except ValueError as e:
            raise ValidationError(f"Tipo de busca desconhecido: {self.search_type!r}.") from e
        if not self.court or not str(self.court).strip():
            raise ValidationError("Informe o tribunal da consulta.")
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise ValidationError(f"Tamanho inválido: {self.size!r}.")
        if self.size < 1:
            raise ValidationError(f"Tamanho deve ser no mínimo 1 (recebido {self.size}).")
        size = min(self.size, MAX_PAGE_SIZE)

        filters = (self.filters or SearchFilters()).validate()
        value = (self.value or "").strip()
        if search_type is SearchType.DATE_RANGE:
            if not filters.date_from or not filters.date_to:
                raise ValidationError("Busca por período exige data inicial e data final.")
        elif not value:
            raise ValidationError("Informe o valor a ser pesquisado.")
        if search_type is SearchType.NUMBER:
            value = clean_cnj(value)
            if not value:
                raise ValidationError("Número de processo sem dígitos.")
        if search_type in (SearchType.NUMBER, SearchType.PARTY):
            filters = SearchFilters()
        search_after = tuple(self.search_after) if self.search_after else None
        return replace(
            self,
            court=str(self.court).strip(),
            search_type=search_type,
            value=value,
            filters=filters,
            size=size,
            search_after=search_after,
        )

    def cache_key(self) -> CacheKey:
        """Serialização canônica de (tribunal, tipo, valor, tamanho, filtros, cursor)."""
        payload = {
            "court": self.court,
            "type": SearchType(self.search_type).value,
            "value": self.value,
            "size": self.size,
            "filters": self.filters.to_dict(),
        }
        if self.search_after:
            payload["search_after"] = list(self.search_after)
        canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
        return CacheKey(SearchType(self.search_type), canonical)


@dataclass(frozen=True)
class CodeName:
    code: str = ""
    name: str = ""


@dataclass(frozen=True)
class Party:
    role: str = ""
    name: str = ""
    document: Optional[str] = None
    is_lead: bool = False


@dataclass(frozen=True)
class Movement:
    date: str = ""
    code: int = 0
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class ProcessRecord:
    number: str
    process_class: CodeName
    court: str
    instance: str
    filing_date: str
    confidentiality_level: int = 0
    last_update: Optional[str] = None
    judging_body: Optional[CodeName] = None
    subjects: Tuple[CodeName, ...] = ()
    parties: Optional[Tuple[Party, ...]] = None
    movements: Optional[Tuple[Movement, ...]] = None

    @property
    def is_restricted(self) -> bool:
        return self.confidentiality_level > 0

    def to_row(self) -> dict:
        """Linha achatada para exportação em DataFrame."""
        return {
            "numero_processo": self.number,
            "classe_codigo": self.process_class.code,
            "classe_nome": self.process_class.name,
            "tribunal": self.court,
            "grau": self.instance,
            "data_ajuizamento": self.filing_date,
            "nivel_sigilo": self.confidentiality_level,
            "data_ultima_atualizacao": self.last_update,
            "orgao_julgador": self.judging_body.name if self.judging_body else None,
            "assuntos": [s.name for s in self.subjects],
        }


@dataclass(frozen=True)
class SearchResult:
    records: Tuple[ProcessRecord, ...]
    total: int
    next_cursor: Optional[Tuple] = None
    searched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)
    duration: float = field(default=0.0, compare=False)

    @property
    def has_more(self) -> bool:
        return len(self.records) < self.total

    def __len__(self) -> int:
        return len(self.records)

    def to_dataframe(self) -> pd.DataFrame:
        """Uma linha por processo retornado."""
        return pd.DataFrame([r.to_row() for r in self.records])


@dataclass(frozen=True)
class ProcessDetails:
    """Partes e movimentações de um processo, ou o aviso de sigilo."""
    record: ProcessRecord
    parties: Optional[Tuple[Party, ...]] = None
    movements: Optional[Tuple[Movement, ...]] = None
    restriction_notice: Optional[str] = None

    @property
    def restricted(self) -> bool:
        return self.restriction_notice is not None


@dataclass(frozen=True)
class SearchOutcome:
    """Resultado ou erro de uma operação do cliente."""
    ok: bool
    result: Optional[SearchResult] = None
    error: Optional[ErrorInfo] = None
    cached: bool = False

    @classmethod
    def success(cls, result: SearchResult, cached: bool = False) -> "SearchOutcome":
        return cls(ok=True, result=result, cached=cached)

    @classmethod
    def failure(cls, error: ErrorInfo) -> "SearchOutcome":
        return cls(ok=False, error=error)

    def unwrap(self) -> SearchResult:
        if not self.ok:
            raise SearchFailedError(self.error)
        return self.result
