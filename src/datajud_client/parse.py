"""
Normalização das respostas do Datajud em :class:`ProcessRecord`.

A API não tem contrato rígido: o envelope pode vir na raiz ou sob uma chave
de namespace, e alguns campos mudam de nome entre tribunais. Campos ausentes
viram string vazia ou zero em vez de erro.
"""
import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union

from .exceptions import UnknownUpstreamError
from .logging_utils import redact_process_for_log
from .models import CodeName, Instance, Movement, Party, ProcessRecord, SearchResult

logger = logging.getLogger(__name__)

NAMESPACE_KEYS = ("data", "result", "response")


class EnvelopeShape(Enum):
    STANDARD = "standard"
    NAMESPACED = "namespaced"
    EMPTY = "empty"


@dataclass(frozen=True)
class Envelope:
    shape: EnvelopeShape
    total: int
    hits: List[dict]


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _confidentiality(value: Any) -> int:
    """
    Nível de sigilo do processo. Valores presentes mas ilegíveis ou negativos
    contam como sigilosos (nível 1), nunca como públicos.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    try:
        level = math.ceil(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.warning("nivelSigilo ilegível (%r); processo tratado como sigiloso", value)
        return 1
    if level < 0:
        logger.warning("nivelSigilo negativo (%r); processo tratado como sigiloso", value)
        return 1
    return level


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _first(source: dict, *keys: str) -> Any:
    for key in keys:
        value = source.get(key)
        if value not in (None, "", []):
            return value
    return None


def _read_hits(hits: Any) -> Optional[Tuple[int, List[dict]]]:
    if not isinstance(hits, dict):
        return None
    items = hits.get("hits")
    items = [h for h in items if isinstance(h, dict)] if isinstance(items, list) else []
    total = hits.get("total")
    if isinstance(total, dict):
        total = total.get("value")
    total = _as_int(total, default=len(items))
    return total, items


def _standard(body: dict) -> Optional[Tuple[int, List[dict]]]:
    return _read_hits(body.get("hits"))


def _namespaced(body: dict) -> Optional[Tuple[int, List[dict]]]:
    for key in NAMESPACE_KEYS:
        inner = body.get(key)
        if isinstance(inner, dict):
            found = _read_hits(inner.get("hits"))
            if found is not None:
                return found
    return None


_STRATEGIES: List[Tuple[EnvelopeShape, Callable[[dict], Optional[Tuple[int, List[dict]]]]]] = [
    (EnvelopeShape.STANDARD, _standard),
    (EnvelopeShape.NAMESPACED, _namespaced),
]


def read_envelope(body: Any) -> Envelope:
    """Tenta cada formato de envelope conhecido, na ordem."""
    if isinstance(body, dict):
        for shape, strategy in _STRATEGIES:
            found = strategy(body)
            if found is not None:
                total, hits = found
                return Envelope(shape, total, hits)
    logger.warning("Resposta do Datajud sem envelope de resultados reconhecível")
    return Envelope(EnvelopeShape.EMPTY, 0, [])


def _code_name(data: Any) -> CodeName:
    if not isinstance(data, dict):
        return CodeName()
    return CodeName(code=_as_str(data.get("codigo")), name=_as_str(data.get("nome")))


def _subjects(data: Any) -> Tuple[CodeName, ...]:
    if not isinstance(data, list):
        return ()
    subjects = []
    for item in data:
        # alguns tribunais aninham os assuntos em listas
        items = item if isinstance(item, list) else [item]
        subjects.extend(_code_name(s) for s in items if isinstance(s, dict))
    return tuple(subjects)


def _parties(data: Any) -> Optional[Tuple[Party, ...]]:
    if not isinstance(data, list):
        return None
    parties = []
    for index, p in enumerate(d for d in data if isinstance(d, dict)):
        parties.append(Party(
            role=_as_str(_first(p, "tipo", "polo")),
            name=_as_str(p.get("nome")),
            document=p.get("documento") or None,
            is_lead=index == 0,
        ))
    return tuple(parties)


def _movement_description(m: dict) -> str:
    description = _first(m, "descricaoMovimento", "complemento")
    if description:
        return _as_str(description)
    complementos = m.get("complementosTabelados")
    if isinstance(complementos, list):
        partes = []
        for c in complementos:
            if isinstance(c, dict):
                nome = _as_str(c.get("nome"))
                descricao = _as_str(_first(c, "descricao", "valor"))
                partes.append(f"{descricao}: {nome}" if descricao and nome else nome or descricao)
        return "; ".join(p for p in partes if p)
    return ""


def _movements(data: Any) -> Optional[Tuple[Movement, ...]]:
    if not isinstance(data, list):
        return None
    return tuple(
        Movement(
            date=_as_str(_first(m, "dataHora", "dataMovimentacao")),
            code=_as_int(_first(m, "codigo", "codigoTipoMovimento")),
            name=_as_str(_first(m, "nome", "tipoMovimento")),
            description=_movement_description(m),
        )
        for m in data
        if isinstance(m, dict)
    )


def _instance(value: Any) -> str:
    if not value:
        return Instance.G1.value
    value = _as_str(value).upper()
    if value not in Instance.__members__:
        logger.debug("Grau fora da tabela conhecida: %s", value)
    return value


def parse_hit(hit: dict, court: str = "") -> ProcessRecord:
    """Converte um hit do ElasticSearch em :class:`ProcessRecord`."""
    source = hit.get("_source")
    if not isinstance(source, dict):
        source = hit
    orgao = source.get("orgaoJulgador")
    return ProcessRecord(
        number=_as_str(source.get("numeroProcesso")),
        process_class=_code_name(source.get("classe")),
        court=_as_str(source.get("tribunal")) or court.upper(),
        instance=_instance(source.get("grau")),
        filing_date=_as_str(source.get("dataAjuizamento")),
        confidentiality_level=_confidentiality(source.get("nivelSigilo")),
        last_update=_as_str(_first(source, "dataHoraUltimaAtualizacao", "dataUltimaAtualizacao")) or None,
        judging_body=_code_name(orgao) if isinstance(orgao, dict) else None,
        subjects=_subjects(source.get("assuntos", source.get("temas"))),
        parties=_parties(source.get("partes")),
        movements=_movements(source.get("movimentos", source.get("movimentacoes"))),
    )


def parse(raw_body: Union[str, bytes, dict], requested_size: int, court: str = "", duration: float = 0.0) -> SearchResult:
    """
    Converte o corpo da resposta em :class:`SearchResult`.

    ``has_more`` indica que o total informado pela API excede o número de
    processos retornados. O cursor da próxima página é o ``sort`` do último hit.
    """
    if isinstance(raw_body, (str, bytes)):
        try:
            body = json.loads(raw_body) if raw_body else {}
        except ValueError as e:
            raise UnknownUpstreamError("Resposta do Datajud não é um JSON válido.") from e
    else:
        body = raw_body
    envelope = read_envelope(body)
    hits = envelope.hits[:requested_size]
    if hits and logger.isEnabledFor(logging.DEBUG):
        first = hits[0].get("_source")
        logger.debug("Primeiro processo da página: %s", redact_process_for_log(first if isinstance(first, dict) else hits[0]))
    records = tuple(parse_hit(h, court) for h in hits)
    next_cursor = None
    if hits:
        sort_values = hits[-1].get("sort")
        if isinstance(sort_values, list) and sort_values:
            next_cursor = tuple(sort_values)
    return SearchResult(
        records=records,
        total=max(envelope.total, len(records)),
        next_cursor=next_cursor,
        duration=duration,
    )
