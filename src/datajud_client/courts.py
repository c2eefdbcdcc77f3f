"""
Tabela dos tribunais disponíveis na API Pública do Datajud.
"""
from typing import Dict, List, Optional, Tuple, Union

from .exceptions import ValidationError
from .models import CourtCategory, CourtDescriptor
from .utils import clean_cnj, is_valid_cnj, split_cnj

ENDPOINT_PREFIX = "api_publica_"
ALL_CATEGORIES = "all"

# Ordem das unidades da federação no segmento TR do número CNJ
_UFS = [
    "AC", "AL", "AP", "AM", "BA", "CE", "DF", "ES", "GO", "MA", "MT", "MS", "MG", "PA",
    "PB", "PR", "PE", "PI", "RJ", "RN", "RS", "RO", "RR", "SC", "SE", "SP", "TO",
]
UF_CODES = {uf: f"{i:02d}" for i, uf in enumerate(_UFS, start=1)}

_STATE_NAMES = {
    "AC": "do Acre", "AL": "de Alagoas", "AP": "do Amapá", "AM": "do Amazonas",
    "BA": "da Bahia", "CE": "do Ceará", "DF": "do Distrito Federal e Territórios",
    "ES": "do Espírito Santo", "GO": "de Goiás", "MA": "do Maranhão",
    "MT": "de Mato Grosso", "MS": "de Mato Grosso do Sul", "MG": "de Minas Gerais",
    "PA": "do Pará", "PB": "da Paraíba", "PR": "do Paraná", "PE": "de Pernambuco",
    "PI": "do Piauí", "RJ": "do Rio de Janeiro", "RN": "do Rio Grande do Norte",
    "RS": "do Rio Grande do Sul", "RO": "de Rondônia", "RR": "de Roraima",
    "SC": "de Santa Catarina", "SE": "de Sergipe", "SP": "de São Paulo",
    "TO": "do Tocantins",
}

_TRT_SEDES = [
    "RJ", "SP", "MG", "RS", "BA", "PE", "CE", "PA", "PR", "DF", "AM", "SC",
    "PB", "RO", "SP", "MA", "ES", "GO", "AL", "SE", "RN", "PI", "MT", "MS",
]
_TRF_SEDES = ["DF", "RJ", "SP", "RS", "PE", "MG"]


def _build_courts() -> List[Tuple[CourtDescriptor, Optional[Tuple[str, str]]]]:
    """Monta a tabela (descritor, (justiça, tribunal)) de todos os tribunais."""
    courts = [
        # Tribunais Superiores
        (CourtDescriptor("stj", "Superior Tribunal de Justiça", CourtCategory.SUPERIOR), ("3", "00")),
        (CourtDescriptor("tst", "Tribunal Superior do Trabalho", CourtCategory.SUPERIOR), ("5", "00")),
        (CourtDescriptor("tse", "Tribunal Superior Eleitoral", CourtCategory.SUPERIOR), ("6", "00")),
        (CourtDescriptor("stm", "Superior Tribunal Militar", CourtCategory.SUPERIOR), None),
    ]
    # Justiça Federal
    for i, uf in enumerate(_TRF_SEDES, start=1):
        courts.append((
            CourtDescriptor(f"trf{i}", f"Tribunal Regional Federal da {i}ª Região", CourtCategory.FEDERAL, uf),
            ("4", f"{i:02d}"),
        ))
    # Justiça Estadual
    for uf in _UFS:
        alias = "tjdft" if uf == "DF" else f"tj{uf.lower()}"
        courts.append((
            CourtDescriptor(alias, f"Tribunal de Justiça {_STATE_NAMES[uf]}", CourtCategory.STATE, uf),
            ("8", UF_CODES[uf]),
        ))
    # Justiça do Trabalho
    for i, uf in enumerate(_TRT_SEDES, start=1):
        courts.append((
            CourtDescriptor(f"trt{i}", f"Tribunal Regional do Trabalho da {i}ª Região", CourtCategory.LABOR, uf),
            ("5", f"{i:02d}"),
        ))
    # Justiça Eleitoral
    for uf in _UFS:
        alias = "tre-dft" if uf == "DF" else f"tre-{uf.lower()}"
        courts.append((
            CourtDescriptor(alias, f"Tribunal Regional Eleitoral {_STATE_NAMES[uf]}", CourtCategory.ELECTORAL, uf),
            ("6", UF_CODES[uf]),
        ))
    # Justiça Militar Estadual
    for uf in ("MG", "RS", "SP"):
        courts.append((
            CourtDescriptor(f"tjm{uf.lower()}", f"Tribunal de Justiça Militar {_STATE_NAMES[uf]}",
                            CourtCategory.MILITARY, uf),
            ("9", UF_CODES[uf]),
        ))
    return courts


class CourtRegistry:
    """Consulta à tabela fixa de tribunais. Não tem efeitos colaterais."""

    def __init__(self, courts=None):
        table = _build_courts() if courts is None else courts
        self._by_alias: Dict[str, CourtDescriptor] = {}
        self._by_code: Dict[Tuple[str, str], str] = {}
        for descriptor, code in table:
            self._by_alias[descriptor.alias] = descriptor
            if code is not None:
                self._by_code[code] = descriptor.alias

    @staticmethod
    def normalize_alias(alias: str) -> str:
        """Aceita ``tjsp``, ``TJSP``, ``api_publica_tjsp`` ou ``tre_sp``."""
        alias = str(alias).strip().lower()
        if alias.startswith(ENDPOINT_PREFIX):
            alias = alias[len(ENDPOINT_PREFIX):]
        return alias.replace("_", "-")

    def resolve(self, alias: str) -> CourtDescriptor:
        """Retorna o descritor do tribunal ou levanta ``ValidationError``."""
        key = self.normalize_alias(alias) if alias else ""
        try:
            return self._by_alias[key]
        except KeyError:
            raise ValidationError(
                f"Tribunal desconhecido: {alias!r}. Use list_courts() para ver os tribunais disponíveis."
            ) from None

    def resolve_from_number(self, numero: str) -> CourtDescriptor:
        """Deduz o tribunal a partir dos segmentos J.TR do número CNJ."""
        if not is_valid_cnj(numero):
            raise ValidationError(
                f"Número de processo inválido: esperados 20 dígitos, recebidos {len(clean_cnj(numero))}."
            )
        partes = split_cnj(numero)
        justica, tribunal = partes["justica"], partes["tribunal"]
        if justica == "7":
            return self._by_alias["stm"]
        alias = self._by_code.get((justica, tribunal))
        if alias is None:
            raise ValidationError(
                f"Não foi possível mapear tribunal para justiça {justica} e tribunal {tribunal}."
            )
        return self._by_alias[alias]

    def list(self, category: Optional[Union[str, CourtCategory]] = None) -> List[CourtDescriptor]:
        """Lista os tribunais, opcionalmente de uma só categoria."""
        if category is None or category == ALL_CATEGORIES:
            return list(self._by_alias.values())
        try:
            category = CourtCategory(category)
        except ValueError:
            validas = ", ".join(c.value for c in CourtCategory)
            raise ValidationError(f"Categoria inválida: {category!r}. Valores aceitos: {validas}, all.") from None
        return [c for c in self._by_alias.values() if c.category is category]

    def __contains__(self, alias) -> bool:
        return self.normalize_alias(alias) in self._by_alias

    def __len__(self) -> int:
        return len(self._by_alias)


default_registry = CourtRegistry()
