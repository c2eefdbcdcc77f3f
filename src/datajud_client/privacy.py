"""
Filtro de sigilo (nivelSigilo) dos processos.

Processos com nível de sigilo maior que zero mantêm os dados estruturais
(número, classe, tribunal, datas), mas perdem partes e movimentações.
"""
from dataclasses import replace
from typing import Optional

from .models import ProcessDetails, ProcessRecord

SIGILO_DESCRIPTIONS = {
    0: "Público",
    1: "Segredo de justiça",
    2: "Sigilo de investigação",
    3: "Sigilo de Estado",
}


def apply_privacy_filter(record: ProcessRecord) -> ProcessRecord:
    """Remove partes e movimentações de processos sob sigilo."""
    if record.confidentiality_level == 0:
        return record
    return replace(record, parties=None, movements=None)


def restriction_notice(level: int) -> Optional[str]:
    """Aviso a exibir no lugar dos detalhes de um processo sob sigilo."""
    if level <= 0:
        return None
    descricao = SIGILO_DESCRIPTIONS.get(level, "Restrito")
    return (
        f"Processo com nível de sigilo {level} ({descricao}): "
        "partes e movimentações não podem ser exibidas."
    )


def process_details(record: ProcessRecord) -> ProcessDetails:
    """
    Detalhes de partes e movimentações, verificando o sigilo antes de incluí-los.

    Movimentações são ordenadas da mais recente para a mais antiga.
    """
    notice = restriction_notice(record.confidentiality_level)
    if notice is not None:
        return ProcessDetails(record=apply_privacy_filter(record), restriction_notice=notice)
    movements = None
    if record.movements is not None:
        movements = tuple(sorted(record.movements, key=lambda m: m.date, reverse=True))
    return ProcessDetails(record=record, parties=record.parties or (), movements=movements or ())
