"""Funções auxiliares para números de processo no padrão CNJ."""
import re

CNJ_DIGITS = 20

_NON_DIGIT = re.compile(r"\D")


def clean_cnj(numero: str) -> str:
    """Remove tudo que não é dígito do número do processo."""
    if numero.isdigit():
        return numero
    return _NON_DIGIT.sub("", numero)


def split_cnj(numero: str) -> dict:
    """Separa o número do processo nos seus segmentos NNNNNNN-DD.AAAA.J.TR.OOOO."""
    numero = clean_cnj(numero)
    dicionario = {
        "num": numero[:7],
        "dv": numero[7:9],
        "ano": numero[9:13],
        "justica": numero[13:14],
        "tribunal": numero[14:16],
        "orgao": numero[16:],
    }
    return dicionario


def format_cnj(numero: str) -> str:
    """Formata o número do processo para o padrão brasileiro.

    Números que não têm 20 dígitos são devolvidos sem alteração.
    """
    if len(clean_cnj(numero)) != CNJ_DIGITS:
        return numero
    p = split_cnj(numero)
    return f"{p['num']}-{p['dv']}.{p['ano']}.{p['justica']}.{p['tribunal']}.{p['orgao']}"


def is_valid_cnj(numero: str) -> bool:
    """Indica se o número, depois de limpo, tem os 20 dígitos do padrão CNJ."""
    return len(clean_cnj(numero)) == CNJ_DIGITS
