"""
Utilitários de log com remoção da chave da API.

Nenhuma mensagem que passe por este pacote deve conter a chave do Datajud.
"""
import logging
import re
from typing import Any, Optional

_API_KEY_PATTERN = re.compile(r"APIKey\s*[:=]?\s*[\w\-+/=]+", re.IGNORECASE)
_AUTH_HEADER_PATTERN = re.compile(r"(Authorization|Bearer|Token)[:\s]+(?!APIKey\b)[\w\-+/=]+", re.IGNORECASE)
_CPF_PATTERN = re.compile(r"\d{3}\.\d{3}\.\d{3}-\d{2}")
_CNPJ_PATTERN = re.compile(r"\d{2}\.\d{3}\.\d{3}/\d{4}-\d{2}")

REDACTED = "[REDACTED]"


def redact_api_key(text: str) -> str:
    """Substitui ``APIKey <chave>`` por ``APIKey [REDACTED]``."""
    return _API_KEY_PATTERN.sub(f"APIKey {REDACTED}", text)


def redact_authorization(text: str) -> str:
    """Remove credenciais de cabeçalhos Authorization, Bearer e Token."""
    text = redact_api_key(text)
    return _AUTH_HEADER_PATTERN.sub(lambda m: f"{m.group(1)} {REDACTED}", text)


def redact_documents(text: str) -> str:
    """Mascara CPFs e CNPJs formatados."""
    text = _CPF_PATTERN.sub("[CPF REDACTED]", text)
    return _CNPJ_PATTERN.sub("[CNPJ REDACTED]", text)


def format_error_for_log(error: Any) -> str:
    """Mensagem de erro segura para log (sem a chave da API)."""
    if isinstance(error, BaseException):
        message = str(error) or error.__class__.__name__
    else:
        message = str(error)
    return redact_authorization(message)


def _redact_value(value):
    if isinstance(value, str):
        return redact_documents(redact_authorization(value))
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_value(v) for v in value]
    return value


def redact_process_for_log(data: dict) -> dict:
    """
    Cópia de um processo bruto própria para log.

    Nomes e documentos das partes são mascarados; CPFs e CNPJs em qualquer
    outro campo também.
    """
    sanitized = dict(data)
    partes = sanitized.get("partes")
    if isinstance(partes, list):
        mascaradas = []
        for parte in partes:
            if isinstance(parte, dict):
                parte = {
                    **parte,
                    "nome": REDACTED,
                    "documento": REDACTED if parte.get("documento") else None,
                }
            mascaradas.append(parte)
        sanitized["partes"] = mascaradas
    return {
        k: (v if k == "partes" else _redact_value(v))
        for k, v in sanitized.items()
    }


class RedactingFilter(logging.Filter):
    """Filtro de logging que remove credenciais da mensagem já formatada."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = redact_authorization(message)
        record.args = None
        return True


def configure_logging(verbose: int = 1, log_path: Optional[str] = None) -> logging.Logger:
    """
    Configura o logger ``datajud_client`` com saída no console e, opcionalmente,
    em arquivo. Todos os handlers recebem o :class:`RedactingFilter`.
    """
    logger = logging.getLogger("datajud_client")
    logger.handlers = []
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s]: %(message)s")
    redacting = RedactingFilter()
    if log_path:
        fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        fh.setFormatter(formatter)
        fh.addFilter(redacting)
        logger.addHandler(fh)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    sh.addFilter(redacting)
    sh.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.addHandler(sh)
    return logger
