"""Erros do cliente Datajud e sua representação estruturada."""
from dataclasses import dataclass
from typing import Optional

from .config import RETRYABLE_STATUS_CODES
from .logging_utils import redact_authorization

AUTH = "AUTH"
RATE_LIMIT = "RATE_LIMIT"
VALIDATION = "VALIDATION"
TIMEOUT = "TIMEOUT"
UPSTREAM_ERROR = "UPSTREAM_ERROR"
UNKNOWN = "UNKNOWN"

SUGGESTIONS = {
    AUTH: "Verifique a chave da API do Datajud (variável de ambiente DATAJUD_API_KEY).",
    RATE_LIMIT: "A API do Datajud está limitando as requisições. Aguarde alguns instantes e tente novamente.",
    VALIDATION: "Verifique os parâmetros da consulta (tribunal, número, datas e tamanho).",
    TIMEOUT: "A API do Datajud demorou a responder. Tente novamente ou reduza o tamanho da consulta.",
    UPSTREAM_ERROR: "A API do Datajud está instável. Tente novamente mais tarde.",
    UNKNOWN: "Verifique a chave da API e os parâmetros da consulta.",
}

_BODY_EXCERPT = 200


class DatajudError(Exception):
    """Erro base do cliente Datajud."""
    code = UNKNOWN
    retryable = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(redact_authorization(message))
        self.message = redact_authorization(message)
        self.status_code = status_code

    @property
    def suggestion(self) -> str:
        return SUGGESTIONS.get(self.code, SUGGESTIONS[UNKNOWN])

    def to_info(self) -> "ErrorInfo":
        return ErrorInfo(
            code=self.code,
            message=self.message,
            suggestion=self.suggestion,
            status_code=self.status_code,
        )


class ConfigurationError(DatajudError):
    """Chave da API ausente ou configuração inválida."""
    code = AUTH


class ValidationError(DatajudError):
    """Parâmetros inválidos, detectados localmente ou rejeitados com HTTP 400."""
    code = VALIDATION


class AuthError(DatajudError):
    """Chave da API recusada (HTTP 401/403)."""
    code = AUTH


class DatajudTimeoutError(DatajudError):
    """Tempo limite da requisição excedido."""
    code = TIMEOUT
    retryable = True


class TransportError(DatajudError):
    """Falha de conexão com a API."""
    code = UPSTREAM_ERROR
    retryable = True

    def __init__(self, message: str, unrecoverable: bool = False):
        super().__init__(message)
        self.unrecoverable = unrecoverable
        if unrecoverable:
            self.retryable = False


class TransientUpstreamError(DatajudError):
    """Resposta HTTP passível de nova tentativa (429 ou 5xx configurado)."""
    code = UPSTREAM_ERROR
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code)
        if status_code == 429:
            self.code = RATE_LIMIT


class UnknownUpstreamError(DatajudError):
    """Qualquer outra resposta não-2xx, ou corpo ilegível."""
    code = UPSTREAM_ERROR


class RateLimitExhaustedError(DatajudError):
    """Todas as tentativas falharam com erros transitórios."""

    def __init__(self, attempts: int, last_error: DatajudError):
        super().__init__(
            f"Consulta falhou após {attempts} tentativas: {last_error.message}",
            status_code=last_error.status_code,
        )
        self.attempts = attempts
        self.last_error = last_error
        if isinstance(last_error, DatajudTimeoutError):
            self.code = TIMEOUT
        elif last_error.status_code == 429:
            self.code = RATE_LIMIT
        else:
            self.code = UPSTREAM_ERROR


class SearchCancelledError(DatajudError):
    """A consulta foi cancelada por quem a solicitou."""
    code = UNKNOWN

    @property
    def suggestion(self) -> str:
        return "A consulta foi cancelada antes de terminar."


class SearchFailedError(DatajudError):
    """Levantado por ``SearchOutcome.unwrap()`` quando a consulta falhou."""

    def __init__(self, info: "ErrorInfo"):
        super().__init__(info.message, info.status_code)
        self.code = info.code
        self.info = info

    @property
    def suggestion(self) -> str:
        return self.info.suggestion


@dataclass(frozen=True)
class ErrorInfo:
    """Erro estruturado entregue a quem chama o cliente."""
    code: str
    message: str
    suggestion: str
    status_code: Optional[int] = None

    @classmethod
    def unknown(cls, message: str) -> "ErrorInfo":
        return cls(code=UNKNOWN, message=redact_authorization(message), suggestion=SUGGESTIONS[UNKNOWN])


def error_from_status(status_code: int, body: str = "", retryable_status_codes=RETRYABLE_STATUS_CODES) -> DatajudError:
    """Converte um status HTTP de erro na exceção correspondente."""
    excerpt = redact_authorization((body or "")[:_BODY_EXCERPT])
    if status_code in (401, 403):
        return AuthError(
            "Chave da API do Datajud inválida ou sem autorização.", status_code
        )
    if status_code == 400:
        return ValidationError(f"Consulta inválida: {excerpt}", status_code)
    if status_code == 429:
        return TransientUpstreamError("API do Datajud limitou as requisições (429).", status_code)
    if status_code in retryable_status_codes:
        return TransientUpstreamError(f"Erro {status_code} na API do Datajud.", status_code)
    return UnknownUpstreamError(f"API do Datajud retornou status {status_code}.", status_code)
