from __future__ import annotations


class DomainError(Exception):
    """Base para erros de dominio."""

    code = "domain_error"


class ConfigurationError(DomainError):
    """Configuracao ausente ou invalida (ex: client id do provedor)."""

    code = "configuration_error"


class InvalidCredentialError(DomainError):
    """JWT malformado, sem claims obrigatorias ou nao vinculado ao fluxo."""

    code = "invalid_credential"


class SaltUnavailableError(DomainError):
    """Servico de salt respondeu com falha."""

    code = "salt_unavailable"


class ProofUnavailableError(DomainError):
    """Servico de prova zk respondeu com falha."""

    code = "proof_unavailable"


class SessionExpiredError(DomainError):
    """Sessao zkLogin expirada ou incompleta."""

    code = "session_expired"


class SessionNotFoundError(DomainError):
    """Nenhuma sessao zkLogin armazenada para o id informado."""

    code = "session_not_found"


class FlowStateError(DomainError):
    """Transicao invalida no fluxo zkLogin."""

    code = "flow_state_error"


class SigningError(DomainError):
    """Nao ha capacidade de assinatura valida para a sessao."""

    code = "signing_error"


class NetworkError(DomainError):
    """Falha transitoria de transporte; pode ser repetida com a mesma chamada."""

    code = "network_error"


class RejectedError(DomainError):
    """A chain rejeitou a chamada (pre-condicao ou execucao)."""

    code = "rejected"

    def __init__(self, reason: str, *, tx_hash: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.tx_hash = tx_hash


class InvalidCallArgumentError(DomainError):
    """Argumentos invalidos para montar a chamada on-chain."""

    code = "invalid_call_argument"


class ObjectNotFoundError(DomainError):
    """Objeto nao encontrado na chain."""

    code = "object_not_found"


class PinningError(DomainError):
    """Falha no servico de pinning (IPFS)."""

    code = "pinning_error"


RETRYABLE_FLOW_FAILURES = frozenset(
    {
        SaltUnavailableError.code,
        ProofUnavailableError.code,
        NetworkError.code,
    }
)
