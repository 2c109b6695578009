"""Exceptions raised by the harness and its collaborator boundaries."""

from enum import Enum


class HarnessError(Exception):
    """Base class for every harness failure."""


class ChainNotReadyError(HarnessError):
    """Raised when a chain never reports a produced block within the poll budget."""


class RelayerNotReadyError(HarnessError):
    """Raised when the relayer never becomes healthy within the poll budget."""


class ProtocolViolationError(HarnessError):
    """Raised when an acknowledgement is not exactly one of result/error. Always fatal."""


class ChannelHandshakeError(HarnessError):
    """Raised when a channel handshake keeps failing after every retry."""


class ContractError(HarnessError):
    """Raised when the chain client fails to upload, instantiate, execute or query."""

    def __init__(self, target: str, message: str):
        super().__init__(f"{target}: {message}")
        self.target = target
        self.message = message


class BootstrapError(HarnessError):
    """Raised when the OS bootstrap fails on a chain. Nothing is persisted."""

    def __init__(self, chain_id: str, cause: Exception):
        super().__init__(f"Bootstrap failed on {chain_id}: {cause}")
        self.chain_id = chain_id
        self.cause = cause


class RelayErrorKind(Enum):
    INCORRECT_ACCOUNT_SEQUENCE = "incorrect account sequence"
    HEIGHT_ORDERING = "can't be greater than max height"
    OTHER = "other"

    @property
    def is_transient(self) -> bool:
        return self is not RelayErrorKind.OTHER


def classify_relay_error(message: str) -> RelayErrorKind:
    """Map relayer error text onto a kind. Only called at the relayer boundary."""
    for kind in (RelayErrorKind.INCORRECT_ACCOUNT_SEQUENCE, RelayErrorKind.HEIGHT_ORDERING):
        if kind.value in message:
            return kind
    return RelayErrorKind.OTHER


class RelayError(HarnessError):
    """Raised by a relayer when a relay, connection or handshake command fails."""

    def __init__(self, kind: RelayErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @classmethod
    def from_message(cls, message: str) -> "RelayError":
        return cls(classify_relay_error(message), message)
