"""Definition of exceptions raised by the consensus pipeline."""
from __future__ import annotations


class ConsensusIDError(Exception):
    """Base class for errors caused by the input or configuration of a consensus run."""

    def __init__(self, message: str = "consensus identification failed") -> None:
        """Initialize the ConsensusIDError.

        Args:
            message: Exception message.
        """
        self.message = message
        super().__init__(self.message)


class IncompatibleInputError(ConsensusIDError, ValueError):
    """Input records cannot be processed, e.g. an identification without RT or m/z."""

    def __init__(self, message: str = "incompatible input data") -> None:
        super().__init__(message)


class InvalidConfigurationError(ConsensusIDError, ValueError):
    """Parameters are out of range or do not match the score types of the input."""

    def __init__(self, message: str = "invalid configuration") -> None:
        super().__init__(message)
