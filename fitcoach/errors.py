"""
Error types shared by the generation and persistence layers.
"""


class FitcoachError(Exception):
    """Base class for application errors."""


class RemoteGenerationUnavailable(FitcoachError):
    """The language model could not produce a usable plan.

    Covers transport errors, timeouts, non-success responses, missing or
    malformed JSON and shape mismatches. Always recovered by falling back
    to the template generator.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PersistenceFailure(FitcoachError):
    """A generated plan could not be written to the database."""
