from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base for failures of the story ingestion pipeline.

    `code` and `retryable` are what the HTTP boundary exposes; the message
    stays server-side.
    """

    code = "internal_error"
    retryable = False


class IdentityConflict(PipelineError):
    """Lost a uniqueness race while creating or promoting a user.

    Handled inside the identity resolver, which re-reads the winning row.
    """

    code = "identity_conflict"
    retryable = True


class IdentityFailure(PipelineError):
    code = "identity_failed"
    retryable = True


class DerivationFailure(PipelineError):
    """One of the embedding / timeline / title legs failed or timed out.

    Nothing has been written yet, so retrying the whole request is safe.
    """

    code = "derivation_failed"
    retryable = True

    def __init__(self, leg: Optional[str], reason: str):
        self.leg = leg
        self.reason = reason
        super().__init__(f"{leg or 'derivation'}: {reason}")


class PersistenceFailure(PipelineError):
    """The story write failed. The row may or may not exist, so no blind retry."""

    code = "persistence_failed"
    retryable = False
