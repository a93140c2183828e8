"""Error taxonomy for the churn risk engine."""


class RiskEngineError(Exception):
    """Base class for all engine errors."""


class StoreError(RiskEngineError):
    """A read or write against an external store failed."""


class SubjectNotFoundError(StoreError):
    """No feature signals exist for the requested subject."""

    def __init__(self, subject_id: str):
        self.subject_id = subject_id
        super().__init__(f"No feature signals for subject {subject_id!r}")


class PayloadError(RiskEngineError, ValueError):
    """An alert payload is missing required keys or has invalid values."""


class TemplateError(PayloadError):
    """A notification template could not be rendered from its arguments."""
