"""Error taxonomy for the capture flow."""


class CaptureError(Exception):
    """Base class for capture errors."""


class ExtractionFailure(CaptureError):
    """Extraction or photo processing raised or returned unusable output."""


class ValidationFailure(CaptureError):
    """A required field is present but outside its plausible range."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class PublicationFailure(CaptureError):
    """Publishing a finished capture failed. Surfaces to the approval caller."""


class UnrecognizedInput(CaptureError):
    """Inbound message kind the orchestrator does not handle."""
