from .models import OutcomeKind


class ParseError(ValueError):
    """The court's result page did not have the expected shape."""


class FetchFailure(Exception):
    """A live fetch step failed; ``kind`` is the OutcomeKind to report."""

    def __init__(self, kind, message, detail=None):
        super().__init__(message)
        self.kind = OutcomeKind(kind)
        self.message = message
        self.detail = detail
