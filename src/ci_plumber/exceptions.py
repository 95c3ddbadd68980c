class UnrecoverableError(ValueError):
    """Base class for all unrecoverable errors in the pipeline options schema."""

    pass


class MalformedDuration(UnrecoverableError):
    """Raised when a duration is neither integer nanoseconds nor a duration string."""

    def __init__(self, raw, reason: str = "invalid duration"):
        self.raw = raw
        self.reason = reason
        super().__init__(f"malformed duration {raw!r}: {reason}")


class MalformedDocument(UnrecoverableError):
    """Raised when a document does not parse into the expected shape."""

    pass


class InvalidDecorationConfig(UnrecoverableError):
    """Raised by opt-in validators when a decoration config is unusable."""

    pass
