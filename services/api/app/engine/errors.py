class LiveClassValidationError(ValueError):
    """Raised when input for a live class or a participant is incomplete."""


class LiveClassNotFound(LookupError):
    """Raised when no live class matches the requested id."""

    def __init__(self, class_id: str) -> None:
        super().__init__(f"Live class '{class_id}' not found")
        self.class_id = class_id
