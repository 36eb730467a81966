"""Domain errors that the HTTP layer maps to client-facing statuses."""


class InvalidInputError(ValueError):
    """Caller-supplied data could not be interpreted."""


class NotFoundError(Exception):
    """An entity the caller explicitly asked for does not exist."""

    entity = "Entity"

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"{self.entity} not found: {key}")


class FigmaTeamNotFoundError(NotFoundError):
    entity = "Figma team"


class FigmaDesignNotFoundError(NotFoundError):
    entity = "Figma design"


class PermissionDeniedError(Exception):
    """The acting user is not allowed to perform the operation."""
