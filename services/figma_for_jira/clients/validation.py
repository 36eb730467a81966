"""Shape validation for JSON received from Figma and Jira.

Clients take a ``ResponseValidator`` so tests (or a stricter deployment) can
swap the step. The default validates with pydantic and raises
``UnexpectedResponseError`` carrying the structured errors.
"""

from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")

ResponseValidator = Callable[[type[Any], Any], Any]


class UnexpectedResponseError(Exception):
    """A remote service answered with a payload that does not match its declared shape."""

    def __init__(self, shape: str, errors: list[dict[str, Any]]) -> None:
        self.shape = shape
        self.errors = errors
        super().__init__(f"Unexpected response shape for {shape}: {len(errors)} error(s)")


def validate_response(shape: type[T], data: Any) -> T:
    try:
        return TypeAdapter(shape).validate_python(data)
    except ValidationError as e:
        raise UnexpectedResponseError(
            getattr(shape, "__name__", str(shape)), e.errors(include_url=False)
        ) from e
