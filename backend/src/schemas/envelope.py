"""Response envelope shared by every endpoint."""
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Base for API payloads: camelCase on the wire, snake_case in Python.

    populate_by_name lets cached JSON (dumped without aliases) and request
    bodies in either casing validate.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """``{success, data, message, statusCode, timestamp}``."""

    success: bool = True
    data: T | None = None
    message: str = "Success"
    status_code: int = 200
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def ok(
        cls, data: Any = None, message: str = "Success", status_code: int = 200,
    ) -> "ApiResponse[T]":
        """Successful envelope."""
        return cls(success=True, data=data, message=message, status_code=status_code)

    @classmethod
    def error(
        cls, message: str, status_code: int, data: Any = None,
    ) -> "ApiResponse[Any]":
        """Failure envelope; ``data`` carries the error code and any details."""
        return cls(success=False, data=data, message=message, status_code=status_code)
