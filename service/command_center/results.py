from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"


@dataclass(frozen=True)
class AdapterResult(Generic[T]):
    """Outcome of one adapter operation: a payload or a short failure reason."""
    success: bool
    payload: Optional[T] = None
    reason: Optional[str] = None
    kind: Optional[FailureKind] = None

    @classmethod
    def ok(cls, payload: T = None) -> "AdapterResult[T]":
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, reason: str, kind: FailureKind = FailureKind.UPSTREAM) -> "AdapterResult[T]":
        return cls(success=False, reason=reason, kind=kind)

    @classmethod
    def not_configured(cls, setting: str) -> "AdapterResult[T]":
        return cls.fail(f"{setting} not configured", FailureKind.CONFIGURATION)

    @classmethod
    def not_found(cls, reason: str) -> "AdapterResult[T]":
        return cls.fail(reason, FailureKind.NOT_FOUND)

    @property
    def is_not_found(self) -> bool:
        return self.kind == FailureKind.NOT_FOUND

    @property
    def is_not_configured(self) -> bool:
        return self.kind == FailureKind.CONFIGURATION
