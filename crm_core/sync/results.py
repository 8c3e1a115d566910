# =============================================================================
# crm_core/sync/results.py
# Result Container for Mutations
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from crm_core.errors import APIError, CRMError, ValidationError


@dataclass
class MutationResult:
    """
    Outcome of a create/update/delete.

    Mutation helpers never raise for backend or validation failures; they
    return ``MutationResult.fail`` so pages can show a toast and carry on.
    ``error`` is the typed ``CRMError``, so callers can branch on
    ``status_code`` or the error class.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[CRMError] = None
    entity: Optional[str] = None
    field_errors: List[Any] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, entity: Optional[str] = None, data: Any = None) -> MutationResult:
        """Create a successful result"""
        return cls(success=True, data=data, entity=entity)

    @classmethod
    def fail(
        cls,
        error: Union[str, CRMError],
        error_code: str = "UNKNOWN",
        entity: Optional[str] = None,
        field_errors: Optional[List[Any]] = None,
    ) -> MutationResult:
        """Create a failed result; a plain string is wrapped in a ``CRMError``"""
        if not isinstance(error, CRMError):
            error = CRMError(error, code=error_code)
        return cls(
            success=False,
            error=error,
            entity=entity,
            field_errors=list(field_errors or []),
        )

    @classmethod
    def from_exception(cls, e: Exception, entity: Optional[str] = None) -> MutationResult:
        """Create a failed result from an exception"""
        if not isinstance(e, CRMError):
            return cls.fail(str(e), error_code="EXCEPTION", entity=entity)

        if isinstance(e, APIError):
            field_errors = e.field_errors
        elif isinstance(e, ValidationError):
            field_errors = e.errors
        else:
            field_errors = []
        return cls.fail(e, entity=entity, field_errors=field_errors)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status of a backend rejection, None for anything else."""
        return self.error.status_code if isinstance(self.error, APIError) else None

    @property
    def message(self) -> str:
        """Most specific text for a toast: field errors joined, else the error."""
        if self.field_errors:
            return ", ".join(
                str(e.get("message") or e) if isinstance(e, dict) else str(e)
                for e in self.field_errors
            )
        if self.error is None:
            return ""
        return self.error.message or f"Failed to update {self.entity or 'record'}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "entity": self.entity,
            "error": self.error.message if self.error is not None else None,
            "error_code": self.error_code,
            "status_code": self.status_code,
            "field_errors": self.field_errors,
        }
