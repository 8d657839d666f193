"""
Error taxonomy for VCF ingestion and analysis.

Content problems are reported as ValidationIssue records; exceptions are
reserved for unreadable input (VcfReadError), structural failures the caller
asked to raise (VcfFormatError) and cancellation.
"""

from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class IssueSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class IssueType(str, Enum):
    FORMAT = "format"
    VALIDATION = "validation"
    MISSING_DATA = "missing_data"
    UNSUPPORTED_FEATURE = "unsupported_feature"
    CORRUPTION = "corruption"


class ValidationIssue(BaseModel):
    """A single data-quality finding, optionally tied to a 1-based line number."""
    model_config = ConfigDict(frozen=True)

    type: IssueType
    severity: IssueSeverity
    message: str
    details: Optional[str] = None
    suggestion: Optional[str] = None
    line: Optional[int] = Field(default=None, ge=1)

    @property
    def is_blocking(self) -> bool:
        return self.severity in (IssueSeverity.ERROR, IssueSeverity.CRITICAL)


class PGxError(Exception):
    """Base class for pgxrisk errors."""


class VcfReadError(PGxError):
    """The VCF source could not be read or decoded."""


class VcfFormatError(PGxError):
    """Structural VCF failure; carries every issue found, not only the blocking ones."""

    def __init__(self, errors: Iterable[ValidationIssue], message: Optional[str] = None):
        self.errors: List[ValidationIssue] = list(errors)
        if message is None:
            blocking = [e for e in self.errors if e.is_blocking]
            message = f"VCF validation failed with {len(blocking)} blocking issue(s)"
            if blocking:
                message += f": {blocking[0].message}"
        super().__init__(message)


class AnalysisCancelledError(PGxError):
    """The analysis was cancelled before it started."""
