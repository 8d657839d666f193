"""VCF ingestion: parsing, validation and the parse cache."""

from .errors import (
    AnalysisCancelledError,
    IssueSeverity,
    IssueType,
    PGxError,
    ValidationIssue,
    VcfFormatError,
    VcfReadError,
)
from .parser import ParsedVcf, VariantRecord, parse_vcf, read_vcf_file
from .validator import (
    ValidationReport,
    format_error_messages,
    handle_unsupported_drug,
    validate_and_handle_errors,
)
from .cache import ParseCache

__all__ = [
    'AnalysisCancelledError',
    'IssueSeverity',
    'IssueType',
    'PGxError',
    'ValidationIssue',
    'VcfFormatError',
    'VcfReadError',
    'ParsedVcf',
    'VariantRecord',
    'parse_vcf',
    'read_vcf_file',
    'ValidationReport',
    'format_error_messages',
    'handle_unsupported_drug',
    'validate_and_handle_errors',
    'ParseCache',
]
