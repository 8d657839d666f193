"""
VCF content validator.

Scans raw VCF text and collects ValidationIssue records without raising,
unless the caller asks for a VcfFormatError on blocking issues. Every check
runs on every call; only an empty file short-circuits.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from ..pharmacogenomics.config import PGxConfig, get_config
from .errors import IssueSeverity, IssueType, ValidationIssue, VcfFormatError
from .parser import (
    MANDATORY_COLUMNS,
    MISSING,
    decode_vcf_content,
    iter_numbered_lines,
    parse_position,
    split_columns,
)

logger = logging.getLogger(__name__)

EXPECTED_VERSION_MARKER = "VCFv4."


class ValidationReport(BaseModel):
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    sample_names: List[str] = Field(default_factory=list)
    data_line_count: int = 0
    malformed_line_count: int = 0

    @property
    def blocking_issues(self) -> List[ValidationIssue]:
        return [e for e in self.errors if e.is_blocking]


def _has_pgx_info_tag(info: str) -> bool:
    for token in info.split(";"):
        if "GENE" in token:
            return True
        if "STAR" in token or "ALLELE" in token or "DIPL" in token:
            return True
        if "RSID" in token or token.startswith("RS") or "rs" in token:
            return True
    return False


def validate_and_handle_errors(
    content: Union[str, bytes],
    *,
    raise_on_error: bool = False,
    config: Optional[PGxConfig] = None,
) -> ValidationReport:
    """
    Validate VCF text and return every issue found.

    ``is_valid`` is False iff any issue has severity error or critical. With
    ``raise_on_error=True`` such a report is raised as VcfFormatError carrying
    the full issue list.
    """
    cfg = config or get_config()
    text = decode_vcf_content(content)
    issues: List[ValidationIssue] = []

    if not text.strip():
        issues.append(ValidationIssue(
            type=IssueType.VALIDATION,
            severity=IssueSeverity.CRITICAL,
            message="VCF file is empty",
            suggestion="Upload a valid VCF file with genetic data",
        ))
        return _finish(ValidationReport(is_valid=False, errors=issues), raise_on_error)

    has_fileformat = False
    has_column_header = False
    sample_names: List[str] = []
    data_lines = 0
    malformed = 0
    missing_info_tags = 0

    for line_no, line in iter_numbered_lines(text):
        if not line:
            continue

        if line.startswith("#"):
            if line.startswith("##fileformat="):
                has_fileformat = True
                version = line[len("##fileformat="):]
                if EXPECTED_VERSION_MARKER not in version:
                    issues.append(ValidationIssue(
                        type=IssueType.FORMAT,
                        severity=IssueSeverity.WARNING,
                        message="Unexpected VCF format version",
                        details=f"Found: {version}. Expected: VCFv4.x",
                        suggestion="Ensure VCF file follows VCFv4.x specification",
                        line=line_no,
                    ))
            elif line.startswith("#CHROM"):
                has_column_header = True
                sample_names = split_columns(line[1:])[9:]
            continue

        data_lines += 1
        cols = split_columns(line)
        if len(cols) < MANDATORY_COLUMNS:
            malformed += 1
            issues.append(ValidationIssue(
                type=IssueType.FORMAT,
                severity=IssueSeverity.ERROR,
                message=f"Malformed variant record at line {line_no}",
                details=f"Expected at least {MANDATORY_COLUMNS} columns, got {len(cols)}",
                suggestion="Ensure each variant record has CHROM, POS, ID, REF, ALT, QUAL, FILTER, INFO columns",
                line=line_no,
            ))
            continue

        pos, ref, alt, info = cols[1], cols[3], cols[4], cols[7]

        if parse_position(pos) is None:
            issues.append(ValidationIssue(
                type=IssueType.VALIDATION,
                severity=IssueSeverity.ERROR,
                message=f"Invalid position at line {line_no}",
                details=f'Position must be numeric, got "{pos}"',
                suggestion="Ensure position column contains valid numeric values",
                line=line_no,
            ))

        if not ref or ref == MISSING:
            issues.append(ValidationIssue(
                type=IssueType.VALIDATION,
                severity=IssueSeverity.ERROR,
                message=f"Missing reference allele at line {line_no}",
                details='REF column cannot be empty or "."',
                suggestion="Ensure REF column contains valid nucleotide sequence",
                line=line_no,
            ))

        # Missing ALT can be a deliberate reference-confirmation record.
        if not alt or alt == MISSING:
            issues.append(ValidationIssue(
                type=IssueType.VALIDATION,
                severity=IssueSeverity.WARNING,
                message=f"Missing alternate allele at line {line_no}",
                details='ALT column is empty or "."',
                suggestion="Consider if this is intentional or if variants are missing",
                line=line_no,
            ))

        if info and info != MISSING and not _has_pgx_info_tag(info):
            missing_info_tags += 1
            if missing_info_tags <= cfg.vcf.max_info_tag_warnings:
                issues.append(ValidationIssue(
                    type=IssueType.VALIDATION,
                    severity=IssueSeverity.WARNING,
                    message=f"Missing pharmacogenomic INFO tags at line {line_no}",
                    details="INFO field should include GENE, STAR allele, or RSID annotations for pharmacogenomic analysis",
                    suggestion="Ensure VCF file includes pharmacogenomic annotations in INFO field (GENE, STAR allele, RSID)",
                    line=line_no,
                ))

    if not has_fileformat:
        issues.append(ValidationIssue(
            type=IssueType.FORMAT,
            severity=IssueSeverity.CRITICAL,
            message="Missing mandatory ##fileformat header",
            suggestion="Ensure VCF file includes proper ##fileformat=VCFv4.x header",
        ))

    if not has_column_header:
        issues.append(ValidationIssue(
            type=IssueType.FORMAT,
            severity=IssueSeverity.CRITICAL,
            message="Missing mandatory column header (#CHROM\\tPOS\\tID\\tREF\\tALT\\tQUAL\\tFILTER\\tINFO)",
            suggestion="Ensure VCF file includes proper column header line starting with #CHROM",
        ))

    if data_lines == 0:
        issues.append(ValidationIssue(
            type=IssueType.MISSING_DATA,
            severity=IssueSeverity.WARNING,
            message="No variant records found in VCF file",
            details="File contains headers but no variant data",
            suggestion="Verify the VCF file contains genetic variant data",
        ))

    if malformed > 0:
        percentage = malformed / data_lines * 100
        issues.append(ValidationIssue(
            type=IssueType.FORMAT,
            severity=IssueSeverity.WARNING,
            message=f"{malformed} malformed records found ({percentage:.2f}% of total)",
            details=f"Out of {data_lines} total records",
            suggestion="Review and correct malformed variant records",
        ))

    report = ValidationReport(
        is_valid=not any(i.is_blocking for i in issues),
        errors=issues,
        sample_names=sample_names,
        data_line_count=data_lines,
        malformed_line_count=malformed,
    )
    return _finish(report, raise_on_error)


def _finish(report: ValidationReport, raise_on_error: bool) -> ValidationReport:
    if not report.is_valid:
        logger.warning(
            "VCF validation failed: %d blocking issue(s) of %d",
            len(report.blocking_issues), len(report.errors),
        )
        if raise_on_error:
            raise VcfFormatError(report.errors)
    return report


def format_error_messages(errors: Iterable[ValidationIssue]) -> List[str]:
    """Render issues as '[SEVERITY] message' with an optional 'Details:' line."""
    out: List[str] = []
    for error in errors:
        message = f"[{error.severity.value.upper()}] {error.message}"
        if error.details:
            message = f"{message}\nDetails: {error.details}"
        out.append(message)
    return out


def handle_unsupported_drug(drug_name: str) -> ValidationIssue:
    return ValidationIssue(
        type=IssueType.UNSUPPORTED_FEATURE,
        severity=IssueSeverity.WARNING,
        message=f"Unsupported drug: {drug_name}",
        details="This medication is not currently supported for pharmacogenomic analysis",
        suggestion="Select from the list of supported medications or contact support for additional drug coverage",
    )
