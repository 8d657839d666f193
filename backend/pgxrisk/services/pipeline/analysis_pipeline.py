"""
Analysis Pipeline: orchestrates VCF → phenotype → risk → report.

One call runs to completion as a single logical operation: it either raises
before any work is done (cancellation, blocking validation issues) or
returns the full outcome. Partial results are never returned.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Union

from pgxrisk.schemas.pgx_schema import PGxAnalysisResult, transform_to_compliant_json
from pgxrisk.services.explanation.explanation_service import (
    ClinicalExplanation,
    ClinicalMode,
    ExplanationService,
)
from pgxrisk.services.pharmacogenomics.config import PGxConfig, get_config
from pgxrisk.services.pharmacogenomics.models import DrugRiskAssessment
from pgxrisk.services.pharmacogenomics.risk_engine import (
    create_risk_engine,
    gene_for_drug,
    genes_for_drugs,
)
from pgxrisk.services.vcf.cache import ParseCache
from pgxrisk.services.vcf.errors import (
    AnalysisCancelledError,
    IssueSeverity,
    ValidationIssue,
    VcfFormatError,
)
from pgxrisk.services.vcf.parser import ParsedVcf, decode_vcf_content, parse_vcf
from pgxrisk.services.vcf.validator import (
    ValidationReport,
    handle_unsupported_drug,
    validate_and_handle_errors,
)

logger = logging.getLogger(__name__)


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


@dataclass
class AnalysisOutcome:
    assessments: List[DrugRiskAssessment]
    parsed: ParsedVcf
    validation: ValidationReport
    issues: List[ValidationIssue] = field(default_factory=list)
    report: Optional[PGxAnalysisResult] = None
    explanations: List[ClinicalExplanation] = field(default_factory=list)


def _blocks(issue: ValidationIssue, strict: bool) -> bool:
    if issue.severity == IssueSeverity.CRITICAL:
        return True
    return strict and issue.severity == IssueSeverity.ERROR


def _parse_with_cache(
    text: str,
    target_genes: Optional[List[str]],
    cache: Optional[ParseCache],
    config: PGxConfig,
) -> ParsedVcf:
    if cache is None:
        return parse_vcf(text, target_genes=target_genes, config=config)

    key = ParseCache.make_key(text, target_genes)
    parsed = cache.get(key)
    if parsed is None:
        parsed = parse_vcf(text, target_genes=target_genes, config=config)
        cache.put(key, parsed)
    return parsed


def run_analysis_pipeline(
    vcf_content: Union[str, bytes],
    drugs: Sequence[str],
    *,
    patient_id: str = "ANONYMOUS",
    vcf_filename: str = "upload.vcf",
    cache: Optional[ParseCache] = None,
    cancel_event: Optional[CancelToken] = None,
    config: Optional[PGxConfig] = None,
    explanation_mode: Optional[ClinicalMode] = None,
    explainer: Optional[ExplanationService] = None,
) -> AnalysisOutcome:
    """
    Full pipeline: validate → parse → phenotype → risk → report, plus clinical
    explanations when ``explanation_mode`` is given.

    Raises:
        AnalysisCancelledError: ``cancel_event`` was set before the run began.
        VcfReadError: bytes content is not valid UTF-8.
        VcfFormatError: a critical issue was found, or an error-severity issue
            with ``strict_validation`` enabled. Carries every issue found.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError("Analysis cancelled before it started")

    cfg = config or get_config()
    drugs = list(drugs)
    logger.info("Starting analysis pipeline for patient %s, drugs %s", patient_id, ",".join(drugs))
    start_time = time.perf_counter()

    text = decode_vcf_content(vcf_content)

    # ── 1. Validate ──────────────────────────────────────────────────────
    validation = validate_and_handle_errors(text, config=cfg)
    if any(_blocks(i, cfg.strict_validation) for i in validation.errors):
        raise VcfFormatError(validation.errors)

    # ── 2. Parse ─────────────────────────────────────────────────────────
    # Without any supported drug, parse against the full panel so the report still
    # describes the file.
    target_genes = genes_for_drugs(drugs) or None
    parsed = _parse_with_cache(text, target_genes, cache, cfg)

    # ── 3. Classify ──────────────────────────────────────────────────────
    assessments = create_risk_engine(cfg).analyze(parsed.variants, drugs)

    issues: List[ValidationIssue] = list(validation.errors)
    issues.extend(handle_unsupported_drug(d) for d in drugs if gene_for_drug(d) is None)

    # ── 4. Report ────────────────────────────────────────────────────────
    report = transform_to_compliant_json(
        assessments, parsed, patient_id=patient_id, vcf_filename=vcf_filename
    )

    # ── 5. Explain ───────────────────────────────────────────────────────
    explanations: List[ClinicalExplanation] = []
    if explanation_mode is not None:
        explanations = (explainer or ExplanationService()).explain_all(assessments, explanation_mode)

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "Analysis %s finished in %.1f ms: %d assessments, %d issues, %d explanations",
        report.analysis_id, elapsed_ms, len(assessments), len(issues), len(explanations),
    )

    return AnalysisOutcome(
        assessments=assessments,
        parsed=parsed,
        validation=validation,
        issues=issues,
        report=report,
        explanations=explanations,
    )
