"""
PGxAnalysisResult - the external JSON report.

Internal assessments use 0-100 scores; this schema expresses every ratio
(confidence, annotation rate, completeness) as a float in [0, 1]. The
conversion happens in transform_to_compliant_json and nowhere else.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from pgxrisk.services.pharmacogenomics.models import (
    DrugRiskAssessment,
    GeneDefinition,
    EvidenceSource,
    RiskLevel,
)
from pgxrisk.services.pharmacogenomics.pharmacogenes import gene_for_marker
from pgxrisk.services.vcf.parser import ParsedVcf, VariantRecord

RiskLevelCode = Literal["TOXIC", "INEFFECTIVE", "ADJUST_DOSAGE", "SAFE", "UNKNOWN"]
ZygosityCode = Literal["HOMOZYGOUS", "HETEROZYGOUS", "HEMIZYGOUS", "MISSING"]

EVIDENCE_SOURCE_LABELS = {
    EvidenceSource.CPIC: "CPIC Guideline",
    EvidenceSource.PHARMGKB: "PharmGKB Evidence",
    EvidenceSource.FDA: "FDA Pharmacogenomic Label",
}

_ZYGOSITY_CODES = {
    "Hom-Alt": "HOMOZYGOUS",
    "Hom-Ref": "HOMOZYGOUS",
    "Het": "HETEROZYGOUS",
    "Unknown": "MISSING",
}


class ConfidenceMetrics(BaseModel):
    variant_evidence: float = Field(..., ge=0.0, le=1.0)
    guideline_match: float = Field(..., ge=0.0, le=1.0)
    data_completeness: float = Field(..., ge=0.0, le=1.0)


class QualityMetrics(BaseModel):
    vcf_parse_success: bool
    variants_annotated: int = Field(..., ge=0)
    annotation_rate: float = Field(..., ge=0.0, le=1.0)
    mean_coverage: Optional[str] = None
    genes_detected: List[str] = Field(default_factory=list)
    data_completeness: float = Field(..., ge=0.0, le=1.0)
    confidence_metrics: Optional[ConfidenceMetrics] = None


class DrugPGxResult(BaseModel):
    drug: str = Field(..., min_length=1)
    gene: str = Field(..., min_length=1)
    diplotype: str = Field(..., min_length=1)
    phenotype: str = Field(..., min_length=1)
    risk_level: RiskLevelCode
    confidence: float = Field(..., ge=0.0, le=1.0)
    recommendation: str = Field(..., min_length=1)
    evidence_sources: List[str]
    severity_score: Optional[float] = Field(default=None, ge=1.0, le=10.0)
    cpic_guideline: Optional[str] = None
    fda_label: Optional[str] = None
    variant_impact: Optional[str] = None
    clinical_annotation: Optional[str] = None


class VariantDetail(BaseModel):
    rsid: str
    chromosome: str
    position: str
    gene: str
    reference: str
    alternate: str
    zygosity: ZygosityCode
    genotype: str
    effect: str
    clinical_significance: str
    phenotype_association: str


class PGxAnalysisResult(BaseModel):
    analysis_id: str = Field(..., min_length=1)
    timestamp: str
    patient_id: str = Field(..., min_length=1)
    vcf_file: str = Field(..., min_length=1)
    vcf_version: str = Field(..., min_length=1)
    variants_analyzed: int = Field(..., ge=0)
    pharmacogenomic_results: List[DrugPGxResult]
    quality_metrics: QualityMetrics
    variant_details: Optional[List[VariantDetail]] = None

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        try:
            datetime.fromisoformat(v.replace('Z', '+00:00'))
            return v
        except ValueError:
            raise ValueError("Timestamp must be a valid ISO 8601 string")


# ---------------------------------------------------------------------------
# Transformation
# ---------------------------------------------------------------------------

def risk_level_code(level: RiskLevel) -> str:
    return level.value.upper().replace(" ", "_")


def new_analysis_id(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"PG-{now.year}-{uuid.uuid4().hex[:8].upper()}"


def _ratio(score: float) -> float:
    return round(max(0.0, min(100.0, score)) / 100.0, 3)


def _drug_result(a: DrugRiskAssessment) -> DrugPGxResult:
    return DrugPGxResult(
        drug=a.drug,
        gene=a.gene,
        diplotype=a.diplotype,
        phenotype=a.phenotype.value,
        risk_level=risk_level_code(a.risk_level),
        confidence=_ratio(a.confidence_score),
        recommendation=a.clinical_note,
        evidence_sources=[EVIDENCE_SOURCE_LABELS[s] for s in a.evidence_sources],
        severity_score=a.severity_score,
        cpic_guideline=a.guideline_url,
        fda_label=(
            f"FDA Pharmacogenomic Label for {a.drug}"
            if EvidenceSource.FDA in a.evidence_sources else None
        ),
        variant_impact=(
            f"Impact of {a.gene} variants on {a.drug} metabolism: "
            f"{a.variant_impact_score:.1f}/10"
        ),
        clinical_annotation=a.cpic_recommendation or a.clinical_note,
    )


def _zygosity_code(v: VariantRecord) -> str:
    gt = v.genotype or ""
    if gt and "/" not in gt and "|" not in gt and gt != ".":
        return "HEMIZYGOUS"
    return _ZYGOSITY_CODES.get(v.zygosity, "MISSING")


def _is_annotated(v: VariantRecord) -> bool:
    return v.id not in ("", ".") or bool(v.gene)


def _marker_definition(v: VariantRecord) -> Optional[GeneDefinition]:
    return gene_for_marker(v.id) if v.id not in ("", ".") else None


def _variant_gene(v: VariantRecord) -> Optional[str]:
    definition = _marker_definition(v)
    return v.gene or (definition.symbol if definition else None)


def _genes_detected(variants: Sequence[VariantRecord]) -> List[str]:
    """Distinct genes named or implied by the kept variants, in first-seen order."""
    seen: List[str] = []
    for v in variants:
        gene = _variant_gene(v)
        if gene and gene not in seen:
            seen.append(gene)
    return seen


def _variant_detail(v: VariantRecord) -> VariantDetail:
    definition = _marker_definition(v)
    star = definition.star_allele_for(v.id) if definition else None
    gene = _variant_gene(v) or "Unknown"

    if definition and star:
        significance = f"{definition.symbol}{star} allele marker"
    elif v.info_fields.get("STAR"):
        significance = f"{gene}{v.info_fields['STAR']}"
    else:
        significance = "Not specified"

    if definition is None:
        association = "Not specified"
    elif definition.is_increased_function(v.id):
        association = "Increased function"
    else:
        association = "Reduced function"

    return VariantDetail(
        rsid=v.id if v.id not in ("", ".") else "N/A",
        chromosome=f"chr{v.chromosome}",
        position=str(v.position) if v.position is not None else (v.raw_position or "N/A"),
        gene=gene,
        reference=v.reference_allele or "N/A",
        alternate=v.alternate_allele or "N/A",
        zygosity=_zygosity_code(v),
        genotype=v.genotype or "N/A",
        effect=v.effect,
        clinical_significance=significance,
        phenotype_association=association,
    )


def _mean_coverage(variants: Sequence[VariantRecord]) -> Optional[str]:
    depths: List[int] = []
    for v in variants:
        try:
            depths.append(int(v.info_fields["DP"]))
        except (KeyError, ValueError):
            continue
    if not depths:
        return None
    return f"{sum(depths) / len(depths):.1f}x"


def transform_to_compliant_json(
    assessments: Sequence[DrugRiskAssessment],
    parsed: ParsedVcf,
    patient_id: str = "ANONYMOUS",
    vcf_filename: str = "upload.vcf",
    now: Optional[datetime] = None,
) -> PGxAnalysisResult:
    """Wrap assessments and parse results into a PGxAnalysisResult."""
    now = now or datetime.now(timezone.utc)
    variants = parsed.variants

    annotated = sum(1 for v in variants if _is_annotated(v))
    annotation_rate = round(annotated / len(variants), 3) if variants else 0.0

    supported = [a for a in assessments if a.risk_level is not RiskLevel.UNKNOWN]
    if supported:
        completeness = _ratio(sum(a.data_completeness_score for a in supported) / len(supported))
        primary = supported[0]
        confidence_metrics: Optional[ConfidenceMetrics] = ConfidenceMetrics(
            variant_evidence=_ratio(primary.variant_evidence_score),
            guideline_match=_ratio(primary.guideline_match_score),
            data_completeness=_ratio(primary.data_completeness_score),
        )
    else:
        completeness = 0.0
        confidence_metrics = None

    return PGxAnalysisResult(
        analysis_id=new_analysis_id(now),
        timestamp=now.isoformat(),
        patient_id=patient_id or "ANONYMOUS",
        vcf_file=vcf_filename or "upload.vcf",
        vcf_version=parsed.vcf_version or "unknown",
        variants_analyzed=parsed.variant_count,
        pharmacogenomic_results=[_drug_result(a) for a in assessments],
        quality_metrics=QualityMetrics(
            vcf_parse_success=True,
            variants_annotated=annotated,
            annotation_rate=annotation_rate,
            mean_coverage=_mean_coverage(variants),
            genes_detected=_genes_detected(variants),
            data_completeness=completeness,
            confidence_metrics=confidence_metrics,
        ),
        variant_details=[_variant_detail(v) for v in variants],
    )


def validate_pgx_result(payload: Union[PGxAnalysisResult, Mapping[str, Any]]) -> Tuple[bool, List[str]]:
    """Check a report payload against the schema; returns (is_valid, error messages)."""
    if isinstance(payload, PGxAnalysisResult):
        payload = payload.model_dump()
    try:
        PGxAnalysisResult.model_validate(payload)
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        return False, errors
    return True, []
