"""
Clinical explanations for drug risk assessments.

Explanations are rendered from (gene, drug) templates in one of two registers:
doctor mode uses clinical terminology, patient mode plain language. Output is
deterministic for a given assessment, so results are memoised in an
ExplanationCache that the caller injects.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from pgxrisk.core.cache import BoundedCache
from pgxrisk.services.explanation.prompt_builder import build_prompt
from pgxrisk.services.explanation.templates import get_template
from pgxrisk.services.pharmacogenomics.cpic_guidelines import get_cpic_guideline
from pgxrisk.services.pharmacogenomics.models import (
    DrugRiskAssessment,
    EvidenceSource,
    Phenotype,
    RiskLevel,
)
from pgxrisk.services.pharmacogenomics.pharmacogenes import get_gene_definition
from pgxrisk.services.pharmacogenomics.phenotype_mapper import phenotype_long_name

logger = logging.getLogger(__name__)

FDA_ASSOCIATIONS_URL = "https://www.fda.gov/medical-devices/precision-medicine/table-pharmacogenetic-associations"


class ClinicalMode(str, Enum):
    """Audience of an explanation."""
    DOCTOR = "doctor"
    PATIENT = "patient"


class ClinicalExplanation(BaseModel):
    """Narrative interpretation of one DrugRiskAssessment."""
    model_config = ConfigDict(frozen=True)

    drug: str
    gene: str
    diplotype: str
    phenotype: Phenotype
    mode: ClinicalMode
    explanation: str
    confidence: float = Field(..., ge=0.0, le=100.0, description="Confidence score of the assessment")
    supporting_evidence: Tuple[str, ...] = ()
    clinical_relevance: str
    dosing_implications: str
    safety_considerations: str
    biological_mechanism: str
    variant_citations: Tuple[str, ...] = ()
    risk_interpretation: str
    therapeutic_implications: str
    population_specific_notes: Optional[str] = None
    additional_resources: Tuple[str, ...] = ()
    prompt: str = Field(..., description="Structured prompt carrying the grounded facts")


class ExplanationCache(BoundedCache[ClinicalExplanation]):
    """Explanations keyed by every assessment field the narrative depends on."""

    name = "Explanation cache"

    @staticmethod
    def make_key(assessment: DrugRiskAssessment, mode: ClinicalMode) -> str:
        parts = (
            assessment.drug,
            assessment.gene,
            assessment.diplotype,
            assessment.phenotype.value,
            assessment.risk_level.value,
            f"{assessment.confidence_score:.1f}",
            ",".join(sorted(assessment.detected_variants)),
            mode.value,
        )
        return ":".join(parts).lower()


# Function class implied by each phenotype, for the risk interpretation.
_FUNCTION_CLASS = {
    Phenotype.PM: "reduced function",
    Phenotype.IM: "intermediate function",
    Phenotype.NM: "normal function",
    Phenotype.RM: "increased function",
    Phenotype.UM: "increased function",
}

_DOCTOR_RELEVANCE = {
    RiskLevel.TOXIC: "High clinical significance - avoid or replace due to toxicity risk",
    RiskLevel.INEFFECTIVE: "High clinical significance - alternative therapy recommended",
    RiskLevel.ADJUST_DOSAGE: "High clinical significance - dosing adjustment required",
    RiskLevel.SAFE: "Routine clinical significance - standard dosing supported",
    RiskLevel.UNKNOWN: "No pharmacogenomic guidance available for this drug",
}

_PATIENT_RELEVANCE = {
    RiskLevel.TOXIC: "Important for medication safety: this medicine may cause serious side effects",
    RiskLevel.INEFFECTIVE: "Important for treatment: this medicine may not work well for you",
    RiskLevel.ADJUST_DOSAGE: "Important for medication safety and effectiveness: your dose may need adjustment",
    RiskLevel.SAFE: "Your genes do not suggest a change to usual treatment",
    RiskLevel.UNKNOWN: "There is no genetic guidance for this medicine yet",
}


def _supporting_evidence(assessment: DrugRiskAssessment, doctor: bool) -> Tuple[str, ...]:
    sources = assessment.evidence_sources
    items: List[str] = []
    if EvidenceSource.CPIC in sources:
        items.append(f"CPIC Guideline for {assessment.gene}" if doctor else "CPIC Guideline")
    if EvidenceSource.PHARMGKB in sources:
        if doctor:
            level = assessment.evidence_strength.value if assessment.evidence_strength else "unrated"
            items.append(f"PharmGKB Evidence Level {level} for {assessment.drug}")
        else:
            items.append("PharmGKB Research")
    if EvidenceSource.FDA in sources:
        items.append(f"FDA Labeling for {assessment.drug}" if doctor else "FDA Information")
    return tuple(items)


def _cpic_url(assessment: DrugRiskAssessment) -> str:
    if assessment.guideline_url:
        return assessment.guideline_url
    return (
        f"https://cpicpgx.org/guidelines/guideline-for-{assessment.drug.lower()}"
        f"-and-{assessment.gene.lower()}/"
    )


class ExplanationService:
    """Renders and memoises clinical explanations."""

    def __init__(self, cache: Optional[ExplanationCache] = None):
        self.cache = cache

    def explain(
        self, assessment: DrugRiskAssessment, mode: ClinicalMode = ClinicalMode.DOCTOR
    ) -> ClinicalExplanation:
        if self.cache is None:
            return self._render(assessment, mode)

        key = ExplanationCache.make_key(assessment, mode)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Using cached %s explanation for %s/%s", mode.value, assessment.gene, assessment.drug)
            return cached

        explanation = self._render(assessment, mode)
        self.cache.put(key, explanation)
        return explanation

    def explain_all(
        self, assessments: Iterable[DrugRiskAssessment], mode: ClinicalMode = ClinicalMode.DOCTOR
    ) -> List[ClinicalExplanation]:
        """Explanations for the supported drugs; Unknown assessments are skipped."""
        return [
            self.explain(a, mode) for a in assessments
            if a.risk_level is not RiskLevel.UNKNOWN
        ]

    def _render(self, assessment: DrugRiskAssessment, mode: ClinicalMode) -> ClinicalExplanation:
        doctor = mode is ClinicalMode.DOCTOR
        logger.info("Generating %s explanation for %s/%s", mode.value, assessment.gene, assessment.drug)

        phenotype_name = phenotype_long_name(assessment.phenotype)
        variants = assessment.detected_variants
        source_codes = [s.value for s in assessment.evidence_sources]
        recommendation = assessment.cpic_recommendation or assessment.clinical_note

        explanation = get_template(assessment.gene, assessment.drug, doctor).format(
            gene=assessment.gene,
            drug=assessment.drug,
            diplotype=assessment.diplotype,
            phenotype=phenotype_name,
            phenotype_code=assessment.phenotype.value,
            variants=", ".join(variants) or "(none detected)",
            sources=", ".join(source_codes) or "none",
        )

        definition = get_gene_definition(assessment.gene)
        gene_name = definition.display_name if definition else assessment.gene
        guideline = get_cpic_guideline(assessment.drug, assessment.gene)

        if doctor:
            mechanism = (
                f"{assessment.gene} ({gene_name}) affects {assessment.drug} metabolism or transport. "
                f"The {assessment.diplotype} diplotype gives a {phenotype_name} phenotype with altered "
                f"pharmacokinetics or pharmacodynamics."
            )
            citations = tuple(f"Variant: {rsid}" for rsid in variants) + (f"Gene: {assessment.gene}",)
            interpretation = (
                f"The {phenotype_name} phenotype confers {_FUNCTION_CLASS[assessment.phenotype]} "
                f"affecting drug efficacy and/or safety."
            )
            safety = (
                "Monitor: " + "; ".join(assessment.monitoring_requirements)
                if assessment.monitoring_requirements
                else "Monitor for adverse effects based on metabolic phenotype"
            )
        else:
            mechanism = (
                f"Your {assessment.gene} genes make you a {phenotype_name}. This changes how fast "
                f"and how well your body processes {assessment.drug.lower()}."
            )
            citations = tuple(f"Genetic Variant: {rsid}" for rsid in variants)
            interpretation = (
                "Your genetic makeup affects how this medication works in your body, which may "
                "change how well it works or your risk of side effects."
            )
            safety = (
                "Your care team may arrange: " + "; ".join(assessment.monitoring_requirements).lower()
                if assessment.monitoring_requirements
                else "Tell your care team about any side effects you notice"
            )

        if assessment.alternative_options:
            therapeutic = "Consider alternatives: " + ", ".join(assessment.alternative_options)
        elif doctor:
            therapeutic = "Continue therapy per standard dosing and clinical judgement"
        else:
            therapeutic = "Your doctor will use this information to choose the best treatment for you"

        resources: List[str] = []
        if assessment.risk_level is not RiskLevel.UNKNOWN:
            resources.append(_cpic_url(assessment))
        if doctor and EvidenceSource.FDA in assessment.evidence_sources:
            resources.append(FDA_ASSOCIATIONS_URL)

        return ClinicalExplanation(
            drug=assessment.drug,
            gene=assessment.gene,
            diplotype=assessment.diplotype,
            phenotype=assessment.phenotype,
            mode=mode,
            explanation=explanation,
            confidence=assessment.confidence_score,
            supporting_evidence=_supporting_evidence(assessment, doctor),
            clinical_relevance=(_DOCTOR_RELEVANCE if doctor else _PATIENT_RELEVANCE)[assessment.risk_level],
            dosing_implications=recommendation,
            safety_considerations=safety,
            biological_mechanism=mechanism,
            variant_citations=citations,
            risk_interpretation=interpretation,
            therapeutic_implications=therapeutic,
            population_specific_notes=guideline.population_note if guideline else None,
            additional_resources=tuple(resources),
            prompt=build_prompt(
                assessment.gene,
                assessment.diplotype,
                assessment.phenotype.value,
                assessment.drug,
                recommendation,
                variants=variants,
                evidence_sources=source_codes,
            ),
        )


def generate_explanation(
    assessment: DrugRiskAssessment,
    mode: ClinicalMode = ClinicalMode.DOCTOR,
    cache: Optional[ExplanationCache] = None,
) -> ClinicalExplanation:
    """One-shot helper around ExplanationService."""
    return ExplanationService(cache).explain(assessment, mode)
