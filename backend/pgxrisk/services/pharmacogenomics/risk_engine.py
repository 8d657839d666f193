"""
Risk Engine - drug risk classification from drug-gene-phenotype combinations.

Classification is a static (drug, phenotype) lookup; enrichment adds the CPIC
guideline text, deterministic scores and auxiliary guidance. Both steps are
total: an unmapped drug yields an Unknown assessment instead of an exception,
and the output always holds one assessment per requested drug, in order.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import PGxConfig, get_config
from .cpic_guidelines import get_cpic_guideline, get_cpic_recommendation
from .models import (
    DrugRiskAssessment,
    EvidenceSource,
    GuidelineEntry,
    Phenotype,
    RiskClassification,
    RiskLevel,
)
from .phenotype_mapper import infer_phenotype_with_hits
from .pharmacogenes import get_gene_definition
from .risk_scoring import ScoreBreakdown, compute_scores

if TYPE_CHECKING:
    from ..vcf.parser import VariantRecord

logger = logging.getLogger(__name__)


UNKNOWN_GENE = "Unknown"
UNKNOWN_DIPLOTYPE = "?/?"
NOT_IN_DATABASE_NOTE = "Drug-gene interaction not in database."
UNMAPPED_DRUG_NOTE = "Drug not supported in current specific mapping."
ROUTINE_MONITORING = "Routine clinical monitoring"


# ---------------------------------------------------------------------------
# Static tables
# ---------------------------------------------------------------------------

DRUG_GENE_MAP: Mapping[str, str] = MappingProxyType({
    "CODEINE": "CYP2D6",
    "WARFARIN": "CYP2C9",
    "CLOPIDOGREL": "CYP2C19",
    "SIMVASTATIN": "SLCO1B1",
    "AZATHIOPRINE": "TPMT",
    "FLUOROURACIL": "DPYD",
})

DRUG_ALIASES: Mapping[str, str] = MappingProxyType({
    "5-FLUOROURACIL": "FLUOROURACIL",
    "5-FU": "FLUOROURACIL",
})

# Drugs carrying an FDA pharmacogenomic label section for their gene.
FDA_LABELLED_DRUGS = frozenset({"CODEINE", "CLOPIDOGREL", "WARFARIN", "AZATHIOPRINE", "FLUOROURACIL"})


def _rc(level: RiskLevel, note: str) -> RiskClassification:
    return RiskClassification(risk_level=level, clinical_note=note)


_STANDARD = "Standard dosing."

# Every supported drug lists all five phenotypes.
DRUG_RISK_TABLE: Mapping[str, Mapping[Phenotype, RiskClassification]] = MappingProxyType({
    "CODEINE": MappingProxyType({
        Phenotype.PM: _rc(RiskLevel.INEFFECTIVE, "Poor metabolizer: Codeine will not convert to morphine. No analgesic effect."),
        Phenotype.IM: _rc(RiskLevel.SAFE, "Monitor response."),
        Phenotype.NM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.RM: _rc(RiskLevel.TOXIC, "Rapid metabolizer: Risk of morphine overdose."),
        Phenotype.UM: _rc(RiskLevel.TOXIC, "Ultra-rapid metabolizer: High risk of life-threatening toxicity."),
    }),
    "WARFARIN": MappingProxyType({
        Phenotype.PM: _rc(RiskLevel.TOXIC, "Significantly reduced metabolism. High bleeding risk. Lower dose required."),
        Phenotype.IM: _rc(RiskLevel.ADJUST_DOSAGE, "Reduced metabolism. Lower dose required."),
        Phenotype.NM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.RM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.UM: _rc(RiskLevel.SAFE, _STANDARD),
    }),
    "CLOPIDOGREL": MappingProxyType({
        Phenotype.PM: _rc(RiskLevel.INEFFECTIVE, "Prodrug cannot be activated. High risk of thrombosis."),
        Phenotype.IM: _rc(RiskLevel.INEFFECTIVE, "Reduced activation. Consider alternative."),
        Phenotype.NM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.RM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.UM: _rc(RiskLevel.SAFE, _STANDARD),
    }),
    "SIMVASTATIN": MappingProxyType({
        Phenotype.PM: _rc(RiskLevel.TOXIC, "Poor transporter function: High risk of simvastatin-associated myopathy."),
        Phenotype.IM: _rc(RiskLevel.ADJUST_DOSAGE, "Decreased transporter function: Use a lower dose or an alternative statin."),
        Phenotype.NM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.RM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.UM: _rc(RiskLevel.SAFE, _STANDARD),
    }),
    "AZATHIOPRINE": MappingProxyType({
        Phenotype.PM: _rc(RiskLevel.TOXIC, "Absent TPMT activity: High risk of life-threatening myelosuppression."),
        Phenotype.IM: _rc(RiskLevel.ADJUST_DOSAGE, "Reduced TPMT activity: Reduce starting dose."),
        Phenotype.NM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.RM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.UM: _rc(RiskLevel.SAFE, _STANDARD),
    }),
    "FLUOROURACIL": MappingProxyType({
        Phenotype.PM: _rc(RiskLevel.TOXIC, "DPD deficiency: High risk of severe or fatal toxicity."),
        Phenotype.IM: _rc(RiskLevel.ADJUST_DOSAGE, "Reduced DPD activity: Reduce starting dose."),
        Phenotype.NM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.RM: _rc(RiskLevel.SAFE, _STANDARD),
        Phenotype.UM: _rc(RiskLevel.SAFE, _STANDARD),
    }),
})

# Display only. Never parsed back into alleles.
DIPLOTYPE_DISPLAY: Mapping[str, Mapping[Phenotype, str]] = MappingProxyType({
    "CYP2D6": {Phenotype.PM: "*4/*4", Phenotype.IM: "*1/*4", Phenotype.NM: "*1/*1",
               Phenotype.RM: "*1/*2", Phenotype.UM: "*1/*1xN"},
    "CYP2C19": {Phenotype.PM: "*2/*2", Phenotype.IM: "*1/*2", Phenotype.NM: "*1/*1",
                Phenotype.RM: "*1/*17", Phenotype.UM: "*17/*17"},
    "CYP2C9": {Phenotype.PM: "*3/*3", Phenotype.IM: "*1/*3", Phenotype.NM: "*1/*1"},
    "SLCO1B1": {Phenotype.PM: "*5/*5", Phenotype.IM: "*1/*5", Phenotype.NM: "*1/*1"},
    "TPMT": {Phenotype.PM: "*3A/*3A", Phenotype.IM: "*1/*3A", Phenotype.NM: "*1/*1"},
    "DPYD": {Phenotype.PM: "*2A/*2A", Phenotype.IM: "*1/*2A", Phenotype.NM: "*1/*1"},
})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def normalize_drug_name(drug: str) -> str:
    name = drug.strip().upper()
    return DRUG_ALIASES.get(name, name)


def gene_for_drug(drug: str) -> Optional[str]:
    return DRUG_GENE_MAP.get(normalize_drug_name(drug))


def supported_drugs() -> Tuple[str, ...]:
    return tuple(DRUG_GENE_MAP.keys())


def diplotype_display(gene: str, phenotype: Phenotype) -> str:
    table = DIPLOTYPE_DISPLAY.get(gene.upper())
    if table and phenotype in table:
        return table[phenotype]
    if phenotype is Phenotype.NM:
        return "*1/*1"
    if phenotype is Phenotype.PM:
        return "*4/*4"
    return "*1/*4"


def classify_risk(
    drug: str, gene: str, phenotype: Union[Phenotype, str]
) -> RiskClassification:
    """
    Look up the risk label and clinical note for (drug, phenotype).

    The table is keyed by drug; ``gene`` is accepted for call-site symmetry
    with the guideline lookup. Never raises: unknown drugs or phenotype codes
    yield ``RiskLevel.UNKNOWN``.
    """
    drug_table = DRUG_RISK_TABLE.get(normalize_drug_name(drug))
    if drug_table is None:
        return _rc(RiskLevel.UNKNOWN, NOT_IN_DATABASE_NOTE)

    try:
        pheno = Phenotype(phenotype)
    except ValueError:
        logger.warning("Unrecognised phenotype %r for %s/%s", phenotype, drug, gene)
        return _rc(RiskLevel.UNKNOWN, NOT_IN_DATABASE_NOTE)

    return drug_table[pheno]


def _split_alternatives(text: Optional[str]) -> List[str]:
    if not text:
        return []
    parts = re.split(r",\s*(?:or\s+)?|\s+or\s+", text)
    return [p.strip() for p in parts if p.strip()]


def _evidence_sources(drug: str) -> List[EvidenceSource]:
    sources = [EvidenceSource.CPIC, EvidenceSource.PHARMGKB]
    if drug in FDA_LABELLED_DRUGS:
        sources.append(EvidenceSource.FDA)
    return sources


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class RiskEngine:
    """Builds DrugRiskAssessments from parsed variants."""

    def __init__(self, config: Optional[PGxConfig] = None):
        self.config = config or get_config()

    def unknown_assessment(self, drug: str) -> DrugRiskAssessment:
        scores = ScoreBreakdown.unknown()
        return DrugRiskAssessment(
            drug=drug,
            gene=UNKNOWN_GENE,
            phenotype=Phenotype.NM,
            diplotype=UNKNOWN_DIPLOTYPE,
            risk_level=RiskLevel.UNKNOWN,
            confidence_score=scores.confidence,
            variant_evidence_score=scores.variant_evidence,
            guideline_match_score=scores.guideline_match,
            data_completeness_score=scores.data_completeness,
            clinical_note=UNMAPPED_DRUG_NOTE,
            variant_impact_score=scores.variant_impact,
            severity_score=scores.severity,
        )

    def assess_drug(self, drug: str, variants: Sequence["VariantRecord"]) -> DrugRiskAssessment:
        name = normalize_drug_name(drug)
        gene = DRUG_GENE_MAP.get(name)
        if gene is None:
            logger.warning("Unsupported drug requested: %s", drug)
            return self.unknown_assessment(name)

        phenotype, hits = infer_phenotype_with_hits(gene, variants)
        classification = classify_risk(name, gene, phenotype)
        guideline: Optional[GuidelineEntry] = get_cpic_guideline(name, gene)
        definition = get_gene_definition(gene)

        scores = compute_scores(
            phenotype=phenotype,
            risk_level=classification.risk_level,
            hit_count=hits.total if hits else 0,
            observed_markers=len(hits.observed_ids) if hits else 0,
            total_markers=len(definition.marker_variant_ids) if definition else 0,
            strength=guideline.evidence_strength if guideline else None,
            scoring=self.config.scoring,
        )

        actionable = classification.risk_level in (
            RiskLevel.TOXIC, RiskLevel.INEFFECTIVE, RiskLevel.ADJUST_DOSAGE,
        )
        alternatives = _split_alternatives(guideline.alternative_therapy) if (guideline and actionable) else []
        if classification.risk_level is RiskLevel.SAFE:
            monitoring = [ROUTINE_MONITORING]
        elif guideline and guideline.monitoring_note:
            monitoring = [guideline.monitoring_note]
        else:
            monitoring = []

        return DrugRiskAssessment(
            drug=name,
            gene=gene,
            phenotype=phenotype,
            diplotype=diplotype_display(gene, phenotype),
            risk_level=classification.risk_level,
            confidence_score=scores.confidence,
            variant_evidence_score=scores.variant_evidence,
            guideline_match_score=scores.guideline_match,
            data_completeness_score=scores.data_completeness,
            clinical_note=classification.clinical_note,
            evidence_sources=_evidence_sources(name),
            alternative_options=alternatives,
            monitoring_requirements=monitoring,
            variant_impact_score=scores.variant_impact,
            severity_score=scores.severity,
            cpic_recommendation=get_cpic_recommendation(name, gene, phenotype),
            guideline_url=guideline.guideline_url if guideline else None,
            evidence_strength=guideline.evidence_strength if guideline else None,
            detected_variants=list(hits.matched_ids) if hits else [],
        )

    def analyze(self, variants: Sequence["VariantRecord"], drugs: Iterable[str]) -> List[DrugRiskAssessment]:
        variants = list(variants)
        return [self.assess_drug(drug, variants) for drug in drugs]


def create_risk_engine(config: Optional[PGxConfig] = None) -> RiskEngine:
    """Factory function to create a risk engine instance."""
    return RiskEngine(config)


def analyze_risk(
    variants: Sequence["VariantRecord"],
    drugs: Iterable[str],
    config: Optional[PGxConfig] = None,
) -> List[DrugRiskAssessment]:
    """One assessment per requested drug, in request order."""
    return create_risk_engine(config).analyze(variants, drugs)


def genes_for_drugs(drugs: Iterable[str]) -> List[str]:
    """Distinct genes needed by the supported drugs in ``drugs``, in first-seen order."""
    seen: Dict[str, None] = {}
    for drug in drugs:
        gene = gene_for_drug(drug)
        if gene is not None:
            seen.setdefault(gene, None)
    return list(seen)
