"""
cpic_guidelines.py
==================
CPIC guideline metadata per gene-drug pair and phenotype-conditioned
recommendation text.

The guideline record is shared across phenotypes; the actionable text is
rendered per phenotype so the same (gene, drug) entry can say "AVOID" for a
poor metabolizer and "reduce dose" for an intermediate one.

Sources: CPIC guidelines (https://cpicpgx.org/guidelines/)
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple, Union

from .models import EvidenceStrength, GuidelineEntry, Phenotype


def _key(gene: str, drug: str) -> str:
    return f"{gene.strip().upper()}-{drug.strip().upper()}"


_GUIDELINES: Tuple[GuidelineEntry, ...] = (
    GuidelineEntry(
        drug="Codeine",
        gene="CYP2D6",
        guideline_url="https://cpicpgx.org/guidelines/guideline-for-codeine-and-cyp2d6/",
        recommendation_text=(
            "Avoid codeine in CYP2D6 PMs due to lack of analgesic efficacy. "
            "Avoid in UMs due to risk of morphine overdose."
        ),
        evidence_strength=EvidenceStrength.A,
        population_note="General population",
        dosage_adjustment="Alternative analgesic recommended",
        alternative_therapy="Morphine, oxycodone, or other non-CYP2D6-dependent opioids",
        monitoring_note="None required for alternative therapy",
    ),
    GuidelineEntry(
        drug="Clopidogrel",
        gene="CYP2C19",
        guideline_url="https://cpicpgx.org/guidelines/guideline-for-clopidogrel-and-cyp2c19/",
        recommendation_text=(
            "Use alternative antiplatelet therapy (prasugrel/ticagrelor) in CYP2C19 PMs "
            "due to increased cardiovascular risk."
        ),
        evidence_strength=EvidenceStrength.A,
        population_note="Patients undergoing PCI",
        dosage_adjustment="Not recommended - use alternative therapy",
        alternative_therapy="Prasugrel or Ticagrelor",
        monitoring_note="Platelet function testing may be considered",
    ),
    GuidelineEntry(
        drug="Warfarin",
        gene="CYP2C9",
        guideline_url="https://cpicpgx.org/guidelines/guideline-for-warfarin-and-cyp2c9-and-vkorc1/",
        recommendation_text=(
            "Initiate warfarin at reduced dose and/or decrease maintenance dose "
            "based on CYP2C9 genotype."
        ),
        evidence_strength=EvidenceStrength.A,
        population_note="Anticoagulation candidates",
        dosage_adjustment=(
            "Reduce initial dose by 15-25% for *1/*2, 30-40% for *1/*3, "
            "40-60% for *2/*2, *2/*3, *3/*3"
        ),
        alternative_therapy="Direct oral anticoagulants (DOACs)",
        monitoring_note="More frequent INR monitoring initially",
    ),
    GuidelineEntry(
        drug="Simvastatin",
        gene="SLCO1B1",
        guideline_url="https://cpicpgx.org/guidelines/guideline-for-statins-and-slco1b1/",
        recommendation_text=(
            "Avoid simvastatin 40mg daily or higher in patients with one or more "
            "decreased function alleles."
        ),
        evidence_strength=EvidenceStrength.A,
        population_note="Dyslipidemia patients",
        dosage_adjustment="Use lower dose simvastatin (<20mg) or alternative statin",
        alternative_therapy="Pravastatin, rosuvastatin, fluvastatin, pitavastatin",
        monitoring_note="Monitor for muscle symptoms and CK levels",
    ),
    GuidelineEntry(
        drug="Azathioprine",
        gene="TPMT",
        guideline_url="https://cpicpgx.org/guidelines/guideline-for-thiopurines-and-tpmt/",
        recommendation_text=(
            "Reduce azathioprine dose by 30-70% in intermediate metabolizers; "
            "avoid in poor metabolizers."
        ),
        evidence_strength=EvidenceStrength.A,
        population_note="All patients prior to thiopurine therapy",
        dosage_adjustment="Reduce dose by 30-70% for IMs, avoid in PMs",
        alternative_therapy="Methotrexate, mycophenolate mofetil",
        monitoring_note="Frequent CBC monitoring during initiation",
    ),
    GuidelineEntry(
        drug="Fluorouracil",
        gene="DPYD",
        guideline_url="https://cpicpgx.org/guidelines/guideline-for-fluoropyrimidines-and-dpyd/",
        recommendation_text=(
            "Avoid fluoropyrimidines in patients with two decreased function alleles; "
            "consider dose reduction for one decreased function allele."
        ),
        evidence_strength=EvidenceStrength.A,
        population_note="Cancer patients",
        dosage_adjustment="Avoid in PMs, consider 50% dose reduction in IMs",
        alternative_therapy="Capecitabine with caution, alternative chemotherapy regimens",
        monitoring_note="Intensive monitoring for toxicity, early intervention",
    ),
)

CPIC_GUIDELINES: Mapping[str, GuidelineEntry] = MappingProxyType(
    {_key(g.gene, g.drug): g for g in _GUIDELINES}
)

# (DRUG, phenotype) → actionable text. Pairs not listed fall back to the
# guideline's general recommendation.
_PHENOTYPE_RECOMMENDATIONS: Mapping[Tuple[str, Phenotype], str] = MappingProxyType({
    ("CODEINE", Phenotype.PM): "AVOID codeine due to risk of inadequate analgesia. Consider alternative analgesics.",
    ("CODEINE", Phenotype.UM): "AVOID codeine due to risk of morphine overdose. Consider alternative analgesics.",
    ("CLOPIDOGREL", Phenotype.PM): "AVOID clopidogrel. Use alternative antiplatelet therapy (prasugrel or ticagrelor).",
    ("CLOPIDOGREL", Phenotype.RM): "May require closer monitoring but standard dosing is typically appropriate.",
    ("WARFARIN", Phenotype.PM): "Reduce warfarin dose by 40-60% based on genotype. Monitor INR closely.",
    ("WARFARIN", Phenotype.IM): "Reduce warfarin dose by 15-25% based on genotype. Monitor INR closely.",
    ("AZATHIOPRINE", Phenotype.PM): "AVOID azathioprine or significantly reduce dose. Monitor CBC frequently.",
    ("AZATHIOPRINE", Phenotype.IM): "Consider 30-50% dose reduction. Monitor CBC frequently.",
    ("FLUOROURACIL", Phenotype.PM): "AVOID fluorouracil due to high risk of severe toxicity. Consider alternative chemotherapy.",
    ("FLUOROURACIL", Phenotype.IM): "Consider 50% dose reduction. Monitor closely for toxicity.",
})

STANDARD_DOSING_TEXT = "Standard dosing appropriate based on clinical factors."


def get_cpic_guideline(drug: str, gene: str) -> Optional[GuidelineEntry]:
    return CPIC_GUIDELINES.get(_key(gene, drug))


def get_cpic_recommendation(drug: str, gene: str, phenotype: Union[Phenotype, str]) -> str:
    """
    Render the guideline recommendation for one phenotype.

    Normal metabolizers always get standard dosing text; phenotypes with a
    specific action use it; everything else falls back to the guideline's
    general recommendation.
    """
    guideline = get_cpic_guideline(drug, gene)
    if guideline is None:
        return (
            f"No specific CPIC guideline available for {drug} and {gene}. "
            "Use standard dosing with clinical judgment."
        )

    try:
        pheno = Phenotype(phenotype)
    except ValueError:
        return guideline.recommendation_text

    if pheno is Phenotype.NM:
        return STANDARD_DOSING_TEXT

    specific = _PHENOTYPE_RECOMMENDATIONS.get((drug.strip().upper(), pheno))
    if specific:
        return specific
    return guideline.recommendation_text


def list_guidelines() -> Dict[str, GuidelineEntry]:
    """Snapshot copy of the guideline table, keyed GENE-DRUG."""
    return dict(CPIC_GUIDELINES)
