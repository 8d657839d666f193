"""
Data models for the pharmacogenomics service.

Static knowledge records (genes, guidelines) and the per-drug risk assessment
produced by the risk engine. Knowledge records are frozen; assessments are
created fresh per analysis run and never mutated afterwards.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Phenotype(str, Enum):
    """Metabolizer status."""
    PM = "PM"  # Poor Metabolizer
    IM = "IM"  # Intermediate Metabolizer
    NM = "NM"  # Normal Metabolizer
    RM = "RM"  # Rapid Metabolizer
    UM = "UM"  # Ultrarapid Metabolizer


class RiskLevel(str, Enum):
    """Drug risk classification labels."""
    TOXIC = "Toxic"
    INEFFECTIVE = "Ineffective"
    ADJUST_DOSAGE = "Adjust Dosage"
    SAFE = "Safe"
    UNKNOWN = "Unknown"


class EvidenceSource(str, Enum):
    CPIC = "cpic"
    PHARMGKB = "pharmgkb"
    FDA = "fda"


class EvidenceStrength(str, Enum):
    """CPIC recommendation strength: A = strong ... D = very weak."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class GeneDefinition(BaseModel):
    """Static definition of a pharmacogene and its marker variants."""
    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Gene symbol (e.g., CYP2D6)")
    display_name: str = Field(..., description="Full gene name")
    chromosome: str = Field(..., description="Chromosome without 'chr' prefix")
    marker_variant_ids: Tuple[str, ...] = Field(
        ..., description="Ordered rsIDs of reduced- or increased-function alleles"
    )
    increased_function_ids: Tuple[str, ...] = Field(
        default=(), description="Subset of markers that denote gain-of-function alleles"
    )
    star_alleles: Tuple[Tuple[str, str], ...] = Field(
        default=(), description="(rsID, star allele) pairs used for display notes"
    )

    def star_allele_for(self, rsid: str) -> Optional[str]:
        key = rsid.strip().lower()
        for marker, star in self.star_alleles:
            if marker.lower() == key:
                return star
        return None

    def is_increased_function(self, rsid: str) -> bool:
        key = rsid.strip().lower()
        return any(marker.lower() == key for marker in self.increased_function_ids)


class GuidelineEntry(BaseModel):
    """CPIC guideline metadata for one gene-drug pair."""
    model_config = ConfigDict(frozen=True)

    drug: str
    gene: str
    guideline_url: str
    recommendation_text: str
    evidence_strength: EvidenceStrength
    population_note: str
    dosage_adjustment: Optional[str] = None
    alternative_therapy: Optional[str] = None
    monitoring_note: Optional[str] = None


class RiskClassification(BaseModel):
    """Result of the (drug, phenotype) table lookup."""
    model_config = ConfigDict(frozen=True)

    risk_level: RiskLevel
    clinical_note: str


class DrugRiskAssessment(BaseModel):
    """Complete risk assessment for one requested drug."""
    model_config = ConfigDict(frozen=True)

    drug: str = Field(..., description="Upper-cased drug name with aliases resolved")
    gene: str = Field(..., description="Primary gene, or 'Unknown' for unmapped drugs")
    phenotype: Phenotype = Field(default=Phenotype.NM)
    diplotype: str = Field(..., description="Display-only star-allele notation")
    risk_level: RiskLevel
    confidence_score: float = Field(..., ge=0.0, le=100.0)
    variant_evidence_score: float = Field(..., ge=0.0, le=100.0)
    guideline_match_score: float = Field(..., ge=0.0, le=100.0)
    data_completeness_score: float = Field(..., ge=0.0, le=100.0)
    clinical_note: str
    evidence_sources: List[EvidenceSource] = Field(default_factory=list)
    alternative_options: List[str] = Field(default_factory=list)
    monitoring_requirements: List[str] = Field(default_factory=list)
    variant_impact_score: float = Field(..., ge=1.0, le=10.0)
    severity_score: float = Field(..., ge=1.0, le=10.0)
    cpic_recommendation: Optional[str] = None
    guideline_url: Optional[str] = None
    evidence_strength: Optional[EvidenceStrength] = None
    detected_variants: List[str] = Field(
        default_factory=list, description="Marker rsIDs found for the gene"
    )
