"""
Risk Scoring Module - deterministic evidence, confidence and severity scores.

Evidence-style scores live on a 0-100 scale, impact and severity on 1-10.
Every score is a pure function of the phenotype, the risk label, the marker
tally and the guideline grade, so repeated runs on the same input agree.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .config import ScoringConfig, get_config
from .models import EvidenceStrength, Phenotype, RiskLevel


# ============================================================================
# Lookup tables
# ============================================================================

GUIDELINE_STRENGTH_SCORES: Dict[EvidenceStrength, float] = {
    EvidenceStrength.A: 95.0,
    EvidenceStrength.B: 88.0,
    EvidenceStrength.C: 80.0,
    EvidenceStrength.D: 72.0,
}
NO_GUIDELINE_SCORE = 70.0

# Phenotype severity ordering: PM > UM > IM > RM > NM
PHENOTYPE_IMPACT_BASE: Dict[Phenotype, float] = {
    Phenotype.PM: 8.0,
    Phenotype.UM: 7.0,
    Phenotype.IM: 5.0,
    Phenotype.RM: 4.0,
    Phenotype.NM: 2.0,
}

RISK_SEVERITY_OFFSETS: Dict[RiskLevel, float] = {
    RiskLevel.TOXIC: 3.0,
    RiskLevel.INEFFECTIVE: 2.0,
    RiskLevel.ADJUST_DOSAGE: 1.0,
    RiskLevel.UNKNOWN: 0.0,
    RiskLevel.SAFE: -2.0,
}

NO_HIT_EVIDENCE = 80.0
HIT_EVIDENCE_BASE = 85.0
HIT_EVIDENCE_STEP = 5.0
COMPLETENESS_FLOOR = 70.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ScoreBreakdown:
    confidence: float
    variant_evidence: float
    guideline_match: float
    data_completeness: float
    variant_impact: float
    severity: float

    @classmethod
    def unknown(cls) -> "ScoreBreakdown":
        """Scores for a drug with no gene mapping."""
        return cls(
            confidence=0.0,
            variant_evidence=0.0,
            guideline_match=0.0,
            data_completeness=0.0,
            variant_impact=1.0,
            severity=1.0,
        )


# ============================================================================
# Component scores
# ============================================================================

def variant_evidence_score(hit_count: int) -> float:
    if hit_count <= 0:
        return NO_HIT_EVIDENCE
    return min(100.0, HIT_EVIDENCE_BASE + HIT_EVIDENCE_STEP * hit_count)


def guideline_match_score(strength: Optional[EvidenceStrength]) -> float:
    if strength is None:
        return NO_GUIDELINE_SCORE
    return GUIDELINE_STRENGTH_SCORES[strength]


def data_completeness_score(observed_markers: int, total_markers: int) -> float:
    """Share of the gene's marker sites present in the file, mapped onto [70, 100]."""
    if total_markers <= 0:
        return COMPLETENESS_FLOOR
    ratio = _clamp(observed_markers / total_markers, 0.0, 1.0)
    return COMPLETENESS_FLOOR + (100.0 - COMPLETENESS_FLOOR) * ratio


def confidence_score(
    variant_evidence: float,
    guideline_match: float,
    data_completeness: float,
    scoring: Optional[ScoringConfig] = None,
) -> float:
    scoring = scoring or get_config().scoring
    weighted = 0.4 * variant_evidence + 0.4 * guideline_match + 0.2 * data_completeness
    strength = _clamp((weighted - 70.0) / 30.0, 0.0, 1.0)
    return scoring.confidence_floor + (scoring.confidence_ceiling - scoring.confidence_floor) * strength


def variant_impact_score(
    phenotype: Phenotype,
    variant_evidence: float,
    scoring: Optional[ScoringConfig] = None,
) -> float:
    scoring = scoring or get_config().scoring
    base = PHENOTYPE_IMPACT_BASE[phenotype]
    return _clamp(base + (variant_evidence - scoring.evidence_baseline) / 15.0, 1.0, 10.0)


def severity_score(impact: float, risk_level: RiskLevel) -> float:
    return _clamp(impact + RISK_SEVERITY_OFFSETS[risk_level], 1.0, 10.0)


# ============================================================================
# Composite
# ============================================================================

def compute_scores(
    phenotype: Phenotype,
    risk_level: RiskLevel,
    hit_count: int,
    observed_markers: int,
    total_markers: int,
    strength: Optional[EvidenceStrength],
    scoring: Optional[ScoringConfig] = None,
) -> ScoreBreakdown:
    """All scores for one supported drug, rounded to one decimal."""
    ve = variant_evidence_score(hit_count)
    gm = guideline_match_score(strength)
    dc = data_completeness_score(observed_markers, total_markers)
    conf = confidence_score(ve, gm, dc, scoring)
    impact = variant_impact_score(phenotype, ve, scoring)
    sev = severity_score(impact, risk_level)

    return ScoreBreakdown(
        confidence=round(conf, 1),
        variant_evidence=round(ve, 1),
        guideline_match=round(gm, 1),
        data_completeness=round(dc, 1),
        variant_impact=round(impact, 1),
        severity=round(sev, 1),
    )
