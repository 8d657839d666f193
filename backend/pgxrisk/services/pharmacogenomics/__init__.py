"""
Pharmacogenomics Service

Static gene and guideline knowledge, heuristic phenotype inference and
table-driven drug risk classification.
"""

from .models import (
    Phenotype,
    RiskLevel,
    EvidenceSource,
    EvidenceStrength,
    GeneDefinition,
    GuidelineEntry,
    RiskClassification,
    DrugRiskAssessment,
)
from .pharmacogenes import TARGET_GENES, get_gene_definition, supported_genes
from .cpic_guidelines import get_cpic_guideline, get_cpic_recommendation
from .phenotype_mapper import MarkerHits, count_marker_hits, infer_phenotype
from .risk_engine import RiskEngine, analyze_risk, classify_risk, create_risk_engine
from .config import (
    PGxConfig,
    get_config,
    update_config,
    reset_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Models
    'Phenotype',
    'RiskLevel',
    'EvidenceSource',
    'EvidenceStrength',
    'GeneDefinition',
    'GuidelineEntry',
    'RiskClassification',
    'DrugRiskAssessment',

    # Knowledge base
    'TARGET_GENES',
    'get_gene_definition',
    'supported_genes',
    'get_cpic_guideline',
    'get_cpic_recommendation',

    # Phenotype inference
    'MarkerHits',
    'count_marker_hits',
    'infer_phenotype',

    # Risk Engine
    'RiskEngine',
    'analyze_risk',
    'classify_risk',
    'create_risk_engine',

    # Config
    'PGxConfig',
    'get_config',
    'update_config',
    'reset_config',
    'load_config_from_file',
    'save_config_to_file',
]
