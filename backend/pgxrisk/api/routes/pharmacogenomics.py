from fastapi import APIRouter
from typing import Dict, List

from pgxrisk.services.pharmacogenomics.cpic_guidelines import get_cpic_guideline
from pgxrisk.services.pharmacogenomics.pharmacogenes import TARGET_GENES
from pgxrisk.services.pharmacogenomics.risk_engine import DRUG_GENE_MAP

router = APIRouter()


@router.get("/supported-drugs")
async def list_supported_drugs() -> List[Dict[str, object]]:
    """Drugs with a gene mapping, their gene and CPIC guideline link."""
    out = []
    for drug, gene in DRUG_GENE_MAP.items():
        guideline = get_cpic_guideline(drug, gene)
        out.append({
            "drug": drug,
            "gene": gene,
            "guideline_url": guideline.guideline_url if guideline else None,
            "evidence_strength": guideline.evidence_strength.value if guideline else None,
        })
    return out


@router.get("/supported-genes")
async def list_supported_genes() -> List[Dict[str, object]]:
    return [
        {
            "symbol": g.symbol,
            "display_name": g.display_name,
            "chromosome": g.chromosome,
            "marker_variant_ids": list(g.marker_variant_ids),
        }
        for g in TARGET_GENES.values()
    ]
