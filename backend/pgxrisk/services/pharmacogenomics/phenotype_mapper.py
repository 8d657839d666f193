"""
Phenotype Mapper - metabolizer phenotype inference from marker variants.

This is a counting heuristic, not star-allele calling: it tallies the
reduced- and increased-function marker alleles present for a gene and maps
the tally through a per-gene rule. No haplotype phasing is attempted, so the
result must not be read as a clinical-grade diplotype call.

Inference is deterministic and total: unknown genes and empty variant sets
resolve to NM.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import GeneDefinition, Phenotype
from .pharmacogenes import get_gene_definition

if TYPE_CHECKING:
    from ..vcf.parser import VariantRecord

logger = logging.getLogger(__name__)

# Short code ↔ CPIC long name mapping (bidirectional)
PHENOTYPE_SHORT_TO_LONG = {
    "PM": "Poor Metabolizer",
    "IM": "Intermediate Metabolizer",
    "NM": "Normal Metabolizer",
    "RM": "Rapid Metabolizer",
    "UM": "Ultrarapid Metabolizer",
}
PHENOTYPE_LONG_TO_SHORT = {v: k for k, v in PHENOTYPE_SHORT_TO_LONG.items()}

# Genes whose duplications are scored as an increased-function allele.
COPY_NUMBER_GENES = frozenset({"CYP2D6"})

_CN_ALT = re.compile(r"^<CN(\d+)>$", re.IGNORECASE)
_ID_SPLIT = re.compile(r"[;,]")


@dataclass(frozen=True)
class MarkerHits:
    loss: int = 0
    gain: int = 0
    matched_ids: Tuple[str, ...] = ()    # markers carrying at least one alt allele
    observed_ids: Tuple[str, ...] = ()   # markers present in the file, any genotype

    @property
    def total(self) -> int:
        return self.loss + self.gain


def _candidate_ids(record: VariantRecord) -> List[str]:
    ids = [t.strip().lower() for t in _ID_SPLIT.split(record.id) if t.strip() not in ("", ".")]
    for key in ("RSID", "RS"):
        value = record.info_fields.get(key)
        if value:
            ids.extend(t.strip().lower() for t in _ID_SPLIT.split(value) if t.strip())
    return ids


def _matches_marker(candidates: Sequence[str], marker: str) -> bool:
    # Case-insensitive containment; a trailing digit would denote a different rsID.
    pattern = re.compile(re.escape(marker.lower()) + r"(?!\d)")
    return any(c == marker.lower() or pattern.search(c) for c in candidates)


def _allele_dosage(record: VariantRecord) -> int:
    if record.zygosity == "Hom-Alt":
        return 2
    if record.zygosity == "Hom-Ref":
        return 0
    return 1


def _is_copy_number_gain(definition: GeneDefinition, record: VariantRecord) -> bool:
    if definition.symbol not in COPY_NUMBER_GENES:
        return False
    if record.chromosome != definition.chromosome:
        return False
    if (record.gene or "").upper() != definition.symbol:
        return False

    alt = record.alternate_allele.upper()
    if alt == "<DUP>":
        return True
    m = _CN_ALT.match(alt)
    if m and int(m.group(1)) >= 3:
        return True
    if record.info_fields.get("SVTYPE", "").upper() == "DUP":
        return True
    try:
        return int(record.info_fields.get("CN", "0")) >= 3
    except ValueError:
        return False


def count_marker_hits(definition: GeneDefinition, variants: Iterable[VariantRecord]) -> MarkerHits:
    """
    Tally allele dosage per marker for one gene.

    A marker contributes 2 when homozygous-alternate, 1 when heterozygous or
    genotype-less, and 0 when homozygous-reference. Repeated records for the
    same marker keep the highest dosage rather than adding up.
    """
    dosage: Dict[str, int] = {}
    cnv_gains = 0

    for record in variants:
        if _is_copy_number_gain(definition, record):
            cnv_gains += 1
            continue
        candidates = _candidate_ids(record)
        if not candidates:
            continue
        for marker in definition.marker_variant_ids:
            if _matches_marker(candidates, marker):
                dosage[marker] = max(dosage.get(marker, 0), _allele_dosage(record))
                break

    loss = gain = 0
    for marker, count in dosage.items():
        if definition.is_increased_function(marker):
            gain += count
        else:
            loss += count

    ordered = [m for m in definition.marker_variant_ids if m in dosage]
    return MarkerHits(
        loss=loss,
        gain=gain + cnv_gains,
        matched_ids=tuple(m for m in ordered if dosage[m] > 0),
        observed_ids=tuple(ordered),
    )


# ── Per-gene rules ──────────────────────────────────────────────────────────

def _generic_rule(hits: MarkerHits) -> Phenotype:
    if hits.total >= 2:
        return Phenotype.PM
    if hits.total == 1:
        return Phenotype.IM
    return Phenotype.NM


def _loss_only_rule(hits: MarkerHits) -> Phenotype:
    if hits.loss >= 2:
        return Phenotype.PM
    if hits.loss == 1:
        return Phenotype.IM
    return Phenotype.NM


def _cyp2d6_rule(hits: MarkerHits) -> Phenotype:
    # A duplicated functional copy offsets one loss-of-function allele.
    if hits.gain > 0:
        return Phenotype.UM if hits.loss == 0 else Phenotype.NM
    return _loss_only_rule(hits)


def _cyp2c19_rule(hits: MarkerHits) -> Phenotype:
    # Loss-of-function alleles dominate *17.
    if hits.loss >= 1:
        return _loss_only_rule(hits)
    if hits.gain >= 2:
        return Phenotype.UM
    if hits.gain == 1:
        return Phenotype.RM
    return Phenotype.NM


GENE_RULES: Mapping[str, Callable[[MarkerHits], Phenotype]] = MappingProxyType({
    "CYP2D6": _cyp2d6_rule,
    "CYP2C19": _cyp2c19_rule,
    "CYP2C9": _loss_only_rule,
    "SLCO1B1": _loss_only_rule,
    "TPMT": _loss_only_rule,
    "DPYD": _loss_only_rule,
})


def phenotype_from_hits(gene: str, hits: MarkerHits) -> Phenotype:
    rule = GENE_RULES.get(gene.strip().upper(), _generic_rule)
    return rule(hits)


def infer_phenotype(gene: str, variants: Sequence[VariantRecord]) -> Phenotype:
    """Infer the metabolizer phenotype of ``gene`` from parsed variants."""
    phenotype, _ = infer_phenotype_with_hits(gene, variants)
    return phenotype


def infer_phenotype_with_hits(
    gene: str, variants: Sequence[VariantRecord]
) -> Tuple[Phenotype, Optional[MarkerHits]]:
    """Same as infer_phenotype but also returns the marker tally (None for unknown genes)."""
    definition = get_gene_definition(gene)
    if definition is None:
        logger.debug("Gene %s not in knowledge base; assuming normal metabolizer", gene)
        return Phenotype.NM, None

    hits = count_marker_hits(definition, variants)
    phenotype = phenotype_from_hits(definition.symbol, hits)
    logger.debug(
        "%s: loss=%d gain=%d matched=%s -> %s",
        definition.symbol, hits.loss, hits.gain, ",".join(hits.matched_ids) or "-", phenotype.value,
    )
    return phenotype, hits


def phenotype_long_name(phenotype: Phenotype) -> str:
    return PHENOTYPE_SHORT_TO_LONG[phenotype.value]
