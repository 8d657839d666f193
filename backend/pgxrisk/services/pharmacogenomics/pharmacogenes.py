"""
Pharmacogene knowledge base.

Target genes with their chromosome and the marker rsIDs that identify
reduced- or increased-function alleles. This table is shared by the VCF
relevance filter and the phenotype engine; it is built once at import time
and exposed read-only.
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Set, Tuple

from .models import GeneDefinition

logger = logging.getLogger(__name__)


_GENES: Tuple[GeneDefinition, ...] = (
    GeneDefinition(
        symbol="CYP2D6",
        display_name="Cytochrome P450 2D6",
        chromosome="22",
        marker_variant_ids=("rs3892097", "rs1065852", "rs16947", "rs28371725"),
        star_alleles=(
            ("rs3892097", "*4"),
            ("rs1065852", "*10"),
            ("rs16947", "*2"),
            ("rs28371725", "*41"),
        ),
    ),
    GeneDefinition(
        symbol="CYP2C19",
        display_name="Cytochrome P450 2C19",
        chromosome="10",
        marker_variant_ids=("rs4244285", "rs4986893", "rs12248560"),
        increased_function_ids=("rs12248560",),
        star_alleles=(
            ("rs4244285", "*2"),
            ("rs4986893", "*3"),
            ("rs12248560", "*17"),
        ),
    ),
    GeneDefinition(
        symbol="CYP2C9",
        display_name="Cytochrome P450 2C9",
        chromosome="10",
        marker_variant_ids=("rs1799853", "rs1057910"),
        star_alleles=(("rs1799853", "*2"), ("rs1057910", "*3")),
    ),
    GeneDefinition(
        symbol="VKORC1",
        display_name="Vitamin K Epoxide Reductase",
        chromosome="16",
        marker_variant_ids=("rs9923231",),  # -1639G>A
    ),
    GeneDefinition(
        symbol="SLCO1B1",
        display_name="Solute Carrier Organic Anion Transporter 1B1",
        chromosome="12",
        marker_variant_ids=("rs4149056",),
        star_alleles=(("rs4149056", "*5"),),
    ),
    GeneDefinition(
        symbol="TPMT",
        display_name="Thiopurine S-Methyltransferase",
        chromosome="6",
        marker_variant_ids=("rs1142345", "rs1800460", "rs1800462"),
        star_alleles=(
            ("rs1142345", "*3C"),
            ("rs1800460", "*3B"),
            ("rs1800462", "*2"),
        ),
    ),
    GeneDefinition(
        symbol="DPYD",
        display_name="Dihydropyrimidine Dehydrogenase",
        chromosome="1",
        marker_variant_ids=(
            "rs67376798",   # c.2846A>T
            "rs56038477",   # c.1236G>A (HapB3)
            "rs1861112",    # c.1129-5923C>G
            "rs3918290",    # *2A, IVS14+1G>A
            "rs55886062",   # *13
        ),
        star_alleles=(("rs3918290", "*2A"), ("rs55886062", "*13")),
    ),
)

TARGET_GENES: Mapping[str, GeneDefinition] = MappingProxyType(
    {g.symbol: g for g in _GENES}
)

_CHR_PREFIX = re.compile(r"^chr", re.IGNORECASE)


def normalize_chromosome(chrom: str) -> str:
    """Strip a leading 'chr' prefix (any case) so 'chr22' and '22' compare equal."""
    return _CHR_PREFIX.sub("", chrom.strip())


def get_gene_definition(symbol: str) -> Optional[GeneDefinition]:
    return TARGET_GENES.get(symbol.strip().upper())


def supported_genes() -> Tuple[str, ...]:
    return tuple(TARGET_GENES.keys())


def target_chromosomes(genes: Optional[Iterable[str]] = None) -> Set[str]:
    """
    Chromosomes referenced by the requested genes (all known genes when None).
    Symbols missing from the knowledge base are ignored.
    """
    if genes is None:
        return {g.chromosome for g in TARGET_GENES.values()}

    chroms: Set[str] = set()
    for symbol in genes:
        definition = get_gene_definition(symbol)
        if definition is None:
            logger.warning("Gene %s is not in the pharmacogene knowledge base; ignored", symbol)
            continue
        chroms.add(definition.chromosome)
    return chroms


def gene_for_marker(rsid: str) -> Optional[GeneDefinition]:
    """Gene whose marker list contains ``rsid`` (case-insensitive), if any."""
    key = rsid.strip().lower()
    for definition in TARGET_GENES.values():
        if key in (m.lower() for m in definition.marker_variant_ids):
            return definition
    return None


# Alternative names and common misspellings seen in annotated VCFs.
GENE_ALIASES: Mapping[str, str] = MappingProxyType({
    "CYT2D6": "CYP2D6",
    "CYT2C19": "CYP2C19",
    "CYT2C9": "CYP2C9",
    "SLC01B1": "SLCO1B1",
    "OATP1B1": "SLCO1B1",
    "TYMP": "DPYD",
})

# INFO keys that may name the gene, in lookup order.
GENE_INFO_KEYS: Tuple[str, ...] = ("GENE", "GENEINFO", "SYMBOL", "GENENAME")

# Longest first so a substring scan never stops at a shorter symbol.
_SYMBOLS_BY_LENGTH = tuple(sorted(TARGET_GENES, key=len, reverse=True))

_GENEINFO_SEPARATORS = re.compile(r"[:|,&]")


def resolve_gene_symbol(value: str) -> Optional[str]:
    """
    Map an annotation value onto a knowledge-base symbol.

    The value is split on GENEINFO separators (``CYP2D6:1565|TYMP:1890``) and
    each token is tried as an exact symbol, then as an alias. Failing that, a
    known symbol contained anywhere in the value is accepted. Returns None when
    nothing matches.
    """
    candidate = value.strip().upper()
    if not candidate:
        return None
    for token in _GENEINFO_SEPARATORS.split(candidate):
        if token in TARGET_GENES:
            return token
        if token in GENE_ALIASES:
            return GENE_ALIASES[token]
    for symbol in _SYMBOLS_BY_LENGTH:
        if symbol in candidate:
            return symbol
    return None


def gene_from_info(info_fields: Mapping[str, str]) -> Optional[str]:
    """First knowledge-base gene named by a GENE-like INFO key, if any."""
    for key in GENE_INFO_KEYS:
        value = info_fields.get(key)
        if not value:
            continue
        symbol = resolve_gene_symbol(value)
        if symbol is not None:
            return symbol
    return None
