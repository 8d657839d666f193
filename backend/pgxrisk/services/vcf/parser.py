from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..pharmacogenomics.config import PGxConfig, get_config
from ..pharmacogenomics.pharmacogenes import gene_from_info, normalize_chromosome, target_chromosomes
from .errors import IssueSeverity, IssueType, ValidationIssue, VcfReadError

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Constants
# ----------------------------------------------------------------------

MANDATORY_COLUMNS = 8
MISSING = "."

_TAB_RUN = re.compile(r"\t+")


@dataclass(frozen=True)
class VariantRecord:
    chromosome: str                   # normalized, no 'chr' prefix
    position: Optional[int]           # None when POS is not a non-negative integer
    id: str                           # rsID or "."
    reference_allele: str
    alternate_allele: str
    quality: str
    filter_status: str
    info_fields: Mapping[str, str] = field(default_factory=dict, hash=False)
    line_number: int = 0
    raw_position: str = ""
    genotype: Optional[str] = None    # GT of the first sample, when present
    zygosity: str = "Unknown"         # 'Hom-Ref' | 'Het' | 'Hom-Alt' | 'Unknown'

    @property
    def gene(self) -> Optional[str]:
        """Knowledge-base symbol from GENE-like INFO keys (aliases resolved), else the raw GENE value."""
        return gene_from_info(self.info_fields) or self.info_fields.get("GENE")

    @property
    def effect(self) -> str:
        return determine_variant_effect(self.reference_allele, self.alternate_allele)

    @property
    def has_valid_position(self) -> bool:
        return self.position is not None


@dataclass(frozen=True)
class ParsedVcf:
    """Result of one parse. Immutable, so a cached instance can be shared between runs."""
    metadata: Tuple[str, ...]
    variants: Tuple[VariantRecord, ...]
    vcf_version: Optional[str] = None
    samples: Tuple[str, ...] = ()
    warnings: Tuple[ValidationIssue, ...] = ()
    total_records: int = 0
    filtered_out: int = 0
    skipped_lines: int = 0

    @property
    def variant_count(self) -> int:
        return len(self.variants)


def split_columns(line: str) -> List[str]:
    """Split a data line on runs of tabs."""
    return _TAB_RUN.split(line)


def iter_numbered_lines(text: str) -> Iterable[Tuple[int, str]]:
    """
    Yield (1-based line number, line) with surrounding whitespace removed.

    Parser and validator both read lines through here so they split identical
    text and agree on which lines are malformed.
    """
    for number, raw in enumerate(text.splitlines(), start=1):
        yield number, raw.strip()


def decode_vcf_content(content: Union[str, bytes]) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise VcfReadError(f"VCF content is not valid UTF-8: {exc}") from exc


def read_vcf_file(path: Union[str, Path]) -> str:
    """Read a VCF file as UTF-8 text."""
    path = Path(path)
    try:
        return path.read_bytes().decode("utf-8-sig")
    except OSError as exc:
        raise VcfReadError(f"Could not read VCF file {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise VcfReadError(f"VCF file {path} is not valid UTF-8: {exc}") from exc


def parse_vcf(
    content: Union[str, bytes],
    target_genes: Optional[Iterable[str]] = None,
    config: Optional[PGxConfig] = None,
) -> ParsedVcf:
    """
    Parse VCF v4.x text into VariantRecords.

    Header lines (anything starting with '#') are kept as metadata. Data lines
    with fewer than 8 columns are skipped with a warning issue; the parse never
    aborts on content. When the relevance filter is enabled, only lines on the
    chromosomes of ``target_genes`` (all known pharmacogenes when None) are kept.

    Raises:
        VcfReadError: bytes input that is not valid UTF-8.
    """
    cfg = config or get_config()
    text = decode_vcf_content(content)

    genes = list(target_genes) if target_genes is not None else None
    keep_chroms = target_chromosomes(genes) if cfg.vcf.restrict_to_target_chromosomes else None

    metadata: List[str] = []
    variants: List[VariantRecord] = []
    warnings: List[ValidationIssue] = []
    vcf_version: Optional[str] = None
    samples: List[str] = []
    total_records = 0
    filtered_out = 0

    for line_no, line in iter_numbered_lines(text):
        if not line:
            continue

        if line.startswith("#"):
            metadata.append(line)
            if line.lower().startswith("##fileformat="):
                vcf_version = line.split("=", 1)[1].strip()
            elif line.startswith("#CHROM"):
                cols = split_columns(line.lstrip("#"))
                samples = cols[9:]
            continue

        total_records += 1
        cols = split_columns(line)
        if len(cols) < MANDATORY_COLUMNS:
            logger.warning(
                "Skipping malformed VCF line %d: expected at least %d columns, got %d",
                line_no, MANDATORY_COLUMNS, len(cols),
            )
            warnings.append(
                ValidationIssue(
                    type=IssueType.FORMAT,
                    severity=IssueSeverity.WARNING,
                    message=f"Skipped malformed variant record at line {line_no}",
                    details=f"Expected at least {MANDATORY_COLUMNS} columns, got {len(cols)}",
                    line=line_no,
                )
            )
            continue

        chrom = normalize_chromosome(cols[0])
        if keep_chroms is not None and chrom not in keep_chroms:
            filtered_out += 1
            logger.debug("Line %d on chromosome %s dropped by relevance filter", line_no, chrom)
            continue

        variants.append(_build_record(cols, chrom, line_no))

    logger.info(
        "Parsed VCF: %d data lines, %d variants kept, %d filtered, %d skipped",
        total_records, len(variants), filtered_out, len(warnings),
    )

    return ParsedVcf(
        metadata=tuple(metadata),
        variants=tuple(variants),
        vcf_version=vcf_version,
        samples=tuple(samples),
        warnings=tuple(warnings),
        total_records=total_records,
        filtered_out=filtered_out,
        skipped_lines=len(warnings),
    )


def parse_position(raw: str) -> Optional[int]:
    try:
        pos = int(raw.strip())
    except ValueError:
        return None
    return pos if pos >= 0 else None


def _build_record(cols: List[str], chrom: str, line_no: int) -> VariantRecord:
    pos_s, vid, ref, alt, qual, flt, info_s = cols[1:8]

    genotype: Optional[str] = None
    if len(cols) >= 10:
        format_keys = cols[8].split(":")
        sample_fields = cols[9].split(":")
        sample_map = dict(zip(format_keys, sample_fields))
        genotype = sample_map.get("GT") or None

    return VariantRecord(
        chromosome=chrom,
        position=parse_position(pos_s),
        id=vid.strip(),
        reference_allele=ref.strip(),
        alternate_allele=alt.strip(),
        quality=qual.strip(),
        filter_status=flt.strip(),
        info_fields=MappingProxyType(parse_info_field(info_s)),
        line_number=line_no,
        raw_position=pos_s,
        genotype=genotype,
        zygosity=infer_zygosity(genotype),
    )


def parse_info_field(info: str) -> Dict[str, str]:
    """
    Parse a semicolon-separated INFO column.

    ``KEY=VALUE`` tokens keep everything after the first '='; bare flags are
    recorded with the value ``"true"``.
    """
    out: Dict[str, str] = {}
    info = info.strip()
    if info in (MISSING, ""):
        return out
    for item in info.split(";"):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            out[item] = "true"
            continue
        k, v = item.split("=", 1)
        out[k] = v
    return out


def infer_zygosity(gt: Optional[str]) -> str:
    """
    Infer zygosity from a VCF GT string.

    Returns:
      'Hom-Ref'  : e.g. 0/0 or 0|0
      'Het'      : e.g. 0/1, 1/0, 0|1
      'Hom-Alt'  : e.g. 1/1, 2/2
      'Unknown'  : missing, ./. or unparseable
    """
    if not gt or gt in (".", "./.", ".|."):
        return "Unknown"
    alleles = [a.strip() for a in re.split(r"[/|]", gt) if a.strip() not in ("", ".")]
    if not alleles:
        return "Unknown"
    unique = set(alleles)
    if len(unique) == 1:
        return "Hom-Ref" if "0" in unique else "Hom-Alt"
    return "Het"


def determine_variant_effect(reference: str, alternate: str) -> str:
    """
    Classify a REF/ALT pair by length.

    'Missing' when ALT is absent, 'Deletion' / 'Insertion' when the lengths
    differ, 'SNV' for single bases and 'Substitution' for equal-length blocks.
    Only the first ALT allele is considered.
    """
    alternate = alternate.split(",", 1)[0]
    if alternate in (MISSING, ""):
        return "Missing"
    if len(reference) > len(alternate):
        return "Deletion"
    if len(reference) < len(alternate):
        return "Insertion"
    if len(reference) == 1:
        return "SNV"
    return "Substitution"
