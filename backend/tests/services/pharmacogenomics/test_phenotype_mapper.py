"""
Unit tests for phenotype inference.
Tests marker matching, allele dosage and the per-gene rule tables.
"""

import pytest

from pgxrisk.services.pharmacogenomics.models import Phenotype
from pgxrisk.services.pharmacogenomics.pharmacogenes import get_gene_definition
from pgxrisk.services.pharmacogenomics.phenotype_mapper import (
    PHENOTYPE_LONG_TO_SHORT,
    PHENOTYPE_SHORT_TO_LONG,
    count_marker_hits,
    infer_phenotype,
    infer_phenotype_with_hits,
    phenotype_long_name,
)
from pgxrisk.services.vcf.parser import VariantRecord, infer_zygosity


def variant(rsid, chrom="22", alt="T", genotype=None, info=None):
    return VariantRecord(
        chromosome=chrom,
        position=1000,
        id=rsid,
        reference_allele="C",
        alternate_allele=alt,
        quality="100",
        filter_status="PASS",
        info_fields=info or {},
        genotype=genotype,
        zygosity=infer_zygosity(genotype),
    )


class TestCyp2d6:
    """CYP2D6 loss-of-function and copy-number rules."""

    def test_no_markers_is_normal(self):
        """No matching markers → NM"""
        assert infer_phenotype("CYP2D6", []) == Phenotype.NM

    def test_single_marker_is_intermediate(self):
        """One loss-of-function hit → IM"""
        assert infer_phenotype("CYP2D6", [variant("rs3892097")]) == Phenotype.IM

    def test_two_distinct_markers_is_poor(self):
        """rs3892097 and rs1065852 both present → PM"""
        variants = [variant("rs3892097"), variant("rs1065852")]

        assert infer_phenotype("CYP2D6", variants) == Phenotype.PM

    def test_homozygous_marker_counts_twice(self):
        """A 1/1 genotype carries two loss alleles → PM"""
        assert infer_phenotype("CYP2D6", [variant("rs3892097", genotype="1/1")]) == Phenotype.PM

    def test_homozygous_reference_is_observed_not_hit(self):
        """0/0 records count toward completeness but not toward loss"""
        phenotype, hits = infer_phenotype_with_hits("CYP2D6", [variant("rs3892097", genotype="0/0")])

        assert phenotype == Phenotype.NM
        assert hits.observed_ids == ("rs3892097",)
        assert hits.matched_ids == ()

    def test_repeated_marker_is_not_double_counted(self):
        """Two heterozygous records for one rsID are still one hit"""
        variants = [variant("rs3892097", genotype="0/1"), variant("rs3892097", genotype="0/1")]

        assert infer_phenotype("CYP2D6", variants) == Phenotype.IM

    def test_duplication_without_loss_is_ultrarapid(self):
        """<DUP> annotated to CYP2D6 on chromosome 22 → UM"""
        dup = variant(".", alt="<DUP>", info={"GENE": "CYP2D6", "SVTYPE": "DUP"})

        assert infer_phenotype("CYP2D6", [dup]) == Phenotype.UM

    def test_duplication_offsets_one_loss(self):
        """A duplicated copy plus one loss allele → NM"""
        dup = variant(".", alt="<CN3>", info={"GENE": "CYP2D6"})

        assert infer_phenotype("CYP2D6", [dup, variant("rs3892097")]) == Phenotype.NM

    @pytest.mark.parametrize("alt,info,expected", [
        ("<CN2>", {"GENE": "CYP2D6"}, Phenotype.NM),
        ("<CN4>", {"GENE": "CYP2D6"}, Phenotype.UM),
        ("<CNV>", {"GENE": "CYP2D6", "CN": "3"}, Phenotype.UM),
        ("<DUP>", {"GENE": "CYP2C19"}, Phenotype.NM),
        ("<DUP>", {"GENEINFO": "CYT2D6:1565"}, Phenotype.UM),
    ])
    def test_copy_number_annotations(self, alt, info, expected):
        """Only CYP2D6-annotated copy numbers of 3+ count as a gain, aliases included"""
        assert infer_phenotype("CYP2D6", [variant(".", alt=alt, info=info)]) == expected

    def test_duplication_on_other_chromosome_is_ignored(self):
        """A CYP2D6 DUP outside chromosome 22 is not a gain"""
        dup = variant(".", chrom="10", alt="<DUP>", info={"GENE": "CYP2D6"})

        assert infer_phenotype("CYP2D6", [dup]) == Phenotype.NM


class TestMarkerMatching:
    """Permissive rsID matching."""

    def test_case_insensitive_id(self):
        """RS3892097 matches rs3892097"""
        assert infer_phenotype("CYP2D6", [variant("RS3892097")]) == Phenotype.IM

    def test_compound_id_column(self):
        """A marker inside a ';'-separated ID list matches"""
        assert infer_phenotype("CYP2D6", [variant("rs3892097;COSM123")]) == Phenotype.IM

    def test_longer_rsid_does_not_match(self):
        """rs38920970 is a different variant"""
        assert infer_phenotype("CYP2D6", [variant("rs38920970")]) == Phenotype.NM

    def test_rsid_from_info(self):
        """An RSID INFO tag is used when the ID column is '.'"""
        assert infer_phenotype("CYP2D6", [variant(".", info={"RSID": "rs1065852"})]) == Phenotype.IM

    def test_count_marker_hits_order(self):
        """matched_ids follow the gene's marker order"""
        definition = get_gene_definition("CYP2D6")
        hits = count_marker_hits(definition, [variant("rs16947"), variant("rs3892097")])

        assert hits.matched_ids == ("rs3892097", "rs16947")
        assert hits.loss == 2
        assert hits.gain == 0


class TestCyp2c19:
    """CYP2C19 with the *17 increased-function allele."""

    def test_star17_heterozygous_is_rapid(self):
        """One *17 allele → RM"""
        assert infer_phenotype("CYP2C19", [variant("rs12248560", chrom="10", genotype="0/1")]) == Phenotype.RM

    def test_star17_homozygous_is_ultrarapid(self):
        """*17/*17 → UM"""
        assert infer_phenotype("CYP2C19", [variant("rs12248560", chrom="10", genotype="1/1")]) == Phenotype.UM

    def test_loss_dominates_star17(self):
        """*2 with *17 → IM"""
        variants = [variant("rs4244285", chrom="10"), variant("rs12248560", chrom="10")]

        assert infer_phenotype("CYP2C19", variants) == Phenotype.IM

    def test_two_loss_alleles_is_poor(self):
        """*2 and *3 → PM"""
        variants = [variant("rs4244285", chrom="10"), variant("rs4986893", chrom="10")]

        assert infer_phenotype("CYP2C19", variants) == Phenotype.PM


class TestOtherGenes:
    """Two-tier genes, the generic fallback and unknown genes."""

    @pytest.mark.parametrize("gene,rsid,chrom", [
        ("CYP2C9", "rs1799853", "10"),
        ("SLCO1B1", "rs4149056", "12"),
        ("TPMT", "rs1142345", "6"),
        ("DPYD", "rs3918290", "1"),
    ])
    def test_two_tier_genes(self, gene, rsid, chrom):
        """One loss allele → IM, two → PM"""
        assert infer_phenotype(gene, [variant(rsid, chrom=chrom)]) == Phenotype.IM
        assert infer_phenotype(gene, [variant(rsid, chrom=chrom, genotype="1/1")]) == Phenotype.PM

    def test_generic_rule_for_vkorc1(self):
        """VKORC1 has no specific rule and uses the hit-count fallback"""
        assert infer_phenotype("VKORC1", []) == Phenotype.NM
        assert infer_phenotype("VKORC1", [variant("rs9923231", chrom="16")]) == Phenotype.IM
        assert infer_phenotype("VKORC1", [variant("rs9923231", chrom="16", genotype="1/1")]) == Phenotype.PM

    def test_unknown_gene_is_normal(self):
        """Genes outside the knowledge base resolve to NM without raising"""
        phenotype, hits = infer_phenotype_with_hits("ABCB1", [variant("rs1045642")])

        assert phenotype == Phenotype.NM
        assert hits is None

    def test_markers_of_other_genes_are_ignored(self):
        """CYP2C19 markers do not affect CYP2D6"""
        assert infer_phenotype("CYP2D6", [variant("rs4244285", chrom="10")]) == Phenotype.NM

    def test_gene_symbol_is_case_insensitive(self):
        """cyp2d6 resolves to CYP2D6"""
        assert infer_phenotype("cyp2d6", [variant("rs3892097")]) == Phenotype.IM


class TestPhenotypeNames:

    def test_short_long_round_trip(self):
        """Every short code maps to a long name and back"""
        for code in Phenotype:
            assert PHENOTYPE_LONG_TO_SHORT[PHENOTYPE_SHORT_TO_LONG[code.value]] == code.value

    def test_long_name(self):
        """Enum members render as CPIC long names"""
        assert phenotype_long_name(Phenotype.UM) == "Ultrarapid Metabolizer"
        assert phenotype_long_name(Phenotype.IM) == "Intermediate Metabolizer"
