"""
Tests for the external report schema and its transformation.
"""

import re
from datetime import datetime, timezone

import pytest

from pgxrisk.schemas.pgx_schema import (
    PGxAnalysisResult,
    new_analysis_id,
    risk_level_code,
    transform_to_compliant_json,
    validate_pgx_result,
)
from pgxrisk.services.pharmacogenomics.models import RiskLevel
from pgxrisk.services.pharmacogenomics.risk_engine import analyze_risk
from pgxrisk.services.vcf.parser import parse_vcf

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def parsed(make_vcf, sample_header):
    return parse_vcf(make_vcf(
        "22\t42524947\trs3892097\tC\tT\t100\tPASS\tGENE=CYP2D6;DP=30\tGT\t0/1",
        "22\t42526694\trs1065852\tG\tA\t100\tPASS\tGENE=CYP2D6\tGT\t1",
        "10\t96702047\trs12248560\tC\tT\t100\tPASS\tGENE=CYP2C19\tGT\t1/1",
        "10\t1000\t.\tA\tG\t50\tPASS\tDP=10\tGT\t./.",
        header=sample_header,
    ))


@pytest.fixture
def report(parsed):
    assessments = analyze_risk(parsed.variants, ["CODEINE", "SIMVASTATIN", "ASPIRIN"])
    return transform_to_compliant_json(assessments, parsed, "P-42", "sample.vcf", now=FIXED_NOW)


class TestIdentifiers:

    def test_analysis_id_format(self):
        """PG-<year>-<8 upper-case hex chars>"""
        assert re.match(r"^PG-2025-[0-9A-F]{8}$", new_analysis_id(FIXED_NOW))

    @pytest.mark.parametrize("level,code", [
        (RiskLevel.TOXIC, "TOXIC"),
        (RiskLevel.ADJUST_DOSAGE, "ADJUST_DOSAGE"),
        (RiskLevel.UNKNOWN, "UNKNOWN"),
    ])
    def test_risk_level_code(self, level, code):
        """Labels become upper-case codes with underscores"""
        assert risk_level_code(level) == code


class TestTransform:

    def test_header_fields(self, report):
        """Identity fields come from the arguments and the parse"""
        assert report.patient_id == "P-42"
        assert report.vcf_file == "sample.vcf"
        assert report.vcf_version == "VCFv4.2"
        assert report.timestamp == FIXED_NOW.isoformat()
        assert report.variants_analyzed == 4

    def test_results_follow_request_order(self, report):
        """One result per requested drug, unknowns included"""
        results = report.pharmacogenomic_results

        assert [r.drug for r in results] == ["CODEINE", "SIMVASTATIN", "ASPIRIN"]
        assert results[0].risk_level == "INEFFECTIVE"
        assert results[2].risk_level == "UNKNOWN"
        assert results[2].confidence == 0.0

    def test_ratios_are_unit_interval(self, report):
        """Confidence is the 0-100 score divided by 100"""
        codeine = report.pharmacogenomic_results[0]

        assert 0.85 <= codeine.confidence <= 1.0
        assert report.quality_metrics.confidence_metrics.guideline_match == 0.95

    def test_evidence_labels_and_fda(self, report):
        """Sources are rendered as labels; fda_label only for FDA-labelled drugs"""
        codeine, simvastatin, _ = report.pharmacogenomic_results

        assert codeine.evidence_sources == [
            "CPIC Guideline", "PharmGKB Evidence", "FDA Pharmacogenomic Label",
        ]
        assert codeine.fda_label == "FDA Pharmacogenomic Label for CODEINE"
        assert simvastatin.fda_label is None

    def test_quality_metrics(self, report):
        """Annotation rate, coverage and completeness over the kept variants"""
        qm = report.quality_metrics

        assert qm.vcf_parse_success is True
        assert qm.variants_annotated == 3
        assert qm.annotation_rate == 0.75
        assert qm.mean_coverage == "20.0x"
        assert 0.7 <= qm.data_completeness <= 1.0
        assert qm.genes_detected == ["CYP2D6", "CYP2C19"]

    def test_variant_details(self, report):
        """Zygosity codes, variant effects, star-allele labels and function associations"""
        details = {d.rsid: d for d in report.variant_details}

        assert details["rs3892097"].zygosity == "HETEROZYGOUS"
        assert details["rs3892097"].effect == "SNV"
        assert details["rs3892097"].clinical_significance == "CYP2D6*4 allele marker"
        assert details["rs3892097"].chromosome == "chr22"
        assert details["rs1065852"].zygosity == "HEMIZYGOUS"
        assert details["rs12248560"].zygosity == "HOMOZYGOUS"
        assert details["rs12248560"].phenotype_association == "Increased function"
        assert details["N/A"].zygosity == "MISSING"
        assert details["N/A"].gene == "Unknown"

    def test_upper_case_rsid_keeps_marker_annotations(self, make_vcf):
        """RS-prefixed IDs get the same star label and function class as rs-prefixed ones"""
        parsed = parse_vcf(make_vcf("10\t96702047\tRS12248560\tC\tT\t100\tPASS\tDP=12"))

        [detail] = transform_to_compliant_json([], parsed, now=FIXED_NOW).variant_details

        assert detail.gene == "CYP2C19"
        assert detail.clinical_significance == "CYP2C19*17 allele marker"
        assert detail.phenotype_association == "Increased function"

    def test_aliases_and_effects(self, make_vcf):
        """INFO aliases resolve to knowledge-base genes; effects follow REF/ALT lengths"""
        parsed = parse_vcf(make_vcf(
            "10\t100\t.\tCA\tC\t50\tPASS\tGENEINFO=CYT2C9:1559",
            "12\t200\t.\tG\tGTT\t50\tPASS\tSYMBOL=OATP1B1",
            "1\t300\t.\tAT\tGC\t50\tPASS\tGENE=TYMP",
            "22\t400\t.\tA\t.\t50\tPASS\tGENE=BRCA1",
        ))

        result = transform_to_compliant_json([], parsed, now=FIXED_NOW)

        assert [(d.gene, d.effect) for d in result.variant_details] == [
            ("CYP2C9", "Deletion"),
            ("SLCO1B1", "Insertion"),
            ("DPYD", "Substitution"),
            ("BRCA1", "Missing"),
        ]
        assert result.quality_metrics.genes_detected == ["CYP2C9", "SLCO1B1", "DPYD", "BRCA1"]

    def test_no_supported_drugs(self, parsed):
        """Without a supported assessment completeness is 0 and metrics are absent"""
        result = transform_to_compliant_json(analyze_risk(parsed.variants, ["ASPIRIN"]), parsed)

        assert result.quality_metrics.data_completeness == 0.0
        assert result.quality_metrics.confidence_metrics is None
        assert result.patient_id == "ANONYMOUS"


class TestValidatePgxResult:

    def test_model_instance_is_valid(self, report):
        """A transformed report validates"""
        assert validate_pgx_result(report) == (True, [])

    def test_dict_round_trip(self, report):
        """A JSON-mode dump validates too"""
        payload = report.model_dump(mode="json")

        assert validate_pgx_result(payload) == (True, [])
        assert PGxAnalysisResult.model_validate(payload) == report

    def test_bad_timestamp(self, report):
        """A non-ISO timestamp is reported by field path"""
        payload = report.model_dump()
        payload["timestamp"] = "yesterday"

        ok, errors = validate_pgx_result(payload)

        assert ok is False
        assert any(e.startswith("timestamp:") for e in errors)

    def test_confidence_out_of_range(self, report):
        """Ratios above 1 are rejected"""
        payload = report.model_dump()
        payload["pharmacogenomic_results"][0]["confidence"] = 95.0

        ok, errors = validate_pgx_result(payload)

        assert ok is False
        assert any(e.startswith("pharmacogenomic_results.0.confidence") for e in errors)

    def test_unknown_risk_code(self, report):
        """Risk levels must be one of the five codes"""
        payload = report.model_dump()
        payload["pharmacogenomic_results"][0]["risk_level"] = "Safe"

        ok, _ = validate_pgx_result(payload)

        assert ok is False
