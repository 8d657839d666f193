"""
End-to-end tests for the analysis pipeline.
VCF text in, assessments and a schema-valid report out.
"""

import threading
from dataclasses import FrozenInstanceError

import pytest

from pgxrisk.schemas.pgx_schema import validate_pgx_result
from pgxrisk.services.explanation.explanation_service import (
    ClinicalMode,
    ExplanationCache,
    ExplanationService,
)
from pgxrisk.services.pharmacogenomics.config import PGxConfig
from pgxrisk.services.pharmacogenomics.models import Phenotype, RiskLevel
from pgxrisk.services.pipeline.analysis_pipeline import run_analysis_pipeline
from pgxrisk.services.vcf.cache import ParseCache
from pgxrisk.services.vcf.errors import (
    AnalysisCancelledError,
    IssueSeverity,
    IssueType,
    VcfFormatError,
    VcfReadError,
)

STAR4 = "chr22\t42524947\trs3892097\tC\tT\t100\tPASS\tGENE=CYP2D6;STAR=*4;DP=40"
STAR10 = "chr22\t42526694\trs1065852\tG\tA\t100\tPASS\tGENE=CYP2D6;STAR=*10;DP=20"
CYP2C19_STAR2 = "chr10\t94781859\trs4244285\tG\tA\t100\tPASS\tGENE=CYP2C19;STAR=*2"


class TestHappyPath:

    def test_single_marker_codeine_is_safe(self, make_vcf):
        """One CYP2D6 marker → IM → Safe for codeine"""
        outcome = run_analysis_pipeline(make_vcf(STAR4), ["CODEINE"])

        [a] = outcome.assessments
        assert a.phenotype == Phenotype.IM
        assert a.risk_level == RiskLevel.SAFE
        assert outcome.issues == []

    def test_two_markers_codeine_is_ineffective(self, make_vcf):
        """Two CYP2D6 markers → PM → Ineffective, and the report reflects it"""
        outcome = run_analysis_pipeline(
            make_vcf(STAR4, STAR10), ["codeine"], patient_id="PATIENT_7", vcf_filename="p7.vcf",
        )

        assert outcome.assessments[0].phenotype == Phenotype.PM
        report = outcome.report
        assert report.patient_id == "PATIENT_7"
        assert report.vcf_file == "p7.vcf"
        assert report.vcf_version == "VCFv4.2"
        assert report.variants_analyzed == 2
        assert report.pharmacogenomic_results[0].risk_level == "INEFFECTIVE"
        assert report.quality_metrics.mean_coverage == "30.0x"

    def test_report_is_schema_valid(self, make_vcf):
        """The produced report passes validate_pgx_result"""
        outcome = run_analysis_pipeline(make_vcf(STAR4, CYP2C19_STAR2), ["CODEINE", "CLOPIDOGREL"])

        assert validate_pgx_result(outcome.report) == (True, [])

    def test_relevance_filter_follows_drugs(self, make_vcf):
        """Only chromosomes of the requested drugs' genes are kept"""
        outcome = run_analysis_pipeline(make_vcf(STAR4, CYP2C19_STAR2), ["CODEINE"])

        assert [v.id for v in outcome.parsed.variants] == ["rs3892097"]
        assert outcome.parsed.filtered_out == 1

    def test_bytes_input(self, make_vcf):
        """UTF-8 bytes are accepted"""
        outcome = run_analysis_pipeline(make_vcf(STAR4).encode("utf-8"), ["CODEINE"])

        assert outcome.assessments[0].phenotype == Phenotype.IM

    def test_unsupported_drug_is_reported_not_raised(self, make_vcf):
        """ASPIRIN gets an Unknown assessment plus an unsupported_feature issue"""
        outcome = run_analysis_pipeline(make_vcf(STAR4), ["ASPIRIN", "CODEINE"])

        assert [a.risk_level for a in outcome.assessments] == [RiskLevel.UNKNOWN, RiskLevel.SAFE]
        assert [i.type for i in outcome.issues] == [IssueType.UNSUPPORTED_FEATURE]
        assert outcome.report.quality_metrics.confidence_metrics is not None

    def test_only_unsupported_drugs_parses_full_panel(self, make_vcf):
        """With no supported drug the report still describes every kept variant"""
        outcome = run_analysis_pipeline(make_vcf(STAR4, CYP2C19_STAR2), ["ASPIRIN"])

        assert outcome.parsed.variant_count == 2
        assert outcome.report.quality_metrics.confidence_metrics is None


class TestBlockingIssues:

    def test_missing_column_header_aborts(self, make_vcf):
        """A critical issue raises VcfFormatError with the full list"""
        with pytest.raises(VcfFormatError) as exc_info:
            run_analysis_pipeline(make_vcf(STAR4, header=None), ["CODEINE"])

        assert any(e.severity == IssueSeverity.CRITICAL for e in exc_info.value.errors)

    def test_malformed_line_is_skipped_by_default(self, make_vcf):
        """Error-severity issues do not abort in lenient mode"""
        outcome = run_analysis_pipeline(make_vcf(STAR4, "22\t1\trs1065852\tG\tA"), ["CODEINE"])

        assert outcome.assessments[0].phenotype == Phenotype.IM
        assert outcome.parsed.skipped_lines == 1
        assert any(i.severity == IssueSeverity.ERROR for i in outcome.issues)

    def test_trailing_tab_line_is_skipped_consistently(self, make_vcf):
        """A tab-terminated short line is neither counted nor classified"""
        short = "chr22\t42526694\trs1065852\tG\tA\t100\tPASS\t"
        outcome = run_analysis_pipeline(make_vcf(STAR4, short), ["CODEINE"])

        assert outcome.parsed.skipped_lines == 1
        assert outcome.validation.malformed_line_count == 1
        assert outcome.assessments[0].phenotype == Phenotype.IM

    def test_malformed_line_aborts_in_strict_mode(self, make_vcf):
        """strict_validation turns error-severity issues into a failure"""
        config = PGxConfig(strict_validation=True)

        with pytest.raises(VcfFormatError):
            run_analysis_pipeline(make_vcf(STAR4, "22\t1\trs1065852\tG\tA"), ["CODEINE"], config=config)

    def test_invalid_utf8(self):
        """Undecodable bytes raise VcfReadError"""
        with pytest.raises(VcfReadError):
            run_analysis_pipeline(b"##fileformat=VCFv4.2\n\xff\xfe\n", ["CODEINE"])


class TestRunControl:

    def test_cancelled_before_start(self, make_vcf):
        """A set cancel token aborts before any work"""
        event = threading.Event()
        event.set()

        with pytest.raises(AnalysisCancelledError):
            run_analysis_pipeline(make_vcf(STAR4), ["CODEINE"], cancel_event=event)

    def test_unset_cancel_token_runs(self, make_vcf):
        """An unset token has no effect"""
        outcome = run_analysis_pipeline(make_vcf(STAR4), ["CODEINE"], cancel_event=threading.Event())

        assert len(outcome.assessments) == 1

    def test_parse_cache_is_reused(self, make_vcf):
        """The second run on the same content and drugs hits the cache"""
        cache = ParseCache(max_size=4)
        text = make_vcf(STAR4, STAR10)

        first = run_analysis_pipeline(text, ["CODEINE"], cache=cache)
        second = run_analysis_pipeline(text, ["CODEINE"], cache=cache)

        assert cache.misses == 1
        assert cache.hits == 1
        assert second.parsed is first.parsed
        assert second.assessments == first.assessments

    def test_cached_parse_cannot_be_altered_between_runs(self, make_vcf):
        """A caller cannot change what the next cached run sees"""
        cache = ParseCache(max_size=4)
        text = make_vcf(STAR4)

        first = run_analysis_pipeline(text, ["CODEINE"], cache=cache)
        with pytest.raises(AttributeError):
            first.parsed.variants.clear()
        with pytest.raises(FrozenInstanceError):
            first.parsed.variants = ()
        second = run_analysis_pipeline(text, ["CODEINE"], cache=cache)

        assert cache.hits == 1
        assert second.parsed.variant_count == 1
        assert second.assessments[0].phenotype == Phenotype.IM

    def test_runs_get_distinct_analysis_ids(self, make_vcf):
        """Each report has its own identifier"""
        text = make_vcf(STAR4)

        first = run_analysis_pipeline(text, ["CODEINE"])
        second = run_analysis_pipeline(text, ["CODEINE"])

        assert first.report.analysis_id != second.report.analysis_id


class TestExplanations:

    def test_no_explanations_by_default(self, make_vcf):
        """Without a mode the outcome carries no explanations"""
        outcome = run_analysis_pipeline(make_vcf(STAR4), ["CODEINE"])

        assert outcome.explanations == []

    def test_doctor_mode_explains_supported_drugs(self, make_vcf):
        """One explanation per supported drug, matching its assessment"""
        outcome = run_analysis_pipeline(
            make_vcf(STAR4, STAR10), ["CODEINE", "ASPIRIN"], explanation_mode=ClinicalMode.DOCTOR,
        )

        [explanation] = outcome.explanations
        assert explanation.drug == "CODEINE"
        assert explanation.phenotype == Phenotype.PM
        assert explanation.confidence == outcome.assessments[0].confidence_score

    def test_injected_explainer_cache_is_reused(self, make_vcf):
        """Repeated runs share explanations through the caller's cache"""
        explainer = ExplanationService(ExplanationCache(max_size=4))
        text = make_vcf(STAR4)

        first = run_analysis_pipeline(text, ["CODEINE"], explanation_mode=ClinicalMode.PATIENT, explainer=explainer)
        second = run_analysis_pipeline(text, ["CODEINE"], explanation_mode=ClinicalMode.PATIENT, explainer=explainer)

        assert second.explanations[0] is first.explanations[0]
        assert explainer.cache.hits == 1
