from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field
from typing import List, Optional
import logging

from pgxrisk.schemas.pgx_schema import PGxAnalysisResult
from pgxrisk.services.explanation.explanation_service import (
    ClinicalExplanation,
    ClinicalMode,
    ExplanationCache,
    ExplanationService,
)
from pgxrisk.services.pipeline.analysis_pipeline import run_analysis_pipeline
from pgxrisk.services.vcf.cache import ParseCache
from pgxrisk.services.vcf.errors import ValidationIssue, VcfFormatError, VcfReadError
from pgxrisk.services.vcf.validator import ValidationReport, validate_and_handle_errors
from pgxrisk.services.pharmacogenomics.config import get_config

router = APIRouter()
logger = logging.getLogger(__name__)

_parse_cache = ParseCache(max_size=get_config().parse_cache_size)
_explanation_cache = ExplanationCache(max_size=get_config().explanation_cache_size)


def get_parse_cache() -> ParseCache:
    return _parse_cache


def get_explanation_cache() -> ExplanationCache:
    return _explanation_cache


class AnalyzeRequest(BaseModel):
    vcf_content: str = Field(..., description="VCF v4.x text")
    drugs: List[str] = Field(..., min_length=1, description="Drug names, matched case-insensitively")
    patient_id: Optional[str] = Field("ANONYMOUS", description="Optional patient identifier")
    vcf_filename: Optional[str] = Field("upload.vcf", description="Original file name, for the report")
    clinical_mode: Optional[ClinicalMode] = Field(
        None, description="doctor or patient; when set, each supported drug gets a clinical explanation"
    )


class AnalyzeResponse(BaseModel):
    result: PGxAnalysisResult
    issues: List[ValidationIssue]
    explanations: List[ClinicalExplanation] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    vcf_content: str


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyze Pharmacogenomic Risk",
    description="Submit VCF text and a drug list to receive one risk assessment per drug."
)
def analyze(request: AnalyzeRequest) -> AnalyzeResponse:
    """
    Run the analysis pipeline.

    - **vcf_content**: VCF text
    - **drugs**: drug names, in the order results should be returned
    - **patient_id**: optional identifier
    - **clinical_mode**: optional explanation register (doctor or patient)
    """
    try:
        outcome = run_analysis_pipeline(
            request.vcf_content,
            request.drugs,
            patient_id=request.patient_id or "ANONYMOUS",
            vcf_filename=request.vcf_filename or "upload.vcf",
            cache=get_parse_cache(),
            explanation_mode=request.clinical_mode,
            explainer=ExplanationService(get_explanation_cache()),
        )
    except VcfFormatError as exc:
        logger.warning("Rejected VCF: %s", exc)
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "issues": [e.model_dump(mode="json") for e in exc.errors]},
        )
    except VcfReadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    return AnalyzeResponse(
        result=outcome.report, issues=outcome.issues, explanations=outcome.explanations
    )


@router.post("/validate", response_model=ValidationReport, summary="Validate VCF content")
def validate(request: ValidateRequest) -> ValidationReport:
    return validate_and_handle_errors(request.vcf_content)
