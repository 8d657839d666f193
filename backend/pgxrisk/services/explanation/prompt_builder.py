from typing import Sequence


def build_prompt(
    gene: str,
    diplotype: str,
    phenotype: str,
    drug: str,
    recommendation: str,
    variants: Sequence[str] = (),
    evidence_sources: Sequence[str] = (),
) -> str:
    """
    Constructs the structured prompt for a clinical explanation.

    The prompt travels with every explanation so a language-model collaborator
    can regenerate the narrative from the same grounded facts.

    Args:
        gene: The gene symbol.
        diplotype: The detected diplotype.
        phenotype: The metabolizer status.
        drug: The drug name.
        recommendation: The clinical recommendation text.
        variants: Marker rsIDs that matched.
        evidence_sources: Evidence source codes backing the assessment.

    Returns:
        A formatted prompt string.
    """
    prompt = (
        f"Variants detected: {', '.join(variants) or 'none'}\n"
        f"Gene: {gene}\n"
        f"Drug: {drug}\n"
        f"Diplotype: {diplotype}\n"
        f"Phenotype: {phenotype}\n"
        f"Evidence sources: {', '.join(evidence_sources) or 'none'}\n"
        f"Clinical Recommendation: {recommendation}\n"
        "Provide a pharmacogenomic interpretation covering: "
        "1. molecular mechanism, 2. clinical implications, "
        "3. dosing recommendations, 4. safety considerations."
    )
    return prompt
