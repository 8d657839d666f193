"""
Narrative templates for clinical explanations, keyed by (gene, drug).

Placeholders: {gene}, {drug}, {diplotype}, {phenotype} (long name),
{phenotype_code}, {variants} and {sources}. Pairs without an entry use the
per-mode fallback.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

DOCTOR_TEMPLATES: Mapping[Tuple[str, str], str] = MappingProxyType({
    ("CYP2D6", "CODEINE"): (
        "CYP2D6 encodes the cytochrome P450 enzyme that O-demethylates codeine to morphine, "
        "its active analgesic metabolite. The {diplotype} diplotype is consistent with a "
        "{phenotype} ({phenotype_code}) phenotype.\n\n"
        "Reduced CYP2D6 activity limits morphine formation and blunts analgesia, while "
        "ultrarapid activity produces morphine concentrations that can cause respiratory "
        "depression. Dosing should follow the CPIC recommendation for this phenotype."
    ),
    ("CYP2C9", "WARFARIN"): (
        "CYP2C9 is the principal enzyme for S-warfarin hydroxylation. The {diplotype} "
        "genotype ({phenotype}) lowers S-warfarin clearance and raises anticoagulant exposure.\n\n"
        "S-warfarin half-life lengthens as CYP2C9 activity falls. Start at a reduced dose, "
        "monitor INR closely during induction and consider VKORC1 genotype for further refinement."
    ),
    ("CYP2C19", "CLOPIDOGREL"): (
        "CYP2C19 performs the hepatic bioactivation of the clopidogrel prodrug to its active "
        "thiol metabolite. The {diplotype} genotype ({phenotype}) alters how much active "
        "metabolite is formed and therefore the degree of platelet inhibition.\n\n"
        "Loss-of-function carriers on standard dosing have a higher rate of stent thrombosis and "
        "myocardial infarction; prasugrel or ticagrelor do not depend on CYP2C19 activation."
    ),
    ("TPMT", "AZATHIOPRINE"): (
        "TPMT methylates and inactivates azathioprine metabolites. The {diplotype} genotype "
        "({phenotype}) is associated with lower TPMT activity and accumulation of cytotoxic "
        "thioguanine nucleotides.\n\n"
        "Reduced TPMT activity markedly increases the risk of severe myelosuppression on "
        "standard doses; dose reduction or an alternative agent is recommended."
    ),
    ("DPYD", "FLUOROURACIL"): (
        "DPYD encodes dihydropyrimidine dehydrogenase, the rate-limiting enzyme of "
        "fluorouracil catabolism. The {diplotype} genotype ({phenotype}) reduces DPD activity "
        "and allows fluorouracil to accumulate.\n\n"
        "DPD deficiency carries a high risk of severe neutropenia, mucositis and neurotoxicity. "
        "Standard dosing is contraindicated when deficiency is confirmed."
    ),
    ("SLCO1B1", "SIMVASTATIN"): (
        "SLCO1B1 encodes OATP1B1, the transporter responsible for hepatic uptake of simvastatin. "
        "The {diplotype} genotype ({phenotype}) reduces transporter function and increases "
        "systemic simvastatin acid exposure.\n\n"
        "Exposure is linked to statin-associated myopathy; consider a lower dose or a statin "
        "less dependent on OATP1B1 such as pravastatin or rosuvastatin."
    ),
})

PATIENT_TEMPLATES: Mapping[Tuple[str, str], str] = MappingProxyType({
    ("CYP2D6", "CODEINE"): (
        "Your genes affect how your body processes codeine. Your CYP2D6 result "
        "({diplotype}) means you are a {phenotype}. Codeine may not relieve pain as expected "
        "for you, or it may cause unwanted side effects.\n\n"
        "Your healthcare provider may suggest a pain medicine that does not depend on this pathway."
    ),
    ("CYP2C9", "WARFARIN"): (
        "Your CYP2C9 result ({diplotype}, {phenotype}) affects how quickly your body clears "
        "warfarin. You may need a lower starting dose to balance clot prevention against "
        "bleeding, and your INR will be checked more often."
    ),
    ("CYP2C19", "CLOPIDOGREL"): (
        "Your CYP2C19 result ({diplotype}, {phenotype}) affects how well your body turns "
        "clopidogrel into its active form. The medicine may protect you less well against "
        "blood clots, so your doctor may choose a different one."
    ),
    ("TPMT", "AZATHIOPRINE"): (
        "Your TPMT result ({diplotype}, {phenotype}) affects how your body breaks down "
        "azathioprine. You may be more likely to get side effects such as low blood counts, "
        "so your doctor may lower the dose and check your blood more often."
    ),
    ("DPYD", "FLUOROURACIL"): (
        "Your DPYD result ({diplotype}, {phenotype}) affects how your body clears fluorouracil. "
        "You may be at higher risk of serious side effects such as diarrhea, mouth sores and "
        "low blood counts. Your oncologist may lower the dose or avoid this medicine."
    ),
    ("SLCO1B1", "SIMVASTATIN"): (
        "Your SLCO1B1 result ({diplotype}, {phenotype}) affects how simvastatin is taken up "
        "by your liver. You may be more likely to get muscle aches or weakness, so your doctor "
        "may change the dose or pick a different statin."
    ),
})

DOCTOR_FALLBACK = (
    "Marker variants {variants} in {gene} affect {drug} disposition. The {diplotype} "
    "diplotype ({phenotype}) alters pharmacokinetics or pharmacodynamics with implications "
    "for dose selection and safety monitoring. Evidence sources: {sources}."
)

PATIENT_FALLBACK = (
    "Your genetic result for the {gene} gene affects how your body handles {drug}. "
    "Your healthcare provider will take this into account when prescribing to keep your "
    "treatment safe and effective. Evidence sources: {sources}."
)


def get_template(gene: str, drug: str, doctor: bool) -> str:
    table = DOCTOR_TEMPLATES if doctor else PATIENT_TEMPLATES
    fallback = DOCTOR_FALLBACK if doctor else PATIENT_FALLBACK
    return table.get((gene.upper(), drug.upper()), fallback)
