from __future__ import annotations

import json
import sys
from pathlib import Path

from ..explanation.explanation_service import ClinicalMode
from ..pharmacogenomics.risk_engine import supported_drugs
from ..pipeline.analysis_pipeline import run_analysis_pipeline
from .errors import VcfFormatError, VcfReadError
from .parser import read_vcf_file
from .validator import format_error_messages

USAGE = (
    "Usage: python -m pgxrisk.services.vcf <path-to.vcf> "
    "[--drugs A,B] [--patient-id ID] [--mode doctor|patient]"
)


def _option(argv: list[str], name: str) -> str | None:
    if name not in argv:
        return None
    idx = argv.index(name)
    if idx + 1 >= len(argv) or argv[idx + 1].startswith("--"):
        raise ValueError(f"{name} requires a value")
    return argv[idx + 1]


def main(argv: list[str]) -> int:
    if len(argv) < 2 or "--help" in argv:
        print(USAGE)
        return 0

    path = Path(argv[1])
    try:
        drugs_arg = _option(argv, "--drugs")
        patient_id = _option(argv, "--patient-id") or "ANONYMOUS"
        mode_arg = _option(argv, "--mode")
        mode = ClinicalMode(mode_arg.lower()) if mode_arg else None
    except ValueError as exc:
        print(f"Error: {exc}")
        print(USAGE)
        return 2

    drugs = [d for d in (drugs_arg.split(",") if drugs_arg else supported_drugs()) if d.strip()]

    try:
        content = read_vcf_file(path)
        outcome = run_analysis_pipeline(
            content, drugs, patient_id=patient_id, vcf_filename=path.name, explanation_mode=mode,
        )
    except VcfReadError as exc:
        print(f"Error: {exc}")
        return 2
    except VcfFormatError as exc:
        for message in format_error_messages(exc.errors):
            print(message, file=sys.stderr)
        return 3

    payload = {
        "report": outcome.report.model_dump(mode="json"),
        "issues": [i.model_dump(mode="json") for i in outcome.issues],
        "explanations": [e.model_dump(mode="json") for e in outcome.explanations],
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
