"""
Diagnosis extraction from a rendered clinical report.
Picks labelled lines out of the prose; anything not labelled falls back to
the diagnosis-like lines of the report or to fixed defaults.
"""
import re
from dataclasses import asdict, dataclass
from typing import Dict

DEFAULT_CONFIDENCE = 75
DEFAULT_DIFFERENTIALS = "Consider alternative diagnoses based on clinical presentation"
DEFAULT_TREATMENT = "Treatment should be tailored to clinical findings"
SUMMARY_MAX_CHARS = 200

_DIAGNOSIS_WORDS = ("diagnosis", "assessment", "impression")
_INTEGER = re.compile(r"\d+")
# Line labels in the order they are tried; the value is whatever follows the label
_LABELS = (
    ("primary", "primary diagnosis", re.compile(r"primary diagnos[ie]s", re.IGNORECASE)),
    ("differentials", "differential", re.compile(r"differentials?(?:\s+diagnos[ie]s)?", re.IGNORECASE)),
    ("treatment", "treatment", re.compile(r"treatment(?:\s+plan)?", re.IGNORECASE)),
)


@dataclass
class ReportDiagnosis:
    primary: str
    differentials: str
    treatment: str
    confidence: int  # 0-100

    def to_dict(self) -> Dict:
        return asdict(self)


def _after_label(line: str, pattern) -> str:
    """Text after the last match of ``pattern``, without colons leading it or any asterisks."""
    matches = list(pattern.finditer(line))
    return line[matches[-1].end():].replace("*", "").lstrip(": ").strip()


def summarize_diagnosis(text: str) -> str:
    """
    Join every line mentioning a diagnosis, assessment or impression.
    Without any, the first three lines stand in, capped at SUMMARY_MAX_CHARS.
    """
    if not text:
        return ""
    lines = text.split("\n")
    matched = [line for line in lines if any(word in line.lower() for word in _DIAGNOSIS_WORDS)]
    if matched:
        summary = re.sub(r"[:*]", "", " ".join(matched)).strip()
        if summary:
            return summary
    return " ".join(lines[:3])[:SUMMARY_MAX_CHARS].strip()


def parse_report_diagnosis(text: str) -> ReportDiagnosis:
    found: Dict[str, str] = {}
    confidence = DEFAULT_CONFIDENCE

    for raw in (text or "").split("\n"):
        line = raw.strip()
        lowered = line.lower()
        for field, keyword, pattern in _LABELS:
            if keyword in lowered:
                found[field] = _after_label(line, pattern)
                break
        else:
            if "confidence" not in lowered:
                continue
            match = _INTEGER.search(line)
            if match:
                confidence = int(match.group(0))

    return ReportDiagnosis(
        primary=found.get("primary") or summarize_diagnosis(text),
        differentials=found.get("differentials") or DEFAULT_DIFFERENTIALS,
        treatment=found.get("treatment") or DEFAULT_TREATMENT,
        confidence=min(100, max(0, confidence)),
    )
