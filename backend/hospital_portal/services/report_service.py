"""
Clinical report rendering.
Always tries the external language model first and falls back to the
deterministic template for the failed request only; the next request tries the
model again.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ..core.config import settings
from ..models.patient import Patient
from .condition_detector import ConditionDetector, ConditionTag, condition_detector
from .llm_client import GenerativeLanguageClient, LLMClientError, llm_client
from .report_assembler import REPORT_SECTIONS, ReportAssembler, missing_sections, report_assembler
from .retry import RetryPolicy, call_with_fallback

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an experienced clinical physician writing a concise, conservative "
    "clinical summary for a colleague. Use plain prose, no markdown, and keep "
    "every section header exactly as requested."
)

# Text that means the model answered with an error or a refusal instead of a report
REFUSAL_PHRASES = (
    "i am a software development assistant",
    "i cannot provide medical assessments",
    "i am an ai assistant",
    "service unavailable",
    "technical difficulties",
    "api quota exceeded",
)


class ReportMode(str, Enum):
    AI = "ai"
    FALLBACK = "fallback"


@dataclass
class RenderedReport:
    text: str
    mode: ReportMode
    conditions: List[ConditionTag]


def clean_ai_response(response: str) -> str:
    """Strip markdown artefacts so the report reads as plain prose."""
    if not response:
        return ""
    text = re.sub(r"^#{1,6}\s+", "", response, flags=re.MULTILINE)
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    text = re.sub(r"^\d+\.\s+", "• ", text, flags=re.MULTILINE)
    text = re.sub(r"^[*-]\s+", "• ", text, flags=re.MULTILINE)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()


def build_prompt(patient: Patient, tags: List[ConditionTag]) -> str:
    vitals = patient.baseline_vitals
    labs = patient.baseline_labs
    social = patient.social_history
    medications = "\n".join(
        f"- {m.name} {m.dose} via {m.route} ({m.frequency})" for m in patient.medications
    ) or "None recorded"
    sections = "\n".join(f"{i}. {title}" for i, title in enumerate(REPORT_SECTIONS, start=1))
    return f"""Please analyse this patient case.

PATIENT INFORMATION:
- Name: {patient.full_name}
- Age: {patient.age} years
- Sex: {patient.sex.value}
- Height: {patient.height or 'Not recorded'}
- Weight: {patient.weight or 'Not recorded'}

CHIEF COMPLAINTS:
{patient.complaints or 'None reported'}

VITAL SIGNS:
- Blood Pressure: {vitals.bp or 'Not recorded'}
- Heart Rate: {vitals.hr or 'Not recorded'}
- Temperature: {vitals.temp or 'Not recorded'}
- Oxygen Saturation: {vitals.spo2 or 'Not recorded'}

LABORATORY RESULTS:
- WBC: {(labs.wbc if labs else None) or 'Not recorded'}
- Platelets: {(labs.platelets if labs else None) or 'Not recorded'}
- RBC: {(labs.rbc if labs else None) or 'Not recorded'}
- Creatinine: {(labs.creatinine if labs else None) or 'Not recorded'}

MEDICAL HISTORY:
{patient.medical_history or 'None recorded'}

FAMILY HISTORY:
{patient.family_history or 'None recorded'}

CURRENT MEDICATIONS:
{medications}

SOCIAL HISTORY:
- Smoking: {'Yes' if social.smoking else 'No'}
- Alcohol: {'Yes' if social.alcohol else 'No'}
- Tobacco: {'Yes' if social.tobacco else 'No'}

OTHER FINDINGS:
{patient.other_findings or 'None recorded'}

SCREENING FLAGS: {', '.join(t.value for t in tags) or 'none'}

Write the analysis with exactly these section headers, in this order:
{sections}"""


class ClinicalReportService:
    """render(patient) -> prose plus the mode that produced it."""

    def __init__(
        self,
        client: Optional[GenerativeLanguageClient] = None,
        detector: Optional[ConditionDetector] = None,
        assembler: Optional[ReportAssembler] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.client = client or llm_client
        self.detector = detector or condition_detector
        self.assembler = assembler or report_assembler
        self.policy = policy or RetryPolicy(
            max_attempts=settings.LLM_MAX_ATTEMPTS,
            delay_seconds=settings.LLM_RETRY_DELAY_SECONDS,
        )
        self._sleep = sleep

    def render(self, patient: Patient) -> RenderedReport:
        """Report on the latest encounter; the baseline fills whatever it left blank."""
        encounter = patient.current_encounter()
        tags = self.detector.detect(encounter)

        def ai_report() -> str:
            return self._request_ai_report(encounter, tags)

        def template_report() -> str:
            return self.assembler.render(encounter, tags)

        kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        text, used_fallback = call_with_fallback(ai_report, template_report, self.policy, **kwargs)

        mode = ReportMode.FALLBACK if used_fallback else ReportMode.AI
        logger.info("Clinical report for %s rendered in %s mode", patient.id, mode.value)
        return RenderedReport(text=text, mode=mode, conditions=tags)

    def _request_ai_report(self, patient: Patient, tags: List[ConditionTag]) -> str:
        raw = self.client.complete(SYSTEM_PROMPT, build_prompt(patient, tags))
        text = clean_ai_response(raw)
        if not text:
            raise LLMClientError("Empty completion received")
        lowered = text.lower()
        for phrase in REFUSAL_PHRASES:
            if phrase in lowered:
                logger.warning("AI report for %s rejected, matched %r", patient.id, phrase)
                raise LLMClientError("Completion rejected as a refusal")
        absent = missing_sections(text)
        if absent:
            logger.warning("AI report for %s is missing sections: %s", patient.id, ", ".join(absent))
        return text


report_service = ClinicalReportService()
