from hospital_portal.models.patient import REGISTRATION_PLACEHOLDER, VitalSigns, Visit
from hospital_portal.services.condition_detector import ConditionTag
from hospital_portal.services.llm_client import MOCK_COMPLETION, LLMClientError
from hospital_portal.services.report_assembler import missing_sections
from hospital_portal.services.report_service import (
    ClinicalReportService,
    ReportMode,
    build_prompt,
    clean_ai_response,
)
from hospital_portal.services.retry import RetryPolicy


class ScriptedClient:
    """Stand-in language model returning or raising queued outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def complete(self, system_prompt, prompt, max_tokens=None, temperature=None):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestClinicalReportService:
    def setup_method(self):
        self.sleeps = []

    def _service(self, client):
        return ClinicalReportService(
            client=client,
            policy=RetryPolicy(max_attempts=2, delay_seconds=2.0),
            sleep=self.sleeps.append,
        )

    def test_ai_report_used_when_available(self, chest_pain_patient):
        client = ScriptedClient(MOCK_COMPLETION)
        rendered = self._service(client).render(chest_pain_patient)
        assert rendered.mode == ReportMode.AI
        assert rendered.text.startswith("Patient Overview")
        assert ConditionTag.CARDIAC in rendered.conditions

    def test_double_transient_failure_falls_back(self, chest_pain_patient):
        client = ScriptedClient(LLMClientError("API quota exceeded"), LLMClientError("API quota exceeded"))
        rendered = self._service(client).render(chest_pain_patient)
        assert rendered.mode == ReportMode.FALLBACK
        assert missing_sections(rendered.text) == []
        assert client.calls == 2
        assert self.sleeps == [2.0]

    def test_transient_then_success(self, stomach_patient):
        client = ScriptedClient(LLMClientError("LLM API error: 429 Too Many Requests"), MOCK_COMPLETION)
        rendered = self._service(client).render(stomach_patient)
        assert rendered.mode == ReportMode.AI
        assert client.calls == 2

    def test_permanent_failure_falls_back_immediately(self, stomach_patient):
        client = ScriptedClient(LLMClientError("LLM API error: 401 Unauthorized"))
        rendered = self._service(client).render(stomach_patient)
        assert rendered.mode == ReportMode.FALLBACK
        assert client.calls == 1
        assert self.sleeps == []

    def test_refusal_text_rejected(self, stomach_patient):
        client = ScriptedClient("I am an AI assistant and cannot help with that.")
        rendered = self._service(client).render(stomach_patient)
        assert rendered.mode == ReportMode.FALLBACK
        assert missing_sections(rendered.text) == []

    def test_next_request_tries_model_again(self, stomach_patient):
        client = ScriptedClient(LLMClientError("401 Unauthorized"), MOCK_COMPLETION)
        service = self._service(client)
        assert service.render(stomach_patient).mode == ReportMode.FALLBACK
        assert service.render(stomach_patient).mode == ReportMode.AI

    def test_fallback_is_deterministic(self, chest_pain_patient):
        first = self._service(ScriptedClient(LLMClientError("bad"))).render(chest_pain_patient)
        second = self._service(ScriptedClient(LLMClientError("bad"))).render(chest_pain_patient)
        assert first.text == second.text


class TestCleanAIResponse:
    def test_strips_markdown(self):
        raw = "## Patient Overview\n\n**Stable** patient.\n- item one\n1. item two"
        cleaned = clean_ai_response(raw)
        assert cleaned.startswith("Patient Overview")
        assert "**" not in cleaned
        assert "• item one" in cleaned
        assert "• item two" in cleaned

    def test_empty(self):
        assert clean_ai_response("") == ""


class TestBuildPrompt:
    def test_prompt_carries_record_and_headers(self, chest_pain_patient):
        prompt = build_prompt(chest_pain_patient, [ConditionTag.CARDIAC])
        assert "Maria Lopez" in prompt
        assert "165/95" in prompt
        assert "Furosemide 40mg" in prompt
        assert "cardiac_evaluation_needed" in prompt
        assert "Risk Indicators / Red Flags" in prompt

    def test_sparse_record(self, sparse_patient):
        prompt = build_prompt(sparse_patient, [])
        assert "Not recorded" in prompt
        assert "SCREENING FLAGS: none" in prompt


class TestRefusalNotRetried:
    def test_quota_refusal_text_falls_back_once(self, stomach_patient):
        sleeps = []
        client = ScriptedClient("Technical difficulties: API quota exceeded")
        service = ClinicalReportService(client=client, sleep=sleeps.append)
        assert service.render(stomach_patient).mode == ReportMode.FALLBACK
        assert client.calls == 1
        assert sleeps == []


class TestLatestEncounter:
    """Reports describe the latest visit, which is where they are stored."""

    def _add_acute_visit(self, patient):
        patient.visits.append(
            Visit(
                id="VISIT-2",
                date="March 02, 2026",
                summary="Emergency review",
                vitals=VitalSigns(bp="190/125", hr="130"),
                complaints="Crushing chest pain",
            )
        )

    def test_fallback_uses_latest_visit(self, stomach_patient):
        self._add_acute_visit(stomach_patient)
        service = ClinicalReportService(client=ScriptedClient(LLMClientError("401 Unauthorized")))
        rendered = service.render(stomach_patient)
        assert rendered.mode == ReportMode.FALLBACK
        assert ConditionTag.CARDIAC in rendered.conditions
        assert ConditionTag.HYPERTENSION in rendered.conditions
        assert "190/125" in rendered.text
        assert "presenting with crushing chest pain" in rendered.text

    def test_prompt_uses_latest_visit(self, stomach_patient):
        self._add_acute_visit(stomach_patient)
        prompts = []

        class RecordingClient(ScriptedClient):
            def complete(self, system_prompt, prompt, max_tokens=None, temperature=None):
                prompts.append(prompt)
                return super().complete(system_prompt, prompt)

        ClinicalReportService(client=RecordingClient(MOCK_COMPLETION)).render(stomach_patient)
        assert "190/125" in prompts[0]
        assert "Crushing chest pain" in prompts[0]

    def test_blank_visit_fields_keep_baseline(self, stomach_patient):
        stomach_patient.visits.append(
            Visit(id="VISIT-3", date="March 03, 2026", vitals=VitalSigns(bp="150/95"))
        )
        encounter = stomach_patient.current_encounter()
        assert encounter.baseline_vitals.bp == "150/95"
        assert encounter.baseline_vitals.hr == "78"
        assert encounter.complaints == "My stomach hurts and I feel sick"
        # Stored record untouched
        assert stomach_patient.baseline_vitals.bp == ""

    def test_registration_placeholder_not_a_complaint(self, sparse_patient):
        sparse_patient.visits.append(
            Visit(id="INIT-1", date="March 01, 2026", complaints=REGISTRATION_PLACEHOLDER)
        )
        assert sparse_patient.current_encounter().complaints == ""
