from hospital_portal.services.condition_detector import ConditionTag, condition_detector
from hospital_portal.services.report_assembler import (
    REPORT_SECTIONS,
    ReportAssembler,
    missing_sections,
)


class TestReportAssembler:
    def setup_method(self):
        self.assembler = ReportAssembler()

    def _render(self, patient):
        return self.assembler.render(patient, condition_detector.detect(patient))

    def test_all_sections_present_in_order(self, chest_pain_patient):
        report = self._render(chest_pain_patient)
        assert missing_sections(report) == []
        positions = [report.index(title) for title in REPORT_SECTIONS]
        assert positions == sorted(positions)

    def test_sparse_record_still_complete(self, sparse_patient):
        report = self.assembler.render(sparse_patient, [])
        assert missing_sections(report) == []
        assert "not recorded" in report
        assert "not measured" in report
        assert "no current medications" in report

    def test_idempotent(self, chest_pain_patient):
        assert self._render(chest_pain_patient) == self._render(chest_pain_patient)

    def test_elevated_blood_pressure_wording(self, chest_pain_patient):
        report = self._render(chest_pain_patient)
        assert "elevated blood pressure at 165/95 mmHg" in report
        assert "twice weekly" in report
        assert "sodium restriction" in report

    def test_hypoxia_flagged(self, chest_pain_patient):
        report = self._render(chest_pain_patient)
        assert "Oxygen saturation of 93 percent" in report

    def test_cardiac_red_flag(self, chest_pain_patient):
        report = self._render(chest_pain_patient)
        assert "ECG and cardiac enzymes" in report
        assert "1-2 weeks" in report

    def test_renal_impairment_and_diuretic_monitoring(self, chest_pain_patient):
        report = self._render(chest_pain_patient)
        assert "mild renal impairment" in report
        assert "every 4-6 weeks while on diuretic therapy" in report

    def test_polypharmacy(self, chest_pain_patient):
        assert "Polypharmacy" in self._render(chest_pain_patient)

    def test_tobacco_risk(self, chest_pain_patient, stomach_patient):
        assert "Current tobacco use" in self._render(chest_pain_patient)
        assert "Absence of tobacco use" in self._render(stomach_patient)

    def test_no_red_flags_for_mild_case(self, stomach_patient):
        report = self._render(stomach_patient)
        assert "No acute life-threatening symptoms identified" in report

    def test_tags_listed_in_interpretation(self, stomach_patient):
        report = self.assembler.render(stomach_patient, [ConditionTag.GASTROINTESTINAL])
        assert "gastrointestinal_assessment" in report


class TestMissingSections:
    def test_reports_absent_headers(self):
        assert missing_sections("Patient Overview\n\nfine") == list(REPORT_SECTIONS[1:])

    def test_none_text(self):
        assert missing_sections(None) == list(REPORT_SECTIONS)


class TestFeverWording:
    def test_unitless_celsius_fever(self, stomach_patient):
        stomach_patient.baseline_vitals.temp = "38.5"
        report = ReportAssembler().render(stomach_patient, [])
        assert "Temperature of 101.3 degrees Fahrenheit indicates fever" in report

    def test_normal_celsius_reading_is_not_fever(self, stomach_patient):
        stomach_patient.baseline_vitals.temp = "37.0"
        report = ReportAssembler().render(stomach_patient, [])
        assert "indicates fever" not in report
