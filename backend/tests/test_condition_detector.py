from hospital_portal.models.patient import Medication, Patient, Sex, VitalSigns
from hospital_portal.services.condition_detector import (
    CONDITION_KEYWORDS,
    ConditionDetector,
    ConditionTag,
    detect_conditions,
    detect_conditions_in_text,
)


class TestConditionDetector:
    def setup_method(self):
        self.detector = ConditionDetector()

    def test_chest_pain_flags_cardiac(self, chest_pain_patient):
        tags = self.detector.detect(chest_pain_patient)
        assert ConditionTag.CARDIAC in tags
        assert tags[0] == ConditionTag.CARDIAC

    def test_elevated_blood_pressure_adds_monitoring(self, chest_pain_patient):
        """165/95 contains no keyword but is hypertensive by value."""
        tags = self.detector.detect(chest_pain_patient)
        assert ConditionTag.HYPERTENSION in tags

    def test_stomach_complaint_only_gastrointestinal(self, stomach_patient):
        assert self.detector.detect(stomach_patient) == [ConditionTag.GASTROINTESTINAL]

    def test_empty_record_yields_no_tags(self, sparse_patient):
        assert self.detector.detect(sparse_patient) == []

    def test_output_follows_category_order(self):
        text = "dialysis, headache and chest tightness, forgot my pills"
        tags = self.detector.detect_in_text(text)
        assert tags == [
            ConditionTag.CARDIAC,
            ConditionTag.NEUROLOGICAL,
            ConditionTag.RENAL,
            ConditionTag.MEDICATION,
        ]
        expected_order = [tag for tag, _ in CONDITION_KEYWORDS]
        assert tags == sorted(tags, key=expected_order.index)

    def test_deterministic(self, chest_pain_patient):
        assert self.detector.detect(chest_pain_patient) == self.detector.detect(chest_pain_patient)

    def test_case_insensitive(self):
        assert self.detector.detect_in_text("SHORTNESS OF BREATH") == [ConditionTag.RESPIRATORY]

    def test_no_duplicates_when_many_triggers_match(self):
        tags = self.detector.detect_in_text("chest pain, heart racing, angina")
        assert tags.count(ConditionTag.CARDIAC) == 1

    def test_medication_names_are_searched(self):
        patient = Patient(
            id="PAT-3000",
            full_name="Insulin User",
            age=50,
            sex=Sex.MALE,
            medications=[Medication(name="Insulin glargine")],
        )
        assert ConditionTag.DIABETES in self.detector.detect(patient)

    def test_normal_blood_pressure_not_flagged(self):
        patient = Patient(
            id="PAT-3001",
            full_name="Calm Reader",
            age=40,
            sex=Sex.FEMALE,
            baseline_vitals=VitalSigns(bp="118/76"),
        )
        assert ConditionTag.HYPERTENSION not in self.detector.detect(patient)

    def test_describe_covers_all_tags(self):
        flags = self.detector.describe([ConditionTag.RENAL])
        assert set(flags) == {tag.value for tag in ConditionTag}
        assert flags["renal_function_assessment"] is True
        assert flags["cardiac_evaluation_needed"] is False


class TestModuleFunctions:
    def test_detect_conditions(self, stomach_patient):
        assert detect_conditions(stomach_patient) == [ConditionTag.GASTROINTESTINAL]

    def test_empty_text(self):
        assert detect_conditions_in_text("") == []
        assert detect_conditions_in_text(None) == []
