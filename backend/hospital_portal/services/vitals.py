"""
Numeric interpretation of free-text vital signs and lab values.
Values arrive as typed by staff ("140/90", "98%", "37.8 C", "1.4 mg/dL");
every parser returns None rather than raising when no number is present.
"""
import re
from dataclasses import dataclass
from typing import Optional

_BP_PATTERN = re.compile(r"(\d{2,3})\s*/\s*(\d{2,3})")
_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")

# Clinical thresholds
HYPERTENSION_SYSTOLIC = 140
HYPERTENSION_DIASTOLIC = 90
HYPOXIA_SPO2 = 95
TACHYCARDIA_HR = 100
BRADYCARDIA_HR = 60
FEVER_F = 100.4
CELSIUS_CEILING = 45.0
RENAL_IMPAIRMENT_CREATININE = 1.3
OVERWEIGHT_BMI = 25.0


@dataclass(frozen=True)
class BloodPressure:
    systolic: int
    diastolic: int

    @property
    def is_elevated(self) -> bool:
        return self.systolic >= HYPERTENSION_SYSTOLIC or self.diastolic >= HYPERTENSION_DIASTOLIC


def parse_number(value: Optional[str]) -> Optional[float]:
    """First number found in the string, e.g. "98%" -> 98.0."""
    if not value:
        return None
    match = _NUMBER_PATTERN.search(str(value))
    if not match:
        return None
    return float(match.group(0))


def parse_blood_pressure(value: Optional[str]) -> Optional[BloodPressure]:
    """Split "165/95" into systolic/diastolic integers."""
    if not value:
        return None
    match = _BP_PATTERN.search(value)
    if not match:
        return None
    return BloodPressure(systolic=int(match.group(1)), diastolic=int(match.group(2)))


def parse_temperature_f(value: Optional[str]) -> Optional[float]:
    """
    Temperature in Fahrenheit. An F or C unit is honoured; a bare number at or
    below CELSIUS_CEILING is a Celsius reading.
    """
    temp = parse_number(value)
    if temp is None:
        return None
    unit = re.sub(r"[\d.\s\-]", "", value.lower()).replace("\u00b0", "")
    if unit.startswith("f"):
        return temp
    if unit.startswith("c") or temp <= CELSIUS_CEILING:
        return temp * 9 / 5 + 32
    return temp


def calculate_bmi(height_cm: Optional[str], weight_kg: Optional[str]) -> Optional[float]:
    height = parse_number(height_cm)
    weight = parse_number(weight_kg)
    if not height or not weight or height <= 0:
        return None
    meters = height / 100
    return weight / (meters * meters)


def bmi_category(bmi: float) -> str:
    if bmi < 18.5:
        return "underweight"
    if bmi < 25:
        return "normal"
    if bmi < 30:
        return "overweight"
    return "obese"
