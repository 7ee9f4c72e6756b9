"""Healthcare generators.

Structured results (lab results, vital signs, medical records) are returned
as JSON strings so they store cleanly in text columns; pass
``format: dict`` to get the nested mapping instead.
"""

import json
from typing import Any, Dict

from mockcraft.generators.params import get_str
from mockcraft.generators.registry import GeneratorContext, GeneratorSet, ParameterInfo

generators = GeneratorSet("health")

BLOOD_TYPES = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]

MEDICAL_CONDITIONS = [
    "Hypertension", "Type 2 Diabetes", "Asthma", "Arthritis", "Migraine", "Anxiety",
    "Depression", "Hypothyroidism", "GERD", "Osteoporosis", "Fibromyalgia", "Sleep Apnea",
]

MEDICATIONS = [
    "Lisinopril", "Metformin", "Albuterol", "Ibuprofen", "Sumatriptan", "Sertraline",
    "Levothyroxine", "Omeprazole", "Alendronate", "Gabapentin", "CPAP", "Atorvastatin",
]

SYMPTOMS = [
    "Fever", "Cough", "Headache", "Fatigue", "Shortness of breath", "Chest pain",
    "Nausea", "Dizziness", "Joint pain", "Rash", "Sore throat", "Muscle aches",
]

DIAGNOSES = [
    "Common Cold", "Influenza", "Pneumonia", "Bronchitis", "Urinary Tract Infection",
    "Gastroenteritis", "Sinusitis", "Conjunctivitis", "Otitis Media", "Pharyngitis",
]

ALLERGIES = [
    "Penicillin", "Peanuts", "Shellfish", "Latex", "Pollen", "Dust mites",
    "Pet dander", "Sulfa drugs", "Eggs", "Tree nuts", "Soy", "Wheat",
]

# name -> (low, high, unit)
LAB_TESTS = {
    "glucose": (70, 140, "mg/dL"),
    "cholesterol": (125, 200, "mg/dL"),
    "hemoglobin": (12, 17, "g/dL"),
}

VITAL_SIGNS = {
    "blood_pressure_systolic": (90, 120, "mmHg"),
    "blood_pressure_diastolic": (60, 80, "mmHg"),
    "heart_rate": (60, 100, "bpm"),
    "temperature": (97, 99, "°F"),
    "respiratory_rate": (12, 20, "breaths/min"),
}

STRUCTURED_FORMAT = [ParameterInfo("format", "string", "Output shape", default="json",
                                   options=["json", "dict"])]


def _structured(value: Dict[str, Any], params: Dict[str, Any]) -> Any:
    if get_str(params, "format", "json", options=["json", "dict"]) == "dict":
        return value
    return json.dumps(value, default=str)


def _sample(ctx: GeneratorContext, population, low: int, high: int):
    return ctx.random.sample(population, ctx.random.randint(low, high))


def _measurement(ctx: GeneratorContext, name: str, low: float, high: float, unit: str) -> Dict[str, Any]:
    return {
        "test": name,
        "value": round(ctx.random.uniform(low, high), 1),
        "unit": unit,
        "range": f"{low}-{high} {unit}",
        "date": ctx.now.date().isoformat(),
    }


@generators.register("blood_type", "ABO/Rh blood type", example="O+")
def blood_type(ctx, params):
    return ctx.random.choice(BLOOD_TYPES)


@generators.register("medical_condition", "Chronic condition", example="Asthma")
def medical_condition(ctx, params):
    return ctx.random.choice(MEDICAL_CONDITIONS)


@generators.register("medication", "Medication name", example="Metformin")
def medication(ctx, params):
    return ctx.random.choice(MEDICATIONS)


@generators.register("symptom", "Presenting symptom", example="Fatigue")
def symptom(ctx, params):
    return ctx.random.choice(SYMPTOMS)


@generators.register("diagnosis", "Acute diagnosis", example="Influenza")
def diagnosis(ctx, params):
    return ctx.random.choice(DIAGNOSES)


@generators.register("allergy", "Allergen", example="Peanuts")
def allergy(ctx, params):
    return ctx.random.choice(ALLERGIES)


@generators.register(
    "lab_result", "Laboratory measurement within its reference range",
    example='{"test": "glucose", "value": 98.4, "unit": "mg/dL"}',
    parameters=[ParameterInfo("test", "string", "Lab test (random when unset)",
                              options=list(LAB_TESTS))] + STRUCTURED_FORMAT,
)
def lab_result(ctx, params):
    name = get_str(params, "test", options=list(LAB_TESTS)) or ctx.random.choice(list(LAB_TESTS))
    low, high, unit = LAB_TESTS[name]
    return _structured(_measurement(ctx, name, low, high, unit), params)


@generators.register(
    "vital_sign", "Vital sign measurement within its normal range",
    example='{"test": "heart_rate", "value": 72.0, "unit": "bpm"}',
    parameters=[ParameterInfo("sign", "string", "Vital sign (random when unset)",
                              options=list(VITAL_SIGNS))] + STRUCTURED_FORMAT,
)
def vital_sign(ctx, params):
    name = get_str(params, "sign", options=list(VITAL_SIGNS)) or ctx.random.choice(list(VITAL_SIGNS))
    low, high, unit = VITAL_SIGNS[name]
    return _structured(_measurement(ctx, name, low, high, unit), params)


@generators.register("medical_record", "Patient record summary", parameters=STRUCTURED_FORMAT)
def medical_record(ctx, params):
    record = {
        "patient_id": f"P{ctx.random.randint(0, 99999999):08d}",
        "blood_type": ctx.random.choice(BLOOD_TYPES),
        "conditions": _sample(ctx, MEDICAL_CONDITIONS, 1, 3),
        "medications": _sample(ctx, MEDICATIONS, 0, 3),
        "allergies": _sample(ctx, ALLERGIES, 0, 2),
        "symptoms": _sample(ctx, SYMPTOMS, 1, 3),
        "diagnoses": _sample(ctx, DIAGNOSES, 1, 2),
        "vital_signs": {
            name: round(ctx.random.uniform(low, high), 1)
            for name, (low, high, _unit) in VITAL_SIGNS.items()
        },
        "last_updated": ctx.now.isoformat(),
    }
    return _structured(record, params)
