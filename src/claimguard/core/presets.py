"""
Form presets for insurers, diagnoses and demo profiles.
"""

from decimal import Decimal
from typing import Any

INSURANCE_PRESETS: dict[str, dict[str, Any]] = {
    "Generic Insurance": {
        "room_rent_limit": Decimal("5000"),
        "copay_percentage": Decimal("10"),
        "exclusions": "Cosmetic surgery, Experimental treatments",
    },
    "Star Health": {
        "room_rent_limit": Decimal("10000"),
        "copay_percentage": Decimal("0"),
        "exclusions": "Non-medical items, Obesity treatment",
    },
    "HDFC Ergo": {
        "room_rent_limit": Decimal("15000"),
        "copay_percentage": Decimal("0"),
        "exclusions": "External Aids, Dental",
    },
    "Govt Scheme (Ayushman)": {
        "room_rent_limit": Decimal("2000"),
        "copay_percentage": Decimal("0"),
        "exclusions": "Private Ward, Luxury items",
    },
    "ACKO General": {
        "room_rent_limit": Decimal("7500"),
        "copay_percentage": Decimal("5"),
        "exclusions": "Maternity (first 2 years)",
    },
    "LIC": {
        "room_rent_limit": Decimal("3000"),
        "copay_percentage": Decimal("20"),
        "exclusions": "Pre-existing diseases (2 years)",
    },
}

# Diagnosis presets: ICD-10 code, CPT code, admission type, typical stay (days)
DISEASE_PRESETS: dict[str, dict[str, Any]] = {
    "Pneumonia (Unspecified)": {"diagnosis_code": "J18.9", "procedure_code": "99222", "admission_type": "Emergency", "length_of_stay": 5},
    "Dengue Fever": {"diagnosis_code": "A90", "procedure_code": "99223", "admission_type": "Emergency", "length_of_stay": 4},
    "Acute Appendicitis": {"diagnosis_code": "K35.80", "procedure_code": "44970", "admission_type": "Emergency", "length_of_stay": 3},
    "Cataract Surgery": {"diagnosis_code": "H25.1", "procedure_code": "66984", "admission_type": "Planned", "length_of_stay": 1},
    "Heart Attack (MI)": {"diagnosis_code": "I21.9", "procedure_code": "92920", "admission_type": "Emergency", "length_of_stay": 7},
    "Covid-19 (Severe)": {"diagnosis_code": "U07.1", "procedure_code": "99291", "admission_type": "Emergency", "length_of_stay": 10},
    "Knee Replacement": {"diagnosis_code": "M17.11", "procedure_code": "27447", "admission_type": "Planned", "length_of_stay": 4},
    "Maternity (Normal Delivery)": {"diagnosis_code": "O80", "procedure_code": "59400", "admission_type": "Planned", "length_of_stay": 2},
    "Kidney Stone Removal": {"diagnosis_code": "N20.0", "procedure_code": "50080", "admission_type": "Planned", "length_of_stay": 2},
}

PATIENT_PROFILES: list[dict[str, Any]] = [
    {"label": "Adult Male (Rahul Sharma)", "name": "Rahul Sharma", "age": 45, "gender": "Male"},
    {"label": "Adult Female (Priya Patel)", "name": "Priya Patel", "age": 28, "gender": "Female"},
    {"label": "Senior Citizen (Amitabh Verma)", "name": "Amitabh Verma", "age": 72, "gender": "Male"},
    {"label": "Senior Female (Sneha Gupta)", "name": "Sneha Gupta", "age": 68, "gender": "Female"},
    {"label": "Child (Arjun Singh)", "name": "Arjun Singh", "age": 12, "gender": "Male"},
]

MANUAL_PROFILE = "manual"

AUDITOR_PROFILES: list[str] = [
    "Dr. Anjali Mehta",
    "Mr. Rajesh Kumar",
    "Ms. Sarah Johns",
    "System Admin",
]


def blank_patient() -> dict[str, Any]:
    """Patient fields for manual entry."""
    return {
        "name": "",
        "age": 0,
        "gender": "Male",
        "diagnosis_code": "",
        "procedure_code": "",
        "admission_type": "Emergency",
        "length_of_stay": 1,
    }


def sample_patient() -> dict[str, Any]:
    return {
        "name": "Rahul Sharma",
        "age": 45,
        "gender": "Male",
        "diagnosis_code": "J18.9",
        "procedure_code": "99222",
        "admission_type": "Emergency",
        "length_of_stay": 3,
    }


def sample_policy() -> dict[str, Any]:
    return {
        "policy_number": "POL-123456789",
        "provider_name": "Generic Insurance",
        "sum_insured": Decimal("500000"),
        "remaining_sum_insured": Decimal("450000"),
        "copay_percentage": Decimal("10"),
        "waiting_period_served": True,
        "pre_auth_status": "APPROVED",
        "room_rent_limit": Decimal("5000"),
        "exclusions": "Cosmetic surgery, Experimental treatments",
    }


def sample_bill_items() -> list[dict[str, Any]]:
    return [
        {"id": "1", "service_name": "Room Rent (Private Ward)", "quantity": 3, "unit_price": Decimal("7500"), "reference_price": Decimal("5000")},
        {"id": "2", "service_name": "Doctor Consultation", "quantity": 3, "unit_price": Decimal("2000"), "reference_price": Decimal("1500")},
        {"id": "3", "service_name": "IV Fluids & Consumables", "quantity": 10, "unit_price": Decimal("500"), "reference_price": Decimal("300")},
        {"id": "4", "service_name": "N-95 Masks (Non-Medical)", "quantity": 5, "unit_price": Decimal("400"), "reference_price": Decimal("100")},
    ]
