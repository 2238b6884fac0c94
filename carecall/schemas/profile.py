from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


DEMOGRAPHIC_FIELDS: tuple[tuple[str, str], ...] = (
    ("age", "Age"),
    ("gender", "Gender"),
    ("occupation", "Occupation"),
    ("relationship_status", "Relationship Status"),
    ("living_situation", "Living Situation"),
)

MENTAL_HEALTH_FIELDS: tuple[tuple[str, str], ...] = (
    ("mental_health_diagnosis", "Mental Health Diagnosis"),
    ("therapy_history", "Therapy History"),
    ("psychiatric_medication", "Psychiatric Medication"),
    ("mental_health_hospitalization", "Mental Health Hospitalization"),
    ("past_self_harm_thoughts", "Past Self-Harm Thoughts"),
    ("current_self_harm_thoughts", "Current Self-Harm Thoughts"),
)

ADDITIONAL_FIELDS: tuple[tuple[str, str], ...] = (("additional_info", "Additional Info"),)

# Every structured profile attribute in display order, excluding contact details.
PROFILE_FIELDS: tuple[tuple[str, str], ...] = (
    DEMOGRAPHIC_FIELDS + MENTAL_HEALTH_FIELDS + ADDITIONAL_FIELDS
)


class PatientProfileUpsert(BaseModel):
    """Payload accepted by the profile save endpoint."""

    information: str | None = None
    phone_number: str | None = None

    age: str | None = None
    gender: str | None = None
    occupation: str | None = None
    relationship_status: str | None = None
    living_situation: str | None = None

    mental_health_diagnosis: str | None = None
    therapy_history: str | None = None
    psychiatric_medication: str | None = None
    mental_health_hospitalization: str | None = None
    past_self_harm_thoughts: str | None = None
    current_self_harm_thoughts: str | None = None

    additional_info: str | None = None


class PatientProfileItem(BaseModel):
    """Serialized patient profile row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    information: str | None = None
    phone_number: str | None = None
    age: str | None = None
    gender: str | None = None
    occupation: str | None = None
    relationship_status: str | None = None
    living_situation: str | None = None
    mental_health_diagnosis: str | None = None
    therapy_history: str | None = None
    psychiatric_medication: str | None = None
    mental_health_hospitalization: str | None = None
    past_self_harm_thoughts: str | None = None
    current_self_harm_thoughts: str | None = None
    additional_info: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PatientProfileResponse(BaseModel):
    success: bool = True
    message: str
    data: PatientProfileItem


class PatientProfileForm(BaseModel):
    """Editable form state: every field is a string and blank means unknown.

    Stored profiles use ``None`` for missing values; the form uses ``""``.
    ``from_profile`` and ``to_payload`` convert between the two.
    """

    model_config = ConfigDict(populate_by_name=True)

    age: str = ""
    gender: str = ""
    occupation: str = ""
    relationship_status: str = Field(default="", alias="relationshipStatus")
    living_situation: str = Field(default="", alias="livingSituation")
    phone_number: str = Field(default="", alias="phoneNumber")
    mental_health_diagnosis: str = Field(default="", alias="mentalHealthDiagnosis")
    therapy_history: str = Field(default="", alias="therapyHistory")
    psychiatric_medication: str = Field(default="", alias="psychiatricMedication")
    mental_health_hospitalization: str = Field(default="", alias="mentalHealthHospitalization")
    past_self_harm_thoughts: str = Field(default="", alias="pastSelfHarmThoughts")
    current_self_harm_thoughts: str = Field(default="", alias="currentSelfHarmThoughts")
    additional_info: str = Field(default="", alias="additionalInfo")

    @classmethod
    def from_profile(cls, profile: Any | None) -> "PatientProfileForm":
        if profile is None:
            return cls()
        values = {
            name: getattr(profile, name, None) or ""
            for name in cls.model_fields
        }
        return cls(**values)

    def to_payload(self) -> PatientProfileUpsert:
        values: dict[str, str | None] = {}
        for name in type(self).model_fields:
            stripped = getattr(self, name).strip()
            values[name] = stripped or None
        return PatientProfileUpsert(**values)
