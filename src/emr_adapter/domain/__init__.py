from .models import (
    ActiveCondition,
    Certainty,
    Diagnosis,
    EncounterNote,
    MedicationOrder,
    MedicationRecord,
    NoteSubmission,
    OrderedLabTest,
    Patient,
    Rank,
    RecordedDiagnosis,
    VisitSummary,
)

__all__ = [
    "ActiveCondition",
    "Certainty",
    "Diagnosis",
    "EncounterNote",
    "MedicationOrder",
    "MedicationRecord",
    "NoteSubmission",
    "OrderedLabTest",
    "Patient",
    "Rank",
    "RecordedDiagnosis",
    "VisitSummary",
]
