"""Markdown rendering for structured notes and read-side views."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..domain.models import ActiveCondition, MedicationRecord, RecordedDiagnosis

SECTION_SEPARATOR = "\n---\n\n"
NO_DIAGNOSES = "No diagnoses recorded."
NO_CLINICAL_NOTE = "No clinical note recorded."

_WORD_START_RE = re.compile(r"\b\w")


def title_case(key: str) -> str:
    """``chief_complaint`` -> ``Chief Complaint``."""
    return _WORD_START_RE.sub(lambda m: m.group().upper(), key.replace("_", " "))


def json_to_markdown(data: Any, indent: int = 0) -> str:
    """Render nested JSON-like data as markdown.

    Top-level keys become ``# Headers`` followed by their value. Nested keys
    become ``**Key**: value`` lines indented two spaces per level, and scalar
    list items become ``* item`` bullets.
    """
    output: list[str] = []
    pad = " " * indent

    for key, value in _items(data):
        title = title_case(str(key))
        header = f"{pad}**{title}**" if indent > 0 else f"\n# {title}\n"

        if isinstance(value, list):
            output.append(header)
            for item in value:
                if isinstance(item, (dict, list)):
                    output.append(json_to_markdown(item, indent + 2))
                else:
                    output.append(f"{pad}  * {_scalar(item)}")
        elif isinstance(value, dict):
            output.append(header)
            output.append(json_to_markdown(value, indent + 2))
        elif indent > 0:
            output.append(f"{header}: {_scalar(value)}")
        else:
            output.append(f"{header}{_scalar(value)}")

    return "\n".join(output)


def render_patient_summary(
    conditions: Iterable[ActiveCondition],
    medications: Iterable[MedicationRecord],
) -> str:
    """Active conditions and active medications, each section only if non-empty."""
    sections: list[str] = []

    conditions = list(conditions)
    if conditions:
        lines = ["## Active Conditions\n"]
        lines += [f"- *{c.name}*\n" for c in conditions]
        sections.append("".join(lines))

    medications = list(medications)
    if medications:
        lines = ["## Active Medications\n"]
        for med in medications:
            lines.append(f"- *{med.name}*\n")
            lines.append(f"  - Started: {_display_date(med.start_time)}\n")
            lines.append(
                f"  - Dose: {_number(med.dose)} {med.dose_unit} - {med.route} - {med.frequency}"
                f" - for {_number(med.duration)} {med.duration_unit} - {med.dosage_instruction}\n"
            )
            lines.append(
                f"  - Dispense: {_number(med.dispense_quantity)} {med.dispense_unit}"
                f" - {med.refills} refills\n"
            )
        sections.append("".join(lines))

    return SECTION_SEPARATOR.join(sections)


def render_encounter_note(diagnoses: Iterable[RecordedDiagnosis], clinical_note: str) -> str:
    """Diagnoses first, then the clinical note text."""
    diagnoses = list(diagnoses)
    parts = ["## Diagnoses\n"]
    if diagnoses:
        parts += [f"- *{d.diagnosis}* - {d.rank.value} - {d.certainty.value}\n" for d in diagnoses]
        parts.append("\n")
    else:
        parts.append(f"{NO_DIAGNOSES}\n\n")
    parts.append(f"## Clinical Note\n{clinical_note or NO_CLINICAL_NOTE}\n")
    return "".join(parts)


def _items(data: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(data, dict):
        return data.items()
    if isinstance(data, list):
        return enumerate(data)
    return ()


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _number(value: float | str) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _display_date(value: str | None) -> str:
    if not value:
        return "Unknown"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%a %b %d %Y")
    except ValueError:
        return value
