"""Property-based tests using Hypothesis.

Property-based testing generates hundreds of random inputs and verifies that
invariants hold for all of them. This catches edge cases that hand-written
example tests miss: empty strings, unicode, odd spacing, missing fields.

These tests exercise pure functions directly; the one resolver test uses a
MagicMock in place of the REST client.
"""

from __future__ import annotations

import string
from unittest.mock import MagicMock

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from emr_adapter.domain.models import ActiveCondition, Certainty, MedicationRecord, Rank, RecordedDiagnosis
from emr_adapter.fhir.resources import ResourceBuilder
from emr_adapter.sync.mapper import NO_NAME, patient_from_fhir
from emr_adapter.sync.markdown import (
    NO_CLINICAL_NOTE,
    NO_DIAGNOSES,
    SECTION_SEPARATOR,
    json_to_markdown,
    render_encounter_note,
    render_patient_summary,
    title_case,
)
from emr_adapter.sync.navigator import find_part_of_children
from emr_adapter.sync.vocabulary import VocabularyResolver, normalize_drug_label

pytestmark = pytest.mark.quality

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

# Safe ID characters: alphanumeric + hyphens, at least 1 char
safe_id = st.text(
    alphabet=string.ascii_letters + string.digits + "-",
    min_size=1,
    max_size=40,
)

plain_name = st.text(alphabet=string.ascii_letters + " ", min_size=1, max_size=40)

clinical_text = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "P", "Zs")),
    min_size=1,
    max_size=200,
)

optional_text = st.none() | st.text(max_size=40)

patient_resource_st = st.fixed_dictionaries(
    {"id": safe_id},
    optional={
        "name": st.lists(st.fixed_dictionaries({}, optional={"text": optional_text}), max_size=2),
        "identifier": st.lists(st.fixed_dictionaries({}, optional={"value": optional_text}), max_size=2),
        "gender": st.sampled_from(["male", "female", "other", "unknown"]) | st.none(),
        "birthDate": st.dates().map(lambda d: d.isoformat()) | st.none(),
    },
)

diagnosis_st = st.builds(
    RecordedDiagnosis,
    uuid=safe_id,
    diagnosis=clinical_text,
    certainty=st.sampled_from(list(Certainty)),
    rank=st.sampled_from(list(Rank)),
)

medication_st = st.builds(
    MedicationRecord,
    name=plain_name,
    dose=st.floats(min_value=0, max_value=1000, allow_nan=False),
    duration=st.floats(min_value=0, max_value=365, allow_nan=False),
    dispense_quantity=st.floats(min_value=0, max_value=1000, allow_nan=False),
    refills=st.integers(min_value=0, max_value=12),
)

# Drug label tokens without whitespace, e.g. "Aspirin", "81mg"
label_token = st.text(alphabet=string.ascii_letters + string.digits, min_size=1, max_size=12)
spacing = st.text(alphabet=" \t", min_size=0, max_size=3)


# ---------------------------------------------------------------------------
# Patient mapping
# ---------------------------------------------------------------------------

class TestPatientMappingProperties:

    @given(resource=patient_resource_st)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_never_raises_and_always_has_a_name(self, resource) -> None:
        patient = patient_from_fhir(resource)
        assert patient.id == resource["id"]
        assert patient.display_name

    @given(resource=patient_resource_st)
    @settings(max_examples=100)
    def test_mapping_is_deterministic(self, resource) -> None:
        assert patient_from_fhir(resource) == patient_from_fhir(resource)

    @given(patient_id=safe_id)
    @settings(max_examples=50)
    def test_nameless_patient_gets_placeholder(self, patient_id) -> None:
        assert patient_from_fhir({"id": patient_id, "name": []}).display_name == NO_NAME


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

class TestDrugLabelProperties:

    @given(label=st.text(max_size=60))
    @settings(max_examples=200)
    def test_normalize_is_idempotent_and_whitespace_free(self, label) -> None:
        normalized = normalize_drug_label(label)
        assert normalize_drug_label(normalized) == normalized
        assert not any(ch.isspace() for ch in normalized)

    @given(name=label_token, strength=label_token, gap=spacing, case=st.booleans())
    @settings(max_examples=200)
    def test_resolver_ignores_spacing_and_case(self, name, strength, gap, case) -> None:
        display = f"{name}{gap}{strength}"
        if case:
            display = display.upper()
        rest = MagicMock()
        rest.search_drugs.return_value = [{"uuid": "drug-1", "display": display}]
        assert VocabularyResolver(rest).resolve_drug(name, strength) == "drug-1"


class TestRankProperties:

    @given(rank=st.sampled_from(list(Rank)))
    def test_priority_round_trip(self, rank) -> None:
        assert Rank.from_priority(rank.priority) is rank

    @given(value=st.integers() | st.none())
    def test_any_priority_maps_to_a_rank(self, value) -> None:
        expected = Rank.PRIMARY if value == 1 else Rank.SECONDARY
        assert Rank.from_priority(value) is expected


# ---------------------------------------------------------------------------
# Child encounter scan
# ---------------------------------------------------------------------------

class TestPartOfScanProperties:

    @given(
        parents=st.lists(st.sampled_from(["visit-1", "visit-2", None]), max_size=30),
    )
    @settings(max_examples=200)
    def test_returns_exactly_the_children_in_order(self, parents) -> None:
        entries = []
        for i, parent in enumerate(parents):
            resource = {"id": f"enc-{i}"}
            if parent:
                resource["partOf"] = {"reference": f"Encounter/{parent}"}
            entries.append({"resource": resource})

        children = find_part_of_children(entries, "visit-1")
        assert [c["id"] for c in children] == [
            f"enc-{i}" for i, parent in enumerate(parents) if parent == "visit-1"
        ]


# ---------------------------------------------------------------------------
# Markdown rendering
# ---------------------------------------------------------------------------

class TestMarkdownProperties:

    @given(diagnoses=st.lists(diagnosis_st, max_size=5), note=st.text(max_size=200))
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_encounter_note_layout(self, diagnoses, note) -> None:
        markdown = render_encounter_note(diagnoses, note)
        assert markdown.startswith("## Diagnoses\n")
        assert "\n## Clinical Note\n" in markdown
        assert markdown.index("## Diagnoses") < markdown.index("## Clinical Note")
        if diagnoses:
            for d in diagnoses:
                assert f"- *{d.diagnosis}* - {d.rank.value} - {d.certainty.value}\n" in markdown
        else:
            assert markdown.startswith(f"## Diagnoses\n{NO_DIAGNOSES}\n\n")
        if note:
            assert markdown.endswith(f"{note}\n")
        else:
            assert markdown.endswith(f"{NO_CLINICAL_NOTE}\n")

    @given(
        conditions=st.lists(st.builds(ActiveCondition, name=plain_name), max_size=4),
        medications=st.lists(medication_st, max_size=3),
    )
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_patient_summary_sections(self, conditions, medications) -> None:
        summary = render_patient_summary(conditions, medications)
        assert (summary == "") == (not conditions and not medications)
        assert summary.startswith("## Active Conditions") == bool(conditions)
        assert ("## Active Medications" in summary) == bool(medications)
        if conditions and medications:
            assert SECTION_SEPARATOR + "## Active Medications" in summary

    @given(
        data=st.dictionaries(
            keys=st.text(alphabet=string.ascii_lowercase + "_", min_size=1, max_size=20),
            values=clinical_text | st.lists(clinical_text, max_size=3),
            min_size=1,
            max_size=5,
        )
    )
    @settings(max_examples=200)
    def test_every_top_level_key_is_a_header(self, data) -> None:
        markdown = json_to_markdown(data)
        for key in data:
            assert f"\n# {title_case(key)}\n" in markdown


# ---------------------------------------------------------------------------
# Resource builder properties
# ---------------------------------------------------------------------------

class TestResourceBuilderProperties:

    @given(patient_id=safe_id, visit_id=safe_id, location=safe_id, practitioner=safe_id)
    @settings(max_examples=200)
    def test_built_encounters_always_validate(self, patient_id, visit_id, location, practitioner) -> None:
        for resource in (
            ResourceBuilder.visit(patient_id, location),
            ResourceBuilder.note_encounter(patient_id, visit_id, location, practitioner),
            ResourceBuilder.order_encounter(patient_id, visit_id, location),
        ):
            ResourceBuilder.validate_encounter(resource)
            assert resource["subject"]["reference"] == f"Patient/{patient_id}"

    @given(patient_id=safe_id, note_id=safe_id, text=st.text(max_size=300))
    @settings(max_examples=100)
    def test_note_observation_keeps_text_verbatim(self, patient_id, note_id, text) -> None:
        obs = ResourceBuilder.note_observation(f"Patient/{patient_id}", note_id, text)
        assert obs["valueString"] == text
