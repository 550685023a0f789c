"""Tests for the bundled GLP-1 medication catalogue."""

from __future__ import annotations

from companion.domains.glp1.domain_logic.medication_library import (
    default_medication,
    default_schedule,
    get_medication,
    list_medications,
    load_medication_file,
)
from companion.domains.glp1.domain_logic.models import MedicationPhase


class TestCatalogue:
    def test_loads_bundled_file(self):
        medications = list_medications()
        assert len(medications) == 8
        ids = [m.id for m in medications]
        assert ids[0] == "ozempic"
        assert {"wegovy", "mounjaro", "zepbound", "saxenda"} <= set(ids)

    def test_ids_are_unique(self):
        ids = [m.id for m in list_medications()]
        assert len(ids) == len(set(ids))

    def test_every_entry_has_a_starting_dose(self):
        for medication in list_medications():
            assert medication.titration_doses, medication.id

    def test_get_medication(self):
        mounjaro = get_medication("mounjaro")
        assert mounjaro is not None
        assert mounjaro.generic_name == "Tirzepatide"
        assert mounjaro.titration_doses[0] == "2.5 mg"

    def test_unknown_medication(self):
        assert get_medication("aspirin") is None

    def test_as_dict(self):
        data = get_medication("ozempic").as_dict()
        assert data["brand_name"] == "Ozempic"
        assert isinstance(data["maintenance_doses"], list)


class TestDefaults:
    def test_default_medication_is_first_entry(self):
        assert default_medication().id == "ozempic"

    def test_default_schedule_starts_titration(self):
        schedule = default_schedule()
        assert schedule.medication_name == "Ozempic"
        assert schedule.current_dose == "0.25 mg"
        assert schedule.phase is MedicationPhase.TITRATION


class TestLoadFile:
    def test_custom_file(self, tmp_path):
        path = tmp_path / "meds.yaml"
        path.write_text(
            "medications:\n"
            "  - id: rybelsus\n"
            "    brand_name: Rybelsus\n"
            "    generic_name: Semaglutide\n"
            "    frequency: Daily tablet\n"
            "    titration_doses: ['3 mg']\n"
            "    maintenance_doses: ['7 mg', '14 mg']\n"
        )
        medications = load_medication_file(path)
        assert len(medications) == 1
        assert medications[0].maintenance_doses == ("7 mg", "14 mg")
        assert medications[0].notes == ""

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_medication_file(path) == []
