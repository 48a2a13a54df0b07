from __future__ import annotations

from wrist_intake.enrichment.prompt import build_cif_prompts, build_summary_prompts
from wrist_intake.patients.records.schemas import ClinicalRecordOut
from wrist_intake.patients.schemas import ClinicalData, FiliatoriosData

_IDENTIFIERS = ("Juan", "Pérez", "12345678", "Calle Falsa 123", "11-5555-4444")


def _data(**sections) -> ClinicalData:
    filiatorios = {
        "nombre": "Juan",
        "apellido": "Pérez",
        "dni": "12345678",
        "domicilio": "Calle Falsa 123",
        "telefono": "11-5555-4444",
        "edad": "35",
    }
    return ClinicalData.model_validate({"filiatorios": filiatorios, **sections})


def test_summary_prompt_omits_empty_fields_and_units() -> None:
    data = _data(
        physical_exam={"goniometria": {"flexion": "45"}},
        scales={"tug_test": "", "debilidad": "4"},
        anamnesis={"tabaquismo": "si", "diabetes": ""},
    )
    _, user_prompt = build_summary_prompts(data=data, max_chars=20_000)

    assert "- Flexión: 45°" in user_prompt
    assert "Extensión" not in user_prompt
    assert "- Debilidad: 4/10" in user_prompt
    assert "TUG" not in user_prompt
    assert "segs" not in user_prompt
    assert "- Tabaquismo: Sí" in user_prompt
    assert "Diabetes" not in user_prompt
    assert "- Edad: 35 años" in user_prompt
    # No radiology interpretation means no radiology section at all.
    assert "RADIOGRAFÍA" not in user_prompt


def test_prompts_never_carry_direct_identifiers() -> None:
    data = _data(anamnesis={"diagnostico_medico": "Fractura de Colles"})
    record = ClinicalRecordOut(
        id=1,
        created_at="2025-01-01T00:00:00.000Z",
        anamnesis=data.anamnesis,
        physical_exam=data.physical_exam,
        scales=data.scales,
        radiology=data.radiology,
    )

    _, summary_prompt = build_summary_prompts(data=data, max_chars=20_000)
    _, cif_prompt = build_cif_prompts(
        record=record, filiatorios=data.filiatorios, max_chars=20_000
    )

    for prompt in (summary_prompt, cif_prompt):
        assert "Fractura de Colles" in prompt
        for identifier in _IDENTIFIERS:
            assert identifier not in prompt


def test_long_clinical_text_is_truncated_with_marker() -> None:
    data = _data(physical_exam={"inspeccion": "x" * 5_000})
    _, user_prompt = build_summary_prompts(data=data, max_chars=1_000)

    assert "[TRUNCADO]" in user_prompt
    assert user_prompt.count("x") <= 1_000


def test_cif_prompt_lists_only_positive_risk_factors() -> None:
    data = _data(anamnesis={"tabaquismo": "no", "alcoholismo": "si", "diabetes": "si"})
    record = ClinicalRecordOut(
        id=1,
        created_at="2025-01-01T00:00:00.000Z",
        anamnesis=data.anamnesis,
        physical_exam=data.physical_exam,
        scales=data.scales,
        radiology=data.radiology,
    )
    _, prompt = build_cif_prompts(record=record, filiatorios=FiliatoriosData(), max_chars=20_000)

    assert "- Factores de riesgo: alcoholismo" in prompt
    assert "- Comorbilidades: diabetes" in prompt
    assert "Goniometría" not in prompt
