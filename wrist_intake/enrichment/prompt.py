"""Prompt assembly for the enrichment calls.

Prompts are built deterministically from the record: a field appears only when
it has a value, and units are attached to non-empty values only. Direct
identifiers (name, DNI, address, phone) are never sent.
"""

from __future__ import annotations

from wrist_intake.patients.records.schemas import AnamnesisData, ClinicalRecordOut
from wrist_intake.patients.schemas import ClinicalData, FiliatoriosData

_TRUNCATION_MARKER = "\n[TRUNCADO]"

_YES_NO_LABELS = {"si": "Sí", "no": "No"}


def _yes_no(value: str) -> str:
    return _YES_NO_LABELS.get(value, value)


def _with_unit(value: str, unit: str) -> str:
    value = (value or "").strip()
    return f"{value}{unit}" if value else ""


def _format_points(points: list[tuple[str, str]], *, indent: str = "") -> list[str]:
    return [f"{indent}- {label}: {value.strip()}" for label, value in points if value and value.strip()]


def _section(title: str, lines: list[str]) -> list[str]:
    if not lines:
        return []
    return [f"**{title}**", *lines, ""]


def _truncate(text: str, *, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + _TRUNCATION_MARKER


def _immobilisation(anamnesis: AnamnesisData) -> str:
    if anamnesis.inmovilizacion != "si":
        return _yes_no(anamnesis.inmovilizacion)
    details = _format_points(
        [
            ("Tipo", anamnesis.inmovilizacion_1_tipo),
            ("Período", anamnesis.inmovilizacion_1_periodo),
        ]
    )
    return "Sí" + (f" ({'; '.join(d[2:] for d in details)})" if details else "")


def _positive_answers(pairs: list[tuple[str, str]]) -> str:
    return ", ".join(label for label, value in pairs if value == "si")


def build_summary_prompts(*, data: ClinicalData, max_chars: int) -> tuple[str, str]:
    """Create (system_prompt, user_prompt) for the narrative summary."""

    system_prompt = "\n".join(
        [
            "Sos un asistente médico experto en kinesiología y traumatología de miembro superior.",
            "Reglas:",
            "- Basate ÚNICAMENTE en los datos provistos; no inventes hallazgos ni antecedentes.",
            "- Si un dato no figura, omitilo; no lo supongas.",
            "- Usá lenguaje clínico neutro y conciso.",
            "- Estructurá la respuesta en secciones.",
        ]
    )

    f, a, e, s = data.filiatorios, data.anamnesis, data.physical_exam, data.scales
    g = e.goniometria

    lines: list[str] = []
    lines += _section(
        "1. DATOS DEL PACIENTE",
        _format_points(
            [
                ("Edad", _with_unit(f.edad, " años")),
                ("Dominancia", a.dominancia),
                ("Actividades actuales", f.actividades_actuales),
                ("Deportes actuales", f.deportes_actuales),
            ]
        ),
    )
    lines += _section(
        "2. ANAMNESIS",
        _format_points(
            [
                ("Diagnóstico médico", a.diagnostico_medico),
                ("Causa de la lesión", a.causa_fractura),
                ("Fecha de la lesión/fractura", a.fecha_fractura),
                ("Fecha de atención médica", a.fecha_atencion_medica),
                ("Fecha de atención kinésica", a.fecha_atencion_kinesica),
                ("Cirugía (Qx)", _yes_no(a.qx)),
                ("Tipo de osteosíntesis", a.osteosintesis_1_tipo),
                ("Inmovilización", _immobilisation(a)),
                ("Tabaquismo", _yes_no(a.tabaquismo)),
                ("Diabetes", _yes_no(a.diabetes)),
                ("Menopausia", _yes_no(a.menopausia)),
                ("Osteopenia/Osteoporosis", _yes_no(a.osteopenia_osteoporosis)),
                ("DMO realizada", _yes_no(a.dmo)),
                ("Fecha última DMO", a.ultima_dmo),
                ("Caídas frecuentes", _yes_no(a.caidas_frecuentes)),
                ("N.º de caídas (últimos 6 meses)", a.caidas_6_meses),
                ("Síndrome de dolor regional complejo (SDRC/DSR)", _yes_no(a.dsr)),
                ("Medicación para el dolor", a.medicacion_dolor),
            ]
        ),
    )

    goniometry = _format_points(
        [
            ("Flexión", _with_unit(g.flexion, "°")),
            ("Extensión", _with_unit(g.extension, "°")),
            ("Desviación radial", _with_unit(g.inclinacion_radial, "°")),
            ("Desviación cubital", _with_unit(g.inclinacion_cubital, "°")),
            ("Supinación", _with_unit(g.supinacion, "°")),
            ("Pronación", _with_unit(g.pronacion, "°")),
        ],
        indent="    ",
    )
    exam = _format_points(
        [
            ("Inspección general", e.inspeccion),
            ("Palpación", e.palpacion),
            ("Edema (medida en figura de 8)", _with_unit(e.medidas.figura_en_8, " cm")),
        ]
    )
    if goniometry:
        exam += ["- Goniometría (movilidad articular):", *goniometry]
    exam += _format_points(
        [
            ("Test de Kapandji", _with_unit(e.test_kapandji, "/10")),
            ("Pruebas especiales adicionales", e.pruebas_especiales),
        ]
    )
    lines += _section("3. EXAMEN FÍSICO", exam)
    lines += _section(
        "4. ESTUDIOS POR IMÁGENES (RADIOGRAFÍA)",
        _format_points([("Interpretación", data.radiology.interpretation)]),
    )
    lines += _section(
        "5. ESCALAS DE DOLOR Y FUNCIÓN",
        _format_points(
            [
                ("Test 'Get up and Go' (TUG)", _with_unit(s.tug_test, " segs")),
                ("Dolor nocturno (severidad)", _with_unit(s.dolor_nocturno_severidad, "/10")),
                ("Dolor diurno (frecuencia)", _with_unit(s.dolor_diurno_frecuencia, "/10")),
                ("Entumecimiento/Hormigueo", _with_unit(s.hormigueo, "/10")),
                ("Debilidad", _with_unit(s.debilidad, "/10")),
                ("Dificultad para el agarre", _with_unit(s.dificultad_agarre, "/10")),
            ]
        ),
    )

    clinical_block = _truncate("\n".join(lines).strip(), max_chars=max_chars)
    user_prompt = "\n".join(
        [
            "### INFORME CLÍNICO DE PACIENTE PARA ANÁLISIS PRELIMINAR ###",
            "",
            "A continuación se presentan los datos clínicos de un paciente con una patología de "
            "muñeca. Generá un resumen conciso y un análisis preliminar: destacá los hallazgos más "
            "relevantes, posibles banderas rojas (red flags) e inconsistencias, y sugerí focos para "
            "la evaluación y el tratamiento kinésico.",
            "",
            clinical_block or "(sin datos clínicos cargados)",
        ]
    )
    return system_prompt, user_prompt


def build_radiograph_prompts() -> tuple[str, str]:
    """Create (system_prompt, user_prompt) for a wrist radiograph reading."""

    system_prompt = (
        "Sos un experto en radiología y traumatología especializado en muñeca. "
        "Describí solo lo que se observa en la imagen."
    )
    user_prompt = "\n".join(
        [
            "Analizá la siguiente radiografía y describí los hallazgos clave de forma estructurada:",
            "1. Alineación y articulaciones: huesos del carpo, articulación radiocubital distal "
            "y radiocarpiana.",
            "2. Signos de fractura: línea de fractura, desplazamiento, angulación o conminución. "
            "Si identificás una fractura de radio distal, clasificala según la clasificación AO.",
            "3. Calidad ósea: densidad ósea aparente (por ejemplo, osteopenia).",
            "4. Tejidos blandos: hallazgos relevantes visibles.",
            "",
            "Concluí con una impresión diagnóstica concisa.",
        ]
    )
    return system_prompt, user_prompt


def build_cif_prompts(
    *,
    record: ClinicalRecordOut,
    filiatorios: FiliatoriosData,
    max_chars: int,
) -> tuple[str, str]:
    """Create (system_prompt, user_prompt) for CIF profile generation."""

    system_prompt = "\n".join(
        [
            "Sos un asistente clínico experto en kinesiología y en la Clasificación Internacional "
            "del Funcionamiento, de la Discapacidad y de la Salud (CIF).",
            "Organizá la información del paciente en un perfil CIF breve, clínico y basado "
            "estrictamente en la evidencia provista.",
        ]
    )

    a, e, s = record.anamnesis, record.physical_exam, record.scales
    g = e.goniometria

    deviations = ", ".join(
        p
        for p in (
            f"radial {_with_unit(g.inclinacion_radial, '°')}" if g.inclinacion_radial else "",
            f"cubital {_with_unit(g.inclinacion_cubital, '°')}" if g.inclinacion_cubital else "",
        )
        if p
    )
    pronosupination = ", ".join(
        p
        for p in (
            f"supinación {_with_unit(g.supinacion, '°')}" if g.supinacion else "",
            f"pronación {_with_unit(g.pronacion, '°')}" if g.pronacion else "",
        )
        if p
    )

    points = [
        ("Edad", filiatorios.edad),
        ("Dominancia", a.dominancia),
        ("Actividades/Trabajo", filiatorios.actividades_actuales),
        ("Deportes", filiatorios.deportes_actuales),
        (
            "Factores de riesgo",
            _positive_answers([("tabaquismo", a.tabaquismo), ("alcoholismo", a.alcoholismo)]),
        ),
        (
            "Comorbilidades",
            _positive_answers(
                [
                    ("diabetes", a.diabetes),
                    ("enfermedad del SNC", a.enf_snc),
                    ("alteración vascular", a.alt_vascular),
                    ("osteopenia/osteoporosis", a.osteopenia_osteoporosis),
                    ("SDRC", a.dsr),
                ]
            ),
        ),
        ("Diagnóstico médico", a.diagnostico_medico),
        ("Mecanismo lesional", a.causa_fractura),
        ("Fecha de lesión", a.fecha_fractura),
        ("Dolor nocturno (severidad)", _with_unit(s.dolor_nocturno_severidad, "/10")),
        ("Dolor diurno (frecuencia)", _with_unit(s.dolor_diurno_frecuencia, "/10")),
        ("Síntomas neurológicos (hormigueo/entumecimiento)", _with_unit(s.hormigueo, "/10")),
        ("Goniometría - Flexión", _with_unit(g.flexion, "°")),
        ("Goniometría - Extensión", _with_unit(g.extension, "°")),
        ("Goniometría - Desviaciones", deviations),
        ("Goniometría - Prono-supinación", pronosupination),
        ("Edema (medida en 8)", _with_unit(e.medidas.figura_en_8, " cm")),
        ("Debilidad (escala)", _with_unit(s.debilidad, "/10")),
        ("Hallazgos radiológicos", record.radiology.interpretation),
        ("Dificultad de agarre (escala)", _with_unit(s.dificultad_agarre, "/10")),
        ("Test de Kapandji (oposición del pulgar)", _with_unit(e.test_kapandji, "/10")),
        ("Test 'Get up and Go' (TUG)", _with_unit(s.tug_test, " segs")),
        ("Resumen clínico previo", record.summary),
    ]
    patient_block = _truncate("\n".join(_format_points(points)), max_chars=max_chars)

    user_prompt = "\n".join(
        [
            "Instrucciones:",
            "1. Analizá los datos de la evaluación kinésica del paciente.",
            "2. Identificá únicamente los códigos CIF más relevantes que estén directamente "
            "justificados por los datos. Clasificalos en:",
            "   - funciones_estructuras: funciones y estructuras corporales (códigos 'b' y 's')",
            "   - actividad_participacion: actividad y participación (códigos 'd')",
            "   - factores_ambientales: factores ambientales (códigos 'e')",
            "   - factores_personales: descripción cualitativa, no codificada",
            "3. Asigná a cada código un calificador como string: 0=ninguna, 1=leve, 2=moderada, "
            "3=grave, 4=completa.",
            "4. En factores ambientales usá '2' para una barrera y '+2' para un facilitador. "
            "El prefijo '+' solo se usa en factores ambientales.",
            "5. Respondé solo con el JSON solicitado.",
            "",
            "DATOS DEL PACIENTE:",
            patient_block or "(sin datos clínicos cargados)",
        ]
    )
    return system_prompt, user_prompt
