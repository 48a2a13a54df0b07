"""Server-side raster of the patient view, used as the input of the PDF export."""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from typing import Any, Literal

from PIL import Image, ImageDraw, ImageFont

from wrist_intake.patients.records.schemas import CIFCode, CIFProfile, ClinicalRecordOut
from wrist_intake.patients.schemas import PatientDetailOut

Style = Literal["title", "heading", "subheading", "body"]

_FONT_SIZES: dict[Style, int] = {"title": 34, "heading": 26, "subheading": 21, "body": 18}
_PADDING = 48
_LINE_SPACING = 6

_FILIATORIOS_LABELS = {
    "fecha_nacimiento": "Fecha de nacimiento",
    "edad": "Edad",
    "nacionalidad": "Nacionalidad",
    "estado_civil": "Estado civil",
    "dni": "DNI",
    "obra_social": "Obra social",
    "domicilio": "Domicilio",
    "localidad": "Localidad",
    "partido": "Partido",
    "telefono": "Teléfono",
    "actividades_anteriores": "Actividades anteriores",
    "actividades_actuales": "Actividades actuales",
    "deportes_anteriores": "Deportes anteriores",
    "deportes_actuales": "Deportes actuales",
}

_CIF_CATEGORIES = (
    ("funciones_estructuras", "Funciones y estructuras corporales"),
    ("actividad_participacion", "Actividad y participación"),
    ("factores_ambientales", "Factores ambientales"),
)


@dataclass(frozen=True)
class _Line:
    text: str
    style: Style


def _printable(text: str) -> str:
    # The bitmap fallback font only covers latin-1.
    return text.encode("latin-1", "replace").decode("latin-1")


def _label(key: str) -> str:
    return key.replace("_", " ").capitalize()


def _flatten(values: dict[str, Any], *, prefix: str = "") -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for key, value in values.items():
        label = f"{prefix}{_label(key)}"
        if isinstance(value, dict):
            out += _flatten(value, prefix=f"{label} / ")
        elif isinstance(value, bool):
            if value:
                out.append((label, "Sí"))
        elif value == "si":
            out.append((label, "Sí"))
        elif value == "no":
            out.append((label, "No"))
        elif isinstance(value, str) and value.strip():
            out.append((label, value.strip()))
    return out


def _cif_lines(profile: CIFProfile | None) -> list[tuple[str, str]]:
    if profile is None or not profile.is_meaningful:
        return []
    out: list[tuple[str, str]] = []
    for attr, title in _CIF_CATEGORIES:
        codes: list[CIFCode] = getattr(profile, attr)
        for code in codes:
            out.append((title, f"{code.codigo} {code.descripcion} (calificador {code.calificador})"))
    if profile.factores_personales.strip():
        out.append(("Factores personales", profile.factores_personales.strip()))
    return out


class _SheetBuilder:
    def __init__(self, *, width_px: int):
        self.width_px = width_px
        self.fonts = {
            style: ImageFont.load_default(size=size) for style, size in _FONT_SIZES.items()
        }
        self.lines: list[_Line] = []

    def _wrap_width(self, style: Style) -> int:
        char_px = max(1.0, self.fonts[style].getlength("n"))
        return max(20, int((self.width_px - 2 * _PADDING) / char_px))

    def add(self, text: str, style: Style = "body") -> None:
        wrapped = textwrap.wrap(_printable(text), width=self._wrap_width(style)) or [""]
        self.lines += [_Line(text=chunk, style=style) for chunk in wrapped]

    def add_pairs(self, title: str, pairs: list[tuple[str, str]]) -> None:
        # Empty sections are left out of the sheet.
        if not pairs:
            return
        self.add(title, "subheading")
        for label, value in pairs:
            for paragraph in value.splitlines() or [""]:
                self.add(f"{label}: {paragraph}")
                label = " " * len(label)
        self.blank()

    def blank(self) -> None:
        self.lines.append(_Line(text="", style="body"))

    def _line_height(self, style: Style) -> int:
        left, top, right, bottom = self.fonts[style].getbbox("ÁgjÑ")
        return int(bottom - top) + _LINE_SPACING

    def render(self) -> Image.Image:
        height = 2 * _PADDING + sum(self._line_height(line.style) for line in self.lines)
        image = Image.new("RGB", (self.width_px, max(height, 2 * _PADDING)), "white")
        draw = ImageDraw.Draw(image)
        y = _PADDING
        for line in self.lines:
            if line.text:
                fill = (20, 60, 120) if line.style in ("title", "heading") else (30, 30, 30)
                draw.text((_PADDING, y), line.text, font=self.fonts[line.style], fill=fill)
            y += self._line_height(line.style)
        return image


def _add_record(builder: _SheetBuilder, record: ClinicalRecordOut) -> None:
    builder.add(f"Registro #{record.id} - {record.created_at}", "heading")
    builder.add_pairs("Anamnesis", _flatten(record.anamnesis.model_dump()))
    builder.add_pairs("Examen físico", _flatten(record.physical_exam.model_dump()))
    builder.add_pairs("Escalas", _flatten(record.scales.model_dump()))

    radiology: list[tuple[str, str]] = []
    if record.radiology.image_base64.strip():
        radiology.append(("Imagen", "radiografía adjunta"))
    if record.radiology.interpretation.strip():
        radiology.append(("Interpretación", record.radiology.interpretation.strip()))
    builder.add_pairs("Radiología", radiology)

    if record.summary.strip():
        builder.add_pairs("Resumen", [("Resumen IA", record.summary.strip())])
    builder.add_pairs("Perfil CIF", _cif_lines(record.cif_profile))


def render_patient_sheet(detail: PatientDetailOut, *, width_px: int = 1240) -> Image.Image:
    """Draw demographics and every clinical record (newest first) on one tall image."""

    f = detail.filiatorios
    builder = _SheetBuilder(width_px=width_px)
    builder.add(f"Ficha del paciente: {f.nombre} {f.apellido}".strip(), "title")
    builder.blank()
    builder.add_pairs(
        "Datos filiatorios",
        [
            (label, getattr(f, key).strip())
            for key, label in _FILIATORIOS_LABELS.items()
            if getattr(f, key).strip()
        ],
    )

    if not detail.clinical_records:
        builder.add("No hay registros clínicos.")
    for record in detail.clinical_records:
        _add_record(builder, record)

    return builder.render()
