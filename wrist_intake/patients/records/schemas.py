from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

YesNo = Literal["", "si", "no"]
Dominance = Literal["", "Derecha", "Izquierda", "Ambidiestro"]


class _Section(BaseModel):
    """
    Base for clinical form sections.

    Every field has an empty default so a partially filled (or partially stored)
    section still validates. Numbers sent for text fields are kept as text.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class AnamnesisData(_Section):
    diagnostico_medico: str = ""
    evaluacion_kinesica: str = ""
    medico_derivador: str = ""
    fecha_derivacion: str = ""
    kinesiologo: str = ""
    fecha_fractura: str = ""
    causa_fractura: str = ""
    fecha_atencion_medica: str = ""
    fecha_atencion_kinesica: str = ""
    lugar_primera_atencion: str = ""
    rx: YesNo = ""
    traccion: YesNo = ""
    qx: YesNo = ""
    dias_internacion: str = ""
    osteosintesis_1_tipo: str = ""
    osteosintesis_1_periodo: str = ""
    inmovilizacion: YesNo = ""
    inmovilizacion_1_tipo: str = ""
    inmovilizacion_1_periodo: str = ""
    osteosintesis_2_tipo: str = ""
    osteosintesis_2_periodo: str = ""
    inmovilizacion_2_tipo: str = ""
    inmovilizacion_2_periodo: str = ""
    dominancia: Dominance = ""
    antecedentes_clinico_quirurgicos: str = ""
    medicacion_dolor: str = ""
    medicacion_extra: str = ""
    menopausia: YesNo = ""
    osteopenia_osteoporosis: YesNo = ""
    dmo: YesNo = ""
    ultima_dmo: str = ""
    caidas_frecuentes: YesNo = ""
    caidas_6_meses: str = ""
    tabaquismo: YesNo = ""
    alcoholismo: YesNo = ""
    barbituricos: YesNo = ""
    neoplasias: YesNo = ""
    fx_hombro: YesNo = ""
    infecciones: YesNo = ""
    enf_snc: YesNo = ""
    alt_vascular: YesNo = ""
    diabetes: YesNo = ""
    dsr: YesNo = ""
    tiroidismo: YesNo = ""
    hiperlipidemia: YesNo = ""
    dupuytren: YesNo = ""
    manos_transpiran: YesNo = ""

    @model_validator(mode="after")
    def _clear_gated_answers(self) -> AnamnesisData:
        # Follow-up answers only exist when their gate question is answered "si".
        if self.qx != "si":
            self.osteosintesis_1_tipo = ""
        if self.inmovilizacion != "si":
            self.inmovilizacion_1_tipo = ""
            self.inmovilizacion_1_periodo = ""
        if self.dmo != "si":
            self.ultima_dmo = ""
        if self.caidas_frecuentes != "si":
            self.caidas_6_meses = ""
        return self


class CftLesion(_Section):
    chasquido: bool = False
    dolor_dorsal_palmar: bool = False
    crepitacion: bool = False


class ActitudMiembroSuperior(_Section):
    hombro: str = ""
    codo_antebrazo: str = ""
    muneca: str = ""
    mano: str = ""


class PruebasFracturaEscafoides(_Section):
    sensibilidad_tabaquera: str = ""
    dolor_supinacion: str = ""
    dolor_compresion: str = ""


class Medidas(_Section):
    figura_en_8: str = Field(default="", description="Figure-of-eight edema measure (cm).")
    estiloideo: str = ""
    palmar: str = ""
    mtcpf: str = ""


class Goniometria(_Section):
    """Wrist and forearm range of motion, degrees."""

    flexion: str = ""
    extension: str = ""
    inclinacion_radial: str = ""
    inclinacion_cubital: str = ""
    supinacion: str = ""
    pronacion: str = ""


class MovimientosHombro(_Section):
    elevacion_anterior: str = ""
    geb1: str = ""
    geb2: str = ""


class PruebasPrension(_Section):
    punta_flecha: bool = False
    pinza_fina: bool = False
    pinza_llave: bool = False
    tablero: bool = False
    apertura_completa: bool = False
    garra: bool = False
    empunadura: bool = False


class Prwe(_Section):
    actividades_especificas: str = ""
    actividades_cotidiana: str = ""


class PhysicalExamData(_Section):
    """
    Physical examination.

    Sub-sections are a closed set of typed models; callers update them by
    replacing a sub-section (e.g. `exam.model_copy(update={"goniometria": g})`).
    """

    cft_lesion: CftLesion = Field(default_factory=CftLesion)
    actitud_miembro_superior: ActitudMiembroSuperior = Field(
        default_factory=ActitudMiembroSuperior
    )
    pruebas_fractura_escafoides: PruebasFracturaEscafoides = Field(
        default_factory=PruebasFracturaEscafoides
    )
    medidas: Medidas = Field(default_factory=Medidas)
    test_kapandji: str = Field(default="", description="Kapandji thumb opposition score (/10).")
    goniometria: Goniometria = Field(default_factory=Goniometria)
    dolor_hombro: YesNo = ""
    movimientos_hombro: MovimientosHombro = Field(default_factory=MovimientosHombro)
    pruebas_prension: PruebasPrension = Field(default_factory=PruebasPrension)
    prwe: Prwe = Field(default_factory=Prwe)
    inspeccion: str = ""
    palpacion: str = ""
    pruebas_especiales: str = ""


class ScalesData(_Section):
    """Pain and function scales (0-10 unless noted)."""

    dolor_nocturno_severidad: str = ""
    dolor_nocturno_frecuencia: str = ""
    dolor_diurno_frecuencia: str = ""
    dolor_diurno_episodios: str = ""
    dolor_diurno_duracion: str = ""
    entumecimiento: str = ""
    debilidad: str = ""
    hormigueo: str = ""
    entumecimiento_hormigueo_nocturno_severidad: str = ""
    entumecimiento_hormigueo_nocturno_frecuencia: str = ""
    dificultad_agarre: str = ""
    tug_test: str = Field(default="", description="Timed Up and Go test (seconds).")


class RadiologyData(_Section):
    image_base64: str = Field(
        default="",
        description="Radiograph as a data URL (data:image/png;base64,...) or bare base64.",
    )
    image_type: str = Field(default="", description="MIME type of the radiograph image.")
    interpretation: str = ""


class CIFCode(BaseModel):
    codigo: str = Field(min_length=1, max_length=20, examples=["b28016"])
    descripcion: str = Field(min_length=1, examples=["Dolor en las articulaciones"])
    calificador: str = Field(
        pattern=r"^\+?[0-4]$",
        description=(
            "0=none .. 4=complete. Environmental factors use a '+' prefix for facilitators."
        ),
        examples=["2", "+3"],
    )

    @field_validator("codigo", "descripcion", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("calificador", mode="before")
    @classmethod
    def _qualifier_as_text(cls, value: object) -> object:
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, str):
            return value.strip()
        return value


class CIFProfile(BaseModel):
    """ICF (CIF) functioning profile attached to one clinical record."""

    funciones_estructuras: list[CIFCode] = Field(
        default_factory=list, description="Body functions and structures (b/s codes)."
    )
    actividad_participacion: list[CIFCode] = Field(
        default_factory=list, description="Activities and participation (d codes)."
    )
    factores_ambientales: list[CIFCode] = Field(
        default_factory=list, description="Environmental factors (e codes), barrier or facilitator."
    )
    factores_personales: str = Field(
        default="", description="Personal factors, free text (not coded)."
    )

    @model_validator(mode="after")
    def _facilitators_only_for_environment(self) -> CIFProfile:
        for item in [*self.funciones_estructuras, *self.actividad_participacion]:
            if item.calificador.startswith("+"):
                raise ValueError("facilitator qualifiers apply to environmental factors only")
        return self

    @property
    def is_meaningful(self) -> bool:
        return bool(
            self.funciones_estructuras
            or self.actividad_participacion
            or self.factores_ambientales
            or self.factores_personales.strip()
        )


class ClinicalRecordOut(BaseModel):
    id: int = Field(description="Sequential clinical record identifier.")
    created_at: str = Field(
        description="Creation timestamp (ISO 8601, UTC).", examples=["2025-03-01T14:05:09.123Z"]
    )
    anamnesis: AnamnesisData
    physical_exam: PhysicalExamData
    scales: ScalesData
    radiology: RadiologyData
    summary: str = Field(default="", description="AI-assisted narrative summary.")
    cif_profile: CIFProfile | None = Field(
        default=None, description="CIF profile; absent until generated or supplied."
    )
