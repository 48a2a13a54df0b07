"""Seed a demo patient for local development.

This script is designed to be safe to run multiple times:
- It only runs when APP_ENV=development
- It saves the demo patient only when the clinical store has no patients
"""

# ruff: noqa: I001
# pyright: reportMissingImports=false
from __future__ import annotations

import asyncio
from datetime import date, timedelta
from pathlib import Path

from wrist_intake.core.blob_storage import LocalBlobStorage
from wrist_intake.core.settings import get_settings
from wrist_intake.patients.schemas import ClinicalRecordCreate
from wrist_intake.patients.service import save_clinical_record
from wrist_intake.patients.store import ClinicalStore


def demo_submission(*, today: date | None = None) -> ClinicalRecordCreate:
    """Juan Pérez, right wrist extensor tendinopathy (no fracture, no surgery)."""

    today = today or date.today()
    return ClinicalRecordCreate.model_validate(
        {
            "filiatorios": {
                "nombre": "Juan",
                "apellido": "Pérez",
                "fecha_nacimiento": "1989-05-15",
                "nacionalidad": "Argentina",
                "estado_civil": "Soltero",
                "dni": "99888777",
                "obra_social": "OSDE",
                "domicilio": "Calle Falsa 123",
                "localidad": "Springfield",
                "partido": "Springfield",
                "telefono": "11-5555-4444",
                "actividades_actuales": "Repositor en supermercado",
                "deportes_actuales": "Fútbol 5 (una vez por semana)",
            },
            "anamnesis": {
                "diagnostico_medico": "Tendinopatía de extensores de muñeca derecha",
                "causa_fractura": (
                    "Inicio insidioso, relacionado con movimientos repetitivos de "
                    "levantamiento y colocación de productos en estanterías."
                ),
                "fecha_atencion_medica": (today - timedelta(days=7)).isoformat(),
                "fecha_atencion_kinesica": today.isoformat(),
                "rx": "no",
                "qx": "no",
                "inmovilizacion": "no",
                "dominancia": "Derecha",
                "medicacion_dolor": "Ibuprofeno 400mg condicional al dolor.",
                "tabaquismo": "no",
                "diabetes": "no",
            },
            "physical_exam": {
                "inspeccion": (
                    "Leve tumefacción en la cara dorsal de la muñeca derecha. "
                    "Sin deformidades evidentes."
                ),
                "palpacion": (
                    "Dolor a la palpación sobre los tendones de los extensores radiales del "
                    "carpo (ECRL/ECRB). Test de Finkelstein negativo."
                ),
                "medidas": {"figura_en_8": "22.5"},
                "test_kapandji": "10",
                "goniometria": {
                    "flexion": "80",
                    "extension": "60",
                    "inclinacion_radial": "20",
                    "inclinacion_cubital": "30",
                    "supinacion": "90",
                    "pronacion": "90",
                },
            },
            "scales": {
                "dolor_nocturno_severidad": "2",
                "dolor_diurno_frecuencia": "7",
                "debilidad": "4",
                "hormigueo": "1",
                "dificultad_agarre": "5",
                "tug_test": "8",
            },
        }
    )


async def seed_demo_patient_if_empty(*, store: ClinicalStore) -> None:
    await store.open()
    try:
        total = len(await store.list_patients())
        if total > 0:
            print(f"Seed skipped: clinical store already has {total} patient(s).")
            return

        saved = await save_clinical_record(store=store, payload=demo_submission())
        print(f"Seeded demo patient with record {saved.record_id}.")
    finally:
        await store.close()


def main() -> None:
    """Entry point."""
    settings = get_settings()
    if not settings.is_development:
        print(f"Seed skipped: APP_ENV={settings.app_env!r} (seeding only runs in development).")
        return

    store = ClinicalStore(
        blob_storage=LocalBlobStorage(base_dir=Path(settings.storage_base_path)),
        image_key=settings.database_image_key,
    )
    asyncio.run(seed_demo_patient_if_empty(store=store))


if __name__ == "__main__":
    main()
