from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from tests.patients._helpers import save_record
from wrist_intake.core.llm.deps import get_openai_client
from wrist_intake.core.llm.openai_client import OpenAIUpstreamError
from wrist_intake.main import create_app

_VALID_PROFILE = {
    "funciones_estructuras": [
        {"codigo": "b28016", "descripcion": "Dolor en las articulaciones", "calificador": "2"},
        {"codigo": "s73011", "descripcion": "Articulaciones de la mano", "calificador": 1},
    ],
    "actividad_participacion": [
        {"codigo": "d4400", "descripcion": "Recoger objetos", "calificador": "2"}
    ],
    "factores_ambientales": [
        {"codigo": "e1101", "descripcion": "Medicamentos", "calificador": "+2"}
    ],
    "factores_personales": "Repositor, 35 años, diestro.",
}


class _ProfileLLM:
    def __init__(self, response: dict[str, Any] | Exception):
        self._response = response
        self.calls: list[dict[str, Any]] = []

    async def generate_json(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(kwargs)
        if isinstance(self._response, Exception):
            raise self._response
        return self._response

    async def generate_text(self, **kwargs: Any) -> str:
        raise AssertionError("not used")


def _client_with(llm: _ProfileLLM):
    app = create_app()
    app.dependency_overrides[get_openai_client] = lambda: llm
    return TestClient(app)


def _profile_of(client: TestClient, *, dni: str, record_id: int) -> Any:
    detail = client.get(f"/patients/{dni}").json()
    return next(r for r in detail["clinical_records"] if r["id"] == record_id)["cif_profile"]


def test_generated_profile_is_stored_on_the_record() -> None:
    llm = _ProfileLLM(_VALID_PROFILE)
    with _client_with(llm) as client:
        saved = save_record(client=client, dni="12345678")
        other = save_record(client=client, dni="12345678")

        res = client.post(f"/patients/12345678/records/{saved['record_id']}/cif-profile")
        assert res.status_code == 200, res.text
        body = res.json()
        assert body["id"] == saved["record_id"]
        assert body["cif_profile"]["funciones_estructuras"][1]["calificador"] == "1"
        assert body["cif_profile"]["factores_ambientales"][0]["calificador"] == "+2"

        stored = _profile_of(client, dni="12345678", record_id=saved["record_id"])
        assert stored == body["cif_profile"]
        assert _profile_of(client, dni="12345678", record_id=other["record_id"]) is None

    call = llm.calls[0]
    assert call["json_schema"]["required"] == [
        "funciones_estructuras",
        "actividad_participacion",
        "factores_ambientales",
        "factores_personales",
    ]
    # Direct identifiers never reach the prompt.
    assert "12345678" not in call["user_prompt"]
    assert "Juan" not in call["user_prompt"]


@pytest.mark.parametrize(
    "response",
    [
        OpenAIUpstreamError("LLM request timed out"),
        {"funciones_estructuras": []},
        {**_VALID_PROFILE, "funciones_estructuras": [{"codigo": "b1", "descripcion": "x", "calificador": "7"}]},
        {**_VALID_PROFILE, "actividad_participacion": [{"codigo": "d1", "descripcion": "x", "calificador": "+1"}]},
    ],
)
def test_failed_generation_leaves_profile_absent(response: Any) -> None:
    with _client_with(_ProfileLLM(response)) as client:
        saved = save_record(client=client, dni="12345678")

        res = client.post(f"/patients/12345678/records/{saved['record_id']}/cif-profile")
        assert res.status_code == 502
        assert res.json()["detail"] == (
            "Hubo un error al generar el perfil CIF. Por favor, intente de nuevo."
        )
        assert _profile_of(client, dni="12345678", record_id=saved["record_id"]) is None


def test_empty_generated_profile_is_reported_and_not_stored() -> None:
    empty = {
        "funciones_estructuras": [],
        "actividad_participacion": [],
        "factores_ambientales": [],
        "factores_personales": "  ",
    }
    with _client_with(_ProfileLLM(empty)) as client:
        saved = save_record(client=client, dni="12345678")
        res = client.post(f"/patients/12345678/records/{saved['record_id']}/cif-profile")
        assert res.status_code == 502
        assert res.json()["detail"] == (
            "La IA no pudo generar un perfil CIF con los datos proporcionados."
        )
        assert _profile_of(client, dni="12345678", record_id=saved["record_id"]) is None


def test_failed_regeneration_keeps_the_previous_profile() -> None:
    with _client_with(_ProfileLLM(OpenAIUpstreamError("down"))) as client:
        saved = save_record(client=client, dni="12345678")
        url = f"/patients/12345678/records/{saved['record_id']}/cif-profile"
        assert client.put(url, json=_VALID_PROFILE).status_code == 200

        assert client.post(url).status_code == 502
        stored = _profile_of(client, dni="12345678", record_id=saved["record_id"])
        assert stored["factores_personales"] == "Repositor, 35 años, diestro."


def test_generation_without_llm_configured_returns_502(client: TestClient) -> None:
    saved = save_record(client=client, dni="12345678")
    res = client.post(f"/patients/12345678/records/{saved['record_id']}/cif-profile")
    assert res.status_code == 502
    assert res.json()["detail"].startswith("Error:")


def test_supplied_profile_replaces_the_whole_profile(client: TestClient) -> None:
    saved = save_record(client=client, dni="12345678")
    url = f"/patients/12345678/records/{saved['record_id']}/cif-profile"

    assert client.put(url, json=_VALID_PROFILE).status_code == 200
    res = client.put(url, json={"factores_personales": "Solo factores personales."})
    assert res.status_code == 200

    stored = _profile_of(client, dni="12345678", record_id=saved["record_id"])
    assert stored == {
        "funciones_estructuras": [],
        "actividad_participacion": [],
        "factores_ambientales": [],
        "factores_personales": "Solo factores personales.",
    }


def test_supplied_profile_without_content_is_rejected(client: TestClient) -> None:
    saved = save_record(client=client, dni="12345678")
    res = client.put(
        f"/patients/12345678/records/{saved['record_id']}/cif-profile",
        json={"factores_personales": ""},
    )
    assert res.status_code == 400


def test_record_of_another_patient_is_not_found(client: TestClient) -> None:
    saved = save_record(client=client, dni="12345678")
    save_record(client=client, dni="87654321")

    res = client.put(
        f"/patients/87654321/records/{saved['record_id']}/cif-profile", json=_VALID_PROFILE
    )
    assert res.status_code == 404
    assert res.json()["detail"] == "Clinical record not found"

    res = client.put("/patients/00000000/records/1/cif-profile", json=_VALID_PROFILE)
    assert res.status_code == 404
    assert res.json()["detail"] == "Patient not found"
