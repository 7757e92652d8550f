"""API tests – FastAPI TestClient over an in-memory SQLite database."""

from uuid import uuid4

from conftest import VALID_CNS, VALID_CPF, make_form
from patient_registry.schemas.patient_form import CPF_OR_CNS_REQUIRED

API = "/api/v1"


def _create(client, **overrides):
    response = client.post(f"{API}/patients", json=make_form(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_validate_reports_every_error(client):
    response = client.post(
        f"{API}/patients/validate",
        json=make_form(firstName="J", cpf="", cns="", email="nope"),
    )
    body = response.json()
    assert response.status_code == 200
    assert body["valid"] is False
    assert set(body["errors"]) == {"firstName", "email", "cpf"}
    assert body["errors"]["cpf"] == CPF_OR_CNS_REQUIRED


def test_validate_accepts_valid_form(client):
    response = client.post(f"{API}/patients/validate", json=make_form(cns=VALID_CNS))
    assert response.json() == {"valid": True, "errors": {}}


def test_create_normalizes_documents(client):
    record = _create(client, cpf="529.982.247-25", zipCode="01310-100")

    assert record["cpf"] == VALID_CPF
    assert record["zipCode"] == "01310100"
    assert record["patientCode"].startswith("P")
    assert record["status"] == "active"


def test_create_rejects_invalid_form_with_all_errors(client):
    response = client.post(f"{API}/patients", json=make_form(cpf="", cns="", motherName=""))

    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"cpf", "motherName"}


def test_get_and_update(client):
    record = _create(client)

    fetched = client.get(f"{API}/patients/{record['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["firstName"] == "João"

    updated = client.put(f"{API}/patients/{record['id']}", json=make_form(lastName="Souza"))
    assert updated.status_code == 200
    assert updated.json()["lastName"] == "Souza"
    assert updated.json()["patientCode"] == record["patientCode"]


def test_update_revalidates(client):
    record = _create(client)
    response = client.put(f"{API}/patients/{record['id']}", json=make_form(cpf="111"))
    assert response.status_code == 422
    assert response.json()["errors"] == {"cpf": "Invalid CPF"}


def test_unknown_patient_is_404(client):
    assert client.get(f"{API}/patients/{uuid4()}").status_code == 404
    assert client.put(f"{API}/patients/{uuid4()}", json=make_form()).status_code == 404


def test_duplicate_search(client):
    existing = _create(client)
    _create(client, firstName="Pedro")

    response = client.get(
        f"{API}/patients/search/duplicates",
        params={"firstName": "jo", "lastName": "silva", "dateOfBirth": "1990-05-10"},
    )

    assert response.status_code == 200
    found = response.json()
    assert [c["id"] for c in found] == [existing["id"]]
    assert found[0]["cpf"] == VALID_CPF


def test_duplicate_search_with_short_input_is_empty(client):
    _create(client)
    response = client.get(
        f"{API}/patients/search/duplicates",
        params={"firstName": "J", "lastName": "Silva", "dateOfBirth": "1990-05-10"},
    )
    assert response.json() == []


def test_duplicate_search_date_range(client):
    _create(client, dateOfBirth="1990-05-12")
    response = client.get(
        f"{API}/patients/search/duplicates",
        params={
            "firstName": "João",
            "lastName": "Silva",
            "dateOfBirth": "1990-05-10",
            "dateOfBirthTo": "1990-05-15",
        },
    )
    assert len(response.json()) == 1


def test_labels(client):
    labels = client.get(f"{API}/labels").json()
    assert labels["gender"]["UNKNOWN"] == "Não Informado"
    assert labels["raceColor"]["indigena"] == "Indígena"
    assert labels["status"]["deceased"] == "Falecido"
    assert set(labels) == {"gender", "raceColor", "maritalStatus", "educationLevel", "status"}


def test_visible_fields(client):
    response = client.post(f"{API}/forms/staff/visible-fields", json={"role": "Médico"})
    assert "specialization" in response.json()["fields"]

    response = client.post(f"{API}/forms/attendance/visible-fields", json={"paymentType": "sus"})
    assert "healthInsuranceName" not in response.json()["fields"]


def test_visible_fields_unknown_form(client):
    response = client.post(f"{API}/forms/billing/visible-fields", json={})
    assert response.status_code == 404


def test_blank_mandatory_fields_are_422_not_500(client):
    response = client.post(f"{API}/patients", json=make_form(dateOfBirth=" ", firstName="  "))

    assert response.status_code == 422
    assert response.json()["errors"] == {
        "dateOfBirth": "Date of birth is required",
        "firstName": "First name must have at least 2 characters",
    }


def test_create_with_missing_optional_codes_uses_defaults(client):
    form = make_form()
    del form["gender"]
    response = client.post(f"{API}/patients", json=form)

    assert response.status_code == 201, response.text
    record = response.json()
    assert record["gender"] == "UNKNOWN"
    assert record["birthCountry"] == "Brasil"
