import json

import httpx
import pytest

from dental_intake.core.settings import Settings
from dental_intake.services.api_client import (
    ApiError,
    AuthenticationError,
    HttpTreatmentApi,
    NotFoundError,
)

BASE_URL = "http://practice.test/api"

TREATMENT = {
    "_id": "t9",
    "patientId": "p1",
    "patientName": "Jane Doe",
    "name": "Filling",
    "status": "pending",
    "treatmentPlans": [
        {
            "name": "Phase 1",
            "costs": [
                {"categoryId": "2", "categoryName": "Filling", "baseCost": 1500, "quantity": 2, "materialCost": 200}
            ],
        }
    ],
}


def _api(handler, token="secret"):
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpTreatmentApi(BASE_URL, token=token, client=client)


def test_requests_carry_bearer_token_and_json_header():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"patients": []})

    with _api(handler) as api:
        api.fetch_patients()

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/patients"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["Content-Type"] == "application/json"


def test_missing_token_sends_no_authorization_header():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    _api(handler, token=None).fetch_patients()
    assert "Authorization" not in seen[0].headers


@pytest.mark.parametrize(
    "body",
    [
        {"patients": [{"_id": "p1", "firstName": "Jane", "lastName": "Doe", "phone": 9876543210}]},
        [{"_id": "p1", "firstName": "Jane", "lastName": "Doe", "phone": 9876543210}],
    ],
)
def test_fetch_patients_accepts_wrapped_or_bare_list(body):
    api = _api(lambda request: httpx.Response(200, json=body))
    patients = api.fetch_patients()
    assert patients[0].id == "p1"
    assert patients[0].full_name == "Jane Doe"
    assert patients[0].phone == "9876543210"


def test_fetch_treatment_parses_record():
    def handler(request):
        assert request.url.path == "/api/treatments/t9"
        return httpx.Response(200, json=TREATMENT)

    record = _api(handler).fetch_treatment("t9")
    assert record.id == "t9"
    assert record.treatment_plans[0].costs[0].total_cost == 3200
    assert record.patient_ref().display_name == "Jane Doe"


def test_create_posts_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json=TREATMENT)

    payload = {"patientId": "p1", "treatmentPlans": []}
    record = _api(handler).create_treatment(payload)
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/treatments"
    assert json.loads(seen[0].content) == payload
    assert record.id == "t9"


def test_update_puts_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=TREATMENT)

    _api(handler).update_treatment("t9", {"name": "x"})
    assert seen[0].method == "PUT"
    assert seen[0].url.path == "/api/treatments/t9"


def test_401_raises_authentication_error():
    api = _api(lambda request: httpx.Response(401, json={"message": "Token expired"}))
    with pytest.raises(AuthenticationError) as excinfo:
        api.fetch_patients()
    assert str(excinfo.value) == "Authentication required. Please login again."
    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == "Token expired"


def test_404_raises_not_found():
    api = _api(lambda request: httpx.Response(404, json={"detail": "Treatment not found"}))
    with pytest.raises(NotFoundError) as excinfo:
        api.fetch_treatment("missing")
    assert excinfo.value.detail == "Treatment not found"


def test_server_error_raises_api_error():
    api = _api(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(ApiError) as excinfo:
        api.create_treatment({})
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "boom"
    assert not isinstance(excinfo.value, AuthenticationError)


def test_transport_error_raises_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as excinfo:
        _api(handler).fetch_patients()
    assert excinfo.value.status_code is None


def test_invalid_json_body_raises_api_error():
    api = _api(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ApiError):
        api.fetch_patients()


def test_invalid_record_raises_api_error():
    api = _api(lambda request: httpx.Response(200, json={"name": "no id"}))
    with pytest.raises(ApiError):
        api.fetch_treatment("t9")


def test_from_settings_uses_configured_base_url():
    settings = Settings(API_BASE_URL="https://clinic.example/api", API_TOKEN="abc", API_TIMEOUT_SECONDS=5)
    api = HttpTreatmentApi.from_settings(settings)
    try:
        assert str(api._client.base_url) == "https://clinic.example/api/"
        assert api._client.headers["Authorization"] == "Bearer abc"
        assert api._client.timeout.read == 5
    finally:
        api.close()
