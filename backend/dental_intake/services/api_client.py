from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from dental_intake.core.settings import Settings
from dental_intake.schemas.patient import Patient
from dental_intake.schemas.treatment import TreatmentRecord

logger = logging.getLogger("dental_intake.api")


class ApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class AuthenticationError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class TreatmentApi(Protocol):
    def fetch_patients(self) -> list[Patient]:
        raise NotImplementedError

    def fetch_treatment(self, treatment_id: str) -> TreatmentRecord:
        raise NotImplementedError

    def create_treatment(self, payload: dict[str, Any]) -> TreatmentRecord:
        raise NotImplementedError

    def update_treatment(self, treatment_id: str, payload: dict[str, Any]) -> TreatmentRecord:
        raise NotImplementedError


def _error_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("detail") or body.get("message") or body
    return body


def _parse_record(data: Any, what: str) -> TreatmentRecord:
    try:
        return TreatmentRecord.model_validate(data)
    except ValidationError as exc:
        raise ApiError(f"{what} returned an invalid treatment record", detail=exc.errors()) from exc


class HttpTreatmentApi(TreatmentApi):
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if client is None:
            client = httpx.Client(base_url=base_url, timeout=timeout, headers=headers)
        else:
            client.headers.update(headers)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpTreatmentApi":
        return cls(
            settings.api_base_url,
            token=settings.api_token,
            timeout=settings.api_timeout_seconds,
        )

    def __enter__(self) -> "HttpTreatmentApi":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("API %s %s failed: %s", method, path, exc)
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthenticationError(
                "Authentication required. Please login again.",
                status_code=401,
                detail=_error_detail(response),
            )
        if response.status_code == 404:
            raise NotFoundError(
                f"{method} {path} returned 404",
                status_code=404,
                detail=_error_detail(response),
            )
        if response.is_error:
            detail = _error_detail(response)
            logger.warning("API %s %s returned %s: %s", method, path, response.status_code, detail)
            raise ApiError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                f"{method} {path} returned an invalid JSON body",
                status_code=response.status_code,
            ) from exc

    def fetch_patients(self) -> list[Patient]:
        data = self._request("GET", "/patients")
        if isinstance(data, dict):
            data = data.get("patients") or []
        if not isinstance(data, list):
            raise ApiError("GET /patients returned an unexpected body")
        try:
            return [Patient.model_validate(item) for item in data]
        except ValidationError as exc:
            raise ApiError("GET /patients returned invalid patient rows", detail=exc.errors()) from exc

    def fetch_treatment(self, treatment_id: str) -> TreatmentRecord:
        data = self._request("GET", f"/treatments/{treatment_id}")
        return _parse_record(data, "GET /treatments/{id}")

    def create_treatment(self, payload: dict[str, Any]) -> TreatmentRecord:
        data = self._request("POST", "/treatments", json=payload)
        return _parse_record(data, "POST /treatments")

    def update_treatment(self, treatment_id: str, payload: dict[str, Any]) -> TreatmentRecord:
        data = self._request("PUT", f"/treatments/{treatment_id}", json=payload)
        return _parse_record(data, "PUT /treatments/{id}")
