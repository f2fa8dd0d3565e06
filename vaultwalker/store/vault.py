"""HTTP client for the Vault KV version 1 secrets API.

Requests go to ``<addr>/v1/<path>`` with the token in ``X-Vault-Token``.
HTTP and transport failures are translated into ``RemoteError`` subclasses.
"""

from __future__ import annotations

import json
import logging

import httpx

from ..errors import NotFound, PermissionDenied, RemoteFailure, Unreachable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds


def _stringify(value: object) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _secret_key(path: str) -> str:
    return path.strip("/")


def _restore_types(mapping: dict[str, str], raw: dict[str, object]) -> dict[str, object]:
    """Swap display strings back to the JSON values last read for them.

    A key whose text still matches what was read keeps its original value.
    A key renamed from a dropped key keeps that key's value when the text
    matches. Anything else the user typed is written as a string.
    """
    dropped = {_stringify(value): value for key, value in raw.items() if key not in mapping}
    body: dict[str, object] = {}
    for key, text in mapping.items():
        if key in raw and _stringify(raw[key]) == text:
            body[key] = raw[key]
        elif key not in raw and text in dropped:
            body[key] = dropped[text]
        else:
            body[key] = text
    return body


def _error_text(response: httpx.Response) -> str:
    """Pull Vault's ``errors`` list out of a failed response, falling back to the body."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(str(item) for item in errors)
    body = response.text.strip()
    return body or f"HTTP {response.status_code}"


class VaultClient:
    """Synchronous Vault client; safe to call from the remote-call worker thread."""

    def __init__(
        self,
        addr: str,
        token: str,
        *,
        namespace: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {
            "X-Vault-Token": token.strip(),
            "Content-Type": "application/json",
        }
        if namespace:
            headers["X-Vault-Namespace"] = namespace
        self._base_url = addr.rstrip("/")
        # Raw JSON values from the last read of each secret, so rewrites keep their types.
        self._raw_values: dict[str, dict[str, object]] = {}
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> VaultClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, body: dict[str, object] | None = None) -> httpx.Response:
        url = "/v1/" + path.lstrip("/")
        try:
            response = self._client.request(method, url, json=body)
        except httpx.TimeoutException as exc:
            raise Unreachable(f"timed out talking to {self._base_url}", path=path) from exc
        except httpx.HTTPError as exc:
            raise Unreachable(str(exc) or f"cannot reach {self._base_url}", path=path) from exc

        logger.debug("%s %s -> %d", method, url, response.status_code)
        if response.is_success:
            return response
        message = _error_text(response)
        if response.status_code == 404:
            raise NotFound(path=path)
        if response.status_code in (401, 403):
            raise PermissionDenied(message, path=path)
        if response.status_code in (502, 503, 504):
            raise Unreachable(message, path=path)
        raise RemoteFailure(message, path=path)

    def _data(self, response: httpx.Response, path: str) -> dict:
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteFailure("response is not JSON", path=path) from exc
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise RemoteFailure("response did not contain data", path=path)
        return data

    def list(self, path: str) -> list[str]:
        response = self._request("LIST", path)
        keys = self._data(response, path).get("keys")
        if not isinstance(keys, list):
            raise RemoteFailure("listing did not contain keys", path=path)
        return [str(key) for key in keys]

    def read(self, path: str) -> dict[str, str]:
        response = self._request("GET", path)
        raw = {str(key): value for key, value in self._data(response, path).items()}
        self._raw_values[_secret_key(path)] = raw
        return {key: _stringify(value) for key, value in raw.items()}

    def write(self, path: str, mapping: dict[str, str]) -> None:
        key = _secret_key(path)
        body = _restore_types(mapping, self._raw_values.get(key, {}))
        self._request("POST", path, body=body)
        self._raw_values[key] = body

    def delete(self, path: str) -> None:
        self._request("DELETE", path)
        self._raw_values.pop(_secret_key(path), None)


__all__ = ["DEFAULT_TIMEOUT", "VaultClient"]
