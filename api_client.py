# api_client.py - minimal typed HTTP client wrapper around requests
import base64
import json
from dataclasses import dataclass
from http.cookiejar import DefaultCookiePolicy
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urljoin

import requests
from requests.structures import CaseInsensitiveDict

from api_helper_utils import settings
from api_helper_utils.logger import get_logger

logger = get_logger("api-client")

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class APIResponse:
    data: Any
    status: int
    status_text: str
    cookie: Optional[str] = None


class APIRequestError(requests.HTTPError):
    """Raised when the server answers with a non-success status."""

    def __init__(self, status: int, status_text: str, response=None):
        super().__init__(f"Request failed: {status} - {status_text}", response=response)
        self.status = status
        self.status_text = status_text


def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def is_json(text: str) -> bool:
    try:
        json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return False
    return True


def _query_value(value) -> str:
    # bools and None render the way JSON writes them, sequences as a comma-joined list
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


class APIClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = settings.TIMEOUT):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()
        # every call stands alone: never replay cookies from earlier responses
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    def _url(self, endpoint: str) -> str:
        return urljoin(self.base_url, endpoint)

    @staticmethod
    def _params(query_params: Optional[Mapping[str, Any]]):
        if not query_params:
            return None
        return [(key, _query_value(value)) for key, value in query_params.items()]

    def _fetch(self, url: str, method: str = "GET", body=None,
               custom_headers: Optional[Mapping[str, str]] = None, params=None) -> APIResponse:
        headers = CaseInsensitiveDict({"Content-Type": JSON_CONTENT_TYPE})
        has_custom_headers = bool(custom_headers)

        token = self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if has_custom_headers:
            headers.update(custom_headers)

        caller_content_type = has_custom_headers and "content-type" in CaseInsensitiveDict(custom_headers)
        if isinstance(body, str) and not caller_content_type and not is_json(body):
            headers["Content-Type"] = "text/plain"

        if isinstance(body, str):
            body = body.encode("utf-8")

        logger.debug("%s %s", method, url)
        resp = self.session.request(method, url, params=params, data=body, headers=dict(headers),
                                    timeout=self.timeout)

        if not resp.ok:
            logger.warning("Request failed: %s %s -> %s - %s", method, url, resp.status_code, resp.reason)
            raise APIRequestError(resp.status_code, resp.reason, response=resp)

        content_type = resp.headers.get("Content-Type")
        if not (content_type and (JSON_CONTENT_TYPE in content_type or has_custom_headers)):
            logger.info("Unsupported response type: %s", content_type)
        data = self._decode(resp, content_type)

        return APIResponse(
            data=data,
            status=resp.status_code,
            status_text=resp.reason,
            cookie=resp.headers.get("Set-Cookie"),
        )

    @staticmethod
    def _decode(resp: requests.Response, content_type: Optional[str]):
        if resp.status_code == 201:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            logger.info("Could not decode %s body as JSON (status %s): %s", content_type, resp.status_code, e)
            return {}

    @staticmethod
    def _json_body(body):
        if body is None or isinstance(body, (str, bytes)):
            return body
        return json.dumps(body)

    def get(self, endpoint: str, query_params: Optional[Mapping[str, Any]] = None,
            headers: Optional[Dict[str, str]] = None) -> APIResponse:
        return self._fetch(self._url(endpoint), custom_headers=headers, params=self._params(query_params))

    def post_form(self, endpoint: str, query_params: Optional[Mapping[str, Any]] = None,
                  form_data: Optional[Mapping[str, str]] = None,
                  headers: Optional[Dict[str, str]] = None) -> APIResponse:
        form_headers = CaseInsensitiveDict(headers or {})
        form_headers["Content-Type"] = FORM_CONTENT_TYPE
        return self._fetch(
            self._url(endpoint),
            method="POST",
            body=dict(form_data or {}),
            custom_headers=dict(form_headers),
            params=self._params(query_params),
        )

    def post(self, endpoint: str, query_params: Optional[Mapping[str, Any]] = None, body=None,
             headers: Optional[Dict[str, str]] = None) -> APIResponse:
        return self._fetch(self._url(endpoint), method="POST",
                           body=self._json_body(body), custom_headers=headers,
                           params=self._params(query_params))

    def put(self, endpoint: str, query_params: Optional[Mapping[str, Any]] = None, body=None,
            headers: Optional[Dict[str, str]] = None) -> APIResponse:
        return self._fetch(self._url(endpoint), method="PUT",
                           body=self._json_body(body), custom_headers=headers,
                           params=self._params(query_params))

    def patch(self, endpoint: str, query_params: Optional[Mapping[str, Any]] = None, body=None,
              headers: Optional[Dict[str, str]] = None) -> APIResponse:
        return self._fetch(self._url(endpoint), method="PATCH",
                           body=self._json_body(body), custom_headers=headers,
                           params=self._params(query_params))

    def get_with_basic_auth(self, endpoint: str, username: str, password: str,
                            query_params: Optional[Mapping[str, Any]] = None,
                            headers: Optional[Dict[str, str]] = None) -> APIResponse:
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        auth_headers = CaseInsensitiveDict({"Authorization": f"Basic {credentials}"})
        auth_headers.update(headers or {})
        return self._fetch(self._url(endpoint), custom_headers=dict(auth_headers),
                           params=self._params(query_params))

    def delete(self, endpoint: str) -> APIResponse:
        return self._fetch(self._url(endpoint), method="DELETE")
