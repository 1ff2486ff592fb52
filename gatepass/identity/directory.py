"""
Employee directory lookup against the ERP API.

Only one question is asked of the directory: does this service number exist?
Callers treat ``None`` (directory unreachable or misconfigured) as "unknown"
and carry on; they never fail a request because the ERP is down.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import IdentityConfig

logger = logging.getLogger(__name__)

EMPLOYEE_LOOKUP_PATH = "/GetAllEmployeeDetailsForServiceNo"


def _has_employee(body: Any) -> bool:
    if isinstance(body, list):
        return len(body) > 0
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, list):
            return len(data) > 0
        if data:
            return True
        return bool(body.get("employeeNo") or body.get("serviceNo"))
    return False


class DirectoryClient:
    def __init__(self, config: IdentityConfig, session: requests.Session | None = None) -> None:
        if not config.directory_base_url:
            raise ValueError("directory_base_url is required for the directory client")
        self._config = config
        self._session = session or requests.Session()
        self._url = config.directory_base_url.rstrip("/") + EMPLOYEE_LOOKUP_PATH

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "application/json", "Content-Type": "application/json"}
        if self._config.directory_username:
            headers["UserName"] = self._config.directory_username
        if self._config.directory_password:
            headers["Password"] = self._config.directory_password
        return headers

    def employee_exists(self, service_no: str) -> bool | None:
        """
        True when the directory knows ``service_no``, False when it answers
        that it does not, None when it could not be asked.
        """
        if not service_no:
            return False
        try:
            resp = self._session.post(
                self._url,
                json={"employeeNo": service_no},
                headers=self._headers(),
                timeout=self._config.directory_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("Directory request failed: %s", type(e).__name__, exc_info=False)
            return None

        if resp.status_code == 404:
            return False
        if resp.status_code != 200:
            logger.warning("Directory lookup returned status=%s", resp.status_code)
            return None
        try:
            body = resp.json()
        except ValueError:
            logger.warning("Directory lookup returned a non-JSON body")
            return None
        return _has_employee(body)
