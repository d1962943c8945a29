"""DCS cloud API security group client."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from ... import metrics
from ...constants import HEADER_ACCOUNT_ID, HEADER_USER_ID
from ...errors import DCSAPIError
from ...models import Tenant
from ...utils.rate_limit import RateLimiter
from .models import CreateResult, RemoteSecurityGroup

logger = logging.getLogger(__name__)

SECURITY_GROUPS_PATH = "/v2/security-groups"
SUCCESS_CODE = 200


def _result(payload: dict[str, Any], operation: str) -> dict[str, Any]:
    """Return the ``result`` object of a success envelope."""
    result = payload.get("result") or {}
    if not isinstance(result, dict):
        raise DCSAPIError(operation, f"unexpected response: result is {type(result).__name__}")
    return result


class DCSClient:
    """Security group operations against the DCS API over HTTP."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        rate_limit_per_second: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize DCS client.

        Args:
            endpoint: Base URL of the DCS API
            timeout: Per-request timeout in seconds
            rate_limit_per_second: Maximum request rate
            session: Optional preconfigured session
        """
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._rate_limiter = RateLimiter("dcs", rate_limit_per_second)

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        tenant: Tenant,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a tenant-scoped request and unwrap the response envelope.

        Raises:
            DCSAPIError: On transport failure, non-2xx HTTP status, or an
                envelope code other than 200
        """
        headers = {
            HEADER_ACCOUNT_ID: tenant.account_id,
            HEADER_USER_ID: tenant.user_id,
        }
        self._rate_limiter.wait()
        start_time = time.time()
        try:
            response = self.session.request(
                method,
                f"{self.endpoint}{path}",
                params=params,
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            metrics.api_call_total.labels(api_type="dcs", operation=operation, result="error").inc()
            logger.error(f"DCS {operation} request failed: {e}")
            raise DCSAPIError(operation, str(e)) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="dcs", operation=operation).observe(duration)

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        code = payload.get("code", response.status_code)
        message = payload.get("message") or response.reason or ""
        if not response.ok or code != SUCCESS_CODE:
            metrics.api_call_total.labels(api_type="dcs", operation=operation, result="error").inc()
            logger.error(f"DCS {operation} returned code {code}: {message}")
            raise DCSAPIError(operation, message, code=code)

        metrics.api_call_total.labels(api_type="dcs", operation=operation, result="success").inc()
        return payload

    def create(self, tenant: Tenant, name: str, description: str) -> CreateResult:
        """Create a security group."""
        payload = self._request(
            "create",
            "POST",
            SECURITY_GROUPS_PATH,
            tenant,
            body={"name": name, "description": description},
        )
        result = _result(payload, "create")
        group_id = result.get("id")
        if group_id is None:
            raise DCSAPIError("create", "response did not include a security group id")
        return CreateResult(id=str(group_id), message=payload.get("message", ""))

    def get(self, tenant: Tenant, group_id: str) -> RemoteSecurityGroup | None:
        """Look up a security group by id."""
        payload = self._request(
            "get",
            "GET",
            SECURITY_GROUPS_PATH,
            tenant,
            params={"searchById": group_id},
        )
        items = _result(payload, "get").get("list") or []
        if not isinstance(items, list):
            raise DCSAPIError("get", f"unexpected response: result.list is {type(items).__name__}")
        if not items:
            return None
        item = items[0]
        if not isinstance(item, dict):
            raise DCSAPIError("get", f"unexpected response: list item is {type(item).__name__}")
        return RemoteSecurityGroup(
            name=item.get("name", ""),
            description=item.get("description", "") or "",
        )

    def update(self, tenant: Tenant, group_id: str, name: str, description: str) -> str:
        """Update the name and description of a security group."""
        payload = self._request(
            "update",
            "PUT",
            f"{SECURITY_GROUPS_PATH}/{group_id}",
            tenant,
            body={"name": name, "description": description},
        )
        return payload.get("message", "")

    def delete(self, tenant: Tenant, group_id: str) -> str:
        """Delete a security group."""
        payload = self._request(
            "delete",
            "DELETE",
            f"{SECURITY_GROUPS_PATH}/{group_id}",
            tenant,
        )
        return payload.get("message", "")
