from __future__ import annotations

from typing import Any

import httpx


class JobClient:
    """Worker-side client for the job API, authenticated as a machine module."""

    def __init__(
        self,
        base_url: str,
        module_id: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.module_id = module_id
        self.headers = {"X-Module-Id": module_id, "X-API-Key": api_key}
        self.timeout = timeout
        self.transport = transport

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            response = await client.request(method, path, headers=self.headers, **kwargs)
        response.raise_for_status()
        return response.json()

    async def get_jobs(self, limit: int = 10) -> list[dict[str, Any]]:
        return await self._send("GET", "/jobs", params={"limit": limit})

    async def claim_job(self, job_id: str, lease_seconds: int | None = None) -> dict[str, Any]:
        return await self._send("POST", f"/jobs/{job_id}/claim", json={"lease_seconds": lease_seconds})

    async def submit_result(
        self,
        job_id: str,
        *,
        status: str,
        result_json: dict[str, Any] | None = None,
        error_json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self._send(
            "POST",
            f"/jobs/{job_id}/result",
            json={"status": status, "result_json": result_json, "error_json": error_json},
        )

    async def reap_expired_jobs(self, limit: int = 100) -> int:
        payload = await self._send("POST", "/jobs/reap-expired", params={"limit": limit})
        return int(payload.get("requeued", 0))
