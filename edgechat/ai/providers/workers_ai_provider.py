"""Cloudflare Workers AI provider (REST API)."""

from __future__ import annotations

import os

import httpx

from edgechat.ai.providers.base import BaseProvider, GenerationResult, ProviderError, as_result

_DEFAULT_BASE_URL = "https://api.cloudflare.com/client/v4"


class WorkersAIProvider(BaseProvider):
    """Generation backend calling ``/accounts/{id}/ai/run/{model}``."""

    name = "workers_ai"

    def __init__(
        self,
        account_id: str | None = None,
        api_token: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._account_id = account_id or os.environ.get("CLOUDFLARE_ACCOUNT_ID")
        self._api_token = api_token or os.environ.get("CLOUDFLARE_API_TOKEN")
        self._base_url = (
            base_url or os.environ.get("CLOUDFLARE_API_BASE_URL") or _DEFAULT_BASE_URL
        ).rstrip("/")
        self._transport = transport

    def is_available(self) -> bool:
        return bool(self._account_id and self._api_token)

    def _url(self, model: str) -> str:
        return f"{self._base_url}/accounts/{self._account_id}/ai/run/{model}"

    async def generate(self, prompt: str, model: str, max_tokens: int = 256) -> GenerationResult:
        if not self.is_available():
            raise ProviderError(
                "CLOUDFLARE_ACCOUNT_ID / CLOUDFLARE_API_TOKEN are not set. Cannot call Workers AI."
            )
        payload = {"prompt": prompt, "max_tokens": max_tokens}
        headers = {"Authorization": f"Bearer {self._api_token}"}
        try:
            async with httpx.AsyncClient(timeout=60.0, transport=self._transport) as client:
                resp = await client.post(self._url(model), headers=headers, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"Workers AI error {exc.response.status_code}: {exc}"
            ) from exc
        except Exception as exc:
            raise ProviderError(f"Workers AI error: {exc}") from exc

        # The REST API wraps the model output in {"success": ..., "result": ...}
        if isinstance(data, dict) and "result" in data:
            if data.get("success") is False:
                raise ProviderError(f"Workers AI reported failure: {data.get('errors')}")
            return as_result(data["result"])
        return as_result(data)
