"""Single HTTP round-trip against a provider, decoded into ProviderResponse."""

from __future__ import annotations

import json
import logging

import aiohttp

from ..auth.models import ProviderResponse
from ..constants import HTTP_REQUEST_TIMEOUT_SECONDS
from ..errors.handling import handle_api_error
from .base import PreparedRequest


async def send(
    session: aiohttp.ClientSession,
    prepared: PreparedRequest,
    *,
    provider: str,
    context: str,
    timeout: float = HTTP_REQUEST_TIMEOUT_SECONDS,
) -> ProviderResponse:
    """Perform one request and decode the body.

    Empty or non-JSON bodies are returned with ``data=None``; the HTTP status
    is never turned into an exception here.

    Raises:
        NetworkError: On transport failures or timeouts.
    """

    async def operation() -> ProviderResponse:
        kwargs: dict[str, object] = {
            "headers": prepared.headers or None,
            "params": prepared.params or None,
            "timeout": aiohttp.ClientTimeout(total=timeout),
        }
        if prepared.json_body is not None:
            kwargs["json"] = prepared.json_body
        elif prepared.form is not None:
            kwargs["data"] = prepared.form
        async with session.request(prepared.method, prepared.url, **kwargs) as resp:
            text = await resp.text()
            headers = dict(resp.headers)
            status = resp.status
        data = None
        if text.strip():
            try:
                data = json.loads(text)
            except ValueError:
                logging.debug(
                    f"🧪 Non-JSON response provider={provider} context={context} status={status}"
                )
        logging.debug(
            f"🌐 {prepared.method} {prepared.log_url()} status={status} provider={provider}"
        )
        return ProviderResponse(status=status, data=data, headers=headers, text=text)

    return await handle_api_error(operation, context, provider=provider)
