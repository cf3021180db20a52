"""HTTP adapter for the Cloudinary upload API."""
from __future__ import annotations

import hashlib
import io
import logging
import time
from pathlib import Path
from typing import Any, AsyncIterator, AsyncIterable, Dict, Optional, Union

import httpx

from ..errors import TransportError
from ..models import CloudinaryCredentials, UploadConfig
from ..protocols import TransportProgressCallback

logger = logging.getLogger(__name__)

# Never part of the signature
_UNSIGNED_PARAMS = {"file", "cloud_name", "resource_type", "api_key"}


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Return the SHA-1 request signature for ``params``."""
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key not in _UNSIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


async def _counting_stream(
    stream: AsyncIterable[bytes],
    total: int,
    progress_callback: TransportProgressCallback,
) -> AsyncIterator[bytes]:
    written = 0
    async for chunk in stream:
        written += len(chunk)
        progress_callback(len(chunk), written, total)
        yield chunk


class CloudinaryTransport:
    """
    HTTP client adapter for the media API.

    Implements IMediaTransport protocol. One ``httpx.AsyncClient`` is
    shared by every request so connections are pooled.
    """

    def __init__(
        self,
        credentials: CloudinaryCredentials,
        config: Optional[UploadConfig] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._credentials = credentials
        self._config = config or UploadConfig()
        self._base_url = f"{self._config.api_base_url.rstrip('/')}/{credentials.cloud_name}"
        self._http_transport = http_transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._get_client()
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._config.timeout,
                transport=self._http_transport,
            )
        return self._client

    def _timestamp(self) -> int:
        return int(time.time())

    def _signed_params(self, params: Dict[str, Any]) -> Dict[str, str]:
        signed = {key: str(value) for key, value in params.items() if value is not None}
        signed["timestamp"] = str(self._timestamp())
        signed["signature"] = sign_params(signed, self._credentials.api_secret)
        signed["api_key"] = self._credentials.api_key
        return signed

    async def upload(
        self,
        payload: Union[bytes, Path],
        options: Dict[str, str],
        progress_callback: Optional[TransportProgressCallback] = None,
    ) -> Dict[str, Any]:
        """
        Upload an image (bytes) or a local file.

        Args:
            payload: Encoded bytes or path to a local file
            options: Upload options (tags, resource_type, format, ...)
            progress_callback: Called per chunk with
                (bytes_written, total_bytes_written, total_bytes_expected)

        Returns:
            Decoded JSON response

        Raises:
            TransportError: on network, HTTP or decoding errors
        """
        params = dict(options or {})
        resource_type = params.pop("resource_type", "image")
        endpoint = f"/{resource_type}/upload"
        form = self._signed_params(params)

        if isinstance(payload, (bytes, bytearray, memoryview)):
            return await self._send_upload(
                endpoint, form, io.BytesIO(bytes(payload)), "file", progress_callback
            )

        path = Path(payload)
        try:
            fileobj = open(path, "rb")
        except OSError as exc:
            raise TransportError(f"Cannot read {path}: {exc}") from exc
        with fileobj:
            return await self._send_upload(endpoint, form, fileobj, path.name, progress_callback)

    async def _send_upload(
        self,
        endpoint: str,
        form: Dict[str, str],
        fileobj,
        filename: str,
        progress_callback: Optional[TransportProgressCallback],
    ) -> Dict[str, Any]:
        client = self._get_client()
        request = client.build_request("POST", endpoint, data=form, files={"file": (filename, fileobj)})

        if progress_callback is not None:
            total = int(request.headers.get("Content-Length") or 0)
            # Same multipart body, streamed through a byte counter
            request = client.build_request(
                "POST",
                endpoint,
                headers=request.headers,
                content=_counting_stream(request.stream, total, progress_callback),
            )

        logger.debug(f"POST {endpoint} ({filename})")
        try:
            response = await client.send(request)
        except httpx.HTTPError as exc:
            raise TransportError(f"Upload request failed: {exc}") from exc
        return self._decode(response, "upload")

    async def destroy(self, public_id: str, options: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Delete an asset together with its derived variants."""
        params = dict(options or {})
        resource_type = params.pop("resource_type", "image")
        params.setdefault("invalidate", "true")
        params["public_id"] = public_id
        endpoint = f"/{resource_type}/destroy"

        client = self._get_client()
        logger.debug(f"POST {endpoint} public_id={public_id}")
        try:
            response = await client.post(endpoint, data=self._signed_params(params))
        except httpx.HTTPError as exc:
            raise TransportError(f"Destroy request failed: {exc}") from exc
        return self._decode(response, "destroy")

    def _decode(self, response: httpx.Response, action: str) -> Dict[str, Any]:
        if response.status_code >= 400:
            try:
                error_detail = response.json().get("error", {}).get("message")
            except Exception:
                error_detail = None
            raise TransportError(
                f"API error {response.status_code} on {action}: {error_detail or response.text}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Invalid JSON in {action} response", response.status_code) from exc
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected {action} response shape", response.status_code)
        return data
