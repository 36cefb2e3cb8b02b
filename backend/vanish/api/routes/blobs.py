"""
Attachment and vault routes.

Both families share one implementation over the blob store; the category
keeps them isolated, so a vault item is invisible under /attachments and the
other way round.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from vanish.api.deps import bearer_token, get_gate
from vanish.core.errors import PayloadTooLarge
from vanish.models import CATEGORY_CHAT, CATEGORY_VAULT
from vanish.schemas.blob import (
    BlobInitRequest,
    BlobInitResponse,
    BlobUploadResponse,
    DownloadTokenRequest,
    DownloadTokenResponse,
)
from vanish.schemas.common import StatusResponse
from vanish.services.gate import AccessGate


def _epoch_ms(ts: float) -> int:
    return int(ts * 1000)


def _missing_token() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")


def build_blob_router(segment: str, category: str) -> APIRouter:
    router = APIRouter(prefix="/api/rooms", tags=[segment])

    @router.post(
        f"/{{room_id}}/{segment}/init",
        response_model=BlobInitResponse,
        status_code=status.HTTP_201_CREATED,
    )
    def init_blob(
        room_id: str,
        req: BlobInitRequest,
        gate: AccessGate = Depends(get_gate),
    ) -> BlobInitResponse:
        entry, upload_token = gate.init_blob(
            room_id,
            req.mime_type,
            ttl_ms=req.ttl_ms,
            view_once=req.view_once,
            category=category,
        )
        return BlobInitResponse(
            id=entry.id,
            upload_token=upload_token,
            expires_at=_epoch_ms(entry.expires_at),
        )

    @router.put(f"/{{room_id}}/{segment}/{{blob_id}}", response_model=BlobUploadResponse)
    async def upload_blob(
        room_id: str,
        blob_id: str,
        request: Request,
        gate: AccessGate = Depends(get_gate),
    ) -> BlobUploadResponse:
        """Raw request body is the ciphertext. Requires the upload token."""
        token = bearer_token(request)
        if not token:
            raise _missing_token()

        gate.authorize_upload(room_id, blob_id, token, category=category)
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > gate.settings.attachment_max_bytes:
            raise PayloadTooLarge()

        body = await request.body()
        entry = gate.upload_blob(room_id, blob_id, token, body, category=category)
        return BlobUploadResponse(
            id=blob_id,
            size=entry.size,
            expires_at=_epoch_ms(entry.expires_at),
        )

    @router.post(f"/{{room_id}}/{segment}/token", response_model=DownloadTokenResponse)
    def mint_download_token(
        room_id: str,
        req: DownloadTokenRequest,
        gate: AccessGate = Depends(get_gate),
    ) -> DownloadTokenResponse:
        token = gate.mint_download_token(
            room_id, req.id, ttl_seconds=req.ttl_seconds, category=category
        )
        return DownloadTokenResponse(download_token=token)

    @router.get(f"/{{room_id}}/{segment}/{{blob_id}}")
    def fetch_blob(
        room_id: str,
        blob_id: str,
        request: Request,
        gate: AccessGate = Depends(get_gate),
    ) -> Response:
        token = bearer_token(request, allow_query=True)
        if not token:
            raise _missing_token()
        entry = gate.fetch_blob(room_id, blob_id, token, category=category)
        return Response(
            content=entry.payload,
            media_type="application/octet-stream",
            headers={
                "X-Attachment-Mime": entry.mime_type,
                "X-Attachment-Size": str(entry.size),
            },
        )

    @router.post(f"/{{room_id}}/{segment}/{{blob_id}}/delete", response_model=StatusResponse)
    def delete_blob(
        room_id: str,
        blob_id: str,
        request: Request,
        gate: AccessGate = Depends(get_gate),
    ) -> StatusResponse:
        gate.delete_blob(room_id, blob_id, token=bearer_token(request), category=category)
        return StatusResponse()

    return router


attachments_router = build_blob_router("attachments", CATEGORY_CHAT)
vault_router = build_blob_router("vault", CATEGORY_VAULT)
