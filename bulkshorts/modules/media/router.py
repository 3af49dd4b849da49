from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from bulkshorts.api.deps import media_registry, url_validator
from bulkshorts.core.errors import MediaBlobNotFound
from bulkshorts.core.security import Principal, get_principal
from bulkshorts.modules.media.schemas import (
    MediaBatchQuery, MediaRecord, MediaUpdate, RemoteBatchIngest, RemoteIngest, ResolvedMediaItem,
)
from bulkshorts.modules.media.service import MediaRegistry
from bulkshorts.platform.ports.url_validator import UrlValidatorPort

router = APIRouter()

MAX_UPLOAD_BYTES = 500 * 1024 * 1024

@router.post("/upload", response_model=MediaRecord, status_code=201)
async def upload_media(
    file: UploadFile = File(...),
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    if file.size is not None and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (>500MB)")
    return await registry.ingest_local(file, principal.user_id)

@router.post("/remote", response_model=MediaRecord)
async def ingest_remote(
    payload: RemoteIngest,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    return await registry.ingest_remote(payload.url, principal.user_id)

@router.post("/remote/batch", response_model=list[MediaRecord])
async def ingest_remote_batch(
    payload: RemoteBatchIngest,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
    validator: UrlValidatorPort = Depends(url_validator),
):
    records = await registry.ingest_remote_batch(
        payload.urls, principal.user_id, validator=validator if payload.validate_urls else None,
    )
    if not records:
        raise HTTPException(status_code=422, detail="No valid URLs were found. Please check your list and try again.")
    return records

@router.post("/batch", response_model=list[MediaRecord])
async def get_media_batch(
    payload: MediaBatchQuery,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    return await registry.get_batch(payload.ids, principal.user_id)

@router.post("/resolve", response_model=list[ResolvedMediaItem])
async def resolve_media(
    payload: MediaBatchQuery,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    try:
        return await registry.resolve_batch(payload.ids, principal.user_id)
    except MediaBlobNotFound as e:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail=str(e))

@router.get("/sources/{handle:path}")
async def stream_source(
    handle: str,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    blob = registry.open_source(handle, principal.user_id)
    if blob is None:
        raise HTTPException(status_code=404, detail="Playback handle not found")
    return Response(content=blob.data, media_type=blob.mime_type)

@router.delete("/sources/{handle:path}", status_code=204)
async def release_source(
    handle: str,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    registry.release_source(handle, principal.user_id)
    return Response(status_code=204)

@router.get("/{media_id}", response_model=MediaRecord)
async def get_media(
    media_id: str,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    record = await registry.get(media_id)
    if record is None or record.user_id != principal.user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    return record

@router.patch("/{media_id}", response_model=MediaRecord)
async def update_media(
    media_id: str,
    payload: MediaUpdate,
    principal: Principal = Depends(get_principal),
    registry: MediaRegistry = Depends(media_registry),
):
    current = await registry.get(media_id)
    if current is None or current.user_id != principal.user_id:
        raise HTTPException(status_code=404, detail="Media not found")
    return await registry.update(media_id, payload)
