import io
import os
import uuid
from datetime import datetime, timezone
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile
from fastapi.responses import Response, RedirectResponse
from sqlalchemy.orm import Session
from slugify import slugify

from ..config import settings
from ..db import get_db
from ..models.models import FileRecord, GigFile, VenueFile, Gig, Venue, DocumentType, User
from ..schemas.files import FileResponse
from ..storage.blob_provider import BlobStorageProvider
from ..storage.local_provider import LocalStorageProvider
from ..storage.provider import StorageProvider
from ..auth.security import require_manager
from ..logging import structlog


router = APIRouter(prefix="/api", tags=["files"])
logger = structlog.get_logger(__name__)


def get_storage() -> StorageProvider:
    """Provider for new uploads, picked from STORAGE_PROVIDER."""
    if settings.storage_provider == BlobStorageProvider.name:
        return BlobStorageProvider()
    return LocalStorageProvider()


def get_storage_for_file(fr: FileRecord) -> StorageProvider:
    """Provider a stored file was written with."""
    if fr.provider == BlobStorageProvider.name:
        return BlobStorageProvider()
    return LocalStorageProvider()


def canonical_key(scope: Optional[str], category: Optional[str], original_name: str) -> str:
    now = datetime.now(timezone.utc)
    safe_name = slugify(os.path.splitext(original_name)[0]) or "file"
    ext = os.path.splitext(original_name)[1].lower()
    folder = slugify(category or "files")
    return f"/gigbook/{now:%Y}/{slugify(scope or 'misc')}/{folder}/{now:%Y-%m-%d}_{uuid.uuid4().hex[:8]}_{safe_name}{ext}"


async def store_upload(
    db: Session,
    storage: StorageProvider,
    upload: UploadFile,
    user: User,
    scope: str,
    category: Optional[str] = None,
    description: Optional[str] = None,
    document_type_id: Optional[uuid.UUID] = None,
) -> FileRecord:
    """Write the upload to storage and add its record; the caller commits."""
    if document_type_id is not None and db.get(DocumentType, document_type_id) is None:
        raise HTTPException(status_code=400, detail="Unknown document type")
    content = await upload.read()
    original_name = upload.filename or "upload"
    content_type = upload.content_type or "application/octet-stream"
    key = canonical_key(scope, category, original_name)
    storage.save(io.BytesIO(content), key, content_type)
    fr = FileRecord(
        file_name=original_name,
        file_type=content_type,
        file_size=len(content),
        provider=storage.name,
        storage_key=key,
        category=category,
        description=description,
        document_type_id=document_type_id,
        uploaded_by=user.id,
    )
    db.add(fr)
    db.flush()
    logger.info("file_uploaded", file_id=str(fr.id), provider=storage.name, size=len(content))
    return fr


def content_response(fr: FileRecord, inline: bool = False):
    storage = get_storage_for_file(fr)
    disposition = "inline" if inline else "attachment"
    data = storage.open(fr.storage_key)
    if data is not None:
        return Response(
            content=data,
            media_type=fr.file_type or "application/octet-stream",
            headers={"Content-Disposition": f'{disposition}; filename="{fr.file_name}"'},
        )
    url = storage.get_download_url(fr.storage_key, expires_s=3600)
    if not url:
        raise HTTPException(status_code=404, detail="File content not found")
    return RedirectResponse(url)


def remove_file(db: Session, fr: FileRecord) -> None:
    """Delete the record (links cascade) and then its stored content."""
    storage = get_storage_for_file(fr)
    key = fr.storage_key
    db.delete(fr)
    db.commit()
    storage.delete(key)


def _get_file(db: Session, file_id: uuid.UUID) -> FileRecord:
    fr = db.get(FileRecord, file_id)
    if fr is None:
        raise HTTPException(status_code=404, detail="File not found")
    return fr


@router.get("/files", response_model=List[FileResponse])
def list_files(
    category: Optional[str] = None,
    gig_id: Optional[uuid.UUID] = None,
    venue_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    q = db.query(FileRecord)
    if category:
        q = q.filter(FileRecord.category == category)
    if gig_id:
        q = q.join(GigFile, GigFile.file_id == FileRecord.id).filter(GigFile.gig_id == gig_id)
    if venue_id:
        q = q.join(VenueFile, VenueFile.file_id == FileRecord.id).filter(VenueFile.venue_id == venue_id)
    return q.order_by(FileRecord.created_at.desc()).all()


@router.post("/files/upload", response_model=FileResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    document_type_id: Optional[uuid.UUID] = Form(None),
    gig_id: Optional[uuid.UUID] = Form(None),
    venue_id: Optional[uuid.UUID] = Form(None),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    user: User = Depends(require_manager),
):
    if gig_id is not None and db.get(Gig, gig_id) is None:
        raise HTTPException(status_code=400, detail="Unknown gig")
    if venue_id is not None and db.get(Venue, venue_id) is None:
        raise HTTPException(status_code=400, detail="Unknown venue")
    scope = f"gig-{gig_id}" if gig_id else (f"venue-{venue_id}" if venue_id else "shared")
    fr = await store_upload(db, storage, file, user, scope, category, description, document_type_id)
    if gig_id is not None:
        db.add(GigFile(gig_id=gig_id, file_id=fr.id))
    if venue_id is not None:
        db.add(VenueFile(venue_id=venue_id, file_id=fr.id))
    db.commit()
    db.refresh(fr)
    return fr


@router.get("/files/{file_id}", response_model=FileResponse)
def get_file(file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return _get_file(db, file_id)


@router.get("/files/{file_id}/download")
def download_file(file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return content_response(_get_file(db, file_id))


@router.get("/files/{file_id}/preview")
def preview_file(file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return content_response(_get_file(db, file_id), inline=True)


@router.delete("/files/{file_id}")
def delete_file(file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    remove_file(db, _get_file(db, file_id))
    return {"message": "File deleted successfully"}


@router.get("/gigs/{gig_id}/files", response_model=List[FileResponse])
def gig_files(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    if db.get(Gig, gig_id) is None:
        raise HTTPException(status_code=404, detail="Gig not found")
    return (
        db.query(FileRecord)
        .join(GigFile, GigFile.file_id == FileRecord.id)
        .filter(GigFile.gig_id == gig_id)
        .order_by(FileRecord.created_at.desc())
        .all()
    )


@router.post("/gigs/{gig_id}/files/{file_id}", status_code=201)
def link_gig_file(gig_id: uuid.UUID, file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    if db.get(Gig, gig_id) is None:
        raise HTTPException(status_code=404, detail="Gig not found")
    _get_file(db, file_id)
    if db.get(GigFile, (gig_id, file_id)) is None:
        db.add(GigFile(gig_id=gig_id, file_id=file_id))
        db.commit()
    return {"gig_id": str(gig_id), "file_id": str(file_id)}


@router.delete("/gigs/{gig_id}/files/{file_id}")
def unlink_gig_file(gig_id: uuid.UUID, file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    link = db.get(GigFile, (gig_id, file_id))
    if link is None:
        raise HTTPException(status_code=404, detail="File is not linked to this gig")
    db.delete(link)
    db.commit()
    return {"message": "File unlinked from gig"}


@router.post("/venues/{venue_id}/files/{file_id}", status_code=201)
def link_venue_file(venue_id: uuid.UUID, file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    if db.get(Venue, venue_id) is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    _get_file(db, file_id)
    if db.get(VenueFile, (venue_id, file_id)) is None:
        db.add(VenueFile(venue_id=venue_id, file_id=file_id))
        db.commit()
    return {"venue_id": str(venue_id), "file_id": str(file_id)}


@router.delete("/venues/{venue_id}/files/{file_id}")
def unlink_venue_file(venue_id: uuid.UUID, file_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    link = db.get(VenueFile, (venue_id, file_id))
    if link is None:
        raise HTTPException(status_code=404, detail="File is not linked to this venue")
    db.delete(link)
    db.commit()
    return {"message": "File unlinked from venue"}
