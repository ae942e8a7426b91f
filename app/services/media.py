"""Villa documents and photos: store in SharePoint, or hold the bytes until it is reachable."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models.media import Document, DocumentType, Photo, PhotoCategory, StorageStatus
from app.models.user import User
from app.models.villa import Villa
from app.services.activity_log import CATEGORY_DOCUMENT, create_log
from app.services.graph import GraphClient, GraphError, get_graph_client
from app.services.onboarding import get_or_create_progress, maybe_complete_onboarding
from app.services.sharepoint import document_folder, photo_folder, sanitize_file_name
from app.services.uploads import (
    DOCUMENT_CONTENT_TYPES,
    PHOTO_CONTENT_TYPES,
    BatchResult,
    is_retryable,
    upload_in_batches,
    upload_with_retry,
    validate_file,
)

log = logging.getLogger(__name__)

_STORAGE_ERROR_LEN = 500


class UploadRejected(Exception):
    """File failed the type/size checks, or SharePoint (remote=True) refused it for good."""

    def __init__(self, message: str, remote: bool = False):
        super().__init__(message)
        self.remote = remote


@dataclass
class IncomingFile:
    file_name: str
    content_type: str
    content: bytes


def _push(client: GraphClient, folder: str, name: str, content: bytes) -> dict:
    return upload_with_retry(lambda: client.upload_file(folder, name, content))


def _mark_synced(record: Document | Photo, item: dict, folder: str, name: str) -> None:
    record.sharepoint_file_id = item.get("id")
    record.file_url = item.get("webUrl")
    record.sharepoint_path = f"{folder}/{name}"
    record.storage_status = StorageStatus.synced
    record.storage_error = None
    record.content = None


def _mark_unsynced(record: Document | Photo, exc: Exception) -> None:
    """Retryable failures stay pending for the sync job; anything else is final."""
    record.storage_status = StorageStatus.pending if is_retryable(exc) else StorageStatus.failed
    record.storage_error = (str(exc) or exc.__class__.__name__)[:_STORAGE_ERROR_LEN]
    if record.storage_status == StorageStatus.failed:
        record.content = None


def _delete_remote(client: GraphClient | None, record: Document | Photo) -> None:
    """Best effort: a SharePoint failure leaves an orphan file, not a failed delete."""
    if client is None or not record.sharepoint_file_id:
        return
    try:
        client.delete_item(record.sharepoint_file_id)
    except (GraphError, httpx.HTTPError) as e:
        log.warning("Could not delete SharePoint item %s: %s", record.sharepoint_file_id, e)


def _actor_kwargs(actor: User | None, log_ctx: dict | None) -> dict:
    return {
        "actor_user_id": actor.id if actor else None,
        "actor_email": actor.email if actor else None,
        **(log_ctx or {}),
    }


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def add_document(
    db: Session,
    villa: Villa,
    incoming: IncomingFile,
    document_type: DocumentType,
    description: str | None = None,
    *,
    client: GraphClient | None = None,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> Document:
    """Store one document. Raises UploadRejected for a bad file or a 4xx from SharePoint."""
    error = validate_file(incoming.file_name, incoming.content_type, len(incoming.content), DOCUMENT_CONTENT_TYPES)
    if error:
        raise UploadRejected(error)

    name = sanitize_file_name(incoming.file_name)
    doc = Document(
        villa_id=villa.id,
        document_type=document_type,
        file_name=name,
        file_size=len(incoming.content),
        mime_type=incoming.content_type,
        description=(description or "").strip() or None,
        storage_status=StorageStatus.pending,
        content=incoming.content,
        uploaded_by_user_id=actor.id if actor else None,
        is_active=True,
    )
    if client is not None:
        folder = document_folder(villa, document_type)
        try:
            _mark_synced(doc, _push(client, folder, name, incoming.content), folder, name)
        except (GraphError, httpx.HTTPError) as e:
            if not is_retryable(e):
                raise UploadRejected(f"SharePoint rejected {name}: {e}", remote=True) from e
            _mark_unsynced(doc, e)
            log.warning("Document %s kept pending for villa %s: %s", name, villa.id, e)

    db.add(doc)
    get_or_create_progress(db, villa).documents_uploaded = True
    create_log(
        db,
        CATEGORY_DOCUMENT,
        "Document uploaded",
        f"{document_type.value} document {name} uploaded for {villa.villa_name}.",
        villa_id=villa.id,
        meta={"document_type": document_type, "storage_status": doc.storage_status, "size": doc.file_size},
        **_actor_kwargs(actor, log_ctx),
    )
    db.flush()
    maybe_complete_onboarding(db, villa, actor=actor, log_ctx=log_ctx)
    return doc


def list_documents(db: Session, villa: Villa, document_type: DocumentType | None = None) -> list[Document]:
    q = db.query(Document).filter(Document.villa_id == villa.id, Document.is_active.is_(True))
    if document_type is not None:
        q = q.filter(Document.document_type == document_type)
    return q.order_by(Document.created_at.desc(), Document.id.desc()).all()


def delete_document(
    db: Session,
    doc: Document,
    *,
    client: GraphClient | None = None,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> None:
    """Soft delete; the SharePoint file is removed when there is one."""
    _delete_remote(client, doc)
    doc.is_active = False
    doc.deleted_at = datetime.now(timezone.utc)
    doc.content = None
    create_log(
        db,
        CATEGORY_DOCUMENT,
        "Document deleted",
        f"Document {doc.file_name} deleted.",
        villa_id=doc.villa_id,
        meta={"document_id": doc.id},
        **_actor_kwargs(actor, log_ctx),
    )
    db.flush()


# ---------------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------------


def _next_sort_order(db: Session, villa: Villa) -> int:
    current = db.query(func.max(Photo.sort_order)).filter(Photo.villa_id == villa.id).scalar()
    return (current or 0) + 1


def _has_main_photo(db: Session, villa: Villa) -> bool:
    return db.query(Photo.id).filter(Photo.villa_id == villa.id, Photo.is_main.is_(True)).first() is not None


def add_photos(
    db: Session,
    villa: Villa,
    files: list[IncomingFile],
    category: PhotoCategory = PhotoCategory.OTHER,
    subfolder: str | None = None,
    *,
    client: GraphClient | None = None,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> list[tuple[IncomingFile, Photo | None, str | None]]:
    """Upload photos in fixed-size batches. Returns (file, photo, error) per input file, in order.

    Rejected files get an error and no photo. Photos SharePoint could not take
    right now are saved as pending. The villa's first photo becomes the main one.
    """
    outcome: dict[int, tuple[Photo | None, str | None]] = {}
    accepted: list[tuple[int, IncomingFile]] = []
    for idx, f in enumerate(files):
        error = validate_file(f.file_name, f.content_type, len(f.content), PHOTO_CONTENT_TYPES)
        if error:
            outcome[idx] = (None, error)
        else:
            accepted.append((idx, f))

    folder = photo_folder(villa, category, subfolder)
    uploads: dict[int, BatchResult] = {}
    if client is not None and accepted:
        results = upload_in_batches(
            accepted,
            lambda pair: _push(client, folder, sanitize_file_name(pair[1].file_name), pair[1].content),
        )
        uploads = {r.item[0]: r for r in results}

    sort_order = _next_sort_order(db, villa)
    needs_main = not _has_main_photo(db, villa)
    for idx, f in accepted:
        name = sanitize_file_name(f.file_name)
        result = uploads.get(idx)
        if result is not None and not result.ok and not is_retryable(result.exception):
            outcome[idx] = (None, f"SharePoint rejected {name}: {result.error}")
            continue
        photo = Photo(
            villa_id=villa.id,
            category=category,
            subfolder=(subfolder or "").strip() or None,
            file_name=name,
            file_size=len(f.content),
            mime_type=f.content_type,
            sort_order=sort_order,
            is_main=needs_main,
            storage_status=StorageStatus.pending,
            content=f.content,
            uploaded_by_user_id=actor.id if actor else None,
        )
        if result is not None:
            if result.ok:
                _mark_synced(photo, result.value, folder, name)
            else:
                _mark_unsynced(photo, result.exception)
        db.add(photo)
        sort_order += 1
        needs_main = False
        outcome[idx] = (photo, None)

    saved = [p for p, _ in outcome.values() if p is not None]
    if saved:
        get_or_create_progress(db, villa).photos_uploaded = True
        create_log(
            db,
            CATEGORY_DOCUMENT,
            "Photos uploaded",
            f"{len(saved)} {category.value} photo(s) uploaded for {villa.villa_name}.",
            villa_id=villa.id,
            meta={"category": category, "uploaded": len(saved), "failed": len(files) - len(saved)},
            **_actor_kwargs(actor, log_ctx),
        )
    db.flush()
    maybe_complete_onboarding(db, villa, actor=actor, log_ctx=log_ctx)
    return [(f, *outcome[idx]) for idx, f in enumerate(files)]


def list_photos(db: Session, villa: Villa, category: PhotoCategory | None = None) -> list[Photo]:
    q = db.query(Photo).filter(Photo.villa_id == villa.id)
    if category is not None:
        q = q.filter(Photo.category == category)
    return q.order_by(Photo.sort_order, Photo.id).all()


def set_main_photo(db: Session, photo: Photo) -> Photo:
    db.query(Photo).filter(Photo.villa_id == photo.villa_id, Photo.id != photo.id).update(
        {Photo.is_main: False}, synchronize_session="fetch"
    )
    photo.is_main = True
    db.flush()
    return photo


def delete_photo(
    db: Session,
    photo: Photo,
    *,
    client: GraphClient | None = None,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> None:
    """Remove the photo; when it was the main one the next in order takes over."""
    _delete_remote(client, photo)
    villa_id, was_main = photo.villa_id, photo.is_main
    create_log(
        db,
        CATEGORY_DOCUMENT,
        "Photo deleted",
        f"Photo {photo.file_name} deleted.",
        villa_id=villa_id,
        meta={"photo_id": photo.id},
        **_actor_kwargs(actor, log_ctx),
    )
    db.delete(photo)
    db.flush()
    if was_main:
        nxt = db.query(Photo).filter(Photo.villa_id == villa_id).order_by(Photo.sort_order, Photo.id).first()
        if nxt:
            nxt.is_main = True
            db.flush()


# ---------------------------------------------------------------------------
# Pending re-sync
# ---------------------------------------------------------------------------


def _pending_target(record: Document | Photo) -> str:
    if isinstance(record, Document):
        return document_folder(record.villa, record.document_type)
    return photo_folder(record.villa, record.category, record.subfolder)


def sync_pending_uploads(db: Session, client: GraphClient | None = None, limit: int = 50) -> dict[str, int]:
    """Push held uploads to SharePoint. Returns counts of synced / failed / still pending."""
    client = client or get_graph_client()
    counts = {"synced": 0, "failed": 0, "pending": 0}
    if client is None:
        return counts
    records: list[Document | Photo] = []
    records += (
        db.query(Document)
        .filter(Document.storage_status == StorageStatus.pending, Document.is_active.is_(True))
        .limit(limit)
        .all()
    )
    records += db.query(Photo).filter(Photo.storage_status == StorageStatus.pending).limit(limit).all()
    for record in records:
        if record.content is None:
            _mark_unsynced(record, GraphError("No file content held for upload"))
            counts["failed"] += 1
            continue
        folder = _pending_target(record)
        try:
            _mark_synced(record, _push(client, folder, record.file_name, record.content), folder, record.file_name)
            counts["synced"] += 1
        except (GraphError, httpx.HTTPError) as e:
            _mark_unsynced(record, e)
            counts[record.storage_status.value] += 1
            log.warning("Re-sync of %s %s failed: %s", type(record).__name__, record.id, e)
    db.flush()
    return counts


def pending_upload_count(db: Session) -> int:
    docs = (
        db.query(func.count(Document.id))
        .filter(Document.storage_status == StorageStatus.pending, Document.is_active.is_(True))
        .scalar()
    )
    photos = db.query(func.count(Photo.id)).filter(Photo.storage_status == StorageStatus.pending).scalar()
    return (docs or 0) + (photos or 0)


def run_pending_sync_job() -> None:
    """Scheduler entry point: re-sync pending uploads in a fresh session."""
    db = SessionLocal()
    try:
        counts = sync_pending_uploads(db)
        db.commit()
        if counts["synced"] or counts["failed"]:
            log.info("Pending upload sync: %s", counts)
    finally:
        db.close()
