"""Module D: Villa documents, photos and SharePoint folders."""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_accessible_villa, get_current_user
from app.models.media import Document, DocumentType, Photo, PhotoCategory
from app.models.user import User
from app.models.villa import Villa
from app.schemas.media import (
    DocumentResponse,
    FolderStructureResponse,
    SharePointFile,
    PhotoBatchResult,
    PhotoResponse,
    PhotoUploadItem,
)
from app.services.activity_log import request_context
from app.services.graph import GraphClient, GraphError, get_graph_client
from app.services.media import (
    IncomingFile,
    UploadRejected,
    add_document,
    add_photos,
    delete_document,
    delete_photo,
    list_documents,
    list_photos,
    set_main_photo,
)
from app.services.sharepoint import create_villa_folder_structure, search_villa_files

router = APIRouter(prefix="/api/villas/{villa_id}", tags=["documents"])


def _incoming(upload: UploadFile) -> IncomingFile:
    return IncomingFile(
        file_name=upload.filename or "",
        content_type=upload.content_type or "application/octet-stream",
        content=upload.file.read(),
    )


def _villa_document(db: Session, villa: Villa, document_id: int) -> Document:
    doc = (
        db.query(Document)
        .filter(Document.id == document_id, Document.villa_id == villa.id, Document.is_active.is_(True))
        .first()
    )
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


def _villa_photo(db: Session, villa: Villa, photo_id: int) -> Photo:
    photo = db.query(Photo).filter(Photo.id == photo_id, Photo.villa_id == villa.id).first()
    if not photo:
        raise HTTPException(status_code=404, detail="Photo not found")
    return photo


# -- documents ----------------------------------------------------------------


@router.post("/documents", response_model=DocumentResponse, status_code=201)
def upload_document(
    request: Request,
    file: UploadFile = File(...),
    document_type: DocumentType = Form(DocumentType.OTHER),
    description: str | None = Form(None),
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: GraphClient | None = Depends(get_graph_client),
):
    incoming = _incoming(file)
    try:
        doc = add_document(
            db,
            villa,
            incoming,
            document_type,
            description,
            client=client,
            actor=current_user,
            log_ctx=request_context(request),
        )
    except UploadRejected as e:
        db.rollback()
        raise HTTPException(status_code=502 if e.remote else 400, detail=str(e))
    db.commit()
    db.refresh(doc)
    return doc


@router.get("/documents", response_model=list[DocumentResponse])
def get_documents(
    document_type: DocumentType | None = None,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    return list_documents(db, villa, document_type)


@router.delete("/documents/{document_id}", status_code=204)
def remove_document(
    request: Request,
    document_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: GraphClient | None = Depends(get_graph_client),
):
    doc = _villa_document(db, villa, document_id)
    delete_document(db, doc, client=client, actor=current_user, log_ctx=request_context(request))
    db.commit()


# -- photos -------------------------------------------------------------------


@router.post("/photos", response_model=PhotoBatchResult, status_code=201)
def upload_photos(
    request: Request,
    files: list[UploadFile] = File(...),
    category: PhotoCategory = Form(PhotoCategory.OTHER),
    subfolder: str | None = Form(None),
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: GraphClient | None = Depends(get_graph_client),
):
    results = add_photos(
        db,
        villa,
        [_incoming(f) for f in files],
        category,
        subfolder,
        client=client,
        actor=current_user,
        log_ctx=request_context(request),
    )
    db.commit()
    items = []
    for incoming, photo, error in results:
        if photo is not None:
            db.refresh(photo)
        items.append(
            PhotoUploadItem(
                file_name=incoming.file_name,
                success=photo is not None,
                error=error,
                photo=PhotoResponse.model_validate(photo) if photo is not None else None,
            )
        )
    uploaded = sum(1 for i in items if i.success)
    return PhotoBatchResult(uploaded=uploaded, failed=len(items) - uploaded, results=items)


@router.get("/photos", response_model=list[PhotoResponse])
def get_photos(
    category: PhotoCategory | None = None,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    return list_photos(db, villa, category)


@router.delete("/photos/{photo_id}", status_code=204)
def remove_photo(
    request: Request,
    photo_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: GraphClient | None = Depends(get_graph_client),
):
    photo = _villa_photo(db, villa, photo_id)
    delete_photo(db, photo, client=client, actor=current_user, log_ctx=request_context(request))
    db.commit()


@router.put("/photos/{photo_id}/main", response_model=PhotoResponse)
def make_main_photo(
    photo_id: int,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
):
    photo = set_main_photo(db, _villa_photo(db, villa, photo_id))
    db.commit()
    db.refresh(photo)
    return photo


# -- sharepoint ---------------------------------------------------------------


@router.post("/sharepoint/folders", response_model=FolderStructureResponse)
def create_folders(
    request: Request,
    villa: Villa = Depends(get_accessible_villa),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: GraphClient | None = Depends(get_graph_client),
):
    if client is None:
        raise HTTPException(status_code=400, detail="SharePoint is not configured")
    try:
        folders = create_villa_folder_structure(db, client, villa, actor=current_user, log_ctx=request_context(request))
    except GraphError as e:
        db.rollback()
        raise HTTPException(status_code=502, detail=f"SharePoint folder creation failed: {e}")
    db.commit()
    db.refresh(villa)
    return FolderStructureResponse(
        villa_id=villa.id,
        sharepoint_path=villa.sharepoint_path,
        documents_path=villa.documents_path,
        photos_path=villa.photos_path,
        folders=folders,
    )


@router.get("/sharepoint/search", response_model=list[SharePointFile])
def search_files(
    q: str = Query(min_length=1, max_length=200),
    villa: Villa = Depends(get_accessible_villa),
    client: GraphClient | None = Depends(get_graph_client),
):
    if client is None:
        raise HTTPException(status_code=400, detail="SharePoint is not configured")
    try:
        return search_villa_files(client, villa, q)
    except GraphError as e:
        raise HTTPException(status_code=502, detail=f"SharePoint search failed: {e}")
