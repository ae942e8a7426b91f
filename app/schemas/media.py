"""Module D: Document and photo schemas."""
from datetime import datetime
from pydantic import BaseModel
from app.models.media import DocumentType, PhotoCategory, StorageStatus


class DocumentResponse(BaseModel):
    id: int
    villa_id: str
    document_type: DocumentType
    file_name: str
    file_url: str | None
    file_size: int
    mime_type: str
    description: str | None
    storage_status: StorageStatus
    storage_error: str | None = None
    sharepoint_file_id: str | None
    sharepoint_path: str | None
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PhotoResponse(BaseModel):
    id: int
    villa_id: str
    category: PhotoCategory
    subfolder: str | None
    file_name: str
    file_url: str | None
    file_size: int
    mime_type: str
    caption: str | None
    is_main: bool
    sort_order: int
    storage_status: StorageStatus
    storage_error: str | None = None
    sharepoint_file_id: str | None
    sharepoint_path: str | None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PhotoUploadItem(BaseModel):
    """Outcome for one file of a batch upload; photo is None when it was rejected."""
    file_name: str
    success: bool
    error: str | None = None
    photo: PhotoResponse | None = None


class PhotoBatchResult(BaseModel):
    uploaded: int
    failed: int
    results: list[PhotoUploadItem]


class FolderStructureResponse(BaseModel):
    villa_id: str
    sharepoint_path: str
    documents_path: str
    photos_path: str
    folders: list[str]


class SharePointFile(BaseModel):
    id: str
    name: str
    web_url: str | None = None
    size: int | None = None
    folder: str
