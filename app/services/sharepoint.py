"""SharePoint folder conventions for villa documents and media.

Every villa gets a folder Villas/{name}_{id} (under the configured base folder)
with three trees: Legal_Documents, Media_Gallery and Agreements.
"""
from __future__ import annotations

import logging
import re

from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.media import DocumentType, PhotoCategory
from app.models.user import User
from app.models.villa import Villa
from app.services.activity_log import CATEGORY_SHAREPOINT, create_log
from app.services.graph import GraphClient

log = logging.getLogger(__name__)

_INVALID_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE_RE = re.compile(r"\s+")
_REPEATED_UNDERSCORE_RE = re.compile(r"_{2,}")
FOLDER_NAME_MAX_LEN = 100
FILE_NAME_MAX_LEN = 128

LEGAL_DOCUMENTS = "Legal_Documents"
MEDIA_GALLERY = "Media_Gallery"
AGREEMENTS = "Agreements"

FOLDER_TREE: dict[str, tuple[str, ...]] = {
    LEGAL_DOCUMENTS: (
        "Contracts",
        "Insurance",
        "Inventory",
        "Utilities",
        "Emergency_Contacts",
        "House_Rules",
        "Staff_Contracts",
        "Maintenance_Contracts",
    ),
    MEDIA_GALLERY: (
        "Branding/Logo",
        "Property_Plans/Floor_Plans",
        "Exterior_Views",
        "Interior_Living_Spaces",
        "Bedrooms",
        "Bathrooms",
        "Kitchen",
        "Dining_Areas",
        "Pool_Outdoor_Areas",
        "Garden_Landscaping",
        "Amenities_Facilities",
        "Views_Surroundings",
        "Staff_Areas",
        "Utility_Areas",
        "Entertainment",
        "Videos",
        "Drone_Shots",
    ),
    AGREEMENTS: (
        "Property_Management_Agreement",
        "Owner_Service_Agreement",
        "Staff_Employment_Contract",
        "Maintenance_Service_Contract",
        "Insurance_Agreement",
        "Utility_Service_Agreement",
        "Marketing_Agreement",
        "Commission_Agreement",
    ),
}

DOCUMENT_FOLDERS: dict[DocumentType, str] = {
    DocumentType.PROPERTY_CONTRACT: "Legal_Documents/Contracts",
    DocumentType.INSURANCE_CERTIFICATE: "Legal_Documents/Insurance",
    DocumentType.INVENTORY_LIST: "Legal_Documents/Inventory",
    DocumentType.UTILITY_BILLS: "Legal_Documents/Utilities",
    DocumentType.EMERGENCY_CONTACTS: "Legal_Documents/Emergency_Contacts",
    DocumentType.HOUSE_RULES: "Legal_Documents/House_Rules",
    DocumentType.STAFF_CONTRACTS: "Legal_Documents/Staff_Contracts",
    DocumentType.MAINTENANCE_CONTRACTS: "Legal_Documents/Maintenance_Contracts",
    DocumentType.MAINTENANCE_RECORDS: "Legal_Documents/Maintenance_Contracts",
    DocumentType.FLOOR_PLANS: "Media_Gallery/Property_Plans/Floor_Plans",
}
DEFAULT_DOCUMENT_FOLDER = "Legal_Documents/Contracts"

PHOTO_FOLDERS: dict[PhotoCategory, str] = {
    PhotoCategory.LOGO: "Media_Gallery/Branding/Logo",
    PhotoCategory.FLOOR_PLAN: "Media_Gallery/Property_Plans/Floor_Plans",
    PhotoCategory.EXTERIOR_VIEWS: "Media_Gallery/Exterior_Views",
    PhotoCategory.INTERIOR_LIVING_SPACES: "Media_Gallery/Interior_Living_Spaces",
    PhotoCategory.BEDROOMS: "Media_Gallery/Bedrooms",
    PhotoCategory.BATHROOMS: "Media_Gallery/Bathrooms",
    PhotoCategory.KITCHEN: "Media_Gallery/Kitchen",
    PhotoCategory.DINING_AREAS: "Media_Gallery/Dining_Areas",
    PhotoCategory.POOL_OUTDOOR_AREAS: "Media_Gallery/Pool_Outdoor_Areas",
    PhotoCategory.GARDEN_LANDSCAPING: "Media_Gallery/Garden_Landscaping",
    PhotoCategory.AMENITIES_FACILITIES: "Media_Gallery/Amenities_Facilities",
    PhotoCategory.VIEWS_SURROUNDINGS: "Media_Gallery/Views_Surroundings",
    PhotoCategory.STAFF_AREAS: "Media_Gallery/Staff_Areas",
    PhotoCategory.UTILITY_AREAS: "Media_Gallery/Utility_Areas",
    PhotoCategory.ENTERTAINMENT: "Media_Gallery/Entertainment",
    PhotoCategory.VIDEOS: "Media_Gallery/Videos",
    PhotoCategory.DRONE_SHOTS: "Media_Gallery/Drone_Shots",
}
DEFAULT_PHOTO_FOLDER = MEDIA_GALLERY


def _sanitize(name: str, max_len: int) -> str:
    s = _INVALID_CHARS_RE.sub("_", name or "")
    s = _WHITESPACE_RE.sub("_", s)
    s = _REPEATED_UNDERSCORE_RE.sub("_", s)
    return s.strip("_.")[:max_len].rstrip("_.")


def sanitize_folder_name(name: str) -> str:
    return _sanitize(name, FOLDER_NAME_MAX_LEN) or "Untitled"


def sanitize_file_name(name: str) -> str:
    """Same rules as folders; the extension survives truncation."""
    stem, dot, ext = (name or "").rpartition(".")
    if not dot or not stem:
        return _sanitize(name, FILE_NAME_MAX_LEN) or "file"
    ext = _sanitize(ext, 16)
    stem = _sanitize(stem, FILE_NAME_MAX_LEN - len(ext) - 1) or "file"
    return f"{stem}.{ext}" if ext else stem


def villa_base_path(villa: Villa) -> str:
    """{base}/Villas/{sanitized name}_{villa id}"""
    folder = f"Villas/{sanitize_folder_name(villa.villa_name)}_{villa.id}"
    base = get_settings().sharepoint_base_folder.strip("/")
    return f"{base}/{folder}" if base else folder


def villa_folder_paths(villa: Villa) -> list[str]:
    base = villa_base_path(villa)
    return [f"{base}/{top}/{sub}" for top, subs in FOLDER_TREE.items() for sub in subs]


def document_folder(villa: Villa, document_type: DocumentType) -> str:
    return f"{villa_base_path(villa)}/{DOCUMENT_FOLDERS.get(document_type, DEFAULT_DOCUMENT_FOLDER)}"


def photo_folder(villa: Villa, category: PhotoCategory, subfolder: str | None = None) -> str:
    path = f"{villa_base_path(villa)}/{PHOTO_FOLDERS.get(category, DEFAULT_PHOTO_FOLDER)}"
    if subfolder:
        path = f"{path}/{sanitize_folder_name(subfolder)}"
    return path


def set_villa_paths(villa: Villa) -> None:
    base = villa_base_path(villa)
    villa.sharepoint_path = base
    villa.documents_path = f"{base}/{LEGAL_DOCUMENTS}"
    villa.photos_path = f"{base}/{MEDIA_GALLERY}"


def create_villa_folder_structure(
    db: Session,
    client: GraphClient,
    villa: Villa,
    *,
    actor: User | None = None,
    log_ctx: dict | None = None,
) -> list[str]:
    """Create every folder of the villa's tree and store its paths on the villa.
    Raises GraphError when SharePoint rejects a folder; caller commits."""
    folders = villa_folder_paths(villa)
    for path in folders:
        client.ensure_folder(path)
    set_villa_paths(villa)
    create_log(
        db,
        CATEGORY_SHAREPOINT,
        "SharePoint folders created",
        f"Folder structure created for {villa.villa_name} at {villa.sharepoint_path}.",
        villa_id=villa.id,
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        meta={"folder_count": len(folders)},
        **(log_ctx or {}),
    )
    db.flush()
    log.info("SharePoint folder structure ready for villa %s (%d folders)", villa.id, len(folders))
    return folders


def search_villa_files(client: GraphClient, villa: Villa, query: str) -> list[dict]:
    """Drive search narrowed to items under the villa's folder."""
    base = (villa.sharepoint_path or villa_base_path(villa)).strip("/")
    out = []
    for item in client.search(query):
        folder = (item.get("parentReference") or {}).get("path", "").partition("root:")[2].strip("/")
        if folder == base or folder.startswith(base + "/"):
            out.append(
                {
                    "id": item.get("id"),
                    "name": item.get("name"),
                    "web_url": item.get("webUrl"),
                    "size": item.get("size"),
                    "folder": folder,
                }
            )
    return out
