import json

import httpx
import pytest

from app.config import Settings
from app.models.activity_log import ActivityLog
from app.models.media import DocumentType, PhotoCategory
from app.models.villa import Villa
from app.services.graph import GraphClient, GraphError
from app.services.sharepoint import (
    FOLDER_TREE,
    create_villa_folder_structure,
    document_folder,
    photo_folder,
    search_villa_files,
    sanitize_file_name,
    sanitize_folder_name,
    villa_base_path,
    villa_folder_paths,
)
from app.services.villas import create_villa

GRAPH_SETTINGS = dict(
    sharepoint_tenant_id="tenant-1",
    sharepoint_client_id="client-1",
    sharepoint_client_secret="secret-1",
    sharepoint_site_id="site-1",
    sharepoint_drive_id="drive-1",
)


def _villa(name="Villa Sunset", villa_id="abc-123"):
    return Villa(id=villa_id, villa_name=name, villa_code="VIL0001")


class FakeGraph:
    """Records handler calls; token requests always succeed."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.token_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "login.microsoftonline.com":
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
        self.requests.append(request)
        return self.handler(request)


def _client(handler) -> tuple[GraphClient, FakeGraph]:
    fake = FakeGraph(handler)
    return GraphClient(Settings(**GRAPH_SETTINGS), transport=httpx.MockTransport(fake)), fake


# -- naming -------------------------------------------------------------------


def test_sanitize_folder_name():
    assert sanitize_folder_name('Villa "Sunset" / Bali') == "Villa_Sunset_Bali"
    assert sanitize_folder_name("  ") == "Untitled"
    assert len(sanitize_folder_name("x" * 300)) == 100


def test_sanitize_file_name_keeps_extension():
    assert sanitize_file_name("pool view?.JPG") == "pool_view.JPG"
    long_name = sanitize_file_name("a" * 300 + ".pdf")
    assert long_name.endswith(".pdf")
    assert len(long_name) <= 128
    assert sanitize_file_name("README") == "README"


def test_villa_base_path():
    assert villa_base_path(_villa("Villa Sunset / Bay")) == "Villas/Villa_Sunset_Bay_abc-123"


def test_villa_folder_paths_cover_every_tree():
    paths = villa_folder_paths(_villa())
    assert len(paths) == sum(len(v) for v in FOLDER_TREE.values())
    assert "Villas/Villa_Sunset_abc-123/Legal_Documents/Contracts" in paths
    assert "Villas/Villa_Sunset_abc-123/Media_Gallery/Branding/Logo" in paths
    assert "Villas/Villa_Sunset_abc-123/Agreements/Commission_Agreement" in paths


def test_document_and_photo_folders():
    villa = _villa()
    assert document_folder(villa, DocumentType.INSURANCE_CERTIFICATE) == (
        "Villas/Villa_Sunset_abc-123/Legal_Documents/Insurance"
    )
    assert document_folder(villa, DocumentType.OTHER) == "Villas/Villa_Sunset_abc-123/Legal_Documents/Contracts"
    assert photo_folder(villa, PhotoCategory.BEDROOMS, "Master Bedroom") == (
        "Villas/Villa_Sunset_abc-123/Media_Gallery/Bedrooms/Master_Bedroom"
    )
    assert photo_folder(villa, PhotoCategory.OTHER) == "Villas/Villa_Sunset_abc-123/Media_Gallery"


# -- graph client -------------------------------------------------------------


def test_token_is_cached_between_requests():
    client, fake = _client(lambda r: httpx.Response(200, json={"value": []}))
    client.list_children("Villas")
    client.list_children("")
    assert fake.token_requests == 1
    assert all(r.headers["Authorization"] == "Bearer tok" for r in fake.requests)
    assert fake.requests[0].url.path == "/v1.0/drives/drive-1/root:/Villas:/children"
    assert fake.requests[1].url.path == "/v1.0/drives/drive-1/root/children"


def test_token_failure_raises_graph_error():
    def transport(request):
        return httpx.Response(401, json={"error": "invalid_client", "error_description": "bad secret"})

    client = GraphClient(Settings(**GRAPH_SETTINGS), transport=httpx.MockTransport(transport))
    with pytest.raises(GraphError) as exc:
        client.get_site()
    assert exc.value.status_code == 401
    assert "bad secret" in str(exc.value)


def test_graph_errors_carry_status_and_message():
    client, _ = _client(
        lambda r: httpx.Response(503, json={"error": {"code": "serviceNotAvailable", "message": "try later"}})
    )
    with pytest.raises(GraphError) as exc:
        client.list_children("Villas")
    assert exc.value.status_code == 503
    assert exc.value.is_server_error
    assert "try later" in str(exc.value)


def test_get_item_returns_none_when_missing():
    client, _ = _client(lambda r: httpx.Response(404, json={"error": {"code": "itemNotFound", "message": "nope"}}))
    assert client.get_item("Villas/Missing") is None


def test_ensure_folder_creates_missing_segments_once():
    def handler(request):
        if request.method == "GET":
            if request.url.path.endswith("root:/Villas"):
                return httpx.Response(200, json={"id": "f1", "name": "Villas"})
            return httpx.Response(404, json={"error": {"code": "itemNotFound", "message": "missing"}})
        return httpx.Response(201, json={"id": "new"})

    client, fake = _client(handler)
    client.ensure_folder("Villas/Villa_A/Legal_Documents")
    posts = [r for r in fake.requests if r.method == "POST"]
    assert [r.url.path for r in posts] == [
        "/v1.0/drives/drive-1/root:/Villas:/children",
        "/v1.0/drives/drive-1/root:/Villas/Villa_A:/children",
    ]
    assert json.loads(posts[0].content)["name"] == "Villa_A"
    assert json.loads(posts[1].content)["@microsoft.graph.conflictBehavior"] == "fail"

    sent = len(fake.requests)
    client.ensure_folder("Villas/Villa_A/Legal_Documents")
    assert len(fake.requests) == sent


def test_ensure_folder_tolerates_conflict():
    def handler(request):
        if request.method == "GET":
            return httpx.Response(404, json={})
        return httpx.Response(409, json={"error": {"code": "nameAlreadyExists", "message": "exists"}})

    client, _ = _client(handler)
    client.ensure_folder("Villas")


def test_small_upload_uses_simple_put():
    def handler(request):
        assert request.method == "PUT"
        assert request.url.path == "/v1.0/drives/drive-1/root:/Villas/A/contract.pdf:/content"
        assert request.url.params["@microsoft.graph.conflictBehavior"] == "replace"
        assert request.content == b"%PDF-1.4"
        return httpx.Response(201, json={"id": "item-1", "webUrl": "https://sp/contract.pdf"})

    client, _ = _client(handler)
    item = client.upload_file("Villas/A", "contract.pdf", b"%PDF-1.4")
    assert item["id"] == "item-1"


def test_large_upload_sends_session_chunks():
    content = b"x" * (4 * 1024 * 1024 + 1)

    def handler(request):
        if request.method == "POST":
            assert request.url.path == "/v1.0/drives/drive-1/root:/Villas/A/tour.mp4:/createUploadSession"
            assert json.loads(request.content)["item"]["@microsoft.graph.conflictBehavior"] == "replace"
            return httpx.Response(200, json={"uploadUrl": "https://upload.sharepoint.test/session-1"})
        assert request.url.host == "upload.sharepoint.test"
        end, total = request.headers["Content-Range"].split(" ")[1].split("/")
        if int(end.split("-")[1]) + 1 < int(total):
            return httpx.Response(202, json={"nextExpectedRanges": [f"{int(end.split('-')[1]) + 1}-"]})
        return httpx.Response(201, json={"id": "item-big", "webUrl": "https://sp/tour.mp4"})

    client, fake = _client(handler)
    item = client.upload_file("Villas/A", "tour.mp4", content)

    assert item["id"] == "item-big"
    puts = [r for r in fake.requests if r.method == "PUT"]
    assert [r.headers["Content-Range"] for r in puts] == [
        "bytes 0-3276799/4194305",
        "bytes 3276800-4194304/4194305",
    ]
    assert len(puts[0].content) % (320 * 1024) == 0
    assert b"".join(r.content for r in puts) == content
    assert all("Authorization" not in r.headers for r in puts)


def test_large_upload_chunk_failure_raises():
    def handler(request):
        if request.method == "POST":
            return httpx.Response(200, json={"uploadUrl": "https://upload.sharepoint.test/session-1"})
        return httpx.Response(503, json={"error": {"code": "serviceNotAvailable", "message": "busy"}})

    client, _ = _client(handler)
    with pytest.raises(GraphError) as exc:
        client.upload_file("Villas/A", "tour.mp4", b"x" * (4 * 1024 * 1024 + 1))
    assert exc.value.status_code == 503
    assert "byte 0" in str(exc.value)


def test_search_quotes_the_query():
    hit = {"id": "i1", "name": "O'Neil contract.pdf"}
    client, fake = _client(lambda r: httpx.Response(200, json={"value": [hit]}))
    assert client.search("O'Neil") == [hit]
    assert fake.requests[0].method == "GET"
    assert fake.requests[0].url.path == "/v1.0/drives/drive-1/root/search(q='O''Neil')"


def test_search_villa_files_keeps_the_villas_items():
    class SearchOnly:
        def __init__(self, hits):
            self.hits = hits
            self.queries = []

        def search(self, query):
            self.queries.append(query)
            return self.hits

    root = "/drives/drive-1/root:"
    hits = [
        {
            "id": "1",
            "name": "contract.pdf",
            "webUrl": "https://sp/1",
            "size": 10,
            "parentReference": {"path": f"{root}/Villas/Villa_Sunset_abc-123/Legal_Documents/Contracts"},
        },
        {"id": "2", "name": "contract.pdf", "parentReference": {"path": f"{root}/Villas/Villa_Sunset_abc-1234"}},
        {"id": "3", "name": "contract.pdf"},
    ]
    client = SearchOnly(hits)
    found = search_villa_files(client, _villa(), "contract")
    assert client.queries == ["contract"]
    assert found == [
        {
            "id": "1",
            "name": "contract.pdf",
            "web_url": "https://sp/1",
            "size": 10,
            "folder": "Villas/Villa_Sunset_abc-123/Legal_Documents/Contracts",
        }
    ]


def test_site_and_drive_lookup_by_hostname():
    def handler(request):
        if request.url.path == "/v1.0/sites/contoso.sharepoint.com:/sites/Villas":
            return httpx.Response(200, json={"id": "site-9", "displayName": "Villas"})
        if request.url.path == "/v1.0/sites/site-9/drive":
            return httpx.Response(200, json={"id": "drive-9", "name": "Documents"})
        return httpx.Response(404, json={})

    settings = Settings(
        sharepoint_tenant_id="t",
        sharepoint_client_id="c",
        sharepoint_client_secret="s",
        sharepoint_site_hostname="contoso.sharepoint.com",
        sharepoint_site_path="/sites/Villas",
    )
    fake = FakeGraph(handler)
    client = GraphClient(settings, transport=httpx.MockTransport(fake))
    assert client.drive_id == "drive-9"


# -- folder structure -----------------------------------------------------------


class RecordingClient:
    def __init__(self, fail_on: str | None = None):
        self.ensured: list[str] = []
        self.fail_on = fail_on

    def ensure_folder(self, path):
        if self.fail_on and path.endswith(self.fail_on):
            raise GraphError("denied", 403)
        self.ensured.append(path)


def test_create_villa_folder_structure_sets_paths_and_logs(db, owner):
    villa = create_villa(db, owner, "Villa Sunset")
    client = RecordingClient()
    folders = create_villa_folder_structure(db, client, villa, actor=owner)
    db.commit()

    base = f"Villas/Villa_Sunset_{villa.id}"
    assert client.ensured == folders
    assert villa.sharepoint_path == base
    assert villa.documents_path == f"{base}/Legal_Documents"
    assert villa.photos_path == f"{base}/Media_Gallery"
    entry = db.query(ActivityLog).filter(ActivityLog.villa_id == villa.id).one()
    assert entry.category == "sharepoint"
    assert entry.meta["folder_count"] == len(folders)


def test_create_villa_folder_structure_propagates_graph_errors(db, owner):
    villa = create_villa(db, owner, "Villa Sunset")
    with pytest.raises(GraphError):
        create_villa_folder_structure(db, RecordingClient(fail_on="Insurance"), villa)
    assert villa.sharepoint_path is None
