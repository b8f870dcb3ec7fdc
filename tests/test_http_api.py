import asyncio
import io
import zipfile
from pathlib import Path

import pytest

from interfaces.http.app import create_app
from tests.fakes import FakeLauncher


def _make_client(app):
    pytest.importorskip("httpx")  # required by fastapi/starlette TestClient
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def launcher():
    return FakeLauncher(exit_code=0)


@pytest.fixture
def client(test_settings, store, launcher):
    with _make_client(create_app(test_settings, store, launcher)) as c:
        yield c


def test_list_folder_single_level(client, store):
    store.add("scans/", b"")
    store.add("scans/a.laz", b"x" * 1536)
    store.add("scans/raw/b.laz", b"x" * 100)

    resp = client.get("/folders/scans")

    assert resp.status_code == 200
    body = resp.json()
    assert body["files"] == [{
        "file": "scans/a.laz",
        "size": 1536,
        "signedUrl": "https://signed.example/scans/a.laz?X-Amz-Expires=300",
    }]
    assert body["folders"] == ["scans/raw/"]
    assert body["totalSize"] == "1.5 KB"
    assert body["totalSizeBytes"] == 1536
    assert body["truncated"] is False


def test_list_folder_recursive(client, store):
    store.add("scans/a.laz", b"x" * 1024)
    store.add("scans/raw/b.laz", b"x" * 1024)
    store.add("scans/raw/deep/c.laz", b"x" * 1024)

    resp = client.get("/folders/scans/", params={"recursive": "true"})

    assert resp.status_code == 200
    body = resp.json()
    assert sorted(f["file"] for f in body["files"]) == ["scans/a.laz", "scans/raw/b.laz", "scans/raw/deep/c.laz"]
    assert body["folders"] == ["scans/raw/", "scans/raw/deep/"]
    assert body["totalSize"] == "3 KB"


def test_list_empty_folder(client):
    resp = client.get("/folders/nothing")

    assert resp.status_code == 200
    assert resp.json()["totalSize"] == "0 Bytes"


def test_list_store_failure_is_500_with_route_message(client, store):
    store.failing.add("list")

    resp = client.get("/folders/scans", params={"recursive": "true"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to retrieve folder contents."}


def test_create_and_delete_folder(client, store):
    resp = client.post("/folders/projects/palace")
    assert resp.status_code == 200
    assert "projects/palace/" in store.objects

    store.add("projects/palace/a.laz", b"1")
    resp = client.delete("/folders/projects/palace")
    assert resp.status_code == 200
    assert resp.json()["deleted"] == 2
    assert len(store.delete_batches) == 1

    resp = client.delete("/folders/projects/palace")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Folder is empty or does not exist."}


def test_folder_store_failures_name_the_operation(client, store):
    store.failing.update({"put", "delete"})
    store.add("projects/a.laz", b"1")

    resp = client.post("/folders/projects/palace")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to create folder."}

    resp = client.delete("/folders/projects")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to delete folder and its contents."}


def test_bucket_root_cannot_be_created_or_deleted(client):
    assert client.post("/folders/").status_code == 400
    assert client.delete("/folders/").status_code == 400


def test_get_file(client, store):
    store.add("scans/a.laz", b"12345")

    resp = client.get("/files/scans/a.laz")
    assert resp.status_code == 200
    assert resp.json() == {"url": "https://signed.example/scans/a.laz?X-Amz-Expires=300", "size": 5}

    assert client.get("/files/scans/missing.laz").status_code == 404


def test_upload_files_and_zip(client, store):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("pages/index.html", "<html/>")
        archive.writestr("pages/data/metadata.json", "{}")

    resp = client.post(
        "/files/uploads/site",
        files=[
            ("files", ("cloud.laz", b"laz-bytes", "application/octet-stream")),
            ("files", ("bundle.zip", buf.getvalue(), "application/zip")),
        ],
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["uploaded"] == 3
    assert {f["key"] for f in body["files"]} == {
        "uploads/site/cloud.laz",
        "uploads/site/pages/index.html",
        "uploads/site/pages/data/metadata.json",
    }
    assert all(f["status"] == "uploaded" for f in body["files"])
    assert body["files"][0]["contentType"] == "application/vnd.laszip"


def test_upload_strips_directories_from_filename(client, store):
    resp = client.post("/files/docs", files={"file": ("../../etc/passwd", b"x", "text/plain")})

    assert resp.status_code == 200
    assert list(store.objects) == ["docs/passwd"]


def test_upload_single_file_field(client, store):
    resp = client.post("/files/docs", files={"file": ("report.pdf", b"%PDF", "application/pdf")})

    assert resp.status_code == 200
    assert store.content_types["docs/report.pdf"] == "application/pdf"


def test_upload_without_file_is_400(client):
    resp = client.post("/files/docs")

    assert resp.status_code == 400
    assert resp.json() == {"error": "No file uploaded."}


def test_upload_too_many_files_is_400(client):
    files = [("files", (f"{i}.txt", b"x", "text/plain")) for i in range(11)]

    resp = client.post("/files/docs", files=files)

    assert resp.status_code == 400


def test_delete_file(client, store):
    store.add("docs/a.txt", b"1")

    resp = client.delete("/files/docs/a.txt")

    assert resp.status_code == 200
    assert store.objects == {}


def test_convert_success(client, launcher, test_settings):
    resp = client.post(
        "/convert",
        files={"file": ("Palac_Moszna.laz", b"LASF", "application/octet-stream")},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Conversion completed successfully."
    job = launcher.started[0]
    assert job.job_id == body["jobId"]
    assert job.executable_path == "PotreeConverter"
    assert job.arguments == [job.input_path, "-o", job.output_path, "--generate-page", "Palac_Moszna"]
    assert Path(job.input_path).read_bytes() == b"LASF"
    assert Path(job.input_path).is_relative_to(Path(test_settings.converter_work_dir))
    assert body["outputPath"] == job.output_path


def test_convert_publishes_outputs(test_settings, store):
    launcher = FakeLauncher(exit_code=0, outputs={"metadata.json": b"{}", "pages/viewer.html": b"<html/>"})
    with _make_client(create_app(test_settings, store, launcher)) as client:
        resp = client.post(
            "/convert",
            files={"file": ("scan.las", b"LASF", "application/octet-stream")},
            data={"page_name": "my page", "output_prefix": "potree/scan"},
        )

    assert resp.status_code == 200
    body = resp.json()
    assert body["uploaded"] == 2
    assert body["outputPath"] == "potree/scan"
    assert store.objects["potree/scan/metadata.json"] == b"{}"
    assert store.content_types["potree/scan/pages/viewer.html"] == "text/html"
    assert launcher.started[0].arguments[-1] == "my_page"
    assert not Path(launcher.started[0].output_path).exists()


def test_convert_failure_and_startup_error(test_settings, store):
    with _make_client(create_app(test_settings, store, FakeLauncher(exit_code=137))) as client:
        resp = client.post("/convert", files={"file": ("a.laz", b"LASF", "application/octet-stream")})
    assert resp.status_code == 500
    assert resp.json() == {"message": "Conversion failed."}

    with _make_client(create_app(test_settings, store, FakeLauncher(startup_error=True))) as client:
        resp = client.post("/convert", files={"file": ("a.laz", b"LASF", "application/octet-stream")})
    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to start conversion process."}


@pytest.mark.asyncio
async def test_convert_beyond_capacity_is_503(test_settings, store):
    httpx = pytest.importorskip("httpx")
    gate = asyncio.Event()
    launcher = FakeLauncher(exit_code=0, gate=gate)
    app = create_app(test_settings, store, launcher)
    runner = app.state.conversion_runner
    upload = {"file": ("a.laz", b"LASF", "application/octet-stream")}

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        first = asyncio.create_task(client.post("/convert", files=upload))
        for _ in range(500):
            if runner.admitted == 1:
                break
            await asyncio.sleep(0.01)
        assert runner.admitted == 1

        resp = await client.post("/convert", files=upload)

        assert resp.status_code == 503
        assert resp.json() == {"message": "Conversion queue is full, try again later."}
        assert len(launcher.started) == 1

        gate.set()
        assert (await first).status_code == 200


def test_convert_requires_point_cloud(client, launcher):
    assert client.post("/convert").status_code == 400
    resp = client.post("/convert", files={"file": ("notes.txt", b"hi", "text/plain")})
    assert resp.status_code == 400
    assert launcher.started == []


def test_unhandled_error_is_generic(test_settings, store, launcher):
    from fastapi.testclient import TestClient

    app = create_app(test_settings, store, launcher)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret detail")

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/boom")

    assert resp.status_code == 500
    assert resp.text == "Something broke!"
