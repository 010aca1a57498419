from datetime import timedelta
from urllib.parse import urlsplit

import pytest

from app.core.clock import utcnow
from app.core.config import Settings, settings
from app.core.errors import ExtractionError, Forbidden, InvalidState, PayloadTooLarge
from app.core.security import create_upload_token
from app.models.game_version import VersionStatus
from app.services.upload_service import UploadService
from conftest import build_zip

SLUG = "com.iruka.counting"
GOOD_BUILD = {"build/index.html": "<html>v1</html>", "build/app.js": "let a = 1"}


@pytest.fixture
def dev(make_user):
    return make_user("dev")


@pytest.fixture
def service(repos, gateway):
    return UploadService(repos, gateway, settings)


def _upload(service, gateway, actor, ref, version, files, file_name="game.zip"):
    slot = service.request_upload_slot(actor, ref, version, file_name)
    gateway.store.put_file(slot.object_key, build_zip(files))
    data_size = len(gateway.store.get_file(slot.object_key))
    return service.complete_upload(actor, ref, version, slot.storage_path, file_name, data_size)


def test_first_upload_creates_draft_version(service, gateway, repos, dev):
    slot = service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    assert slot.game_created is True
    assert slot.storage_path == f"games/{SLUG}/1.0.0"
    assert slot.object_key == f"games/{SLUG}/1.0.0/game.zip"
    assert "/api/v1/storage/upload?token=" in slot.upload_url

    gateway.store.put_file(slot.object_key, build_zip(GOOD_BUILD))
    outcome = service.complete_upload(dev, SLUG, "1.0.0", slot.storage_path, "game.zip", 100)

    assert outcome.created is True
    assert outcome.version.status == VersionStatus.draft
    assert outcome.version.build_size == 100
    assert outcome.version.files_count == 2
    assert outcome.game.latest_version_id == outcome.version.id
    assert sorted(outcome.extraction.files) == ["app.js", "index.html"]
    assert all(effect.ok for effect in outcome.side_effects)
    assert [e.name for e in outcome.side_effects] == ["audit_log", "game_history"]


def test_failed_first_upload_rolls_back_game(service, gateway, repos, dev):
    slot = service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    game_pk = repos.games.find_by_game_id(SLUG).id
    gateway.store.put_file(slot.object_key, build_zip({"build/main.html": "<html/>"}))

    with pytest.raises(ExtractionError) as exc_info:
        service.complete_upload(dev, SLUG, "1.0.0", slot.storage_path, "game.zip", 10)

    assert exc_info.value.detail.startswith("Extract ZIP thất bại:")
    assert "index.html" in exc_info.value.detail
    assert repos.games.find_by_id(game_pk) is None


def test_failed_upload_keeps_game_with_prior_version(service, gateway, repos, dev):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    _upload(service, gateway, dev, SLUG, "1.0.0", GOOD_BUILD)
    game_pk = repos.games.find_by_game_id(SLUG).id

    slot = service.request_upload_slot(dev, SLUG, "1.1.0", "game.zip")
    gateway.store.put_file(slot.object_key, build_zip({"readme.txt": "no entry"}))
    with pytest.raises(ExtractionError):
        service.complete_upload(dev, SLUG, "1.1.0", slot.storage_path, "game.zip", 10)

    assert repos.games.find_by_id(game_pk) is not None
    assert repos.versions.find_by_version(game_pk, "1.1.0") is None


def test_re_upload_patches_existing_version(service, gateway, repos, dev):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    first = _upload(
        service, gateway, dev, SLUG, "1.0.0", {**GOOD_BUILD, "build/old.js": "stale"}
    )
    repos.versions.update_status(first.version.id, VersionStatus.uploaded)

    second = _upload(service, gateway, dev, SLUG, "1.0.0", GOOD_BUILD)

    assert second.created is False
    assert second.version.id == first.version.id
    assert second.version.status == VersionStatus.draft
    assert second.version.last_code_update_by == dev.id
    assert second.stale_files_removed == 1
    assert not gateway.store.exists(f"games/{SLUG}/1.0.0/old.js")
    assert gateway.store.exists(f"games/{SLUG}/1.0.0/app.js")
    assert repos.versions.count_for_game(first.game.id) == 1


def test_re_upload_of_published_version_is_rejected(service, gateway, repos, dev):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    first = _upload(service, gateway, dev, SLUG, "1.0.0", GOOD_BUILD)
    repos.versions.update_status(first.version.id, VersionStatus.published)

    with pytest.raises(InvalidState, match="Use a new version number"):
        _upload(service, gateway, dev, SLUG, "1.0.0", GOOD_BUILD)


def test_only_owner_or_admin_may_upload(service, gateway, make_user, dev):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    _upload(service, gateway, dev, SLUG, "1.0.0", GOOD_BUILD)

    other_dev = make_user("dev")
    with pytest.raises(Forbidden, match="your own games"):
        service.request_upload_slot(other_dev, SLUG, "1.1.0", "game.zip")
    with pytest.raises(Forbidden):
        service.complete_upload(other_dev, SLUG, "1.0.0", f"games/{SLUG}/1.0.0", "game.zip", 10)

    admin = make_user("admin")
    outcome = _upload(service, gateway, admin, SLUG, "1.1.0", GOOD_BUILD)
    assert outcome.created is True

    qc = make_user("qc")
    with pytest.raises(Forbidden, match="Permission denied"):
        service.request_upload_slot(qc, SLUG, "1.2.0", "game.zip")


def test_small_upload_threshold(repos, gateway, dev):
    service = UploadService(repos, gateway, Settings(SMALL_UPLOAD_MAX_BYTES=64))
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")

    with pytest.raises(PayloadTooLarge):
        service.upload_small(dev, SLUG, "1.0.0", "game.zip", b"x" * 64)


def test_small_upload_goes_through_completion(service, repos, dev):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    outcome = service.upload_small(dev, SLUG, "1.0.0", "game.zip", build_zip(GOOD_BUILD))
    assert outcome.created is True
    assert outcome.version.storage_path == f"games/{SLUG}/1.0.0"


# HTTP surface


def test_upload_over_http_with_signed_url(client, headers_for, dev):
    headers = headers_for(dev)
    res = client.post(
        "/api/v1/games/upload-url",
        json={"game_id": SLUG, "version": "1.0.0", "file_name": "game.zip", "title": "Counting"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    slot = res.json()
    assert slot["storage_path"] == f"games/{SLUG}/1.0.0"

    url = urlsplit(slot["upload_url"])
    put = client.put(f"{url.path}?{url.query}", content=build_zip(GOOD_BUILD))
    assert put.status_code == 200, put.text
    assert put.json()["object_key"] == slot["object_key"]

    res = client.post(
        "/api/v1/games/upload-complete",
        json={
            "game_id": SLUG,
            "version": "1.0.0",
            "storage_path": slot["storage_path"],
            "file_name": "game.zip",
            "file_size": put.json()["size"],
        },
        headers=headers,
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["created"] is True
    assert body["version"]["status"] == "draft"
    assert body["entry_url"].endswith(f"games/{SLUG}/1.0.0/index.html")
    assert {effect["name"] for effect in body["side_effects"]} == {"audit_log", "game_history"}


def test_failed_first_upload_over_http_removes_game(client, headers_for, dev, gateway):
    headers = headers_for(dev)
    slot = client.post(
        "/api/v1/games/upload-url",
        json={"game_id": SLUG, "version": "1.0.0", "file_name": "game.zip", "title": "Counting"},
        headers=headers,
    ).json()
    gateway.store.put_file(slot["object_key"], build_zip({"notes.txt": "oops"}))

    res = client.post(
        "/api/v1/games/upload-complete",
        json={
            "game_id": SLUG,
            "version": "1.0.0",
            "storage_path": slot["storage_path"],
            "file_name": "game.zip",
            "file_size": 10,
        },
        headers=headers,
    )
    assert res.status_code == 422
    assert res.json()["error"] == "extraction_failed"
    assert client.get(f"/api/v1/games/{SLUG}", headers=headers).status_code == 404


def test_small_multipart_upload(client, headers_for, dev):
    headers = headers_for(dev)
    client.post(
        "/api/v1/games/upload-url",
        json={"game_id": SLUG, "version": "1.0.0", "file_name": "game.zip", "title": "Counting"},
        headers=headers,
    )
    res = client.post(
        "/api/v1/games/upload",
        data={"game_id": SLUG, "version": "1.0.0"},
        files={"file": ("game.zip", build_zip(GOOD_BUILD), "application/zip")},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    assert res.json()["version"]["files_count"] == 2


@pytest.mark.parametrize(
    "payload,message",
    [
        ({"version": "1.0", "file_name": "game.zip"}, "SemVer"),
        ({"version": "1.0.0", "file_name": "game.tar.gz"}, "Only ZIP files"),
    ],
)
def test_upload_url_validation(client, headers_for, dev, payload, message):
    res = client.post(
        "/api/v1/games/upload-url",
        json={"game_id": SLUG, "title": "Counting", **payload},
        headers=headers_for(dev),
    )
    assert res.status_code == 400
    assert message in res.json()["detail"]


def test_upload_url_for_unknown_game_without_title(client, headers_for, dev):
    res = client.post(
        "/api/v1/games/upload-url",
        json={"game_id": SLUG, "version": "1.0.0", "file_name": "game.zip"},
        headers=headers_for(dev),
    )
    assert res.status_code == 404


def test_complete_rejects_mismatched_storage_path_and_size(client, headers_for, dev):
    headers = headers_for(dev)
    client.post(
        "/api/v1/games/upload-url",
        json={"game_id": SLUG, "version": "1.0.0", "file_name": "game.zip", "title": "Counting"},
        headers=headers,
    )
    base = {"game_id": SLUG, "version": "1.0.0", "file_name": "game.zip", "file_size": 10}

    res = client.post(
        "/api/v1/games/upload-complete",
        json={**base, "storage_path": "games/com.iruka.other/1.0.0"},
        headers=headers,
    )
    assert res.status_code == 400

    res = client.post(
        "/api/v1/games/upload-complete",
        json={
            **base,
            "storage_path": f"games/{SLUG}/1.0.0",
            "file_size": settings.MAX_UPLOAD_BYTES + 1,
        },
        headers=headers,
    )
    assert res.status_code == 413


def test_signed_upload_rejects_expired_and_tampered_tokens(client):
    key = f"games/{SLUG}/1.0.0/game.zip"
    expired = create_upload_token(key, "application/zip", utcnow() - timedelta(minutes=1))
    res = client.put(f"/api/v1/storage/upload?token={expired}", content=b"zip")
    assert res.status_code == 403
    assert "expired" in res.json()["detail"]

    valid = create_upload_token(key, "application/zip", utcnow() + timedelta(minutes=5))
    res = client.put(f"/api/v1/storage/upload?token={valid[:-4]}abcd", content=b"zip")
    assert res.status_code == 403
    assert "invalid" in res.json()["detail"]


def test_access_token_is_not_an_upload_grant(client, headers_for, dev):
    token = headers_for(dev)["Authorization"].split()[1]
    res = client.put(f"/api/v1/storage/upload?token={token}", content=b"zip")
    assert res.status_code == 403


def test_failed_re_upload_leaves_previous_build_servable(service, gateway, repos, dev, monkeypatch):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    first = _upload(service, gateway, dev, SLUG, "1.0.0", GOOD_BUILD)
    repos.versions.update_status(first.version.id, VersionStatus.approved)

    slot = service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip")
    gateway.store.put_file(
        slot.object_key, build_zip({**GOOD_BUILD, "build/level2.js": "let b = 2"})
    )
    original_put = gateway.store.put_file

    def failing_put(key, data, **kwargs):
        if key.endswith("/level2.js"):
            raise OSError("disk full")
        return original_put(key, data, **kwargs)

    monkeypatch.setattr(gateway.store, "put_file", failing_put)

    with pytest.raises(ExtractionError, match="disk full"):
        service.complete_upload(dev, SLUG, "1.0.0", slot.storage_path, "game.zip", 100)

    assert gateway.has_entry_point(slot.storage_path)
    assert gateway.store.exists(f"{slot.storage_path}/app.js")
    assert not gateway.store.exists(f"{slot.storage_path}/level2.js")
    assert repos.versions.find_by_id(first.version.id).status == VersionStatus.approved


def test_upper_case_entry_file_is_recorded(service, gateway, repos, dev):
    service.request_upload_slot(dev, SLUG, "1.0.0", "game.zip", title="Counting")
    outcome = _upload(
        service, gateway, dev, SLUG, "1.0.0", {"build/INDEX.HTML": "<html/>", "build/app.js": "x"}
    )

    assert outcome.version.entry_file == "INDEX.HTML"
    assert outcome.version.entry_url.endswith("/1.0.0/INDEX.HTML")
    assert gateway.has_entry_point(outcome.version.storage_path, outcome.version.entry_file)
    assert outcome.version.submitted_by == dev.id
    assert outcome.version.submitted_at is not None
