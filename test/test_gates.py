from uuid import uuid4

import asyncpg
import pytest

from conftest import PNG_BYTES, FakeFileAssetsRepo, FakeGate, FakeStorage
from svc_customizer.config import settings
from svc_customizer.domain.enums import FileAssetKind
from svc_customizer.errors import ForbiddenError, PreviewRenderError, ValidationError
from svc_customizer.services import system_actor
from svc_customizer.services.entitlements import EntitlementGate
from svc_customizer.services.upload_service import UploadService


class FakeFlagsRepo:
    def __init__(self, flags=None, plan="pro"):
        self.flags = flags or {}
        self.plan = plan
        self.asked = []

    async def get_store_plan(self, *, store_id):
        return self.plan

    async def get_flag(self, *, flag_key, store_id=None, plan=None, default_enabled=False):
        self.asked.append((flag_key, store_id, plan))
        if flag_key in self.flags:
            return self.flags[flag_key], {}
        return default_enabled, {}


class FakeUsersRepo:
    def __init__(self):
        self.calls = []

    async def get_or_create(self, *, email, name, password_hash, role):
        self.calls.append({"email": email, "role": role, "password_hash": password_hash})
        return uuid4()


@pytest.mark.asyncio
async def test_gate_defaults_to_disabled():
    gate = EntitlementGate(FakeFlagsRepo())
    with pytest.raises(ForbiddenError) as ei:
        await gate.require(uuid4())
    assert ei.value.message == "Customizer feature is not enabled for this plan"


@pytest.mark.asyncio
async def test_gate_follows_flag_for_store_plan():
    flags = FakeFlagsRepo({settings.CUSTOMIZER_FEATURE_KEY: True}, plan="growth")
    store_id = uuid4()
    await EntitlementGate(flags).require(store_id)
    assert flags.asked == [(settings.CUSTOMIZER_FEATURE_KEY, store_id, "growth")]

    assert await EntitlementGate(flags).is_enabled(store_id, "other.feature") is False


@pytest.mark.asyncio
async def test_system_actor_is_resolved_once(monkeypatch):
    monkeypatch.setattr(system_actor, "_system_actor_id", None)
    with pytest.raises(RuntimeError):
        system_actor.system_actor_id()

    users = FakeUsersRepo()
    first = await system_actor.ensure_system_actor(users)
    second = await system_actor.ensure_system_actor(users)

    assert first == second == system_actor.system_actor_id()
    assert len(users.calls) == 1
    assert users.calls[0]["email"] == settings.SYSTEM_ACTOR_EMAIL
    assert users.calls[0]["role"] == "SYSTEM"
    assert len(users.calls[0]["password_hash"]) == 64


@pytest.fixture
def uploads():
    return UploadService(storage=FakeStorage(), file_assets=FakeFileAssetsRepo(), gate=FakeGate())


@pytest.mark.asyncio
async def test_upload_is_stored_as_customizer_upload(uploads):
    store_id = uuid4()
    out = await uploads.create_upload(store_id=store_id, data=PNG_BYTES, file_name="logo.png",
                                      content_type="image/png")
    row = uploads.file_assets.rows[out.file_id]
    assert row["kind"] == FileAssetKind.CUSTOMIZER_UPLOAD.value
    assert row["store_id"] == store_id
    assert out.size_bytes == len(PNG_BYTES)
    assert out.url.startswith("https://blob.test/customizer/uploads/")


@pytest.mark.asyncio
@pytest.mark.parametrize("data,content_type,code", [
    (PNG_BYTES, "application/pdf", "unsupported_media_type"),
    (PNG_BYTES, None, "unsupported_media_type"),
    (b"", "image/png", "empty_file"),
])
async def test_upload_rejections(uploads, data, content_type, code):
    with pytest.raises(ValidationError) as ei:
        await uploads.create_upload(store_id=uuid4(), data=data, file_name="x", content_type=content_type)
    assert ei.value.code == code
    assert uploads.file_assets.rows == {}


@pytest.mark.asyncio
async def test_upload_too_large(uploads, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 8)
    with pytest.raises(ValidationError) as ei:
        await uploads.create_upload(store_id=uuid4(), data=PNG_BYTES, file_name="x.png", content_type="image/png")
    assert ei.value.code == "file_too_large"


@pytest.mark.asyncio
async def test_upload_requires_feature(uploads):
    uploads.gate.enabled = False
    with pytest.raises(ForbiddenError):
        await uploads.create_upload(store_id=uuid4(), data=PNG_BYTES, file_name="x.png", content_type="image/png")


@pytest.mark.asyncio
async def test_upload_storage_failure(uploads):
    uploads.storage.fail = RuntimeError("AZURE_STORAGE_CONNECTION_STRING is not set")
    with pytest.raises(PreviewRenderError) as ei:
        await uploads.create_upload(store_id=uuid4(), data=PNG_BYTES, file_name="x.png", content_type="image/png")
    assert ei.value.code == "upload_failed"


@pytest.mark.asyncio
async def test_upload_record_failure_is_upload_error(uploads):
    uploads.file_assets.fail = asyncpg.PostgresConnectionError("connection reset")
    with pytest.raises(PreviewRenderError) as ei:
        await uploads.create_upload(store_id=uuid4(), data=PNG_BYTES, file_name="x.png", content_type="image/png")
    assert ei.value.code == "upload_failed"
    assert len(uploads.storage.objects) == 1
