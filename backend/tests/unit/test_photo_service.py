import io
from uuid import UUID

import asyncpg
import pytest
from PIL import Image

from phototrade.domain.errors import Conflict, DependencyFailure, NotFound, StorageError, ValidationError
from phototrade.domain.photos.schemas import PhotoOut
from phototrade.domain.photos.service import PhotoService, safe_original_name
from phototrade.infra.auth import AuthenticatedUser


def _jpeg_bytes(size=(160, 120)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (20, 120, 200)).save(buffer, "JPEG")
    return buffer.getvalue()


@pytest.fixture
def alice(db):
    user_id = db.add_user("alice")
    return AuthenticatedUser(id=str(user_id), username="alice")


@pytest.mark.asyncio
async def test_upload_stores_raw_and_protected_copy(ctx, db, alice):
    service = PhotoService(ctx)

    photo = await service.upload(
        alice,
        data=_jpeg_bytes(),
        original_name="Beach Day.jpg",
        content_type="image/jpeg",
        description="beach",
    )

    assert photo.filename.endswith("-Beach_Day.jpg")
    assert photo.watermarked_filename == f"watermarked-{photo.filename}"
    assert photo.original_name == "Beach Day.jpg"
    assert (ctx.deriver.original_dir / photo.filename).exists()
    assert (ctx.deriver.protected_dir / photo.watermarked_filename).exists()
    assert not (ctx.deriver.protected_dir / photo.filename).exists()
    assert db.photos[photo.id]["description"] == "beach"


@pytest.mark.asyncio
async def test_upload_looks_up_username_when_token_has_none(ctx, db, alice):
    anonymous = AuthenticatedUser(id=alice.id)
    photo = await PhotoService(ctx).upload(
        anonymous, data=_jpeg_bytes(), original_name="a.jpg", content_type="image/jpeg"
    )
    assert photo.watermarked_filename is not None


@pytest.mark.asyncio
async def test_upload_rejects_non_images(ctx, db, alice):
    with pytest.raises(ValidationError) as exc:
        await PhotoService(ctx).upload(alice, data=b"hello", original_name="a.txt", content_type="text/plain")
    assert exc.value.reason == "not_an_image"
    assert db.photos == {}


@pytest.mark.asyncio
async def test_upload_rejects_oversized_files(ctx, db, alice):
    ctx.settings = ctx.settings.model_copy(update={"max_upload_bytes": 10})
    with pytest.raises(ValidationError) as exc:
        await PhotoService(ctx).upload(alice, data=_jpeg_bytes(), original_name="a.jpg", content_type="image/jpeg")
    assert exc.value.reason == "file_too_large"


@pytest.mark.asyncio
async def test_derivation_failure_writes_no_row(ctx, db, alice):
    with pytest.raises(DependencyFailure) as exc:
        await PhotoService(ctx).upload(
            alice, data=b"definitely not a jpeg", original_name="a.jpg", content_type="image/jpeg"
        )
    assert exc.value.reason == "derivation_failed"
    assert db.photos == {}
    assert list(ctx.deriver.original_dir.iterdir()) == []
    assert list(ctx.deriver.protected_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_oversized_dimensions_rejected_without_leftovers(ctx, db, alice, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    with pytest.raises(ValidationError) as exc:
        await PhotoService(ctx).upload(alice, data=_jpeg_bytes(), original_name="a.jpg", content_type="image/jpeg")

    assert exc.value.reason == "image_too_large"
    assert db.photos == {}
    assert list(ctx.deriver.original_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_insert_failure_removes_both_files(ctx, db, alice):
    db.fail_on("insert into photos", asyncpg.PostgresError("disk full"))

    with pytest.raises(StorageError):
        await PhotoService(ctx).upload(alice, data=_jpeg_bytes(), original_name="a.jpg", content_type="image/jpeg")

    assert db.photos == {}
    assert list(ctx.deriver.original_dir.iterdir()) == []
    assert list(ctx.deriver.protected_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_listing_is_newest_first_with_protected_names(ctx, db, alice):
    owner = UUID(alice.id)
    older = db.add_photo(owner, "old.jpg")
    newer = db.add_photo(owner, "new.jpg")

    photos = await PhotoService(ctx).list_photos_for_owner(alice.id)
    public = [PhotoOut.from_photo(photo) for photo in photos]

    assert [photo.id for photo in photos] == [newer, older]
    assert [item.filename for item in public] == ["watermarked-new.jpg", "watermarked-old.jpg"]


@pytest.mark.asyncio
async def test_public_name_falls_back_to_raw_for_seeded_rows(ctx, db, alice):
    owner = UUID(alice.id)
    db.add_photo(owner, "IMG_6367.JPG", watermarked_filename=None)
    photos = await PhotoService(ctx).list_photos_for_owner(owner)
    assert PhotoOut.from_photo(photos[0]).filename == "IMG_6367.JPG"


@pytest.mark.asyncio
async def test_create_and_get_photo(ctx, db, alice):
    service = PhotoService(ctx)
    photo_id = await service.create_photo(alice.id, "raw.jpg", "Raw", None, "watermarked-raw.jpg")

    photo = await service.get_photo(photo_id)

    assert photo.public_filename == "watermarked-raw.jpg"
    with pytest.raises(NotFound):
        await service.get_photo("00000000-0000-0000-0000-0000000000ff")


@pytest.mark.asyncio
async def test_default_photos_only_for_empty_gallery(ctx, db, alice):
    service = PhotoService(ctx)

    added = await service.add_default_photos(alice)

    assert [photo.filename for photo in added] == ["IMG_6367.JPG", "IMG_6368.JPG"]
    assert all(photo.watermarked_filename == photo.filename for photo in added)
    with pytest.raises(Conflict) as exc:
        await service.add_default_photos(alice)
    assert exc.value.reason == "already_has_photos"
    assert len(db.photos) == 2


def test_safe_original_name_strips_paths():
    assert safe_original_name("../../etc/passwd") == "passwd"
    assert safe_original_name("my photo (1).png") == "my_photo_1_.png"
    assert safe_original_name(None) == "photo"
