"""
Unit tests for request/response schemas.
"""

import uuid
from datetime import datetime

import pytest
from pydantic import ValidationError

from app.schemas.base import ResponseSchema, dump
from app.schemas.collection import CollectionCreate, CollectionMove
from app.schemas.item import (
    FileItemCreate,
    ItemUpdate,
    LinkItemCreate,
    NoteItemCreate,
    extract_domain,
    item_create_adapter,
)
from app.schemas.shared_link import MAX_EXPIRES_IN_HOURS, SharedLinkCreate, SharedLinkUpdate
from app.schemas.tag import TagCreate
from app.schemas.user import RegisterRequest


class TestItemCreate:
    def test_discriminates_on_type(self):
        link = item_create_adapter.validate_python(
            {"type": "LINK", "title": "Docs", "url": "https://docs.example.com/a"}
        )
        note = item_create_adapter.validate_python({"type": "NOTE", "title": "N", "content": "body"})
        file_item = item_create_adapter.validate_python({"type": "FILE", "title": "F"})

        assert isinstance(link, LinkItemCreate)
        assert isinstance(note, NoteItemCreate)
        assert isinstance(file_item, FileItemCreate)

    def test_defaults(self):
        note = item_create_adapter.validate_python({"type": "NOTE", "title": "N", "content": "x"})

        assert note.importance.value == "MEDIUM"
        assert note.is_pinned is False
        assert note.tag_ids == []
        assert note.new_tags == []

    def test_camel_case_fields(self):
        tag_id = str(uuid.uuid4())
        item = item_create_adapter.validate_python(
            {
                "type": "FILE",
                "title": "Scans",
                "isPinned": True,
                "primaryFileIndex": 1,
                "tagIds": [tag_id, tag_id],
                "newTags": [{"name": "  receipts ", "color": "#112233"}],
            }
        )

        assert item.is_pinned is True
        assert item.primary_file_index == 1
        assert item.tag_ids == [uuid.UUID(tag_id)]
        assert item.new_tags[0].name == "receipts"

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "LINK", "title": "x", "url": "ftp://example.com"},
            {"type": "LINK", "title": "x", "url": "not a url"},
            {"type": "LINK", "title": "x"},
            {"type": "LINK", "title": "x", "url": "https://a.test", "content": "nope"},
            {"type": "NOTE", "title": "x", "content": "   "},
            {"type": "NOTE", "title": "x", "content": "y", "url": "https://a.test"},
            {"type": "NOTE", "title": "   ", "content": "y"},
            {"type": "VIDEO", "title": "x"},
            {"type": "NOTE", "title": "x", "content": "y", "importance": "CRITICAL"},
            {"type": "NOTE", "title": "x", "content": "y", "newTags": [{"name": "t", "color": "red"}]},
        ],
    )
    def test_invalid_payloads(self, payload):
        with pytest.raises(ValidationError):
            item_create_adapter.validate_python(payload)

    def test_extract_domain(self):
        assert extract_domain("https://Docs.Example.com:8443/path?q=1") == "docs.example.com"
        assert extract_domain("not-a-url") is None


class TestItemUpdate:
    def test_type_cannot_change(self):
        with pytest.raises(ValidationError, match="type cannot be changed"):
            ItemUpdate.model_validate({"type": "NOTE"})

    def test_tag_ids_absent_means_unchanged(self):
        update = ItemUpdate.model_validate({"title": "New"})

        assert update.tag_ids is None
        assert update.model_fields_set == {"title"}

    def test_empty_tag_ids_clears(self):
        assert ItemUpdate.model_validate({"tagIds": []}).tag_ids == []


class TestOtherSchemas:
    def test_collection_slug_pattern(self):
        assert CollectionCreate(name="Reading", slugPublic="my-reading-list").slug_public == "my-reading-list"
        with pytest.raises(ValidationError):
            CollectionCreate(name="Reading", slugPublic="Not A Slug")

    def test_collection_move_to_root(self):
        assert CollectionMove.model_validate({"parentId": None}).parent_id is None

    def test_share_expiry_bounds(self):
        item_id = uuid.uuid4()
        assert SharedLinkCreate(itemId=item_id, expiresIn=MAX_EXPIRES_IN_HOURS).expires_in == 8760
        with pytest.raises(ValidationError):
            SharedLinkCreate(itemId=item_id, expiresIn=0)
        with pytest.raises(ValidationError):
            SharedLinkCreate(itemId=item_id, expiresIn=MAX_EXPIRES_IN_HOURS + 1)

    def test_share_update_distinguishes_null_password(self):
        removed = SharedLinkUpdate.model_validate({"password": None})
        untouched = SharedLinkUpdate.model_validate({"expiresIn": 5})

        assert "password" in removed.model_fields_set
        assert "password" not in untouched.model_fields_set

    def test_tag_name_stripped(self):
        assert TagCreate(name="  work ").name == "work"

    def test_register_normalizes_email(self):
        assert RegisterRequest(email="Alice@Example.COM", password="long-enough").email == "alice@example.com"

    def test_dump_uses_wire_names(self):
        payload = dump(ResponseSchema(status="success", data={"x": 1}))

        assert payload == {"status": "success", "message": None, "data": {"x": 1}}

    def test_dump_serializes_datetimes(self):
        from app.schemas.collection import CollectionResponse

        now = datetime(2024, 5, 1, 12, 0, 0)
        response = CollectionResponse(
            id=uuid.uuid4(), created_at=now, updated_at=now, name="A", is_public=False
        )

        data = dump(response)
        assert data["createdAt"] == "2024-05-01T12:00:00"
        assert data["itemCount"] == 0
        assert "slugPublic" in data
