"""
Unit tests for TagService.
"""

import uuid

import pytest
from sqlalchemy import select

from app.domains.tag.service import TagService
from app.exceptions.base import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.schemas.item import NewTagInput
from app.schemas.tag import TagCreate, TagUpdate
from models import Item, Tag
from tests.factories import create_item, create_tag, tag_item


async def _tags_text(session, item_id):
    result = await session.execute(select(Item.tags_text).where(Item.id == item_id))
    return result.scalar_one()


class TestTagCrud:
    @pytest.mark.asyncio
    async def test_create_with_default_color(self, test_db, test_user):
        tag = await TagService(test_db).create_tag(TagCreate(name="reading"), test_user.id)

        assert tag.name == "reading"
        assert tag.color == "#6366f1"
        assert tag.user_id == test_user.id

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, test_db, test_user):
        service = TagService(test_db)
        await service.create_tag(TagCreate(name="reading"), test_user.id)

        with pytest.raises(ConflictError):
            await service.create_tag(TagCreate(name="reading"), test_user.id)

    @pytest.mark.asyncio
    async def test_names_compare_literally(self, test_db, test_user):
        service = TagService(test_db)
        await service.create_tag(TagCreate(name="reading"), test_user.id)

        tag = await service.create_tag(TagCreate(name="Reading"), test_user.id)

        assert tag.name == "Reading"

    @pytest.mark.asyncio
    async def test_same_name_for_different_users(self, test_db, test_user, test_user_2):
        service = TagService(test_db)
        await service.create_tag(TagCreate(name="reading"), test_user.id)

        other = await service.create_tag(TagCreate(name="reading"), test_user_2.id)

        assert other.user_id == test_user_2.id

    @pytest.mark.asyncio
    async def test_get_tag_ownership(self, test_db, test_user, test_user_2):
        tag = await create_tag(test_db, test_user.id)
        service = TagService(test_db)

        with pytest.raises(ForbiddenError):
            await service.get_tag(tag.id, test_user_2.id)
        with pytest.raises(NotFoundError):
            await service.get_tag(uuid.uuid4(), test_user.id)

    @pytest.mark.asyncio
    async def test_list_with_counts(self, test_db, test_user):
        alpha = await create_tag(test_db, test_user.id, name="alpha")
        await create_tag(test_db, test_user.id, name="beta")
        first = await create_item(test_db, test_user.id)
        second = await create_item(test_db, test_user.id)
        await tag_item(test_db, first, alpha)
        await tag_item(test_db, second, alpha)

        tags = await TagService(test_db).get_tags_list(test_user.id)

        assert [(tag.name, count) for tag, count in tags] == [("alpha", 2), ("beta", 0)]

    @pytest.mark.asyncio
    async def test_rename_refreshes_item_tags_text(self, test_db, test_user):
        tag = await create_tag(test_db, test_user.id, name="old")
        item = await create_item(test_db, test_user.id)
        await tag_item(test_db, item, tag)
        service = TagService(test_db)

        renamed = await service.update_tag(tag.id, TagUpdate(name="new", color="#000000"), test_user.id)

        assert renamed.name == "new"
        assert renamed.color == "#000000"
        assert await _tags_text(test_db, item.id) == "new"

    @pytest.mark.asyncio
    async def test_rename_to_taken_name(self, test_db, test_user):
        await create_tag(test_db, test_user.id, name="taken")
        tag = await create_tag(test_db, test_user.id, name="free")

        with pytest.raises(ConflictError):
            await TagService(test_db).update_tag(tag.id, TagUpdate(name="taken"), test_user.id)

    @pytest.mark.asyncio
    async def test_delete_untags_items(self, test_db, test_user):
        keep = await create_tag(test_db, test_user.id, name="keep")
        drop = await create_tag(test_db, test_user.id, name="drop")
        item = await create_item(test_db, test_user.id)
        await tag_item(test_db, item, keep)
        await tag_item(test_db, item, drop)
        service = TagService(test_db)
        await service.refresh_tags_text([item.id])
        await test_db.commit()
        assert await _tags_text(test_db, item.id) == "drop, keep"

        await service.delete_tag(drop.id, test_user.id)

        assert await _tags_text(test_db, item.id) == "keep"
        result = await test_db.execute(select(Tag.id).where(Tag.id == drop.id))
        assert result.scalar_one_or_none() is None
        with pytest.raises(NotFoundError):
            await service.get_tag(drop.id, test_user.id)


class TestResolveTags:
    @pytest.mark.asyncio
    async def test_new_tags_reuse_existing_case_insensitively(self, test_db, test_user):
        existing = await create_tag(test_db, test_user.id, name="Python")
        service = TagService(test_db)

        tags = await service.resolve_tags(
            test_user.id, [], [NewTagInput(name="python"), NewTagInput(name="async"), NewTagInput(name="ASYNC")]
        )

        assert [tag.name for tag in tags] == ["Python", "async"]
        assert tags[0].id == existing.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested", ["Ärger", "ärger", "ÄRGER"])
    async def test_non_ascii_names_reuse_existing(self, test_db, test_user, requested):
        existing = await create_tag(test_db, test_user.id, name="Ärger")
        existing_id = existing.id

        tags = await TagService(test_db).resolve_tags(test_user.id, [], [NewTagInput(name=requested)])

        assert [tag.id for tag in tags] == [existing_id]
        result = await test_db.execute(select(Tag).where(Tag.user_id == test_user.id))
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_ids_and_names_are_merged(self, test_db, test_user):
        tag = await create_tag(test_db, test_user.id, name="x")

        tags = await TagService(test_db).resolve_tags(test_user.id, [tag.id], [NewTagInput(name="X")])

        assert [t.id for t in tags] == [tag.id]

    @pytest.mark.asyncio
    async def test_foreign_tag_ids_rejected(self, test_db, test_user, test_user_2):
        foreign = await create_tag(test_db, test_user_2.id)
        foreign_id = foreign.id

        with pytest.raises(ValidationError, match="Unknown tag ids") as exc_info:
            await TagService(test_db).resolve_tags(test_user.id, [foreign_id], [])

        assert exc_info.value.details == {"tagIds": [str(foreign_id)]}
