"""
Unit tests for CollectionService.
"""

import uuid

import pytest

from app.domains.collection.service import CollectionService, slugify
from app.domains.user.service import UsageService
from app.exceptions.base import ForbiddenError, ValidationError
from app.exceptions.collection import (
    CollectionCycleError,
    CollectionNotFoundError,
    CollectionQuotaExceededError,
    DuplicateSlugError,
)
from app.schemas.collection import CollectionCreate, CollectionFilter, CollectionUpdate
from models import utcnow
from tests.factories import create_collection, create_item


class TestSlugify:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("My Photos", "my-photos"),
            ("  Reading   list 2024 ", "reading-list-2024"),
            ("Café & Bar!", "caf-bar"),
            ("snake_case_name", "snake-case-name"),
            ("!!!", "collection"),
        ],
    )
    def test_slugify(self, name, expected):
        assert slugify(name) == expected


class TestCreateCollection:
    """Test cases for collection creation."""

    @pytest.mark.asyncio
    async def test_create_private(self, test_db, test_user):
        collection = await CollectionService(test_db).create_collection(
            CollectionCreate(name="Recipes", description="Things to cook"), test_user.id
        )

        assert collection.name == "Recipes"
        assert collection.is_public is False
        assert collection.slug_public is None
        assert (await UsageService(test_db).get_usage(test_user.id)).collection_count == 1

    @pytest.mark.asyncio
    async def test_public_collection_gets_unique_slug(self, test_db, test_user, test_user_2):
        service = CollectionService(test_db)

        first = await service.create_collection(CollectionCreate(name="My Photos", is_public=True), test_user.id)
        second = await service.create_collection(CollectionCreate(name="My Photos", is_public=True), test_user_2.id)
        third = await service.create_collection(CollectionCreate(name="My photos", is_public=True), test_user.id)

        assert first.slug_public == "my-photos"
        assert second.slug_public == "my-photos-1"
        assert third.slug_public == "my-photos-2"

    @pytest.mark.asyncio
    async def test_explicit_slug_conflict(self, test_db, test_user, test_user_2):
        service = CollectionService(test_db)
        await service.create_collection(
            CollectionCreate(name="A", is_public=True, slug_public="shared"), test_user.id
        )

        with pytest.raises(DuplicateSlugError):
            await service.create_collection(
                CollectionCreate(name="B", is_public=True, slug_public="shared"), test_user_2.id
            )

    @pytest.mark.asyncio
    async def test_nested_under_own_parent(self, test_db, test_user, test_user_2):
        parent = await create_collection(test_db, test_user.id)
        service = CollectionService(test_db)

        child = await service.create_collection(CollectionCreate(name="Child", parentId=parent.id), test_user.id)
        assert child.parent_id == parent.id

        with pytest.raises(ForbiddenError):
            await service.create_collection(CollectionCreate(name="Intruder", parentId=parent.id), test_user_2.id)
        with pytest.raises(CollectionNotFoundError):
            await service.create_collection(CollectionCreate(name="Orphan", parentId=uuid.uuid4()), test_user.id)

    @pytest.mark.asyncio
    async def test_collection_quota(self, test_db, make_user):
        user = await make_user("few@example.com", collection_count=2, max_collections=2)

        with pytest.raises(CollectionQuotaExceededError):
            await CollectionService(test_db).create_collection(CollectionCreate(name="Third"), user.id)


class TestReadCollections:
    @pytest.mark.asyncio
    async def test_get_collection_ownership(self, test_db, test_user, test_user_2):
        collection = await create_collection(test_db, test_user.id)
        service = CollectionService(test_db)

        assert (await service.get_collection(collection.id, test_user.id)).id == collection.id
        with pytest.raises(ForbiddenError):
            await service.get_collection(collection.id, test_user_2.id)

    @pytest.mark.asyncio
    async def test_list_filters(self, test_db, test_user):
        root = await create_collection(test_db, test_user.id, name="Travel", is_public=True, slug_public="travel")
        child = await create_collection(test_db, test_user.id, parent_id=root.id, name="Japan trip")
        await create_collection(test_db, test_user.id, name="Work notes")
        service = CollectionService(test_db)

        top_level = await service.get_collections_list(test_user.id, CollectionFilter(parent_id="root"))
        under_root = await service.get_collections_list(test_user.id, CollectionFilter(parent_id=str(root.id)))
        public = await service.get_collections_list(test_user.id, CollectionFilter(is_public=True))
        searched = await service.get_collections_list(test_user.id, CollectionFilter(search="JAPAN"))
        by_name = await service.get_collections_list(
            test_user.id, CollectionFilter(sort_by="name", sort_order="asc")
        )

        assert top_level["meta"]["total"] == 2
        assert [c.id for c in under_root["items"]] == [child.id]
        assert [c.id for c in public["items"]] == [root.id]
        assert [c.id for c in searched["items"]] == [child.id]
        assert [c.name for c in by_name["items"]] == ["Japan trip", "Travel", "Work notes"]

    @pytest.mark.asyncio
    async def test_invalid_parent_filter(self, test_db, test_user):
        with pytest.raises(ValidationError, match="parentId"):
            await CollectionService(test_db).get_collections_list(
                test_user.id, CollectionFilter(parent_id="not-a-uuid")
            )

    @pytest.mark.asyncio
    async def test_children_and_breadcrumb(self, test_db, test_user):
        root = await create_collection(test_db, test_user.id, name="Root")
        middle = await create_collection(test_db, test_user.id, parent_id=root.id, name="Middle")
        leaf = await create_collection(test_db, test_user.id, parent_id=middle.id, name="Leaf")
        await create_collection(test_db, test_user.id, parent_id=root.id, name="Another")
        service = CollectionService(test_db)

        children = await service.get_children(root.id, test_user.id)
        path = await service.get_breadcrumb(leaf.id, test_user.id)

        assert [c.name for c in children] == ["Another", "Middle"]
        assert [c.id for c in path] == [root.id, middle.id, leaf.id]

    @pytest.mark.asyncio
    async def test_responses_carry_counts(self, test_db, test_user):
        root = await create_collection(test_db, test_user.id, name="Root")
        await create_collection(test_db, test_user.id, parent_id=root.id)
        child = await create_collection(test_db, test_user.id, parent_id=root.id)
        live = await create_item(test_db, test_user.id)
        trashed = await create_item(test_db, test_user.id, is_trashed=True, trashed_at=utcnow())
        service = CollectionService(test_db)
        await service.add_items(root.id, [live.id, trashed.id], test_user.id)

        root_response, child_response = await service.to_responses([root, child])

        assert root_response.item_count == 1
        assert root_response.children_count == 2
        assert root_response.parent is None
        assert child_response.parent.name == "Root"


class TestUpdateCollection:
    @pytest.mark.asyncio
    async def test_update_fields(self, test_db, test_user):
        collection = await create_collection(test_db, test_user.id, name="Old")

        updated = await CollectionService(test_db).update_collection(
            collection.id, CollectionUpdate(name="New", description=None), test_user.id
        )

        assert updated.name == "New"
        assert updated.description is None

    @pytest.mark.asyncio
    async def test_making_public_generates_slug(self, test_db, test_user):
        collection = await create_collection(test_db, test_user.id, name="Best Links")

        updated = await CollectionService(test_db).update_collection(
            collection.id, CollectionUpdate(is_public=True), test_user.id
        )

        assert updated.is_public is True
        assert updated.slug_public == "best-links"

    @pytest.mark.asyncio
    async def test_slug_conflict_on_update(self, test_db, test_user):
        await create_collection(test_db, test_user.id, is_public=True, slug_public="taken")
        collection = await create_collection(test_db, test_user.id, is_public=True, slug_public="free")
        service = CollectionService(test_db)

        with pytest.raises(DuplicateSlugError):
            await service.update_collection(collection.id, CollectionUpdate(slug_public="taken"), test_user.id)

        # Keeping its own slug is not a conflict
        kept = await service.update_collection(collection.id, CollectionUpdate(slug_public="free"), test_user.id)
        assert kept.slug_public == "free"


class TestMoveCollection:
    @pytest.mark.asyncio
    async def test_move_and_move_to_top(self, test_db, test_user):
        a = await create_collection(test_db, test_user.id)
        b = await create_collection(test_db, test_user.id)
        service = CollectionService(test_db)

        moved = await service.move_collection(b.id, a.id, test_user.id)
        assert moved.parent_id == a.id

        top = await service.move_collection(b.id, None, test_user.id)
        assert top.parent_id is None

    @pytest.mark.asyncio
    async def test_move_under_itself(self, test_db, test_user):
        a = await create_collection(test_db, test_user.id)

        with pytest.raises(CollectionCycleError):
            await CollectionService(test_db).move_collection(a.id, a.id, test_user.id)

    @pytest.mark.asyncio
    async def test_move_under_descendant(self, test_db, test_user):
        a = await create_collection(test_db, test_user.id)
        b = await create_collection(test_db, test_user.id, parent_id=a.id)
        c = await create_collection(test_db, test_user.id, parent_id=b.id)
        service = CollectionService(test_db)

        with pytest.raises(CollectionCycleError):
            await service.move_collection(a.id, c.id, test_user.id)

        assert (await service.get_collection(a.id, test_user.id)).parent_id is None

    @pytest.mark.asyncio
    async def test_move_under_foreign_collection(self, test_db, test_user, test_user_2):
        mine = await create_collection(test_db, test_user.id)
        theirs = await create_collection(test_db, test_user_2.id)

        with pytest.raises(ForbiddenError):
            await CollectionService(test_db).move_collection(mine.id, theirs.id, test_user.id)


class TestMembership:
    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, test_db, test_user):
        collection = await create_collection(test_db, test_user.id)
        first = await create_item(test_db, test_user.id)
        second = await create_item(test_db, test_user.id)
        service = CollectionService(test_db)

        assert await service.add_items(collection.id, [first.id, first.id], test_user.id) == 1
        assert await service.add_items(collection.id, [first.id, second.id], test_user.id) == 1

    @pytest.mark.asyncio
    async def test_add_rejects_foreign_items(self, test_db, test_user, test_user_2):
        collection = await create_collection(test_db, test_user.id)
        foreign = await create_item(test_db, test_user_2.id)

        with pytest.raises(ValidationError) as exc_info:
            await CollectionService(test_db).add_items(collection.id, [foreign.id], test_user.id)

        assert exc_info.value.details == {"itemIds": [str(foreign.id)]}

    @pytest.mark.asyncio
    async def test_remove_counts_only_present(self, test_db, test_user):
        collection = await create_collection(test_db, test_user.id)
        item = await create_item(test_db, test_user.id)
        service = CollectionService(test_db)
        await service.add_items(collection.id, [item.id], test_user.id)

        assert await service.remove_items(collection.id, [item.id, uuid.uuid4()], test_user.id) == 1
        assert await service.remove_items(collection.id, [item.id], test_user.id) == 0

    @pytest.mark.asyncio
    async def test_collection_items_skip_trash(self, test_db, test_user):
        collection = await create_collection(test_db, test_user.id)
        live = await create_item(test_db, test_user.id)
        trashed = await create_item(test_db, test_user.id, is_trashed=True, trashed_at=utcnow())
        service = CollectionService(test_db)
        await service.add_items(collection.id, [live.id, trashed.id], test_user.id)

        result = await service.get_collection_items(collection.id, test_user.id)

        assert [item.id for item in result["items"]] == [live.id]
        assert result["meta"]["total"] == 1


class TestDeleteCollection:
    @pytest.mark.asyncio
    async def test_delete_cascades_to_descendants(self, test_db, test_user):
        service = CollectionService(test_db)
        root = await service.create_collection(CollectionCreate(name="Root"), test_user.id)
        child = await service.create_collection(CollectionCreate(name="Child", parentId=root.id), test_user.id)
        grandchild = await service.create_collection(
            CollectionCreate(name="Grandchild", parentId=child.id), test_user.id
        )
        sibling = await service.create_collection(CollectionCreate(name="Sibling"), test_user.id)
        item = await create_item(test_db, test_user.id)
        await service.add_items(grandchild.id, [item.id], test_user.id)
        root_id, child_id, grandchild_id = root.id, child.id, grandchild.id

        assert await service.delete_collection(root_id, test_user.id) == 3

        for collection_id in (root_id, child_id, grandchild_id):
            with pytest.raises(CollectionNotFoundError):
                await service.get_collection(collection_id, test_user.id)
        assert (await service.get_collection(sibling.id, test_user.id)).name == "Sibling"
        assert (await UsageService(test_db).get_usage(test_user.id)).collection_count == 1
