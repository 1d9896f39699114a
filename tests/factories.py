"""
Test data factories for generating test objects.

This module provides Factory Boy factories for building model instances
with realistic default values, plus async helpers that persist them
through an ``AsyncSession``.
"""

import uuid
from datetime import timedelta
from typing import Optional

import factory

from models import Collection, File, Item, ItemFile, ItemTag, SharedLink, Tag, utcnow

TEST_PASSWORD = "correct-horse-battery"


class ItemFactory(factory.Factory):
    """Factory for building NOTE items by default."""

    class Meta:
        model = Item

    type = "NOTE"
    title = factory.Faker("sentence", nb_words=4, variable_nb_words=True)
    description = factory.Faker("text", max_nb_chars=200)
    content = factory.Faker("paragraph")
    importance = "MEDIUM"
    is_pinned = False
    is_trashed = False
    # user_id will be passed when building


class LinkItemFactory(ItemFactory):
    type = "LINK"
    content = None
    url = factory.Sequence(lambda n: f"https://example.com/articles/{n}")
    domain = "example.com"


class FileFactory(factory.Factory):
    class Meta:
        model = File

    storage_key = factory.LazyFunction(lambda: f"items/{uuid.uuid4().hex}.bin")
    original_name = factory.Sequence(lambda n: f"document-{n}.pdf")
    mime_type = "application/pdf"
    size = 1024
    checksum = None


class TagFactory(factory.Factory):
    class Meta:
        model = Tag

    name = factory.Sequence(lambda n: f"tag-{n}")
    color = "#6366f1"


class CollectionFactory(factory.Factory):
    class Meta:
        model = Collection

    name = factory.Sequence(lambda n: f"Collection {n}")
    description = factory.Faker("sentence")
    is_public = False
    slug_public = None
    parent_id = None


class SharedLinkFactory(factory.Factory):
    class Meta:
        model = SharedLink

    token = factory.LazyFunction(lambda: uuid.uuid4().hex)
    password_hash = None
    expires_at = factory.LazyFunction(lambda: utcnow() + timedelta(hours=24))
    revoked = False
    access_count = 0


# Utility functions for persisting test data
async def create_item(session, user_id: uuid.UUID, factory_class=ItemFactory, **kwargs) -> Item:
    item = factory_class.build(user_id=user_id, **kwargs)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


async def create_tag(session, user_id: uuid.UUID, **kwargs) -> Tag:
    tag = TagFactory.build(user_id=user_id, **kwargs)
    session.add(tag)
    await session.commit()
    await session.refresh(tag)
    return tag


async def tag_item(session, item: Item, tag: Tag) -> None:
    session.add(ItemTag(item_id=item.id, tag_id=tag.id))
    await session.commit()


async def create_file_item(
    session, user_id: uuid.UUID, num_files: int = 2, **kwargs
) -> tuple[Item, list[File]]:
    """Create a FILE item with ``num_files`` attachments; the first one is primary."""
    item = ItemFactory.build(user_id=user_id, type="FILE", content=None, **kwargs)
    session.add(item)
    await session.flush()

    files = []
    for position in range(num_files):
        file_row = FileFactory.build(user_id=user_id)
        session.add(file_row)
        await session.flush()
        session.add(
            ItemFile(item_id=item.id, file_id=file_row.id, position=position, is_primary=position == 0)
        )
        files.append(file_row)

    await session.commit()
    await session.refresh(item)
    return item, files


async def create_collection(
    session, user_id: uuid.UUID, parent_id: Optional[uuid.UUID] = None, **kwargs
) -> Collection:
    collection = CollectionFactory.build(user_id=user_id, parent_id=parent_id, **kwargs)
    session.add(collection)
    await session.commit()
    await session.refresh(collection)
    return collection


async def create_shared_link(session, user_id: uuid.UUID, item_id: uuid.UUID, **kwargs) -> SharedLink:
    link = SharedLinkFactory.build(user_id=user_id, item_id=item_id, **kwargs)
    session.add(link)
    await session.commit()
    await session.refresh(link)
    return link
