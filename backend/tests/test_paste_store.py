"""
CodeSnap Backend — Paste Store Tests
======================================

What:  PasteStore against a real (in-memory SQLite) database, plus mocked
       sessions for the backend-failure paths.

What we test:
    ✅ Defaults applied on create; tags order preserved
    ✅ Only the public-id unique constraint counts as a collision
    ✅ Expired rows hidden from every read and purged on read-by-id
    ✅ views increments by exactly one per call
    ✅ Recent and related listings (order, filters, exclusion, limit)
    ✅ Update replaces content only; delete is idempotent
    ✅ Reads degrade to None / [] on backend errors; writes raise
"""

from datetime import timedelta

import pytest
from sqlalchemy import Text
from sqlalchemy.exc import IntegrityError, OperationalError

from codesnap.exceptions import PersistenceError, PublicIdCollisionError
from codesnap.models.paste import Paste
from codesnap.services.paste_store import PasteStore


def _db_error():
    return OperationalError("SELECT 1", {}, Exception("connection lost"))


class TestPasteStoreCreate:

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)

        paste = await store.create(public_id="abcd1234", content="print('hi')")

        assert paste.id is not None
        assert paste.title == "Untitled"
        assert paste.language == "plaintext"
        assert paste.author_name == "Anonymous"
        assert paste.tags == []
        assert paste.views == 0
        assert paste.expires_at is None
        assert paste.is_file is False

    @pytest.mark.asyncio
    async def test_create_keeps_tag_order_and_duplicates(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)

        await store.create(public_id="tags0001", content="x", tags=["b", "a", "b"])
        fetched = await store.get_by_public_id("tags0001")

        assert fetched.tags == ["b", "a", "b"]

    @pytest.mark.asyncio
    async def test_duplicate_public_id_raises_collision(self, session_factory, clock):
        async with session_factory() as session:
            await PasteStore(session, clock=clock).create(public_id="same0001", content="one")

        async with session_factory() as session:
            with pytest.raises(PublicIdCollisionError) as exc_info:
                await PasteStore(session, clock=clock).create(public_id="same0001", content="two")

        assert exc_info.value.public_id == "same0001"

    @pytest.mark.asyncio
    async def test_public_id_constraint_maps_to_collision(self, mock_db_session):
        mock_db_session.flush.side_effect = IntegrityError(
            "INSERT", {},
            Exception('duplicate key value violates unique constraint "uq_pastes_paste_id"'),
        )
        store = PasteStore(mock_db_session)

        with pytest.raises(PublicIdCollisionError):
            await store.create(public_id="dup00001", content="x")
        mock_db_session.rollback.assert_awaited()

    @pytest.mark.asyncio
    async def test_other_constraint_is_persistence_error(self, mock_db_session):
        mock_db_session.flush.side_effect = IntegrityError(
            "INSERT", {},
            Exception('null value in column "content" of relation "pastes" violates not-null constraint'),
        )
        store = PasteStore(mock_db_session)

        with pytest.raises(PersistenceError) as exc_info:
            await store.create(public_id="null0001", content="x")
        assert not isinstance(exc_info.value, PublicIdCollisionError)
        mock_db_session.rollback.assert_awaited()

    def test_file_type_column_is_unbounded(self):
        assert isinstance(Paste.__table__.c.file_type.type, Text)

    @pytest.mark.asyncio
    async def test_backend_error_on_create_raises_persistence_error(self, mock_db_session):
        mock_db_session.flush.side_effect = _db_error()
        store = PasteStore(mock_db_session)

        with pytest.raises(PersistenceError) as exc_info:
            await store.create(public_id="err00001", content="x")
        assert not isinstance(exc_info.value, PublicIdCollisionError)


class TestPasteStoreExpiration:

    @pytest.mark.asyncio
    async def test_live_paste_is_returned(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(
            public_id="live0001",
            content="x",
            expires_at=clock() + timedelta(minutes=10),
        )

        clock.advance(minutes=9)
        assert await store.get_by_public_id("live0001") is not None

    @pytest.mark.asyncio
    async def test_expired_paste_is_absent_and_purged(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(
            public_id="gone0001",
            content="x",
            expires_at=clock() + timedelta(minutes=10),
        )

        clock.advance(minutes=11)

        assert await store.get_by_public_id("gone0001") is None
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_expiry_at_exactly_now_is_expired(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(public_id="edge0001", content="x", expires_at=clock())

        assert await store.get_by_public_id("edge0001") is None

    @pytest.mark.asyncio
    async def test_no_expiration_survives_long_delay(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(public_id="keep0001", content="x")

        clock.advance(days=3650)

        assert await store.get_by_public_id("keep0001") is not None

    @pytest.mark.asyncio
    async def test_get_by_internal_id_hides_expired(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        paste = await store.create(public_id="int00001", content="x", expires_at=clock())

        assert await store.get_by_internal_id(paste.id) is None

    @pytest.mark.asyncio
    async def test_listings_hide_expired(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(public_id="old00001", content="x", language="go", expires_at=clock())
        await store.create(public_id="new00001", content="y", language="go")

        recent = await store.list_recent()
        related = await store.list_related("go")

        assert [p.paste_id for p in recent] == ["new00001"]
        assert [p.paste_id for p in related] == ["new00001"]

    @pytest.mark.asyncio
    async def test_purge_expired_removes_only_expired(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(public_id="exp00001", content="x", expires_at=clock() + timedelta(minutes=1))
        await store.create(public_id="exp00002", content="x", expires_at=clock() + timedelta(minutes=1))
        await store.create(public_id="keep0002", content="x")

        clock.advance(minutes=2)
        removed = await store.purge_expired()

        assert removed == 2
        assert await store.count() == 1


class TestPasteStoreViews:

    @pytest.mark.asyncio
    async def test_increment_views_adds_one_each_time(self, session_factory, clock):
        async with session_factory() as session:
            paste = await PasteStore(session, clock=clock).create(public_id="view0001", content="x")

        for _ in range(3):
            async with session_factory() as session:
                assert await PasteStore(session, clock=clock).increment_views(paste.id) is True

        async with session_factory() as session:
            fetched = await PasteStore(session, clock=clock).get_by_public_id("view0001")
        assert fetched.views == 3

    @pytest.mark.asyncio
    async def test_increment_views_swallows_errors(self, mock_db_session):
        mock_db_session.execute.side_effect = _db_error()

        assert await PasteStore(mock_db_session).increment_views(1) is False


class TestPasteStoreListings:

    @pytest.mark.asyncio
    async def test_list_recent_newest_first(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        await store.create(public_id="first001", content="x")
        clock.advance(minutes=1)
        await store.create(public_id="second01", content="x")
        clock.advance(minutes=1)
        await store.create(public_id="third001", content="x")

        recent = await store.list_recent()

        assert [p.paste_id for p in recent] == ["third001", "second01", "first001"]

    @pytest.mark.asyncio
    async def test_list_recent_limit_and_language(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        for i in range(3):
            await store.create(public_id=f"py{i:06d}", content="x", language="python")
            clock.advance(seconds=1)
        await store.create(public_id="js000001", content="x", language="javascript")

        assert len(await store.list_recent(limit=2)) == 2
        python_only = await store.list_recent(language="python")
        assert {p.language for p in python_only} == {"python"}
        assert len(python_only) == 3

    @pytest.mark.asyncio
    async def test_list_related_excludes_and_ranks_by_views(self, session_factory, clock):
        async with session_factory() as session:
            store = PasteStore(session, clock=clock)
            base = await store.create(public_id="base0001", content="x", language="rust")
            low = await store.create(public_id="low00001", content="x", language="rust")
            high = await store.create(public_id="high0001", content="x", language="rust")
            await store.create(public_id="other001", content="x", language="go")

        for internal_id, count in ((low.id, 1), (high.id, 5), (base.id, 9)):
            for _ in range(count):
                async with session_factory() as session:
                    await PasteStore(session, clock=clock).increment_views(internal_id)

        async with session_factory() as session:
            related = await PasteStore(session, clock=clock).list_related(
                "rust", exclude_internal_id=base.id
            )

        assert [p.paste_id for p in related] == ["high0001", "low00001"]

    @pytest.mark.asyncio
    async def test_list_related_respects_limit(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        for i in range(5):
            await store.create(public_id=f"sql{i:05d}", content="x", language="sql")

        related = await store.list_related("sql", limit=3)

        assert len(related) == 3
        assert all(p.language == "sql" for p in related)

    @pytest.mark.asyncio
    async def test_listings_degrade_to_empty_on_error(self, mock_db_session):
        mock_db_session.execute.side_effect = _db_error()
        store = PasteStore(mock_db_session)

        assert await store.list_recent() == []
        assert await store.list_related("python") == []
        assert await store.get_by_public_id("whatever") is None


class TestPasteStoreMutations:

    @pytest.mark.asyncio
    async def test_update_replaces_content_only(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        paste = await store.create(
            public_id="upd00001",
            content="old",
            title="Keep me",
            language="python",
            tags=["a"],
        )

        assert await store.update(paste.id, "new") is True
        fetched = await store.get_by_public_id("upd00001")

        assert fetched.content == "new"
        assert fetched.title == "Keep me"
        assert fetched.language == "python"
        assert fetched.tags == ["a"]
        assert fetched.paste_id == "upd00001"

    @pytest.mark.asyncio
    async def test_update_missing_row_returns_false(self, db_session, clock):
        assert await PasteStore(db_session, clock=clock).update(999, "x") is False

    @pytest.mark.asyncio
    async def test_update_backend_error_raises(self, mock_db_session):
        mock_db_session.get.side_effect = _db_error()

        with pytest.raises(PersistenceError):
            await PasteStore(mock_db_session).update(1, "x")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, db_session, clock):
        store = PasteStore(db_session, clock=clock)
        paste = await store.create(public_id="del00001", content="x")

        await store.delete(paste.id)
        await store.delete(paste.id)

        assert await store.get_by_public_id("del00001") is None

    @pytest.mark.asyncio
    async def test_delete_backend_error_raises(self, mock_db_session):
        mock_db_session.execute.side_effect = _db_error()

        with pytest.raises(PersistenceError):
            await PasteStore(mock_db_session).delete(1)
