"""Unit tests for SqlDocumentRepository

Runs against a temporary SQLite database. Concurrency tests use one session
per thread, the way request handlers do.
"""

import threading
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from docshare.domain.documents.errors import RepositoryUnavailableError, StateConflictError
from docshare.domain.documents.models import NewDocument, Visibility
from docshare.infrastructure.repositories import SqlDocumentRepository


def _new_document(owner_id: str = "user-a", key_suffix: str = "1-notes.pdf", title: str = "Notes") -> NewDocument:
    return NewDocument(
        owner_id=owner_id,
        storage_key=f"documents/{owner_id}/{key_suffix}",
        title=title,
        description=None,
        file_name="notes.pdf",
        size_bytes=1024,
        content_type="application/pdf",
    )


def _tokens(*values):
    """Token factory returning the given values in order."""
    iterator = iter(values)
    return lambda: next(iterator)


class TestCreate:
    """Test persisting finalized documents"""

    def test_create_defaults(self, repository):
        document = repository.create(_new_document())

        assert document.id is not None
        assert document.visibility == Visibility.PRIVATE
        assert document.share_token is None
        assert document.download_count == 0
        assert document.created_at is not None

    def test_duplicate_storage_key_conflicts(self, repository):
        repository.create(_new_document())

        with pytest.raises(StateConflictError):
            repository.create(_new_document())

        # Session is still usable after the rollback
        assert len(repository.find_by_owner("user-a")) == 1

    def test_get_by_id_unknown(self, repository):
        assert repository.get_by_id(uuid4()) is None

    def test_find_by_storage_key(self, repository):
        document = repository.create(_new_document())

        assert repository.find_by_storage_key(document.storage_key).id == document.id
        assert repository.find_by_storage_key("documents/user-a/missing") is None


class TestFindByOwner:
    """Test owner scoping and ordering"""

    def test_only_owner_rows_newest_first(self, repository):
        first = repository.create(_new_document(key_suffix="1-a.pdf", title="First"))
        repository.create(_new_document(owner_id="user-b", key_suffix="1-b.pdf"))
        second = repository.create(_new_document(key_suffix="2-a.pdf", title="Second"))

        documents = repository.find_by_owner("user-a")

        assert [d.id for d in documents] == [second.id, first.id]

    def test_unknown_owner_empty(self, repository):
        assert repository.find_by_owner("nobody") == []


class TestSetVisibility:
    """Test visibility flips and share token assignment"""

    def test_publish_assigns_token(self, repository):
        document = repository.create(_new_document())

        updated = repository.set_visibility(document.id, True, _tokens("tok-1"))

        assert updated.visibility == Visibility.PUBLIC
        assert updated.share_token == "tok-1"

    def test_existing_token_is_never_replaced(self, repository):
        document = repository.create(_new_document())

        repository.set_visibility(document.id, True, _tokens("tok-1"))
        repository.set_visibility(document.id, False, _tokens("unused"))
        updated = repository.set_visibility(document.id, True, _tokens("tok-2"))

        assert updated.share_token == "tok-1"

    def test_token_is_drawn_once_across_toggles(self, repository):
        document = repository.create(_new_document())
        drawn = []

        def factory():
            drawn.append(f"tok-{len(drawn) + 1}")
            return drawn[-1]

        for make_public in [True, False, True, True, False, True]:
            repository.set_visibility(document.id, make_public, factory)

        assert drawn == ["tok-1"]
        assert repository.get_by_id(document.id).share_token == "tok-1"

    def test_unpublish_keeps_token(self, repository):
        document = repository.create(_new_document())
        repository.set_visibility(document.id, True, _tokens("tok-1"))

        updated = repository.set_visibility(document.id, False, _tokens("unused"))

        assert updated.visibility == Visibility.PRIVATE
        assert updated.share_token == "tok-1"

    def test_token_collision_is_retried(self, repository):
        taken = repository.create(_new_document(key_suffix="1-a.pdf"))
        repository.set_visibility(taken.id, True, _tokens("tok-1"))
        document = repository.create(_new_document(key_suffix="2-a.pdf"))

        updated = repository.set_visibility(document.id, True, _tokens("tok-1", "tok-2"))

        assert updated.share_token == "tok-2"

    def test_unknown_document_returns_none(self, repository):
        assert repository.set_visibility(uuid4(), True, _tokens("tok-1")) is None

    def test_concurrent_publish_settles_on_one_token(self, repository, session_factory):
        document = repository.create(_new_document())
        threads_count = 6
        barrier = threading.Barrier(threads_count)
        results = []
        errors = []

        def worker(index):
            session = session_factory()
            try:
                thread_repository = SqlDocumentRepository(session)
                barrier.wait()
                updated = thread_repository.set_visibility(document.id, True, lambda: f"tok-{index}")
                results.append(updated.share_token)
            except Exception as e:  # collected and asserted below
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        final = repository.get_by_id(document.id)
        assert errors == []
        assert final.visibility == Visibility.PUBLIC
        assert final.share_token is not None
        assert results == [final.share_token] * threads_count


class TestFindByShareToken:
    """Test the visibility filter on token lookup"""

    def test_resolves_public_document(self, repository):
        document = repository.create(_new_document())
        repository.set_visibility(document.id, True, _tokens("tok-1"))

        assert repository.find_by_share_token("tok-1").id == document.id

    def test_dormant_token_does_not_resolve(self, repository):
        document = repository.create(_new_document())
        repository.set_visibility(document.id, True, _tokens("tok-1"))
        repository.set_visibility(document.id, False, _tokens("unused"))

        assert repository.find_by_share_token("tok-1") is None

    def test_resolution_follows_toggle_sequence(self, repository):
        document = repository.create(_new_document())
        factory = _tokens("tok-1", "tok-2", "tok-3")

        for make_public in [True, False, True, True, False, True]:
            repository.set_visibility(document.id, make_public, factory)
            found = repository.find_by_share_token("tok-1")
            assert (found is not None) == make_public

    def test_unknown_token(self, repository):
        assert repository.find_by_share_token("nope") is None


class TestUpdateMetadata:
    """Test title/description edits"""

    def test_updates_given_fields_only(self, repository):
        document = repository.create(_new_document(title="Old"))

        updated = repository.update_metadata(document.id, None, "New description")

        assert updated.title == "Old"
        assert updated.description == "New description"

    def test_empty_description_clears_it(self, repository):
        document = repository.create(_new_document())
        repository.update_metadata(document.id, None, "Something")

        updated = repository.update_metadata(document.id, None, "")

        assert updated.description is None

    def test_unknown_document_returns_none(self, repository):
        assert repository.update_metadata(uuid4(), "Title", None) is None


class TestDownloadCount:
    """Test atomic download counting"""

    def test_increment(self, repository):
        document = repository.create(_new_document())

        assert repository.increment_download_count(document.id) is True
        assert repository.increment_download_count(document.id) is True

        assert repository.get_by_id(document.id).download_count == 2

    def test_increment_unknown_document(self, repository):
        assert repository.increment_download_count(uuid4()) is False

    def test_concurrent_increments_are_not_lost(self, repository, session_factory):
        document = repository.create(_new_document())
        threads_count = 8
        increments_per_thread = 5
        errors = []

        def worker():
            session = session_factory()
            try:
                thread_repository = SqlDocumentRepository(session)
                for _ in range(increments_per_thread):
                    thread_repository.increment_download_count(document.id)
            except Exception as e:  # collected and asserted below
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert repository.get_by_id(document.id).download_count == threads_count * increments_per_thread


class TestDelete:
    """Test descriptor removal"""

    def test_delete(self, repository):
        document = repository.create(_new_document())

        assert repository.delete(document.id) is True
        assert repository.get_by_id(document.id) is None
        assert repository.delete(document.id) is False


class TestUnavailableStore:
    """Test translation of connection failures"""

    def test_unreachable_database_raises_repository_unavailable(self, tmp_path):
        # A directory cannot be opened as an SQLite database file
        broken_engine = create_engine(f"sqlite:///{tmp_path}")
        session = sessionmaker(bind=broken_engine)()
        try:
            with pytest.raises(RepositoryUnavailableError) as exc_info:
                SqlDocumentRepository(session).find_by_owner("user-a")
        finally:
            session.close()
            broken_engine.dispose()

        assert exc_info.value.retryable is True
