"""
Unit tests for the in-memory user store.
"""

import threading

import pytest

from user_store import User, UserNotFound, UserStore, UserValidationError


class TestCreate:

    def test_create_returns_user_with_generated_id(self, store):
        user = store.create(name="John Doe", email="john@example.com")

        assert isinstance(user, User)
        assert isinstance(user.id, str) and user.id
        assert user.name == "John Doe"
        assert user.email == "john@example.com"
        assert store.get(user.id) == user

    def test_ids_are_unique(self, store):
        ids = {store.create(name=f"User {i}", email=f"u{i}@example.com").id for i in range(50)}
        assert len(ids) == 50

    @pytest.mark.parametrize("name", ["A", "", "A" * 101])
    def test_name_length_bounds(self, store, name):
        with pytest.raises(UserValidationError) as excinfo:
            store.create(name=name, email="alice@example.com")

        assert set(excinfo.value.fields) == {"name"}
        assert len(store) == 0

    @pytest.mark.parametrize("name", ["Al", "A" * 100])
    def test_name_length_inclusive(self, store, name):
        assert store.create(name=name, email="alice@example.com").name == name

    @pytest.mark.parametrize("email", [
        "invalid-email", "a@", "@example.com", "",
        "John Doe <john@example.com>", "<john@example.com>", "john doe@example.com",
    ])
    def test_invalid_email(self, store, email):
        with pytest.raises(UserValidationError) as excinfo:
            store.create(name="Alice Smith", email=email)

        assert "email" in excinfo.value.fields
        assert len(store) == 0

    def test_missing_fields_are_named(self, store):
        with pytest.raises(UserValidationError) as excinfo:
            store.create()

        assert set(excinfo.value.fields) == {"name", "email"}
        assert "email" in str(excinfo.value) and "name" in str(excinfo.value)

    @pytest.mark.parametrize("email", [
        "John@Example.COM", "dev@app.test", "a@b.local", "First.Last+tag@Sub.Example.org",
    ])
    def test_email_stored_as_submitted(self, store, email):
        user = store.create(name="Alice Smith", email=email)
        assert user.email == email
        assert store.get(user.id).email == email

    def test_update_email_stored_as_submitted(self, store):
        user = store.create(name="Alice Smith", email="alice@example.com")
        assert store.update(user.id, email="Alice@Example.COM").email == "Alice@Example.COM"

    def test_non_string_name(self, store):
        with pytest.raises(UserValidationError):
            store.create(name=12345, email="alice@example.com")

    def test_duplicates_allowed(self, store):
        a = store.create(name="Same Name", email="same@example.com")
        b = store.create(name="Same Name", email="same@example.com")
        assert a.id != b.id
        assert len(store) == 2


class TestReadAndDelete:

    def test_list_empty(self, store):
        assert store.list() == []

    def test_list_in_creation_order(self, store):
        names = ["Alice", "Bob", "Carol", "Dave"]
        for n in names:
            store.create(name=n, email=f"{n.lower()}@example.com")

        assert [u.name for u in store.list()] == names

    def test_get_unknown(self, store):
        with pytest.raises(UserNotFound) as excinfo:
            store.get("non-existent-id")
        assert excinfo.value.user_id == "non-existent-id"

    def test_delete_then_get(self, store):
        user = store.create(name="John Doe", email="john@example.com")
        store.delete(user.id)

        assert user.id not in store
        with pytest.raises(UserNotFound):
            store.get(user.id)
        with pytest.raises(UserNotFound):
            store.delete(user.id)

    def test_delete_keeps_order_of_the_rest(self, store):
        a, b, c = (store.create(name=n, email=f"{n}@example.com") for n in ("aa", "bb", "cc"))
        store.delete(b.id)
        assert [u.id for u in store.list()] == [a.id, c.id]

    def test_clear(self, store):
        store.create(name="John Doe", email="john@example.com")
        store.clear()
        assert len(store) == 0


class TestUpdate:

    def test_update_name_only(self, store):
        user = store.create(name="John Doe", email="john@example.com")
        updated = store.update(user.id, name="Johnny")

        assert updated.id == user.id
        assert updated.name == "Johnny"
        assert updated.email == "john@example.com"
        assert store.get(user.id) == updated

    def test_update_email_only(self, store):
        user = store.create(name="John Doe", email="john@example.com")
        updated = store.update(user.id, email="johnny@example.com")

        assert updated.name == "John Doe"
        assert updated.email == "johnny@example.com"

    def test_empty_update_is_noop(self, store):
        user = store.create(name="John Doe", email="john@example.com")
        assert store.update(user.id) == user

    def test_update_unknown_beats_bad_payload(self, store):
        with pytest.raises(UserNotFound):
            store.update("missing", name="E")

    @pytest.mark.parametrize("changes", [
        {"name": "E"},
        {"email": "nope"},
        {"name": None},
        {"name": "Valid Name", "email": "nope"},
    ])
    def test_invalid_update_leaves_record_untouched(self, store, changes):
        user = store.create(name="John Doe", email="john@example.com")

        with pytest.raises(UserValidationError):
            store.update(user.id, **changes)

        assert store.get(user.id) == user

    def test_update_keeps_position(self, store):
        a = store.create(name="aa", email="a@example.com")
        b = store.create(name="bb", email="b@example.com")
        store.update(a.id, name="zz")
        assert [u.id for u in store.list()] == [a.id, b.id]


def test_concurrent_creates_are_not_lost(store):
    def worker(n):
        for i in range(50):
            store.create(name=f"Worker {n}", email=f"w{n}-{i}@example.com")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 400
    assert len({u.id for u in store.list()}) == 400
