"""Unit tests for UserStore invariants and outcomes."""

import threading

import pytest

from users_api.adapters.storage.base import AbstractStorage
from users_api.adapters.storage.in_memory import InMemoryStorage
from users_api.core.errors import (
    EmailConflictAppError,
    LimitReachedAppError,
    NotFoundAppError,
    PersistenceAppError,
    ValidationAppError,
)
from users_api.services.user_store import MAX_USERS, IdPolicy, UserStore, validate_id


class FailingStorage(AbstractStorage):
    """Storage whose writes always fail."""

    def load_all(self):
        return {}

    def persist(self, snapshot):
        raise OSError("disk full")


def test_create_assigns_sequential_ids(store: UserStore) -> None:
    first = store.create("Alice", "alice@example.com")
    second = store.create("Bob", "bob@example.com")

    assert first.is_success
    assert first.value.id == 1
    assert second.value.id == 2
    assert store.size() == 2


def test_create_rejects_email_case_insensitively(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")

    outcome = store.create("Other", "ALICE@EXAMPLE.COM")

    assert not outcome.is_success
    assert isinstance(outcome.error, EmailConflictAppError)
    assert store.size() == 1


def test_create_preserves_email_casing(store: UserStore) -> None:
    outcome = store.create("Alice", "Alice@Example.COM")

    assert outcome.value.email == "Alice@Example.COM"


def test_capacity_limit_leaves_collection_unchanged() -> None:
    store = UserStore(max_users=3)
    for i in range(3):
        assert store.create(f"user{i}", f"user{i}@example.com").is_success

    outcome = store.create("extra", "extra@example.com")

    assert isinstance(outcome.error, LimitReachedAppError)
    assert store.size() == 3


def test_capacity_is_checked_before_email_conflict() -> None:
    store = UserStore(max_users=1)
    store.create("Alice", "alice@example.com")

    outcome = store.create("Alice", "alice@example.com")

    assert isinstance(outcome.error, LimitReachedAppError)


def test_default_capacity_is_999(store: UserStore) -> None:
    for i in range(MAX_USERS):
        assert store.create(f"user{i}", f"user{i}@example.com").is_success

    outcome = store.create("one-too-many", "late@example.com")

    assert isinstance(outcome.error, LimitReachedAppError)
    assert store.size() == MAX_USERS
    ids = [user.id for user in store.list_users().value]
    assert min(ids) == 1
    assert max(ids) == MAX_USERS


def test_counter_policy_never_reuses_ids(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")
    store.create("Bob", "bob@example.com")
    store.delete_by_id(2)

    outcome = store.create("Carol", "carol@example.com")

    assert outcome.value.id == 3


def test_max_scan_policy_reuses_top_id() -> None:
    store = UserStore(id_policy=IdPolicy.MAX_SCAN)
    store.create("Alice", "alice@example.com")
    store.create("Bob", "bob@example.com")
    store.delete_by_id(2)

    outcome = store.create("Carol", "carol@example.com")

    assert outcome.value.id == 2


def test_max_scan_policy_restarts_at_one_when_empty() -> None:
    store = UserStore(id_policy="max_scan")
    store.create("Alice", "alice@example.com")
    store.delete_by_id(1)

    assert store.create("Bob", "bob@example.com").value.id == 1


def test_counter_exhaustion_fails_validation_without_advancing() -> None:
    store = UserStore(max_users=2)
    store.create("a", "a@example.com")
    store.create("b", "b@example.com")
    store.delete_by_id(1)

    outcome = store.create("c", "c@example.com")

    assert isinstance(outcome.error, ValidationAppError)
    assert outcome.error.code == "user_id_exhausted"
    assert store.size() == 1


@pytest.mark.parametrize("user_id", [0, -1, MAX_USERS + 1])
def test_out_of_range_ids_fail_validation_not_not_found(store: UserStore, user_id: int) -> None:
    for outcome in (
        store.get_by_id(user_id),
        store.update(user_id, name="x"),
        store.delete_by_id(user_id),
    ):
        assert isinstance(outcome.error, ValidationAppError)
        assert outcome.error.message == "Invalid user ID"


def test_missing_id_is_not_found(store: UserStore) -> None:
    for outcome in (
        store.get_by_id(5),
        store.update(5, name="x"),
        store.delete_by_id(5),
    ):
        assert isinstance(outcome.error, NotFoundAppError)


def test_list_is_stable_and_returns_copies(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")
    store.create("Bob", "bob@example.com")

    first = store.list_users().value
    second = store.list_users().value
    first[0].name = "mutated"

    assert [u.id for u in second] == [1, 2]
    assert store.get_by_id(1).value.name == "Alice"
    assert store.list_users().value == second


def test_update_name_only_keeps_email(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")

    outcome = store.update(1, name="Alicia")

    assert outcome.value.name == "Alicia"
    assert outcome.value.email == "alice@example.com"


def test_update_email_only_keeps_name(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")

    outcome = store.update(1, email="alicia@example.com")

    assert outcome.value.name == "Alice"
    assert outcome.value.email == "alicia@example.com"


def test_update_rejects_email_of_other_user(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")
    store.create("Bob", "bob@example.com")

    outcome = store.update(2, email="Alice@Example.com")

    assert isinstance(outcome.error, EmailConflictAppError)
    assert store.get_by_id(2).value.email == "bob@example.com"


def test_update_allows_recasing_own_email(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")

    outcome = store.update(1, email="ALICE@example.com")

    assert outcome.is_success
    assert outcome.value.email == "ALICE@example.com"


def test_delete_returns_record_and_is_final(store: UserStore) -> None:
    created = store.create("Alice", "alice@example.com").value

    deleted = store.delete_by_id(1)

    assert deleted.value == created
    assert isinstance(store.get_by_id(1).error, NotFoundAppError)
    assert isinstance(store.delete_by_id(1).error, NotFoundAppError)


def test_deleted_email_can_be_registered_again(store: UserStore) -> None:
    store.create("Alice", "alice@example.com")
    store.delete_by_id(1)

    assert store.create("Alice", "alice@example.com").is_success


def test_concurrent_creates_with_same_email_only_one_wins() -> None:
    store = UserStore()
    barrier = threading.Barrier(20)
    results = []

    def _create(idx: int) -> None:
        barrier.wait()
        results.append(store.create(f"user{idx}", "same@example.com"))

    threads = [threading.Thread(target=_create, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for r in results if r.is_success) == 1
    assert store.size() == 1


def test_concurrent_creates_respect_capacity() -> None:
    store = UserStore(max_users=10)

    def _create(idx: int) -> None:
        store.create(f"user{idx}", f"user{idx}@example.com")

    threads = [threading.Thread(target=_create, args=(i,)) for i in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    users = store.list_users().value
    assert len(users) == 10
    assert sorted(u.id for u in users) == list(range(1, 11))


def test_mutations_are_persisted() -> None:
    storage = InMemoryStorage()
    store = UserStore(storage)

    store.create("Alice", "alice@example.com")
    store.update(1, name="Alicia")
    store.create("Bob", "bob@example.com")
    store.delete_by_id(2)

    assert storage.persist_count == 4
    assert storage.load_all() == {
        "users": [{"id": 1, "name": "Alicia", "email": "alice@example.com"}]
    }


def test_rejected_mutations_are_not_persisted() -> None:
    storage = InMemoryStorage()
    store = UserStore(storage)
    store.create("Alice", "alice@example.com")

    store.create("Dup", "alice@example.com")
    store.update(7, name="x")
    store.delete_by_id(0)

    assert storage.persist_count == 1


def test_persistence_failure_raises_and_keeps_memory_state() -> None:
    store = UserStore(FailingStorage())

    with pytest.raises(PersistenceAppError):
        store.create("Alice", "alice@example.com")

    assert store.get_by_id(1).is_success


def test_from_storage_seeds_users_and_counter() -> None:
    storage = InMemoryStorage(
        {
            "users": [
                {"id": 1, "name": "Alice", "email": "alice@example.com"},
                {"id": 4, "name": "Dan", "email": "dan@example.com"},
            ],
            "dishes": [{"id": 1}],
        }
    )

    store = UserStore.from_storage(storage)

    assert store.size() == 2
    assert store.create("Eve", "eve@example.com").value.id == 5
    assert isinstance(store.create("x", "DAN@example.com").error, EmailConflictAppError)
    assert storage.load_all()["dishes"] == [{"id": 1}]


def test_from_storage_empty_starts_at_one() -> None:
    store = UserStore.from_storage(InMemoryStorage())

    assert store.create("Alice", "alice@example.com").value.id == 1


@pytest.mark.parametrize(
    "records",
    [
        [{"id": 1, "name": "A", "email": "a@example.com"}, {"id": 1, "name": "B", "email": "b@example.com"}],
        [{"id": 1, "name": "A", "email": "a@example.com"}, {"id": 2, "name": "B", "email": "A@example.com"}],
        [{"id": 1000, "name": "A", "email": "a@example.com"}],
        [{"id": 1, "name": "", "email": "a@example.com"}],
        [{"id": 1, "name": "A"}],
    ],
)
def test_from_storage_rejects_invalid_data(records: list) -> None:
    with pytest.raises(PersistenceAppError):
        UserStore.from_storage(InMemoryStorage({"users": records}))


def test_from_storage_rejects_too_many_records() -> None:
    records = [{"id": i, "name": "u", "email": f"u{i}@example.com"} for i in range(1, 4)]

    with pytest.raises(PersistenceAppError):
        UserStore.from_storage(InMemoryStorage({"users": records}), max_users=2)


def test_invalid_constructor_args() -> None:
    with pytest.raises(ValueError):
        UserStore(max_users=0)
    with pytest.raises(ValueError):
        UserStore(id_policy="random")


def test_validate_id_bounds() -> None:
    assert validate_id(1) is None
    assert validate_id(MAX_USERS) is None
    assert validate_id(0) is not None
    assert validate_id(MAX_USERS + 1) is not None
    assert validate_id(5, max_users=4).code == "invalid_user_id"


@pytest.mark.parametrize(
    ("name", "email", "field"),
    [
        ("", "alice@example.com", "name"),
        ("x" * 51, "alice@example.com", "name"),
        ("Alice", "not an email", "email"),
    ],
)
def test_create_with_invalid_fields_fails_validation(
    store: UserStore, name: str, email: str, field: str
) -> None:
    outcome = store.create(name, email)

    assert isinstance(outcome.error, ValidationAppError)
    assert outcome.error.message.startswith(f"{field}:")
    assert store.size() == 0


def test_rejected_create_does_not_consume_an_id(store: UserStore) -> None:
    store.create("", "alice@example.com")

    assert store.create("Alice", "alice@example.com").value.id == 1


@pytest.mark.parametrize(
    ("changes", "field"),
    [
        ({"name": ""}, "name"),
        ({"name": "x" * 51}, "name"),
        ({"email": "not an email"}, "email"),
        ({"name": "", "email": "not an email"}, "name"),
    ],
)
def test_update_with_invalid_fields_fails_and_keeps_record(
    store: UserStore, changes: dict, field: str
) -> None:
    store.create("Alice", "alice@example.com")

    outcome = store.update(1, **changes)

    assert isinstance(outcome.error, ValidationAppError)
    assert outcome.error.message.startswith(f"{field}:")
    assert store.get_by_id(1).value.model_dump() == {
        "id": 1,
        "name": "Alice",
        "email": "alice@example.com",
    }


def test_invalid_update_is_not_persisted() -> None:
    storage = InMemoryStorage()
    store = UserStore(storage)
    store.create("Alice", "alice@example.com")

    store.update(1, email="broken")

    assert storage.persist_count == 1
