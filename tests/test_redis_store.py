"""
Tests for the Redis token store using fakeredis.

These cover the parts the other backends do not have: native expiry,
the owner index and the best-effort cascade delete.
"""

import threading
import time
from datetime import timedelta

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bifrost.tokenstore import RedisConfig, RedisTokenStore, new_token
from bifrost.types.errors import CascadeDeleteError, StorageError


class FlakyRedis(fakeredis.FakeRedis):
    """FakeRedis whose DEL fails once for selected keys."""

    fail_keys = frozenset()

    def delete(self, *names):
        failing = self.fail_keys.intersection(names)
        if failing:
            self.fail_keys = self.fail_keys - failing
            raise RedisConnectionError("Connection reset by peer")
        return super().delete(*names)


class BrokenRedis(fakeredis.FakeRedis):
    """FakeRedis that cannot reach its server at all."""

    def execute_command(self, *args, **options):
        raise RedisConnectionError("Error 111 connecting to localhost:6379")


def _owner_index(r, owner_id):
    return r.smembers(f"token:consumer:{owner_id}")


class TestRedisKeys:
    """Key layout and native expiry."""

    def test_record_and_index_keys(self, redis_store, fake_redis, clock):
        token = new_token("C1")
        redis_store.insert(token)

        assert fake_redis.exists(f"token:id:{token.id}")
        assert _owner_index(fake_redis, "C1") == {token.id}

    def test_key_prefix(self, fake_redis, clock):
        store = RedisTokenStore(RedisConfig(key_prefix="gw:"), redis_client=fake_redis)
        token = new_token("C1")
        store.insert(token)

        assert fake_redis.exists(f"gw:token:id:{token.id}")
        assert fake_redis.smembers("gw:token:consumer:C1") == {token.id}

    def test_record_ttl_matches_remaining_lifetime(self, redis_store, fake_redis, clock):
        token = new_token("C1", timeout=timedelta(minutes=60))
        redis_store.insert(token)

        ttl = fake_redis.ttl(f"token:id:{token.id}")
        assert 3590 <= ttl <= 3600

    def test_expired_record_is_reclaimed(self, redis_store, fake_redis):
        token = new_token("C1", timeout=timedelta(milliseconds=100))
        redis_store.insert(token)
        assert redis_store.get(token.id) is not None

        time.sleep(0.3)

        assert redis_store.get(token.id) is None
        assert redis_store.get_by_owner("C1") == []

    def test_already_expired_token_is_not_kept(self, redis_store, clock):
        token = new_token("C1", timeout=timedelta(minutes=-1))
        redis_store.insert(token)
        time.sleep(0.05)
        assert redis_store.get(token.id) is None


class TestRedisUpdate:
    """update keeps the native expiry unless asked to refresh it."""

    def test_update_keeps_ttl(self, redis_store, fake_redis, clock):
        token = new_token("C1", timeout=timedelta(minutes=10))
        redis_store.insert(token)

        token.renew(timedelta(minutes=60))
        redis_store.update(token)

        assert fake_redis.ttl(f"token:id:{token.id}") <= 600
        assert redis_store.get(token.id).expires_at == token.expires_at

    def test_update_with_refresh_ttl(self, redis_store, fake_redis, clock):
        token = new_token("C1", timeout=timedelta(minutes=10))
        redis_store.insert(token)

        token.renew(timedelta(minutes=60))
        redis_store.update(token, refresh_ttl=True)

        assert fake_redis.ttl(f"token:id:{token.id}") > 600

    def test_update_creates_missing_record(self, redis_store, clock):
        token = new_token("C1")
        redis_store.update(token, refresh_ttl=True)
        assert redis_store.get(token.id) is not None

    def test_update_of_missing_record_gets_expiry(self, redis_store, fake_redis, clock):
        token = new_token("C1", timeout=timedelta(minutes=10))
        redis_store.update(token)

        ttl = fake_redis.ttl(f"token:id:{token.id}")
        assert 0 < ttl <= 600
        assert _owner_index(fake_redis, "C1") == {token.id}

    def test_record_created_by_update_is_cascaded(self, redis_store, clock):
        token = new_token("C1")
        redis_store.update(token)
        redis_store.delete_by_owner("C1")

        assert redis_store.get(token.id) is None


class TestRedisOwnerIndex:
    """The hand-maintained owner index."""

    def test_dangling_index_entry_is_skipped(self, redis_store, fake_redis, clock):
        token = new_token("C1")
        redis_store.insert(token)
        fake_redis.sadd("token:consumer:C1", "ghost")

        found = redis_store.get_by_owner("C1")
        assert [t.id for t in found] == [token.id]

    def test_delete_leaves_index_entry(self, redis_store, fake_redis, clock):
        token = new_token("C1")
        redis_store.insert(token)
        redis_store.delete(token.id)

        assert _owner_index(fake_redis, "C1") == {token.id}
        assert redis_store.get_by_owner("C1") == []

    def test_cascade_removes_index_key(self, redis_store, fake_redis, clock):
        for _ in range(3):
            redis_store.insert(new_token("C1"))
        redis_store.delete_by_owner("C1")

        assert not fake_redis.exists("token:consumer:C1")
        assert fake_redis.keys("token:id:*") == []

    def test_concurrent_inserts_for_one_owner(self, redis_store, fake_redis, clock):
        tokens = [new_token("C1"), new_token("C1")]
        barrier = threading.Barrier(len(tokens))

        def insert(token):
            barrier.wait()
            redis_store.insert(token)

        threads = [threading.Thread(target=insert, args=(t,)) for t in tokens]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert _owner_index(fake_redis, "C1") == {t.id for t in tokens}
        assert len(redis_store.get_by_owner("C1")) == 2

class TestRedisBinaryClient:
    """A client without decode_responses returns set members as bytes."""

    @pytest.fixture
    def binary_store(self):
        r = fakeredis.FakeRedis()
        r.flushall()
        return RedisTokenStore(redis_client=r)

    def test_get_by_owner(self, binary_store, clock):
        tokens = [new_token("C1"), new_token("C1")]
        for token in tokens:
            binary_store.insert(token)

        found = binary_store.get_by_owner("C1")
        assert sorted(t.id for t in found) == sorted(t.id for t in tokens)

    def test_delete_by_owner_removes_records(self, binary_store, clock):
        tokens = [new_token("C1"), new_token("C1")]
        for token in tokens:
            binary_store.insert(token)

        binary_store.delete_by_owner("C1")

        assert all(binary_store.get(t.id) is None for t in tokens)
        assert binary_store._redis.keys("token:id:*") == []



class TestRedisCascadeFailures:
    """delete_by_owner keeps going when single deletions fail."""

    def test_partial_failure_still_clears_index(self, clock):
        r = FlakyRedis(decode_responses=True)
        r.flushall()
        store = RedisTokenStore(redis_client=r)
        tokens = [new_token("C1") for _ in range(3)]
        for token in tokens:
            store.insert(token)

        broken = tokens[1]
        r.fail_keys = frozenset({f"token:id:{broken.id}"})

        with pytest.raises(CascadeDeleteError) as exc_info:
            store.delete_by_owner("C1")

        assert exc_info.value.details["failed_ids"] == [broken.id]
        assert not r.exists("token:consumer:C1")
        assert store.get(tokens[0].id) is None
        assert store.get(tokens[2].id) is None
        assert store.get_by_owner("C1") == []

    def test_retry_after_transient_failure(self, clock):
        r = FlakyRedis(decode_responses=True)
        r.flushall()
        store = RedisTokenStore(redis_client=r)
        tokens = [new_token("C1") for _ in range(2)]
        for token in tokens:
            store.insert(token)
        r.fail_keys = frozenset({f"token:id:{tokens[0].id}"})

        with pytest.raises(CascadeDeleteError):
            store.delete_by_owner("C1")
        store.delete_by_owner("C1")

        assert store.get_by_owner("C1") == []

    def test_cascade_error_is_a_storage_error(self, clock):
        r = FlakyRedis(decode_responses=True)
        r.flushall()
        store = RedisTokenStore(redis_client=r)
        token = new_token("C1")
        store.insert(token)
        r.fail_keys = frozenset({f"token:id:{token.id}"})

        with pytest.raises(StorageError) as exc_info:
            store.delete_by_owner("C1")
        assert exc_info.value.operation == "delete_by_owner"
        assert isinstance(exc_info.value.cause, StorageError)


class TestRedisStorageErrors:
    """Transport failures surface as StorageError."""

    @pytest.fixture
    def broken_store(self):
        return RedisTokenStore(redis_client=BrokenRedis(decode_responses=True))

    def test_get(self, broken_store):
        with pytest.raises(StorageError) as exc_info:
            broken_store.get("T1")
        assert isinstance(exc_info.value.cause, RedisConnectionError)

    def test_insert(self, broken_store):
        with pytest.raises(StorageError):
            broken_store.insert(new_token("C1"))

    def test_delete_by_owner(self, broken_store):
        with pytest.raises(StorageError):
            broken_store.delete_by_owner("C1")

    def test_corrupt_record(self, redis_store, fake_redis):
        fake_redis.set("token:id:T1", "not json")
        with pytest.raises(StorageError):
            redis_store.get("T1")


class TestRedisConfig:
    """Client construction from configuration."""

    def test_address_parsing(self):
        client = RedisConfig(address="cache.internal:6380", db=2).create_client()
        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2

    def test_url_takes_precedence(self):
        client = RedisConfig(address="ignored:1", url="redis://cache:6390/3").create_client()
        kwargs = client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache"
        assert kwargs["port"] == 6390
        assert kwargs["db"] == 3
