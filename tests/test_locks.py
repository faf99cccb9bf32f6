import threading

from dispatch.locks import PoolLockManager


def test_lock_is_held_inside_the_block():
    locks = PoolLockManager()

    with locks.lock("pool_1"):
        assert locks.is_locked("pool_1")
        assert not locks.is_locked("pool_2")
    assert not locks.is_locked("pool_1")


def test_lock_many_takes_every_key_once():
    locks = PoolLockManager()

    with locks.lock_many("ride_b", "ride_a", "ride_b"):
        assert locks.is_locked("ride_a")
        assert locks.is_locked("ride_b")
    assert not locks.is_locked("ride_a")

    # no keys is a no-op
    with locks.lock_many():
        pass


def test_same_key_serializes_writers():
    locks = PoolLockManager()
    counter = {"value": 0}

    def bump():
        for _ in range(200):
            with locks.lock("pool_1"):
                current = counter["value"]
                counter["value"] = current + 1

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter["value"] == 800
