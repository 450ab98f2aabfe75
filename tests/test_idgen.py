"""Tests for the snowflake id generator."""

import threading

import pytest

from tools.idgen import TWITTER_EPOCH_MS, SnowflakeIdGenerator


class TestSnowflake:
    def test_ids_unique_and_increasing(self, id_generator):
        ids = [id_generator.generate() for _ in range(5000)]
        assert len(set(ids)) == len(ids)
        assert ids == sorted(ids)

    def test_layout(self):
        gen = SnowflakeIdGenerator(3, 7, clock=lambda: TWITTER_EPOCH_MS + 1000)
        first = gen.generate()
        second = gen.generate()
        assert first >> 22 == 1000
        assert (first >> 17) & 0x1F == 3
        assert (first >> 12) & 0x1F == 7
        assert first & 0xFFF == 0
        assert second & 0xFFF == 1

    def test_clock_going_backwards_stays_monotonic(self):
        times = iter([TWITTER_EPOCH_MS + 500, TWITTER_EPOCH_MS + 100])
        gen = SnowflakeIdGenerator(1, 1, clock=lambda: next(times))
        assert gen.generate() < gen.generate()

    def test_thread_safety(self, id_generator):
        results = []

        def worker():
            results.extend(id_generator.generate() for _ in range(500))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(results)) == 2000

    @pytest.mark.parametrize("machine,node", [(-1, 0), (32, 0), (0, 32)])
    def test_invalid_worker_ids(self, machine, node):
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine, node)
