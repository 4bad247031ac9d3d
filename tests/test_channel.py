import threading

from matprice.channel import Channel


class TestChannel:
    def test_drain_returns_events_in_publish_order(self):
        channel = Channel()
        for i in range(5):
            channel.publish(i)
        assert channel.drain() == [0, 1, 2, 3, 4]
        assert channel.empty()
        assert channel.drain() == []

    def test_publish_from_other_threads(self):
        channel = Channel()

        def produce(start):
            for i in range(start, start + 100):
                channel.publish(i)

        threads = [threading.Thread(target=produce, args=(n * 100,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        events = channel.drain()
        assert sorted(events) == list(range(400))
        # per-producer order is kept
        for n in range(4):
            mine = [e for e in events if n * 100 <= e < (n + 1) * 100]
            assert mine == sorted(mine)
