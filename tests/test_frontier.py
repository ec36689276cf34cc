import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor

from spider.frontier import URLFrontier
from spider.rwlock import ReadWriteLock


class URLFrontierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.frontier = URLFrontier()

    def test_dequeue_is_lifo(self) -> None:
        for url in ("http://x.com/a", "http://x.com/b", "http://x.com/c"):
            self.frontier.enqueue(url)

        popped = [self.frontier.dequeue() for _ in range(3)]

        self.assertEqual(["http://x.com/c", "http://x.com/b", "http://x.com/a"], popped)

    def test_dequeue_empty_returns_none(self) -> None:
        self.assertIsNone(self.frontier.dequeue())
        self.assertTrue(self.frontier.is_empty())

        self.frontier.enqueue("http://x.com/")
        self.frontier.dequeue()

        self.assertIsNone(self.frontier.dequeue())

    def test_seen_survives_dequeue(self) -> None:
        self.assertFalse(self.frontier.seen("http://x.com/a"))

        self.frontier.enqueue("http://x.com/a")
        self.assertTrue(self.frontier.seen("http://x.com/a"))

        self.frontier.dequeue()
        self.assertTrue(self.frontier.seen("http://x.com/a"))
        self.assertEqual(0, self.frontier.pending_count())
        self.assertEqual(1, self.frontier.seen_count())

    def test_seen_uses_exact_string(self) -> None:
        self.frontier.enqueue("http://x.com/a/")

        self.assertFalse(self.frontier.seen("http://x.com/a"))
        self.assertFalse(self.frontier.seen("http://X.com/a/"))

    def test_enqueue_does_not_filter_duplicates(self) -> None:
        self.frontier.enqueue("http://x.com/a")
        self.frontier.enqueue("http://x.com/a")

        self.assertEqual(2, self.frontier.pending_count())
        self.assertEqual(1, self.frontier.seen_count())

    def test_concurrent_enqueue_dequeue_loses_nothing(self) -> None:
        urls = [f"http://x.com/page/{i}" for i in range(500)]

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(self.frontier.enqueue, urls))

        with ThreadPoolExecutor(max_workers=16) as pool:
            popped = list(pool.map(lambda _: self.frontier.dequeue(), urls))

        self.assertNotIn(None, popped)
        self.assertEqual(sorted(urls), sorted(popped))
        self.assertIsNone(self.frontier.dequeue())
        self.assertTrue(all(self.frontier.seen(url) for url in urls))


class ReadWriteLockTests(unittest.TestCase):
    def test_readers_share_the_lock(self) -> None:
        lock = ReadWriteLock()
        acquired = threading.Event()

        def reader() -> None:
            with lock.read_locked():
                acquired.set()

        with lock.read_locked():
            thread = threading.Thread(target=reader)
            thread.start()
            self.assertTrue(acquired.wait(2))
        thread.join(2)

    def test_writer_waits_for_readers(self) -> None:
        lock = ReadWriteLock()
        acquired = threading.Event()

        def writer() -> None:
            with lock.write_locked():
                acquired.set()

        lock.acquire_read()
        thread = threading.Thread(target=writer)
        thread.start()
        self.assertFalse(acquired.wait(0.1))

        lock.release_read()
        self.assertTrue(acquired.wait(2))
        thread.join(2)

    def test_waiting_writer_blocks_new_readers(self) -> None:
        lock = ReadWriteLock()
        order = []
        reader_done = threading.Event()

        def writer() -> None:
            with lock.write_locked():
                order.append("writer")

        def reader() -> None:
            with lock.read_locked():
                order.append("reader")
            reader_done.set()

        lock.acquire_read()
        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        deadline = time.time() + 2
        while lock._writers_waiting == 0 and time.time() < deadline:
            time.sleep(0.01)
        self.assertEqual(1, lock._writers_waiting)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        self.assertFalse(reader_done.wait(0.1))

        lock.release_read()
        self.assertTrue(reader_done.wait(2))
        writer_thread.join(2)
        reader_thread.join(2)
        self.assertEqual(["writer", "reader"], order)


if __name__ == "__main__":
    unittest.main()
