import logging
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from data_generator.backend import BackendHandle, FakeDataBackend


class TestBackendHandle(unittest.TestCase):
    def setUp(self):
        self.handle = BackendHandle(seed=9, logger=logging.getLogger("test.backend"))

    def test_lazy_initialization(self):
        self.assertFalse(self.handle.initialized)
        backend = self.handle.get()
        self.assertTrue(self.handle.initialized)
        self.assertIsInstance(backend, FakeDataBackend)
        self.assertIs(self.handle.get(), backend)
        self.assertEqual(self.handle.initializations, 1)

    def test_concurrent_first_use_builds_once(self):
        barrier = threading.Barrier(8)

        def first_use():
            barrier.wait()
            return self.handle.get()

        with ThreadPoolExecutor(max_workers=8) as executor:
            backends = list(executor.map(lambda _: first_use(), range(8)))

        self.assertEqual(len({id(backend) for backend in backends}), 1)
        self.assertEqual(self.handle.initializations, 1)

    def test_seed_is_shared(self):
        first = FakeDataBackend("en_GB", seed=3)
        second = FakeDataBackend("en_GB", seed=3)
        self.assertEqual(first.faker.name(), second.faker.name())
        self.assertEqual(first.random.random(), second.random.random())


if __name__ == '__main__':
    unittest.main()
