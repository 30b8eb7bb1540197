import random
import logging
import threading
from typing import Optional

from faker import Faker


class FakeDataBackend:
    """Faker and a random source sharing one seed"""

    def __init__(self, locale: str = "en_GB", seed: Optional[int] = None):
        self.locale = locale
        self.seed = seed
        self.faker = Faker(locale)
        self.random = random.Random(seed)
        if seed is not None:
            self.faker.seed_instance(seed)


class BackendHandle:
    """
    Process-wide, init-once access to the FakeDataBackend.

    The first call to get() builds the backend under a lock; concurrent first callers wait on
    the lock and all receive the same instance.
    """

    def __init__(self, locale: str = "en_GB", seed: Optional[int] = None, logger: logging.Logger = None):
        self.locale = locale
        self.seed = seed
        self.logger = logger or logging.getLogger(__name__)
        self._backend = None
        self._lock = threading.Lock()
        self.initializations = 0

    @property
    def initialized(self) -> bool:
        return self._backend is not None

    def get(self) -> FakeDataBackend:
        backend = self._backend
        if backend is not None:
            return backend
        with self._lock:
            if self._backend is None:
                self._backend = FakeDataBackend(self.locale, self.seed)
                self.initializations += 1
                self.logger.info(f"🎲 Fake data backend ready (locale={self.locale}, seed={self.seed})")
            return self._backend
