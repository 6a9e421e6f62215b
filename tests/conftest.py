import os
import threading
from decimal import Decimal

# settings are read at import time, so the environment is prepared first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy.orm import sessionmaker

from cart_service.data.database import init_db, make_engine
from cart_service.domain.failures import NotFound


class FakeProductClient:
    """In-memory price/stock oracle. products: {product_id: (price, stock)}."""

    def __init__(self, products=None):
        self.products = {
            pid: (Decimal(str(price)), stock) for pid, (price, stock) in (products or {}).items()
        }
        self.calls = []

    def set(self, product_id, price, stock):
        self.products[product_id] = (Decimal(str(price)), stock)

    def get_price_and_stock(self, product_id):
        self.calls.append(product_id)
        if product_id not in self.products:
            raise NotFound("product", f"product {product_id} not found")
        return self.products[product_id]


class FakeLockService:
    def __init__(self):
        self.locks = {}
        self._mutex = threading.Lock()

    def acquire_checkout_lock(self, user_id, token, ttl):
        with self._mutex:
            if user_id in self.locks:
                return False
            self.locks[user_id] = token
            return True

    def release_checkout_lock(self, user_id, token):
        with self._mutex:
            if self.locks.get(user_id) != token:
                return False
            del self.locks[user_id]
            return True


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send_order_placed(self, user_id, order_id, total_cost):
        self.sent.append((user_id, order_id, total_cost))


@pytest.fixture
def engine(tmp_path):
    # file database so that threads get their own connections to shared data
    engine = make_engine(f"sqlite:///{tmp_path / 'cart.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def products():
    return FakeProductClient(
        {
            1: ("10.00", 10),
            2: ("5.00", 5),
            3: ("19.99", 3),
        }
    )


@pytest.fixture
def locks():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()
