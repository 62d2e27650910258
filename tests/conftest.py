"""
Back Office test fixtures

Each test gets a fresh SQLite database file and an httpx client wired to the
ASGI app. SMTP, PayPal and MinIO are replaced with in-memory fakes through
app.dependency_overrides.
"""
import os

# Must be set before the app (and its cached settings) are imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["PAYPAL_CLIENT_ID"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["OPT_LOCK_BASE_DELAY_MS"] = "1"
os.environ["OPT_LOCK_JITTER_MS"] = "1"

from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from backoffice.api.deps import get_image_storage, get_mailer, get_payment_client
from backoffice.core.exceptions import EmailDeliveryError
from backoffice.core.security import TokenService, hash_password
from backoffice.db.database import Base, get_db, get_session_factory
from backoffice.integrations.paypal import PayPalOrder
from backoffice.integrations.storage import ImageStorage
from backoffice.main import app
from backoffice.models.inventory import Product
from backoffice.models.user import User


# ─── Fakes ─────────────────────────────────────────────────────────────────────
class FakeMailer:
    def __init__(self):
        self.sent: list[tuple[str, str, object]] = []
        self.fail = False

    def _deliver(self, kind: str, to: str, payload: object) -> None:
        if self.fail:
            raise EmailDeliveryError(f"Could not send e-mail to {to}.")
        self.sent.append((kind, to, payload))

    async def send_password_creation(self, user, token):
        self._deliver("create", user.email, token)

    async def send_password_reset(self, user, token):
        self._deliver("reset", user.email, token)

    async def send_order_confirmation(self, order, invoice_pdf):
        self._deliver("invoice", order.customer_email, invoice_pdf)


class FakePayPal:
    def __init__(self):
        self.created: list[tuple[str, Decimal]] = []
        self.captured: list[str] = []
        self.capture_status = "COMPLETED"

    async def create_order(self, invoice_id, amount):
        self.created.append((invoice_id, amount))
        return PayPalOrder(id=f"PAYPAL-{len(self.created)}", status="CREATED")

    async def capture_order(self, paypal_order_id):
        self.captured.append(paypal_order_id)
        return PayPalOrder(id=paypal_order_id, status=self.capture_status)


class FakeMinio:
    def __init__(self):
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], bytes] = {}

    def bucket_exists(self, bucket_name):
        return bucket_name in self.buckets

    def make_bucket(self, bucket_name):
        self.buckets.add(bucket_name)

    def put_object(self, bucket_name, object_name, data, length, content_type):
        self.objects[(bucket_name, object_name)] = data.read(length)

    def remove_object(self, bucket_name, object_name):
        self.objects.pop((bucket_name, object_name), None)

    def presigned_get_object(self, bucket_name, object_name, expires):
        return f"http://minio.test/{bucket_name}/{object_name}?expires={int(expires.total_seconds())}"


# ─── Database ──────────────────────────────────────────────────────────────────
@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'backoffice.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ─── App client ────────────────────────────────────────────────────────────────
@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def paypal():
    return FakePayPal()


@pytest.fixture
def minio():
    return FakeMinio()


@pytest_asyncio.fixture
async def client(session_factory, mailer, paypal, minio):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_payment_client] = lambda: paypal
    app.dependency_overrides[get_image_storage] = lambda: ImageStorage(minio)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


# ─── Helpers ───────────────────────────────────────────────────────────────────
def bearer(username: str, *roles: str) -> dict[str, str]:
    token = TokenService().issue_access_token(username, roles)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return bearer("admin", "ADMIN")


@pytest.fixture
def employee_headers():
    return bearer("clerk", "EMPLOYEE")


@pytest.fixture
def customer_headers():
    return bearer("alice", "CLIENT")


async def add_user(session, username="alice", password="Secret123!", roles=("CLIENT",), active=True, email=None):
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        hashed_password=hash_password(password),
        first_name=username.capitalize(),
        last_name="Tester",
        roles=list(roles),
        is_active=active,
    )
    session.add(user)
    await session.commit()
    return user


async def add_product(
    session,
    sku="SKU-1",
    name="Widget",
    selling_price="10.00",
    purchase_price="5.00",
    stock=3,
    min_stock=0,
    **extra,
):
    product = Product(
        sku=sku,
        name=name,
        selling_price=Decimal(selling_price),
        purchase_price=Decimal(purchase_price),
        stock_quantity=stock,
        min_stock=min_stock,
        images=[],
        **extra,
    )
    session.add(product)
    await session.commit()
    return product
