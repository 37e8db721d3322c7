import os

# Antes de importar la app: SQLite en memoria, sin SMTP real, sin webhooks
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_ASYNC_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")
os.environ.setdefault("DISCORD_WEBHOOK_URL", "")
os.environ.setdefault("RATELIMIT_REST_URL", "")

import decimal
import uuid
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from nodo360.core.deps import AuthorizationService
from nodo360.core.ratelimit import get_rate_limiter
from nodo360.db.models.database import Base, Courses, Lessons, Modules, User
from nodo360.db.rpc import RpcClient, RpcError
from nodo360.db.session import get_session
from nodo360.main import app
from nodo360.services.shares.discord import DiscordNotifier, get_discord_notifier
from nodo360.services.shares.mailer import get_mailer_service


class FakeAuthorization:
    """Sustituye a AuthorizationService: el usuario lo fija cada test."""

    def __init__(self):
        self.user: Optional[User] = None

    async def get_current_user(self) -> User:
        if self.user is None:
            raise HTTPException(status_code=401, detail="No autenticado")
        return self.user

    async def get_current_user_if_any(self) -> Optional[User]:
        return self.user

    async def require_role(self, required_roles: Optional[List[str]] = None) -> User:
        user = await self.get_current_user()
        if required_roles and user.role not in required_roles:
            raise HTTPException(status_code=403, detail="No tienes permisos")
        return user


class FakeRpc:
    """RPCs en memoria: `results[name]` es un valor o una función(**params)."""

    def __init__(self):
        self.results: Dict[str, Any] = {}
        self.failing: set = set()
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def call(self, name: str, **params: Any) -> Any:
        self.calls.append((name, params))
        if name in self.failing:
            raise RpcError(name, "fallo simulado")
        result = self.results.get(name)
        return result(**params) if callable(result) else result

    def called(self, name: str) -> List[Dict[str, Any]]:
        return [params for n, params in self.calls if n == name]


class FakeMailer:
    """Registra los envíos en vez de usar SMTP."""

    def __init__(self):
        self.sent: List[Tuple[str, tuple]] = []
        self.fail = False

    def __getattr__(self, name: str):
        if not name.startswith("send_"):
            raise AttributeError(name)

        async def record(*args, **kwargs):
            self.sent.append((name, args))
            if self.fail:
                return {"success": False, "error": "smtp caído"}
            return {"success": True, "error": None}

        return record

    def kinds(self) -> List[str]:
        return [name for name, _ in self.sent]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def auth():
    return FakeAuthorization()


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    get_rate_limiter.cache_clear()
    yield
    get_rate_limiter.cache_clear()


@pytest.fixture
async def client(db, auth, rpc, mailer):
    async def override_session():
        yield db

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[AuthorizationService] = lambda: auth
    app.dependency_overrides[RpcClient] = lambda: rpc
    app.dependency_overrides[get_mailer_service] = lambda: mailer
    app.dependency_overrides[get_discord_notifier] = lambda: DiscordNotifier(webhook_url="")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ==============================
# 🧱 Datos de prueba
# ==============================


@pytest.fixture
def make_user(db):
    async def _make(role: str = "student", **kwargs) -> User:
        user = User(
            email=kwargs.pop("email", f"{uuid.uuid4().hex[:8]}@nodo360.test"),
            full_name=kwargs.pop("full_name", f"Usuario {role}"),
            role=role,
            **kwargs,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def make_course(db):
    async def _make(instructor: Optional[User] = None, **kwargs) -> Courses:
        slug = kwargs.pop("slug", f"curso-{uuid.uuid4().hex[:6]}")
        course = Courses(
            slug=slug,
            title=kwargs.pop("title", f"Curso {slug}"),
            status=kwargs.pop("status", "published"),
            price=kwargs.pop("price", decimal.Decimal("0")),
            is_free=kwargs.pop("is_free", True),
            instructor_id=instructor.id if instructor else None,
            **kwargs,
        )
        db.add(course)
        await db.commit()
        return course

    return _make


@pytest.fixture
def make_module_with_lessons(db):
    async def _make(course: Courses, lessons: int = 3, order_index: int = 0):
        module = Modules(course_id=course.id, title=f"Módulo {order_index}", order_index=order_index)
        db.add(module)
        await db.commit()
        items = []
        for i in range(lessons):
            lesson = Lessons(
                module_id=module.id,
                title=f"Lección {i}",
                slug=f"leccion-{order_index}-{i}",
                order_index=i,
            )
            db.add(lesson)
            items.append(lesson)
        await db.commit()
        return module, items

    return _make
