import itertools
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Generator, Optional

from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine

# --- Add project root to sys.path ---
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import models
from main import app # FastAPI app instance
from database import get_session as original_get_session
from core import rate_limit
from core.security import create_access_token, get_password_hash
from models import DemoStatus, UserRole

TEST_PASSWORD = "secret123"
# Hashed once; bcrypt is deliberately slow.
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

_user_seq = itertools.count(1)


class ApiTestCase(unittest.TestCase):
    """
    Runs the app against a throw-away SQLite file per test class. Tables are
    created and dropped around every test.
    """
    client: TestClient
    engine = None

    @classmethod
    def setUpClass(cls):
        cls._tmp_dir = tempfile.mkdtemp(prefix="demo_hub_test_")
        db_file = os.path.join(cls._tmp_dir, "test.db")
        cls.engine = create_engine(f"sqlite:///{db_file}", echo=False, connect_args={"check_same_thread": False})
        engine = cls.engine

        def override_get_session() -> Generator[Session, None, None]:
            with Session(engine) as session:
                yield session

        app.dependency_overrides[original_get_session] = override_get_session
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        app.dependency_overrides.pop(original_get_session, None)
        cls.engine.dispose()
        shutil.rmtree(cls._tmp_dir, ignore_errors=True)

    def setUp(self):
        SQLModel.metadata.create_all(self.engine)
        rate_limit.reset()

    def tearDown(self):
        SQLModel.metadata.drop_all(self.engine)

    # --- Helpers ---

    def session(self) -> Session:
        return Session(self.engine)

    def make_user(
        self,
        role: UserRole = UserRole.sales,
        email: Optional[str] = None,
        name: Optional[str] = None,
        is_active: bool = True,
        **fields,
    ) -> models.User:
        with self.session() as db:
            user = models.User(
                name=name or f"{role.value.title()} User",
                email=email or f"{role.value}{next(_user_seq)}@example.com",
                hashed_password=TEST_PASSWORD_HASH,
                role=role,
                is_active=is_active,
                **fields,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            return user

    def auth_headers(self, user: models.User) -> dict:
        token = create_access_token({"sub": user.email, "role": UserRole(user.role).value})
        return {"Authorization": f"Bearer {token}"}

    def make_product(self, name: str = "Acme CRM", **fields) -> models.Product:
        with self.session() as db:
            product = models.Product(name=name, **fields)
            db.add(product)
            db.commit()
            db.refresh(product)
            return product

    def make_demo(
        self,
        product_id: int,
        title: str = "Pipeline tour",
        status: DemoStatus = DemoStatus.active,
        **fields,
    ) -> models.Demo:
        fields.setdefault("url", "https://example.com/demo")
        with self.session() as db:
            demo = models.Demo(product_id=product_id, title=title, status=status, **fields)
            db.add(demo)
            db.commit()
            db.refresh(demo)
            return demo

    def assign(self, user_id: int, demo_id: int, assigned_by_user_id: Optional[int] = None) -> None:
        with self.session() as db:
            db.add(models.DemoAssignment(user_id=user_id, demo_id=demo_id, assigned_by_user_id=assigned_by_user_id))
            db.commit()

    def make_lead(self, email: str = "prospect@example.com", name: str = "Pat Prospect", **fields) -> models.Lead:
        with self.session() as db:
            lead = models.Lead(name=name, email=email, **fields)
            db.add(lead)
            db.commit()
            db.refresh(lead)
            return lead

    def make_feedback(self, demo_id: int, system_rating: int = 4, **fields) -> models.Feedback:
        with self.session() as db:
            fb = models.Feedback(demo_id=demo_id, system_rating=system_rating, **fields)
            db.add(fb)
            db.commit()
            db.refresh(fb)
            return fb
