import pytest
from httpx import ASGITransport, AsyncClient

from perfstore.core.deps import get_store
from perfstore.database import Store
from perfstore.main import app
from perfstore.schemas.employee import EmployeeRow
from perfstore.services import importer


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'perfstore.db'}"


@pytest.fixture
async def store(db_url):
    store = Store(db_url)
    await store.open()
    yield store
    await store.close()


@pytest.fixture
async def staff(store):
    """Master data shared by most import tests."""
    await importer.import_employees(store, [
        EmployeeRow(name="Ana Putri", nip="1001", gol="III/a", jabatan="Staf Keuangan"),
        EmployeeRow(name="Budi Santoso", nip="1002", gol="IV/a", jabatan="Kepala Seksi"),
        EmployeeRow(name="Jane Doe", nip="1003"),
    ])
    return store


@pytest.fixture
async def client(store):
    app.dependency_overrides[get_store] = lambda: store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
