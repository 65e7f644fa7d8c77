import httpx
import pytest

from storefront.models.database import init_db, save_product
from storefront.models.schemas import Product
from storefront.services.assistant_client import AssistantClient

PHONE = {
    "id": "p-phone",
    "name": "Smartphone X",
    "description": "Pantalla OLED de 6,1 pulgadas y doble cámara",
    "price": 10.0,
    "image_url": "https://cdn.example.com/phone.jpg",
    "category": "Móviles",
}

CHARGER = {
    "id": "p-charger",
    "name": "Cargador USB-C",
    "description": "Carga rápida de 30 W",
    "price": 3.5,
    "category": "Accesorios",
}

TEXT_URL = "http://rag.test/api/query"
VOICE_URL = "http://rag.test/api/voice"


@pytest.fixture
async def db_path(tmp_path):
    path = str(tmp_path / "store.db")
    await init_db(path)
    await save_product(path, PHONE)
    await save_product(path, CHARGER)
    return path


@pytest.fixture
def make_client():
    """Build an AssistantClient whose requests are answered by ``handler``."""
    def factory(handler) -> AssistantClient:
        client = AssistantClient(TEXT_URL, VOICE_URL, transport=httpx.MockTransport(handler))
        return client

    return factory


@pytest.fixture
def phone() -> Product:
    return Product(**PHONE)
