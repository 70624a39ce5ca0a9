"""
Fixtures para tests de integración API.
Usa TestClient de FastAPI contra la app real; el servicio de alertas se
reemplaza con dependency_overrides para que cada test use sus propios datos.
"""
import pytest
import sys
from pathlib import Path

# Asegurar que el path permita imports de inventory_alerts
root_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(root_dir))

from fastapi.testclient import TestClient

# Import app después de path
from inventory_alerts.main import app
from inventory_alerts.dependencies import get_alert_service


@pytest.fixture(scope="session")
def client():
    """Cliente HTTP para tests de API."""
    return TestClient(app)


@pytest.fixture
def override_service(service):
    """Dirige los endpoints de alertas al servicio de prueba con datos cargados."""
    app.dependency_overrides[get_alert_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_alert_service, None)


@pytest.fixture
def use_service():
    """Instala un servicio cualquiera (stubs para los caminos de error)."""
    def install(stub):
        app.dependency_overrides[get_alert_service] = lambda: stub
        return stub
    yield install
    app.dependency_overrides.pop(get_alert_service, None)
