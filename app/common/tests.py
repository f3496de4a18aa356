"""
Tests de los componentes comunes: errores, paginación, validadores y
endpoints de la aplicación.
"""

import pytest

from app.common.exceptions import (
    BusinessError,
    CONSTRAINT_VIOLATION,
    DELETE_FORBIDDEN,
    INVALID_DATA,
    OPERATION_FORBIDDEN,
    RESOURCE_ALREADY_EXISTS,
    RESOURCE_NOT_FOUND,
)
from app.common.pagination import Page
from app.common.validators import is_valid_nb_habitants, is_valid_nom


class TestBusinessError:
    """Clasificación de errores y su código HTTP"""

    @pytest.mark.parametrize("error, expected_status", [
        (BusinessError.resource_not_found("Ville", 1), 404),
        (BusinessError.resource_already_exists("Ville", "nom", "Paris"), 409),
        (BusinessError.delete_forbidden("le département 13", "il contient des villes"), 403),
        (BusinessError.operation_forbidden("import", "lecture seule"), 403),
        (BusinessError.invalid_data("Tri inconnu", sort="x"), 400),
        (BusinessError.constraint_violation("nb_habitants", 0), 400),
    ])
    def test_status_codes(self, error, expected_status):
        assert error.status_code == expected_status

    def test_codes(self):
        assert BusinessError.resource_not_found("Ville", 1).code == RESOURCE_NOT_FOUND
        assert BusinessError.resource_already_exists("Ville", "nom", "x").code == RESOURCE_ALREADY_EXISTS
        assert BusinessError.delete_forbidden("x", "y").code == DELETE_FORBIDDEN
        assert BusinessError.operation_forbidden("x", "y").code == OPERATION_FORBIDDEN
        assert BusinessError.invalid_data("x").code == INVALID_DATA
        assert BusinessError.constraint_violation("x", 1).code == CONSTRAINT_VIOLATION

    def test_details(self):
        error = BusinessError.invalid_data("Plage invalide", min=10, max=1)
        assert error.details == {"min": 10, "max": 1}
        assert str(error) == "Plage invalide"


class TestPage:

    def test_build(self):
        page = Page.build(["a", "b"], page=1, size=2, total=5)
        assert page.total_pages == 3
        assert page.model_dump(by_alias=True)["totalElements"] == 5

    def test_empty(self):
        assert Page.build([], page=0, size=20, total=0).total_pages == 0


class TestValidators:

    def test_nom(self):
        assert is_valid_nom("Ab")
        assert not is_valid_nom("A")
        assert not is_valid_nom("x" * 101)
        assert not is_valid_nom(None)
        assert is_valid_nom(None, required=False)

    def test_nb_habitants(self):
        assert is_valid_nb_habitants(1)
        assert is_valid_nb_habitants(50_000_000)
        assert not is_valid_nb_habitants(0)
        assert not is_valid_nb_habitants(50_000_001)
        assert not is_valid_nb_habitants(None)


class TestApplication:

    def test_root(self, client):
        data = client.get("/").json()
        assert data["message"] == "Géo France API is running"
        assert data["environment"] == "test"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Process-Time-Ms" in response.headers

    def test_query_validation_error(self, client):
        response = client.get("/villes", params={"page": -1})
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == INVALID_DATA
        assert body["status"] == 400
