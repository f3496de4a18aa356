"""
Tests para el módulo de Departamentos

Cubren:
- Validación de códigos de departamento
- Consultas por región (metropolitanos, Córcega, ultramar) y por población
- Creación, actualización y borrado con sus reglas de negocio
- Completado de nombres oficiales y sincronización con la API externa
- Endpoints HTTP y formato de errores
"""

import pytest
import requests

from app.common.exceptions import (
    BusinessError,
    CONSTRAINT_VIOLATION,
    DELETE_FORBIDDEN,
    RESOURCE_ALREADY_EXISTS,
    RESOURCE_NOT_FOUND,
)
from app.common.validators import is_valid_departement_code, normalize_departement_code
from app.modules.departements import sync as sync_module
from app.modules.departements.models import Departement
from app.modules.departements.seed_data import NOMS_DEPARTEMENTS, seed_departements
from app.modules.departements.service import DepartementService
from app.modules.departements.sync import fetch_departements, sync_departements
from app.modules.villes.models import Ville


# ===== VALIDADORES =====

class TestDepartementCodeValidation:
    """Tests del formato de códigos"""

    @pytest.mark.parametrize("code", ["01", "19", "21", "95", "2A", "2B", "971", "978", "2a", " 75 "])
    def test_valid_codes(self, code):
        assert is_valid_departement_code(code)

    @pytest.mark.parametrize("code", ["20", "96", "2C", "979", "00", "1", "9710", "", None])
    def test_invalid_codes(self, code):
        assert not is_valid_departement_code(code)

    def test_normalize(self):
        assert normalize_departement_code(" 2b ") == "2B"
        assert normalize_departement_code(None) is None

    def test_reference_table_is_complete(self):
        """101 departamentos y todos los códigos son válidos"""
        assert len(NOMS_DEPARTEMENTS) == 101
        assert all(is_valid_departement_code(code) for code in NOMS_DEPARTEMENTS)


# ===== SERVICIO: CONSULTAS =====

class TestDepartementQueries:
    """Tests de las consultas del servicio"""

    def test_find_corse(self, db_session):
        """Sobre {2A, 2B, 13, 75} solo devuelve los dos de Córcega"""
        for code in ("2A", "2B", "13", "75"):
            db_session.add(Departement(code=code))
        db_session.commit()

        result = DepartementService(db_session).find_corse()
        assert sorted(d.code for d in result) == ["2A", "2B"]

    def test_find_metropolitains_excludes_corse_and_outre_mer(self, db_session, departements):
        codes = [d.code for d in DepartementService(db_session).find_metropolitains()]
        assert codes == ["13", "75", "33"]

    def test_find_outre_mer(self, db_session, departements):
        assert [d.code for d in DepartementService(db_session).find_outre_mer()] == ["971"]

    def test_find_by_code_normalizes(self, db_session, departements):
        departement = DepartementService(db_session).find_by_code("2a")
        assert departement is not None
        assert departement.code == "2A"

    def test_find_by_unknown_code_returns_none(self, db_session, departements):
        assert DepartementService(db_session).find_by_code("01") is None

    def test_villes_ordered_by_population_desc(self, db_session, villes):
        departement = DepartementService(db_session).get_by_code("13")
        assert [v.nom for v in departement.villes] == ["Marseille", "Aix-en-Provence", "Arles"]
        assert departement.nombre_villes == 3
        assert departement.population_totale == 870_018 + 147_122 + 50_454

    def test_min_population_is_inclusive(self, db_session, villes):
        """Un departamento cuya población es exactamente el mínimo se incluye"""
        result = DepartementService(db_session).find_with_min_population(71_361 + 10_000)
        assert sorted(d.code for d in result) == ["13", "2A", "75"]

    def test_min_population_zero_includes_empty_departements(self, db_session, villes):
        """Un departamento sin villes suma 0"""
        service = DepartementService(db_session)
        assert sorted(d.code for d in service.find_with_min_population(0)) == ["13", "2A", "2B", "33", "75", "971"]
        assert sorted(d.code for d in service.find_with_min_population(1)) == ["13", "2A", "75"]

    def test_min_villes(self, db_session, villes):
        result = DepartementService(db_session).find_with_min_villes(2)
        assert sorted(d.code for d in result) == ["13", "2A"]

    def test_with_and_without_nom(self, db_session, departements):
        service = DepartementService(db_session)
        assert [d.code for d in service.find_without_nom()] == ["33"]
        assert len(service.find_with_nom()) == 5

    def test_with_villes(self, db_session, villes):
        codes = sorted(d.code for d in DepartementService(db_session).find_with_villes())
        assert codes == ["13", "2A", "75"]

    def test_search_on_nom_and_code(self, db_session, departements):
        service = DepartementService(db_session)
        assert [d.code for d in service.search("corse")] == ["2A", "2B"]
        assert [d.code for d in service.search("97")] == ["971"]

    def test_search_treats_wildcards_literally(self, db_session, departements):
        service = DepartementService(db_session)
        assert service.search("_") == []
        assert service.search("%") == []

    def test_code_prefix(self, db_session, departements):
        assert [d.code for d in DepartementService(db_session).find_by_code_prefix("2")] == ["2A", "2B"]

    def test_paged_by_population(self, db_session, villes):
        items, total = DepartementService(db_session).find_all_paged(0, 3, "population")
        assert total == 6
        assert [d.code for d in items] == ["75", "13", "2A"]

    def test_paged_unknown_sort(self, db_session, departements):
        with pytest.raises(BusinessError) as exc:
            DepartementService(db_session).find_all_paged(0, 10, "superficie")
        assert exc.value.code == "INVALID_DATA"


# ===== SERVICIO: ESTADÍSTICAS =====

class TestDepartementStats:
    """Tests de estadísticas"""

    def test_stats_by_code(self, db_session, villes):
        stats = DepartementService(db_session).get_stats_by_code("2A")
        assert stats.nombre_villes == 2
        assert stats.population_totale == 81_361

    def test_stats_without_villes(self, db_session, departements):
        stats = DepartementService(db_session).get_stats_by_code("971")
        assert stats.nombre_villes == 0
        assert stats.population_totale == 0

    def test_stats_unknown_code(self, db_session, departements):
        with pytest.raises(BusinessError) as exc:
            DepartementService(db_session).get_stats_by_code("01")
        assert exc.value.code == RESOURCE_NOT_FOUND

    def test_count_villes_unknown_id(self, db_session):
        with pytest.raises(BusinessError) as exc:
            DepartementService(db_session).count_villes(9999)
        assert exc.value.code == RESOURCE_NOT_FOUND


# ===== SERVICIO: ESCRITURAS =====

class TestDepartementWrites:
    """Tests de creación, actualización y borrado"""

    def test_create_then_find(self, db_session):
        service = DepartementService(db_session)
        created = service.create_departement("2b", "Haute-Corse")
        assert created.code == "2B"

        found = service.find_by_code("2B")
        assert found.id == created.id
        assert found.nom == "Haute-Corse"

    def test_create_invalid_code(self, db_session):
        with pytest.raises(BusinessError) as exc:
            DepartementService(db_session).create_departement("20")
        assert exc.value.code == CONSTRAINT_VIOLATION
        assert DepartementService(db_session).count() == 0

    def test_create_duplicate_code(self, db_session, departements):
        with pytest.raises(BusinessError) as exc:
            DepartementService(db_session).create_departement("75", "Paris bis")
        assert exc.value.code == RESOURCE_ALREADY_EXISTS

    def test_update_to_existing_code(self, db_session, departements):
        service = DepartementService(db_session)
        with pytest.raises(BusinessError) as exc:
            service.update_departement(departements["13"].id, "75", "Doublon")
        assert exc.value.code == RESOURCE_ALREADY_EXISTS

    def test_update_nom(self, db_session, departements):
        updated = DepartementService(db_session).update_nom("33", "Gironde")
        assert updated.nom == "Gironde"

    def test_delete_without_villes(self, db_session, departements):
        service = DepartementService(db_session)
        service.delete_departement(departements["971"].id)
        assert service.find_by_code("971") is None

    def test_delete_with_villes_is_forbidden(self, db_session, villes):
        service = DepartementService(db_session)
        departement = service.get_by_code("13")
        with pytest.raises(BusinessError) as exc:
            service.delete_departement(departement.id)
        assert exc.value.code == DELETE_FORBIDDEN

        # Nothing changed
        assert service.find_by_code("13") is not None
        assert service.count_villes_by_code("13") == 3

    def test_update_noms_manquants_is_idempotent(self, db_session, departements):
        service = DepartementService(db_session)
        assert service.update_noms_manquants() == 1
        assert service.get_by_code("33").nom == "Gironde"

        assert service.update_noms_manquants() == 0
        assert service.find_without_nom() == []

    def test_seed_departements(self, db_session, departements):
        created = seed_departements(db_session)
        assert created == 101 - len(departements)
        assert DepartementService(db_session).count() == 101


# ===== SINCRONIZACIÓN =====

class _FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class TestDepartementSync:
    """Tests de la sincronización con geo.api.gouv.fr"""

    def test_sync_creates_updates_and_ignores(self, db_session, departements):
        incoming = [
            {"code": "01", "nom": "Ain"},             # nuevo
            {"code": "33", "nom": "Gironde"},         # nombre ausente en base
            {"code": "75", "nom": "Paris"},           # idéntico
            {"code": "13", "nom": None},              # sin nombre: nunca sobrescribe
        ]
        report = sync_departements(db_session, incoming)

        assert report.total_incoming == 4
        assert report.created == 1
        assert report.updated == 1
        assert report.ignored == 2

        db_session.expire_all()
        service = DepartementService(db_session)
        assert service.get_by_code("01").nom == "Ain"
        assert service.get_by_code("33").nom == "Gironde"
        assert service.get_by_code("13").nom == "Bouches-du-Rhône"

    def test_sync_duplicates_last_wins(self, db_session):
        incoming = [{"code": "2a", "nom": "Corse"}, {"code": "2A", "nom": "Corse-du-Sud"}]
        report = sync_departements(db_session, incoming)

        assert report.created == 1
        assert DepartementService(db_session).get_by_code("2A").nom == "Corse-du-Sud"

    def test_sync_ignores_invalid_names(self, db_session, departements):
        incoming = [
            {"code": "01", "nom": "A"},
            {"code": "02", "nom": "x" * 101},
            {"code": "75", "nom": "P" * 101},
        ]
        report = sync_departements(db_session, incoming)

        assert report.created == 0
        assert report.updated == 0
        assert report.ignored == 3
        db_session.expire_all()
        service = DepartementService(db_session)
        assert service.find_by_code("01") is None
        assert service.get_by_code("75").nom == "Paris"

    def test_sync_dry_run_writes_nothing(self, db_session):
        report = sync_departements(db_session, [{"code": "01", "nom": "Ain"}], dry_run=True)
        assert report.created == 1
        assert DepartementService(db_session).count() == 0

    def test_fetch_departements(self, monkeypatch):
        calls = {}

        def fake_get(url, timeout, headers):
            calls["url"] = url
            calls["timeout"] = timeout
            return _FakeResponse([
                {"nom": "Ain", "code": "01", "codeRegion": "84"},
                {"nom": "Aisne", "code": "02", "codeRegion": "32"},
            ])

        monkeypatch.setattr(sync_module.requests, "get", fake_get)
        result = fetch_departements("https://example.test/departements", 5)

        assert calls == {"url": "https://example.test/departements", "timeout": 5}
        assert result == [{"code": "01", "nom": "Ain"}, {"code": "02", "nom": "Aisne"}]

    def test_fetch_departements_http_error(self, monkeypatch):
        monkeypatch.setattr(
            sync_module.requests, "get",
            lambda url, timeout, headers: _FakeResponse({}, status_code=503)
        )
        with pytest.raises(requests.HTTPError):
            fetch_departements("https://example.test/departements", 5)

    def test_fetch_departements_unexpected_payload(self, monkeypatch):
        monkeypatch.setattr(
            sync_module.requests, "get",
            lambda url, timeout, headers: _FakeResponse({"code": "01"})
        )
        with pytest.raises(ValueError):
            fetch_departements("https://example.test/departements", 5)


# ===== ENDPOINTS =====

class TestDepartementEndpoints:
    """Tests de la API HTTP"""

    def test_list_paged(self, client, departements):
        response = client.get("/departements", params={"page": 0, "size": 4, "sort": "code"})
        assert response.status_code == 200
        data = response.json()
        assert data["totalElements"] == 6
        assert data["totalPages"] == 2
        assert [d["code"] for d in data["content"]] == ["13", "2A", "2B", "33"]

    def test_list_unknown_sort(self, client, departements):
        response = client.get("/departements", params={"sort": "superficie"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATA"

    def test_get_by_code_projection(self, client, villes):
        response = client.get("/departements/code/2a")
        assert response.status_code == 200
        data = response.json()
        assert data["code"] == "2A"
        assert data["nombreVilles"] == 2
        assert data["populationTotale"] == 81_361
        assert data["villes"][0] == {"id": villes["Ajaccio"].id, "nom": "Ajaccio", "nbHabitants": 71_361}
        # No reverse reference inside the simplified villes
        assert "departement" not in data["villes"][0]

    def test_get_unknown_id_error_body(self, client):
        response = client.get("/departements/9999")
        assert response.status_code == 404
        body = response.json()
        assert body["code"] == RESOURCE_NOT_FOUND
        assert body["status"] == 404
        assert body["path"] == "/departements/9999"
        assert "timestamp" in body
        assert "detail" in body

    def test_create(self, client):
        response = client.post("/departements", json={"code": "01", "nom": "Ain"})
        assert response.status_code == 201
        assert response.json()["code"] == "01"

        response = client.get("/departements/code/01")
        assert response.status_code == 200
        assert response.json()["nom"] == "Ain"

    def test_create_invalid_code(self, client):
        response = client.post("/departements", json={"code": "96", "nom": "Inconnu"})
        assert response.status_code == 400
        assert response.json()["code"] == CONSTRAINT_VIOLATION

    def test_create_duplicate(self, client, departements):
        response = client.post("/departements/creation-rapide", params={"code": "2b"})
        assert response.status_code == 409
        assert response.json()["code"] == RESOURCE_ALREADY_EXISTS

    def test_create_body_validation(self, client):
        response = client.post("/departements", json={"nom": "Sans code"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATA"

    def test_update(self, client, departements):
        response = client.put(
            f"/departements/{departements['33'].id}",
            json={"code": "33", "nom": "Gironde"}
        )
        assert response.status_code == 200
        assert response.json()["nom"] == "Gironde"

    def test_delete(self, client, villes, departements):
        assert client.delete(f"/departements/{departements['971'].id}").status_code == 204

        response = client.delete(f"/departements/{departements['13'].id}")
        assert response.status_code == 403
        assert response.json()["code"] == DELETE_FORBIDDEN

    def test_update_noms_manquants(self, client, departements):
        response = client.put("/departements/update-noms-manquants")
        assert response.status_code == 200
        assert response.json()["updated"] == 1
        assert client.put("/departements/update-noms-manquants").json()["updated"] == 0

    def test_region_endpoints(self, client, departements):
        assert [d["code"] for d in client.get("/departements/corse").json()] == ["2A", "2B"]
        assert [d["code"] for d in client.get("/departements/outre-mer").json()] == ["971"]
        assert [d["code"] for d in client.get("/departements/metropolitains").json()] == ["13", "75", "33"]

    def test_stats_endpoints(self, client, villes):
        stats = client.get("/departements/code/13/stats").json()
        assert stats["nombreVilles"] == 3
        assert client.get("/departements/code/75/population-totale").json() == 2_133_111
        assert client.get("/departements/code/2A/nombre-villes").json() == 2
        assert client.get("/departements/code/01/stats").status_code == 404

    def test_villes_of_departement(self, client, villes, departements):
        response = client.get(f"/departements/{departements['13'].id}/villes")
        assert [v["nom"] for v in response.json()] == ["Marseille", "Aix-en-Provence", "Arles"]

        top = client.get("/departements/code/13/villes/top", params={"n": 2}).json()
        assert [v["nom"] for v in top] == ["Marseille", "Aix-en-Provence"]

        # Unknown code: empty list, not an error
        assert client.get("/departements/code/01/villes").json() == []

    def test_count_and_exists(self, client, departements):
        assert client.get("/departements/count").json() == 6
        assert client.get("/departements/exists/code/2a").json() is True
        assert client.get("/departements/exists/code/01").json() is False
