"""
Tests para el módulo de Villes

Cubren:
- Consultas por nombre, población y departamento
- Unicidad global del nombre
- Rango de población permitido (1 a 50 millones)
- Importación masiva todo-o-nada
- Endpoints HTTP
"""

import pytest

from app.common.exceptions import (
    BusinessError,
    CONSTRAINT_VIOLATION,
    INVALID_DATA,
    RESOURCE_ALREADY_EXISTS,
    RESOURCE_NOT_FOUND,
)
from app.modules.departements.models import Departement
from app.modules.villes.schemas import DepartementRef, VilleCreate, VilleUpdate
from app.modules.villes.service import VilleService


def _ville(nom, nb_habitants, code=None, departement_id=None):
    return VilleCreate(
        nom=nom,
        nb_habitants=nb_habitants,
        departement=DepartementRef(id=departement_id, code=code),
    )


# ===== CONSULTAS =====

class TestVilleQueries:
    """Tests de las consultas del servicio"""

    def test_population_between_is_inclusive(self, db_session, villes):
        """Una ville con exactamente 10000 habitantes entra en between(10000, 10000)"""
        result = VilleService(db_session).find_by_population_between(10_000, 10_000)
        assert [v.nom for v in result] == ["Porto-Vecchio"]

    def test_population_between_invalid_range(self, db_session, villes):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).find_by_population_between(100, 10)
        assert exc.value.code == INVALID_DATA

    def test_population_greater_than_is_strict(self, db_session, villes):
        result = VilleService(db_session).find_by_population_greater_than(71_361)
        assert [v.nom for v in result] == ["Paris", "Marseille", "Aix-en-Provence"]

    def test_top_n_by_departement(self, db_session, villes):
        service = VilleService(db_session)
        top = service.find_top_n_by_departement("13", 2)
        all_villes = service.find_by_departement_and_min_population("13", 0)

        assert len(top) <= 2
        assert [v.nb_habitants for v in top] == sorted((v.nb_habitants for v in top), reverse=True)
        assert {v.id for v in top} <= {v.id for v in all_villes}
        assert [v.nom for v in top] == ["Marseille", "Aix-en-Provence"]

    def test_top_n_must_be_positive(self, db_session, villes):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).find_top_n_by_departement("13", 0)
        assert exc.value.code == INVALID_DATA

    def test_departement_and_min_population(self, db_session, villes):
        service = VilleService(db_session)
        assert [v.nom for v in service.find_by_departement_and_min_population("13", 50_454)] == [
            "Marseille", "Aix-en-Provence"
        ]
        # Without a minimum, every ville of the département
        assert len(service.find_by_departement_and_min_population("13", None)) == 3

    def test_departement_and_population_range(self, db_session, villes):
        result = VilleService(db_session).find_by_departement_and_population_range("2a", 10_000, 71_361)
        assert [v.nom for v in result] == ["Ajaccio", "Porto-Vecchio"]

    def test_unknown_departement_returns_empty(self, db_session, villes):
        service = VilleService(db_session)
        assert service.find_by_departement("01") == []
        assert service.find_top_n_by_departement("01", 3) == []
        assert service.find_most_populated("01") is None

    def test_nom_queries(self, db_session, villes):
        service = VilleService(db_session)
        assert service.get_by_nom("marseille").nom == "Marseille"
        assert [v.nom for v in service.find_by_nom_containing("ar")] == ["Marseille", "Arles", "Paris"]
        assert [v.nom for v in service.find_by_nom_starting_with("a")] == ["Aix-en-Provence", "Ajaccio", "Arles"]

    def test_nom_lookup_with_accented_capital(self, db_session, departements):
        """Un nombre que empieza por mayúscula acentuada se encuentra y sigue siendo único"""
        service = VilleService(db_session)
        created = service.create_ville(_ville("Évry", 53_000, code="75"))

        assert service.get_by_nom("Évry").id == created.id
        with pytest.raises(BusinessError) as exc:
            service.create_ville(_ville("ÉVRY", 1, code="13"))
        assert exc.value.code == RESOURCE_ALREADY_EXISTS
        assert service.count() == 1

    def test_nom_containing_treats_wildcards_literally(self, db_session, villes):
        service = VilleService(db_session)
        assert service.find_by_nom_containing("%") == []
        assert service.find_by_nom_containing("_") == []

    def test_get_by_nom_unknown(self, db_session, villes):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).get_by_nom("Atlantis")
        assert exc.value.code == RESOURCE_NOT_FOUND

    def test_recherche_avancee(self, db_session, villes):
        service = VilleService(db_session)
        assert [v.nom for v in service.recherche_avancee(code_departement="2A", min_population=20_000)] == ["Ajaccio"]
        assert [v.nom for v in service.recherche_avancee(nom="vecchio")] == ["Porto-Vecchio"]
        assert len(service.recherche_avancee()) == 6

    def test_paged_by_population(self, db_session, villes):
        items, total = VilleService(db_session).find_all_paged(0, 2, "nbHabitants")
        assert total == 6
        assert [v.nom for v in items] == ["Paris", "Marseille"]


# ===== ESTADÍSTICAS =====

class TestVilleStats:
    """Tests de estadísticas por departamento"""

    def test_scenario_departement_99(self, client, db_session):
        """Departamento 99 sembrado directamente y una ville de 500 habitantes"""
        db_session.add(Departement(code="99", nom=None))
        db_session.commit()

        response = client.post(
            "/villes",
            json={"nom": "Testville", "nbHabitants": 500, "departement": {"code": "99"}}
        )
        assert response.status_code == 201

        stats = client.get("/departements/code/99/stats").json()
        assert stats["nombreVilles"] == 1
        assert stats["populationTotale"] == 500

    def test_departement_stats_detail(self, db_session, villes):
        stats = VilleService(db_session).get_departement_stats("13")
        assert stats.departement.code == "13"
        assert stats.nombre_villes == 3
        assert stats.population_totale == 1_067_594
        assert stats.ville_la_plus_peuplee.nom == "Marseille"

    def test_departement_stats_without_villes(self, db_session, departements):
        stats = VilleService(db_session).get_departement_stats("971")
        assert stats.nombre_villes == 0
        assert stats.population_totale == 0
        assert stats.ville_la_plus_peuplee is None

    def test_stats_unknown_departement(self, db_session, departements):
        service = VilleService(db_session)
        for call in (service.get_departement_stats, service.count_by_departement, service.sum_population_by_departement):
            with pytest.raises(BusinessError) as exc:
                call("01")
            assert exc.value.code == RESOURCE_NOT_FOUND


# ===== ESCRITURAS =====

class TestVilleWrites:
    """Tests de creación, actualización, borrado e importación"""

    def test_create_by_code(self, db_session, departements):
        ville = VilleService(db_session).create_ville(_ville("Toulon", 180_452, code="13"))
        assert ville.id is not None
        assert ville.departement.code == "13"

    def test_create_by_id(self, db_session, departements):
        ville = VilleService(db_session).create_ville(_ville("Bastia", 48_503, departement_id=departements["2B"].id))
        assert ville.departement.code == "2B"

    def test_create_duplicate_nom(self, db_session, departements):
        """La segunda ville 'Metropolis' es rechazada"""
        service = VilleService(db_session)
        service.create_ville(_ville("Metropolis", 1_000, code="13"))
        with pytest.raises(BusinessError) as exc:
            service.create_ville(_ville("Metropolis", 2_000, code="75"))
        assert exc.value.code == RESOURCE_ALREADY_EXISTS
        assert service.count() == 1

    def test_create_duplicate_nom_ignores_case(self, db_session, villes):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).create_ville(_ville("PARIS", 10, code="75"))
        assert exc.value.code == RESOURCE_ALREADY_EXISTS

    def test_create_unknown_departement(self, db_session, departements):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).create_ville(_ville("Nulle-Part", 10, code="01"))
        assert exc.value.code == RESOURCE_NOT_FOUND

    def test_create_with_mismatched_id_and_code(self, db_session, departements):
        """id y código de departamentos distintos: se rechaza sin crear nada"""
        service = VilleService(db_session)
        with pytest.raises(BusinessError) as exc:
            service.create_ville(_ville("Toulon", 180_452, code="75", departement_id=departements["13"].id))
        assert exc.value.code == INVALID_DATA
        assert service.count() == 0

    def test_create_with_matching_id_and_code(self, db_session, departements):
        ville = VilleService(db_session).create_ville(
            _ville("Bastia", 48_503, code="2b", departement_id=departements["2B"].id)
        )
        assert ville.departement.code == "2B"

    def test_create_rapide_invalid_data(self, db_session, departements):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).create_ville_rapide("X", 10, "13")
        assert exc.value.code == INVALID_DATA

    def test_update_population_bounds(self, db_session, villes):
        """0 es rechazado; 1 es aceptado"""
        service = VilleService(db_session)
        ville_id = villes["Arles"].id

        with pytest.raises(BusinessError) as exc:
            service.update_population(ville_id, 0)
        assert exc.value.code == CONSTRAINT_VIOLATION
        assert service.get_by_id(ville_id).nb_habitants == 50_454

        assert service.update_population(ville_id, 1).nb_habitants == 1

    def test_update_population_above_max(self, db_session, villes):
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).update_population(villes["Paris"].id, 50_000_001)
        assert exc.value.code == CONSTRAINT_VIOLATION

    def test_update_moves_departement(self, db_session, villes):
        service = VilleService(db_session)
        update = VilleUpdate(nom="Ajaccio", nb_habitants=72_000, departement=DepartementRef(code="2B"))
        ville = service.update_ville(villes["Ajaccio"].id, update)
        assert ville.departement.code == "2B"
        assert service.count_by_departement("2A") == 1

    def test_update_to_existing_nom(self, db_session, villes):
        update = VilleUpdate(nom="marseille", nb_habitants=10, departement=DepartementRef(code="13"))
        with pytest.raises(BusinessError) as exc:
            VilleService(db_session).update_ville(villes["Arles"].id, update)
        assert exc.value.code == RESOURCE_ALREADY_EXISTS

    def test_delete(self, db_session, villes):
        service = VilleService(db_session)
        service.delete_ville(villes["Arles"].id)
        assert service.count() == 5
        with pytest.raises(BusinessError):
            service.delete_ville(9999)

    def test_import_all_or_nothing(self, db_session, villes):
        service = VilleService(db_session)
        batch = [
            _ville("Nice", 342_669, code="13"),
            _ville("Marseille", 1, code="13"),
        ]
        with pytest.raises(BusinessError) as exc:
            service.import_villes(batch)
        assert exc.value.code == RESOURCE_ALREADY_EXISTS
        assert exc.value.details["index"] == 1
        assert service.count() == 6

    def test_import_duplicate_within_batch(self, db_session, departements):
        service = VilleService(db_session)
        with pytest.raises(BusinessError):
            service.import_villes([_ville("Nice", 10, code="13"), _ville("nice", 20, code="75")])
        assert service.count() == 0

    def test_import_unknown_departement(self, db_session, departements):
        service = VilleService(db_session)
        with pytest.raises(BusinessError) as exc:
            service.import_villes([_ville("Nice", 10, code="13"), _ville("Lyon", 20, code="69")])
        assert exc.value.code == RESOURCE_NOT_FOUND
        assert exc.value.details["index"] == 1
        assert service.count() == 0

    def test_import(self, db_session, departements):
        imported = VilleService(db_session).import_villes([
            _ville("Nice", 342_669, code="13"),
            _ville("Bordeaux", 260_958, code="33"),
        ])
        assert [v.nom for v in imported] == ["Nice", "Bordeaux"]
        assert all(v.id is not None for v in imported)


# ===== ENDPOINTS =====

class TestVilleEndpoints:
    """Tests de la API HTTP"""

    def test_list_paged(self, client, villes):
        data = client.get("/villes", params={"size": 4}).json()
        assert data["totalElements"] == 6
        assert data["totalPages"] == 2
        assert len(data["content"]) == 4

    def test_get_projection(self, client, villes, departements):
        data = client.get(f"/villes/{villes['Paris'].id}").json()
        assert data["nom"] == "Paris"
        assert data["nbHabitants"] == 2_133_111
        assert data["departement"] == {"id": departements["75"].id, "code": "75", "nom": "Paris"}

    def test_get_unknown(self, client):
        response = client.get("/villes/9999")
        assert response.status_code == 404
        assert response.json()["code"] == RESOURCE_NOT_FOUND

    def test_create_duplicate(self, client, departements):
        payload = {"nom": "Metropolis", "nbHabitants": 1000, "departement": {"code": "13"}}
        assert client.post("/villes", json=payload).status_code == 201

        response = client.post("/villes", json=payload)
        assert response.status_code == 409
        assert response.json()["code"] == RESOURCE_ALREADY_EXISTS

    def test_create_invalid_population(self, client, departements):
        payload = {"nom": "Vide", "nbHabitants": 0, "departement": {"code": "13"}}
        response = client.post("/villes", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == INVALID_DATA

    def test_create_rapide(self, client, departements):
        response = client.post(
            "/villes/creation-rapide",
            params={"nom": "Ajaccio", "nbHabitants": 71_361, "codeDepartement": "2a"}
        )
        assert response.status_code == 200
        assert response.json()["departement"]["code"] == "2A"

    def test_update_population(self, client, villes):
        ville_id = villes["Arles"].id
        response = client.put(f"/villes/{ville_id}/population", params={"nouveauNb": 0})
        assert response.status_code == 400
        assert response.json()["code"] == CONSTRAINT_VIOLATION

        response = client.put(f"/villes/{ville_id}/population", params={"nouveauNb": 1})
        assert response.status_code == 200
        assert response.json()["nbHabitants"] == 1

    def test_delete(self, client, villes):
        assert client.delete(f"/villes/{villes['Arles'].id}").status_code == 204
        assert client.get("/villes/count").json() == 5

    def test_search_endpoints(self, client, villes):
        assert client.get("/villes/search/nom", params={"nom": "paris"}).json()["nom"] == "Paris"
        plage = client.get("/villes/search/population-plage", params={"min": 10_000, "max": 10_000}).json()
        assert [v["nom"] for v in plage] == ["Porto-Vecchio"]
        invalid = client.get("/villes/search/population-plage", params={"min": 10, "max": 1})
        assert invalid.status_code == 400

    def test_departement_endpoints(self, client, villes):
        assert len(client.get("/villes/departement/13").json()) == 3
        assert len(client.get("/villes/departement/13", params={"min": 100_000}).json()) == 2
        assert client.get("/villes/departement/13/plus-peuplee").json()["nom"] == "Marseille"
        assert client.get("/villes/departement/971/plus-peuplee").status_code == 404
        stats = client.get("/villes/departement/2A/stats").json()
        assert stats["nombreVilles"] == 2
        assert stats["villeLaPlusPeuplee"]["nom"] == "Ajaccio"

    def test_import_endpoint(self, client, departements):
        payload = [
            {"nom": "Nice", "nbHabitants": 342_669, "departement": {"code": "13"}},
            {"nom": "Bordeaux", "nbHabitants": 260_958, "departement": {"code": "33"}},
        ]
        response = client.post("/villes/import", json=payload)
        assert response.status_code == 201
        assert len(response.json()) == 2
