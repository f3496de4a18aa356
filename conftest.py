"""
Configuración común de tests.

La aplicación se apunta a una base SQLite en memoria antes de importarse;
cada test parte de un esquema vacío.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.database.database import Base, SessionLocal, engine
from app.main import app
from app.modules.departements.models import Departement
from app.modules.villes.models import Ville


@pytest.fixture(autouse=True)
def setup_database():
    """Crea las tablas antes de cada test y las elimina después."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def departements(db_session):
    """Departamentos de ejemplo: metropolitanos, Córcega y ultramar."""
    data = [
        ("13", "Bouches-du-Rhône"),
        ("75", "Paris"),
        ("2A", "Corse-du-Sud"),
        ("2B", "Haute-Corse"),
        ("971", "Guadeloupe"),
        ("33", None),
    ]
    created = {}
    for code, nom in data:
        departement = Departement(code=code, nom=nom)
        db_session.add(departement)
        created[code] = departement
    db_session.commit()
    return created


@pytest.fixture
def villes(db_session, departements):
    """Villes de ejemplo repartidas en 13, 75 y 2A."""
    data = [
        ("Marseille", 870_018, "13"),
        ("Aix-en-Provence", 147_122, "13"),
        ("Arles", 50_454, "13"),
        ("Paris", 2_133_111, "75"),
        ("Ajaccio", 71_361, "2A"),
        ("Porto-Vecchio", 10_000, "2A"),
    ]
    created = {}
    for nom, nb_habitants, code in data:
        ville = Ville(nom=nom, nb_habitants=nb_habitants, departement_id=departements[code].id)
        db_session.add(ville)
        created[nom] = ville
    db_session.commit()
    return created
