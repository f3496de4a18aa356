"""
CRUD operations for villes.
"""
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from .models import Ville


VILLE_SORT_KEYS = ("id", "nom", "nbHabitants")


class VilleCRUD:
    """Consultas sobre villes. Los resultados incluyen el departamento."""

    @staticmethod
    def _base_query(db: Session):
        return db.query(Ville).options(joinedload(Ville.departement))

    @staticmethod
    def _by_population_desc(query):
        return query.order_by(Ville.nb_habitants.desc(), Ville.id.asc())

    @staticmethod
    def find_all(db: Session) -> List[Ville]:
        return VilleCRUD._base_query(db).order_by(Ville.id).all()

    @staticmethod
    def find_all_paged(db: Session, page: int, size: int, sort_key: str = "id") -> Tuple[List[Ville], int]:
        if sort_key == "nom":
            ordering = [Ville.nom.asc()]
        elif sort_key == "nbHabitants":
            ordering = [Ville.nb_habitants.desc()]
        else:
            ordering = []

        total = db.query(func.count(Ville.id)).scalar()
        items = (
            VilleCRUD._base_query(db)
            .order_by(*ordering, Ville.id.asc())
            .offset(page * size)
            .limit(size)
            .all()
        )
        return items, total

    @staticmethod
    def find_by_id(db: Session, ville_id: int) -> Optional[Ville]:
        return VilleCRUD._base_query(db).filter(Ville.id == ville_id).first()

    @staticmethod
    def find_by_nom(db: Session, nom: str) -> Optional[Ville]:
        """Coincidencia exacta sin distinción de mayúsculas."""
        return VilleCRUD._base_query(db).filter(func.lower(Ville.nom) == func.lower(nom)).first()

    @staticmethod
    def find_by_nom_containing(db: Session, fragment: str) -> List[Ville]:
        return (
            VilleCRUD._base_query(db)
            .filter(Ville.nom.icontains(fragment, autoescape=True))
            .order_by(Ville.id)
            .all()
        )

    @staticmethod
    def find_by_nom_starting_with(db: Session, prefix: str) -> List[Ville]:
        return (
            VilleCRUD._base_query(db)
            .filter(Ville.nom.istartswith(prefix, autoescape=True))
            .order_by(Ville.nom.asc(), Ville.id.asc())
            .all()
        )

    @staticmethod
    def find_by_population_greater_than(db: Session, min_population: int) -> List[Ville]:
        query = VilleCRUD._base_query(db).filter(Ville.nb_habitants > min_population)
        return VilleCRUD._by_population_desc(query).all()

    @staticmethod
    def find_by_population_between(db: Session, min_population: int, max_population: int) -> List[Ville]:
        """Rango inclusivo en ambos extremos."""
        query = VilleCRUD._base_query(db).filter(Ville.nb_habitants.between(min_population, max_population))
        return VilleCRUD._by_population_desc(query).all()

    @staticmethod
    def find_by_departement(db: Session, departement_id: int) -> List[Ville]:
        query = VilleCRUD._base_query(db).filter(Ville.departement_id == departement_id)
        return VilleCRUD._by_population_desc(query).all()

    @staticmethod
    def find_by_departement_and_min_population(
        db: Session, departement_id: int, min_population: int
    ) -> List[Ville]:
        query = VilleCRUD._base_query(db).filter(
            Ville.departement_id == departement_id,
            Ville.nb_habitants > min_population,
        )
        return VilleCRUD._by_population_desc(query).all()

    @staticmethod
    def find_by_departement_and_population_range(
        db: Session, departement_id: int, min_population: int, max_population: int
    ) -> List[Ville]:
        query = VilleCRUD._base_query(db).filter(
            Ville.departement_id == departement_id,
            Ville.nb_habitants.between(min_population, max_population),
        )
        return VilleCRUD._by_population_desc(query).all()

    @staticmethod
    def find_top_n_by_departement(db: Session, departement_id: int, n: int) -> List[Ville]:
        query = VilleCRUD._base_query(db).filter(Ville.departement_id == departement_id)
        return VilleCRUD._by_population_desc(query).limit(n).all()

    @staticmethod
    def find_most_populated(db: Session, departement_id: int) -> Optional[Ville]:
        query = VilleCRUD._base_query(db).filter(Ville.departement_id == departement_id)
        return VilleCRUD._by_population_desc(query).first()

    @staticmethod
    def count_by_departement(db: Session, departement_id: int) -> int:
        return db.query(func.count(Ville.id)).filter(Ville.departement_id == departement_id).scalar() or 0

    @staticmethod
    def sum_population_by_departement(db: Session, departement_id: int) -> int:
        total = (
            db.query(func.sum(Ville.nb_habitants))
            .filter(Ville.departement_id == departement_id)
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def exists_by_nom(db: Session, nom: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Ville.id).filter(func.lower(Ville.nom) == func.lower(nom))
        if exclude_id is not None:
            query = query.filter(Ville.id != exclude_id)
        return db.query(query.exists()).scalar()

    @staticmethod
    def count(db: Session) -> int:
        return db.query(func.count(Ville.id)).scalar()
