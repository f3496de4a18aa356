"""
CRUD operations for départements.
"""
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, select, exists, or_

from app.common.validators import CORSE_CODES, OUTRE_MER_PREFIX
from .models import Departement
from app.modules.villes.models import Ville


DEPARTEMENT_SORT_KEYS = ("nom", "code", "population", "nombreVilles")


def _population_subquery():
    return (
        select(func.coalesce(func.sum(Ville.nb_habitants), 0))
        .where(Ville.departement_id == Departement.id)
        .correlate(Departement)
        .scalar_subquery()
    )


def _nombre_villes_subquery():
    return (
        select(func.count(Ville.id))
        .where(Ville.departement_id == Departement.id)
        .correlate(Departement)
        .scalar_subquery()
    )


class DepartementCRUD:
    """Consultas sobre departamentos."""

    @staticmethod
    def _base_query(db: Session):
        return db.query(Departement).options(selectinload(Departement.villes))

    @staticmethod
    def find_all(db: Session) -> List[Departement]:
        """Todos los departamentos en orden de id."""
        return DepartementCRUD._base_query(db).order_by(Departement.id).all()

    @staticmethod
    def find_all_paged(
        db: Session, page: int, size: int, sort_key: str = "nom"
    ) -> Tuple[List[Departement], int]:
        """
        Página de departamentos.
        nom/code ascendente, population/nombreVilles descendente (calculados
        por agregación en la consulta); empates por id.
        """
        if sort_key == "code":
            ordering = [Departement.code.asc()]
        elif sort_key == "population":
            ordering = [_population_subquery().desc()]
        elif sort_key == "nombreVilles":
            ordering = [_nombre_villes_subquery().desc()]
        else:
            ordering = [Departement.nom.asc()]

        total = db.query(func.count(Departement.id)).scalar()
        items = (
            DepartementCRUD._base_query(db)
            .order_by(*ordering, Departement.id.asc())
            .offset(page * size)
            .limit(size)
            .all()
        )
        return items, total

    @staticmethod
    def find_by_id(db: Session, departement_id: int) -> Optional[Departement]:
        return DepartementCRUD._base_query(db).filter(Departement.id == departement_id).first()

    @staticmethod
    def find_by_code(db: Session, code: str) -> Optional[Departement]:
        """Departamento por código normalizado, con sus villes (población desc)."""
        return DepartementCRUD._base_query(db).filter(Departement.code == code).first()

    @staticmethod
    def find_by_nom(db: Session, nom: str) -> Optional[Departement]:
        return DepartementCRUD._base_query(db).filter(Departement.nom == nom).first()

    @staticmethod
    def search(db: Session, term: str) -> List[Departement]:
        """Subcadena sin distinción de mayúsculas en nom o code."""
        return (
            DepartementCRUD._base_query(db)
            .filter(or_(
                Departement.nom.icontains(term, autoescape=True),
                Departement.code.icontains(term, autoescape=True),
            ))
            .order_by(Departement.id)
            .all()
        )

    @staticmethod
    def find_with_nom(db: Session) -> List[Departement]:
        return DepartementCRUD._base_query(db).filter(Departement.nom.isnot(None)).order_by(Departement.id).all()

    @staticmethod
    def find_without_nom(db: Session) -> List[Departement]:
        return DepartementCRUD._base_query(db).filter(Departement.nom.is_(None)).order_by(Departement.id).all()

    @staticmethod
    def find_with_villes(db: Session) -> List[Departement]:
        has_villes = exists().where(Ville.departement_id == Departement.id)
        return DepartementCRUD._base_query(db).filter(has_villes).order_by(Departement.id).all()

    @staticmethod
    def find_with_min_villes(db: Session, min_villes: int) -> List[Departement]:
        return (
            DepartementCRUD._base_query(db)
            .filter(_nombre_villes_subquery() >= min_villes)
            .order_by(Departement.id)
            .all()
        )

    @staticmethod
    def find_with_min_population(db: Session, min_population: int) -> List[Departement]:
        return (
            DepartementCRUD._base_query(db)
            .filter(_population_subquery() >= min_population)
            .order_by(Departement.id)
            .all()
        )

    @staticmethod
    def find_metropolitains(db: Session) -> List[Departement]:
        # Excludes every code starting with "2", not only "20" and Corse
        return (
            DepartementCRUD._base_query(db)
            .filter(
                Departement.code.notlike(f"{OUTRE_MER_PREFIX}%"),
                Departement.code.notlike("2%"),
            )
            .order_by(Departement.id)
            .all()
        )

    @staticmethod
    def find_outre_mer(db: Session) -> List[Departement]:
        return (
            DepartementCRUD._base_query(db)
            .filter(Departement.code.like(f"{OUTRE_MER_PREFIX}%"))
            .order_by(Departement.id)
            .all()
        )

    @staticmethod
    def find_corse(db: Session) -> List[Departement]:
        return (
            DepartementCRUD._base_query(db)
            .filter(Departement.code.in_(CORSE_CODES))
            .order_by(Departement.id)
            .all()
        )

    @staticmethod
    def find_by_code_prefix(db: Session, prefix: str) -> List[Departement]:
        return (
            DepartementCRUD._base_query(db)
            .filter(Departement.code.startswith(prefix, autoescape=True))
            .order_by(Departement.code)
            .all()
        )

    @staticmethod
    def exists_by_code(db: Session, code: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Departement.id).filter(Departement.code == code)
        if exclude_id is not None:
            query = query.filter(Departement.id != exclude_id)
        return db.query(query.exists()).scalar()

    @staticmethod
    def exists_by_id(db: Session, departement_id: int) -> bool:
        return db.query(db.query(Departement.id).filter(Departement.id == departement_id).exists()).scalar()

    @staticmethod
    def count_villes(db: Session, departement_id: int) -> int:
        return db.query(func.count(Ville.id)).filter(Ville.departement_id == departement_id).scalar() or 0

    @staticmethod
    def sum_population(db: Session, departement_id: int) -> int:
        total = (
            db.query(func.sum(Ville.nb_habitants))
            .filter(Ville.departement_id == departement_id)
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def count(db: Session) -> int:
        return db.query(func.count(Departement.id)).scalar()
