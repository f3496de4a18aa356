from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import List, Optional, Tuple
import logging

from app.common.exceptions import BusinessError
from app.common.validators import is_valid_departement_code, is_valid_nom, normalize_departement_code
from app.modules.departements.crud import DepartementCRUD, DEPARTEMENT_SORT_KEYS
from app.modules.departements.models import Departement
from app.modules.departements.schemas import DepartementStats
from app.modules.departements.mapper import DepartementMapper
from app.modules.departements.seed_data import get_nom_officiel

logger = logging.getLogger(__name__)

RESOURCE = "Département"


class DepartementService:
    """Servicio para gestión de departamentos"""

    def __init__(self, db: Session):
        self.db = db

    # ===== LECTURAS =====

    def find_all(self) -> List[Departement]:
        return DepartementCRUD.find_all(self.db)

    def find_all_paged(self, page: int, size: int, sort: str = "nom") -> Tuple[List[Departement], int]:
        """
        Listar departamentos con paginación

        Args:
            page: Página (empieza en 0)
            size: Tamaño de página
            sort: nom, code, population o nombreVilles

        Returns:
            Tupla (departamentos, total)
        """
        if sort not in DEPARTEMENT_SORT_KEYS:
            raise BusinessError.invalid_data(
                f"Tri inconnu '{sort}', valeurs possibles : {', '.join(DEPARTEMENT_SORT_KEYS)}",
                sort=sort,
            )
        if page < 0 or size < 1:
            raise BusinessError.invalid_data("Paramètres de pagination invalides", page=page, size=size)
        return DepartementCRUD.find_all_paged(self.db, page, size, sort)

    def find_by_id(self, departement_id: int) -> Optional[Departement]:
        return DepartementCRUD.find_by_id(self.db, departement_id)

    def get_by_id(self, departement_id: int) -> Departement:
        """
        Obtener departamento por ID

        Raises:
            BusinessError: RESOURCE_NOT_FOUND si no existe
        """
        departement = self.find_by_id(departement_id)
        if departement is None:
            raise BusinessError.resource_not_found(RESOURCE, departement_id)
        return departement

    def find_by_code(self, code: str) -> Optional[Departement]:
        return DepartementCRUD.find_by_code(self.db, normalize_departement_code(code))

    def get_by_code(self, code: str) -> Departement:
        departement = self.find_by_code(code)
        if departement is None:
            raise BusinessError.resource_not_found(RESOURCE, code)
        return departement

    def get_by_nom(self, nom: str) -> Departement:
        departement = DepartementCRUD.find_by_nom(self.db, nom)
        if departement is None:
            raise BusinessError.resource_not_found(RESOURCE, nom)
        return departement

    def search(self, term: str) -> List[Departement]:
        return DepartementCRUD.search(self.db, term.strip())

    def find_with_nom(self) -> List[Departement]:
        return DepartementCRUD.find_with_nom(self.db)

    def find_without_nom(self) -> List[Departement]:
        return DepartementCRUD.find_without_nom(self.db)

    def find_with_villes(self) -> List[Departement]:
        return DepartementCRUD.find_with_villes(self.db)

    def find_with_min_villes(self, min_villes: int) -> List[Departement]:
        return DepartementCRUD.find_with_min_villes(self.db, min_villes)

    def find_with_min_population(self, min_population: int) -> List[Departement]:
        return DepartementCRUD.find_with_min_population(self.db, min_population)

    def find_metropolitains(self) -> List[Departement]:
        return DepartementCRUD.find_metropolitains(self.db)

    def find_outre_mer(self) -> List[Departement]:
        return DepartementCRUD.find_outre_mer(self.db)

    def find_corse(self) -> List[Departement]:
        return DepartementCRUD.find_corse(self.db)

    def find_by_code_prefix(self, prefix: str) -> List[Departement]:
        return DepartementCRUD.find_by_code_prefix(self.db, normalize_departement_code(prefix))

    def exists_by_code(self, code: str) -> bool:
        return DepartementCRUD.exists_by_code(self.db, normalize_departement_code(code))

    def count(self) -> int:
        return DepartementCRUD.count(self.db)

    # ===== ESTADÍSTICAS =====

    def count_villes(self, departement_id: int) -> int:
        if not DepartementCRUD.exists_by_id(self.db, departement_id):
            raise BusinessError.resource_not_found(RESOURCE, departement_id)
        return DepartementCRUD.count_villes(self.db, departement_id)

    def total_population(self, departement_id: int) -> int:
        if not DepartementCRUD.exists_by_id(self.db, departement_id):
            raise BusinessError.resource_not_found(RESOURCE, departement_id)
        return DepartementCRUD.sum_population(self.db, departement_id)

    def count_villes_by_code(self, code: str) -> int:
        return DepartementCRUD.count_villes(self.db, self.get_by_code(code).id)

    def total_population_by_code(self, code: str) -> int:
        return DepartementCRUD.sum_population(self.db, self.get_by_code(code).id)

    def get_stats_by_code(self, code: str) -> DepartementStats:
        """Conteo de villes y población total; falla completo si el código no existe."""
        departement = self.get_by_code(code)
        return DepartementMapper.to_stats(
            departement,
            DepartementCRUD.count_villes(self.db, departement.id),
            DepartementCRUD.sum_population(self.db, departement.id),
        )

    # ===== ESCRITURAS =====

    def _validate_code(self, code: Optional[str]) -> str:
        normalized = normalize_departement_code(code)
        if not is_valid_departement_code(normalized):
            logger.warning(f"Rejected département code {code!r}")
            raise BusinessError.constraint_violation("format_code_departement", code)
        return normalized

    def _validate_nom(self, nom: Optional[str]) -> Optional[str]:
        if nom is None:
            return None
        if not is_valid_nom(nom):
            raise BusinessError.constraint_violation("taille_nom_departement", nom)
        return nom.strip()

    def _commit(self, departement: Departement) -> Departement:
        code = departement.code
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error on département {code}: {e.orig}")
            raise BusinessError.resource_already_exists(RESOURCE, "code", code)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Unexpected database error while saving département")
            raise
        self.db.refresh(departement)
        return departement

    def create_departement(self, code: str, nom: Optional[str] = None) -> Departement:
        """
        Crear nuevo departamento

        Args:
            code: Código del departamento (se normaliza a mayúsculas)
            nom: Nombre opcional

        Returns:
            Departement: Departamento creado

        Raises:
            BusinessError: CONSTRAINT_VIOLATION si el código no es válido,
                RESOURCE_ALREADY_EXISTS si el código ya existe
        """
        normalized = self._validate_code(code)
        if DepartementCRUD.exists_by_code(self.db, normalized):
            raise BusinessError.resource_already_exists(RESOURCE, "code", normalized)

        departement = Departement(code=normalized, nom=self._validate_nom(nom))
        self.db.add(departement)
        self._commit(departement)
        logger.info(f"Département {departement.code} créé (id={departement.id})")
        return departement

    def update_departement(self, departement_id: int, code: str, nom: Optional[str]) -> Departement:
        """Reemplazo completo de código y nombre."""
        departement = self.get_by_id(departement_id)
        normalized = self._validate_code(code)

        if normalized != departement.code and DepartementCRUD.exists_by_code(
            self.db, normalized, exclude_id=departement_id
        ):
            raise BusinessError.resource_already_exists(RESOURCE, "code", normalized)

        departement.code = normalized
        departement.nom = self._validate_nom(nom)
        self._commit(departement)
        logger.info(f"Département {departement_id} mis à jour ({departement.code})")
        return departement

    def update_nom(self, code: str, nom: str) -> Departement:
        departement = self.get_by_code(code)
        departement.nom = self._validate_nom(nom)
        return self._commit(departement)

    def delete_departement(self, departement_id: int) -> None:
        """
        Eliminar departamento sin villes

        Raises:
            BusinessError: RESOURCE_NOT_FOUND, o DELETE_FORBIDDEN si aún tiene villes
        """
        departement = self.get_by_id(departement_id)
        nombre_villes = DepartementCRUD.count_villes(self.db, departement_id)
        if nombre_villes > 0:
            logger.warning(f"Refused deletion of département {departement.code}: {nombre_villes} ville(s)")
            raise BusinessError.delete_forbidden(
                f"le département {departement.code}",
                f"il contient encore {nombre_villes} ville(s)",
            )

        try:
            self.db.delete(departement)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error deleting département {departement_id}")
            raise
        logger.info(f"Département {departement.code} supprimé")

    def update_noms_manquants(self) -> int:
        """
        Completa el nombre de los departamentos sin nombre a partir de la
        tabla de referencia. Idempotente: una segunda llamada no cambia nada.

        Returns:
            Número de departamentos actualizados
        """
        updated = 0
        for departement in DepartementCRUD.find_without_nom(self.db):
            nom = get_nom_officiel(departement.code)
            if nom is None:
                continue
            departement.nom = nom
            updated += 1

        if updated:
            try:
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Error filling missing département names")
                raise
        logger.info(f"{updated} nom(s) de département complété(s)")
        return updated
