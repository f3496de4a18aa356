from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pydantic import ValidationError
from typing import List, Optional, Sequence, Tuple
import logging

from app.common.exceptions import BusinessError, RESOURCE_ALREADY_EXISTS
from app.common.validators import is_valid_nb_habitants, normalize_departement_code
from app.modules.departements.crud import DepartementCRUD
from app.modules.departements.models import Departement
from app.modules.villes.crud import VilleCRUD, VILLE_SORT_KEYS
from app.modules.villes.mapper import VilleMapper
from app.modules.villes.models import Ville
from app.modules.villes.schemas import DepartementRef, DepartementStatsDetail, VilleCreate, VilleUpdate

logger = logging.getLogger(__name__)

RESOURCE = "Ville"


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate" in message


class VilleService:
    """Servicio para gestión de villes"""

    def __init__(self, db: Session):
        self.db = db

    # ===== RESOLUCIÓN DE DEPARTAMENTOS =====

    def _find_departement(self, code: str) -> Optional[Departement]:
        return DepartementCRUD.find_by_code(self.db, normalize_departement_code(code))

    def _get_departement(self, code: str) -> Departement:
        departement = self._find_departement(code)
        if departement is None:
            raise BusinessError.resource_not_found("Département", code)
        return departement

    def _resolve_departement(self, ref: DepartementRef) -> Departement:
        """
        Departamento por id (prioritario) o por código.

        Raises:
            BusinessError: RESOURCE_NOT_FOUND si no existe, INVALID_DATA si
                id y código designan departamentos distintos
        """
        if ref.id is not None:
            departement = DepartementCRUD.find_by_id(self.db, ref.id)
            if departement is None:
                raise BusinessError.resource_not_found("Département", ref.id)
            if ref.code and normalize_departement_code(ref.code) != departement.code:
                raise BusinessError.invalid_data(
                    "L'id et le code du département ne correspondent pas",
                    id=ref.id,
                    code=ref.code,
                )
            return departement
        return self._get_departement(ref.code)

    @staticmethod
    def _check_range(min_population: int, max_population: int) -> None:
        if min_population > max_population:
            raise BusinessError.invalid_data(
                "La population minimum ne peut pas être supérieure à la population maximum",
                min=min_population,
                max=max_population,
            )

    # ===== LECTURAS =====

    def find_all(self) -> List[Ville]:
        return VilleCRUD.find_all(self.db)

    def find_all_paged(self, page: int, size: int, sort: str = "id") -> Tuple[List[Ville], int]:
        if sort not in VILLE_SORT_KEYS:
            raise BusinessError.invalid_data(
                f"Tri inconnu '{sort}', valeurs possibles : {', '.join(VILLE_SORT_KEYS)}",
                sort=sort,
            )
        if page < 0 or size < 1:
            raise BusinessError.invalid_data("Paramètres de pagination invalides", page=page, size=size)
        return VilleCRUD.find_all_paged(self.db, page, size, sort)

    def find_by_id(self, ville_id: int) -> Optional[Ville]:
        return VilleCRUD.find_by_id(self.db, ville_id)

    def get_by_id(self, ville_id: int) -> Ville:
        ville = self.find_by_id(ville_id)
        if ville is None:
            raise BusinessError.resource_not_found(RESOURCE, ville_id)
        return ville

    def get_by_nom(self, nom: str) -> Ville:
        ville = VilleCRUD.find_by_nom(self.db, nom.strip())
        if ville is None:
            raise BusinessError.resource_not_found(RESOURCE, nom)
        return ville

    def find_by_nom_containing(self, fragment: str) -> List[Ville]:
        return VilleCRUD.find_by_nom_containing(self.db, fragment.strip())

    def find_by_nom_starting_with(self, prefix: str) -> List[Ville]:
        return VilleCRUD.find_by_nom_starting_with(self.db, prefix.strip())

    def find_by_population_greater_than(self, min_population: int) -> List[Ville]:
        return VilleCRUD.find_by_population_greater_than(self.db, min_population)

    def find_by_population_between(self, min_population: int, max_population: int) -> List[Ville]:
        self._check_range(min_population, max_population)
        return VilleCRUD.find_by_population_between(self.db, min_population, max_population)

    def find_by_departement(self, code: str) -> List[Ville]:
        """Todas las villes de un departamento; lista vacía si el código no existe."""
        departement = self._find_departement(code)
        if departement is None:
            return []
        return VilleCRUD.find_by_departement(self.db, departement.id)

    def find_by_departement_and_min_population(self, code: str, min_population: Optional[int]) -> List[Ville]:
        if min_population is None:
            return self.find_by_departement(code)
        departement = self._find_departement(code)
        if departement is None:
            return []
        return VilleCRUD.find_by_departement_and_min_population(self.db, departement.id, min_population)

    def find_by_departement_and_population_range(
        self, code: str, min_population: int, max_population: int
    ) -> List[Ville]:
        self._check_range(min_population, max_population)
        departement = self._find_departement(code)
        if departement is None:
            return []
        return VilleCRUD.find_by_departement_and_population_range(
            self.db, departement.id, min_population, max_population
        )

    def find_top_n_by_departement(self, code: str, n: int) -> List[Ville]:
        if n < 1:
            raise BusinessError.invalid_data("Le nombre de villes demandé doit être positif", n=n)
        departement = self._find_departement(code)
        if departement is None:
            return []
        return VilleCRUD.find_top_n_by_departement(self.db, departement.id, n)

    def find_most_populated(self, code: str) -> Optional[Ville]:
        departement = self._find_departement(code)
        if departement is None:
            return None
        return VilleCRUD.find_most_populated(self.db, departement.id)

    def recherche_avancee(
        self,
        nom: Optional[str] = None,
        min_population: Optional[int] = None,
        max_population: Optional[int] = None,
        code_departement: Optional[str] = None,
    ) -> List[Ville]:
        """Selecciona la consulta según los criterios presentes."""
        if code_departement and min_population is not None and max_population is not None:
            return self.find_by_departement_and_population_range(code_departement, min_population, max_population)
        if code_departement and min_population is not None:
            return self.find_by_departement_and_min_population(code_departement, min_population)
        if min_population is not None and max_population is not None:
            return self.find_by_population_between(min_population, max_population)
        if min_population is not None:
            return self.find_by_population_greater_than(min_population)
        if nom:
            return self.find_by_nom_containing(nom)
        if code_departement:
            return self.find_by_departement(code_departement)
        return self.find_all()

    def count(self) -> int:
        return VilleCRUD.count(self.db)

    # ===== ESTADÍSTICAS =====

    def count_by_departement(self, code: str) -> int:
        return VilleCRUD.count_by_departement(self.db, self._get_departement(code).id)

    def sum_population_by_departement(self, code: str) -> int:
        return VilleCRUD.sum_population_by_departement(self.db, self._get_departement(code).id)

    def get_departement_stats(self, code: str) -> DepartementStatsDetail:
        """
        Estadísticas completas de un departamento.

        Raises:
            BusinessError: RESOURCE_NOT_FOUND si el código no existe (nunca
                devuelve estadísticas parciales)
        """
        departement = self._get_departement(code)
        return DepartementStatsDetail(
            departement=VilleMapper.to_departement_simplifie(departement),
            nombre_villes=VilleCRUD.count_by_departement(self.db, departement.id),
            population_totale=VilleCRUD.sum_population_by_departement(self.db, departement.id),
            ville_la_plus_peuplee=VilleMapper.to_out(VilleCRUD.find_most_populated(self.db, departement.id)),
        )

    # ===== ESCRITURAS =====

    def _commit(self, ville: Ville) -> Ville:
        nom, departement_id = ville.nom, ville.departement_id
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error on ville {nom!r}: {e.orig}")
            if not _is_unique_violation(e):
                raise BusinessError.constraint_violation("departement_ville", departement_id)
            raise BusinessError.resource_already_exists(RESOURCE, "nom", nom)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Unexpected database error while saving ville")
            raise
        self.db.refresh(ville)
        return ville

    def create_ville(self, ville_data: VilleCreate) -> Ville:
        """
        Crear nueva ville

        Args:
            ville_data: Datos validados de la ville

        Returns:
            Ville: Ville creada

        Raises:
            BusinessError: RESOURCE_NOT_FOUND si el departamento no existe,
                RESOURCE_ALREADY_EXISTS si ya hay una ville con ese nombre
        """
        departement = self._resolve_departement(ville_data.departement)
        nom = ville_data.nom.strip()

        # Uniqueness is global, not scoped to the département
        if VilleCRUD.exists_by_nom(self.db, nom):
            logger.warning(f"Refused duplicate ville {nom!r}")
            raise BusinessError.resource_already_exists(RESOURCE, "nom", nom)

        ville = Ville(nom=nom, nb_habitants=ville_data.nb_habitants, departement_id=departement.id)
        self.db.add(ville)
        self._commit(ville)
        logger.info(f"Ville {ville.nom} créée dans le département {departement.code}")
        return ville

    def create_ville_rapide(self, nom: str, nb_habitants: int, code_departement: str) -> Ville:
        try:
            ville_data = VilleCreate(
                nom=nom,
                nb_habitants=nb_habitants,
                departement=DepartementRef(code=code_departement),
            )
        except ValidationError as e:
            raise BusinessError.invalid_data(
                "Données de ville invalides",
                errors=[err.get("msg") for err in e.errors()],
            )
        return self.create_ville(ville_data)

    def update_ville(self, ville_id: int, update_data: VilleUpdate) -> Ville:
        """Reemplazo completo; puede cambiar la ville de departamento."""
        ville = self.get_by_id(ville_id)
        nom = update_data.nom.strip()

        if nom.lower() != ville.nom.lower() and VilleCRUD.exists_by_nom(self.db, nom, exclude_id=ville_id):
            raise BusinessError.resource_already_exists(RESOURCE, "nom", nom)

        departement = self._resolve_departement(update_data.departement)
        ville.nom = nom
        ville.nb_habitants = update_data.nb_habitants
        ville.departement_id = departement.id
        self._commit(ville)
        logger.info(f"Ville {ville_id} mise à jour")
        return ville

    def update_population(self, ville_id: int, nb_habitants: int) -> Ville:
        """
        Actualizar solo la población

        Raises:
            BusinessError: CONSTRAINT_VIOLATION si el valor no está en [1, 50 000 000]
        """
        ville = self.get_by_id(ville_id)
        if not is_valid_nb_habitants(nb_habitants):
            raise BusinessError.constraint_violation("nb_habitants", nb_habitants)

        ville.nb_habitants = nb_habitants
        return self._commit(ville)

    def delete_ville(self, ville_id: int) -> None:
        ville = self.get_by_id(ville_id)
        try:
            self.db.delete(ville)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Error deleting ville {ville_id}")
            raise
        logger.info(f"Ville {ville_id} supprimée")

    def import_villes(self, items: Sequence[VilleCreate]) -> List[Ville]:
        """
        Importación masiva: todo el lote se valida antes de escribir;
        un solo error rechaza el lote completo.
        """
        villes = []
        seen = set()
        for index, item in enumerate(items):
            nom = item.nom.strip()
            key = nom.lower()
            if key in seen or VilleCRUD.exists_by_nom(self.db, nom):
                raise BusinessError(
                    RESOURCE_ALREADY_EXISTS,
                    f"Import rejeté : la ville '{nom}' (élément {index}) existe déjà",
                    {"index": index, "nom": nom},
                )
            seen.add(key)
            try:
                departement = self._resolve_departement(item.departement)
            except BusinessError as e:
                e.details["index"] = index
                raise
            villes.append(Ville(nom=nom, nb_habitants=item.nb_habitants, departement_id=departement.id))

        if not villes:
            return []

        try:
            self.db.add_all(villes)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Import rejected by the store: {e.orig}")
            if not _is_unique_violation(e):
                raise BusinessError.constraint_violation("departement_ville", "import")
            raise BusinessError.resource_already_exists(RESOURCE, "nom", "import")
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Unexpected database error during ville import")
            raise

        for ville in villes:
            self.db.refresh(ville)
        logger.info(f"{len(villes)} ville(s) importée(s)")
        return villes
