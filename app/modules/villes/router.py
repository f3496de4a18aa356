"""
API routes for French villes.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.common.exceptions import BusinessError
from app.common.pagination import Page
from app.common.validators import NB_HABITANTS_MAX, NB_HABITANTS_MIN
from app.database.database import get_db
from . import schemas
from .mapper import VilleMapper
from .service import VilleService

router = APIRouter(prefix="/villes", tags=["Villes"])


@router.get("", response_model=Page[schemas.VilleOut], summary="List villes (paged)")
def list_villes(
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: str = Query("id", description="id, nom, nbHabitants"),
    db: Session = Depends(get_db)
):
    villes, total = VilleService(db).find_all_paged(page, size, sort)
    return Page.build(VilleMapper.to_out_list(villes), page, size, total)


@router.post("", response_model=schemas.VilleOut, status_code=status.HTTP_201_CREATED)
def create_ville(ville: schemas.VilleCreate, db: Session = Depends(get_db)):
    return VilleMapper.to_out(VilleService(db).create_ville(ville))


@router.post("/creation-rapide", response_model=schemas.VilleOut)
def create_ville_rapide(
    nom: str = Query(..., min_length=2, max_length=100),
    nbHabitants: int = Query(..., ge=NB_HABITANTS_MIN, le=NB_HABITANTS_MAX),
    codeDepartement: str = Query(..., min_length=2, max_length=3),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out(VilleService(db).create_ville_rapide(nom, nbHabitants, codeDepartement))


@router.post(
    "/import",
    response_model=List[schemas.VilleOut],
    status_code=status.HTTP_201_CREATED,
    description="""
    Importación masiva de villes.

    Todo el lote se valida antes de escribir: un solo elemento inválido
    rechaza el lote completo.
    """
)
def import_villes(villes: List[schemas.VilleCreate], db: Session = Depends(get_db)):
    return VilleMapper.to_out_list(VilleService(db).import_villes(villes))


@router.get("/count", response_model=int)
def count_villes(db: Session = Depends(get_db)):
    return VilleService(db).count()


@router.get("/search/nom", response_model=schemas.VilleOut)
def find_by_nom(nom: str = Query(...), db: Session = Depends(get_db)):
    return VilleMapper.to_out(VilleService(db).get_by_nom(nom))


@router.get("/search/nom-contient", response_model=List[schemas.VilleOut])
def find_by_nom_containing(nom: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return VilleMapper.to_out_list(VilleService(db).find_by_nom_containing(nom))


@router.get("/search/nom-commence", response_model=List[schemas.VilleOut])
def find_by_nom_starting_with(prefix: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    return VilleMapper.to_out_list(VilleService(db).find_by_nom_starting_with(prefix))


@router.get("/search/population-min", response_model=List[schemas.VilleOut])
def find_by_population_greater_than(min: int = Query(...), db: Session = Depends(get_db)):
    return VilleMapper.to_out_list(VilleService(db).find_by_population_greater_than(min))


@router.get("/search/population-plage", response_model=List[schemas.VilleOut])
def find_by_population_between(
    min: int = Query(...),
    max: int = Query(...),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_by_population_between(min, max))


@router.get("/search/avancee", response_model=List[schemas.VilleOut])
def recherche_avancee(
    nom: Optional[str] = Query(None),
    minPop: Optional[int] = Query(None),
    maxPop: Optional[int] = Query(None),
    dept: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    villes = VilleService(db).recherche_avancee(nom, minPop, maxPop, dept)
    return VilleMapper.to_out_list(villes)


@router.get("/export/departement/{code}", response_model=List[schemas.VilleOut])
def export_villes_by_departement(code: str, db: Session = Depends(get_db)):
    return VilleMapper.to_out_list(VilleService(db).find_by_departement(code))


@router.get("/departement/{code}", response_model=List[schemas.VilleOut])
def find_by_departement_and_min_population(
    code: str,
    min: Optional[int] = Query(None, description="Sin mínimo: todas las villes del departamento"),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_by_departement_and_min_population(code, min))


@router.get("/departement/{code}/plage", response_model=List[schemas.VilleOut])
def find_by_departement_and_population_range(
    code: str,
    min: int = Query(...),
    max: int = Query(...),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_by_departement_and_population_range(code, min, max))


@router.get("/departement/{code}/top", response_model=List[schemas.VilleOut])
def find_top_n_by_departement(
    code: str,
    n: int = Query(settings.DEFAULT_TOP_N, ge=1),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_top_n_by_departement(code, n))


@router.get("/departement/{code}/stats", response_model=schemas.DepartementStatsDetail)
def departement_stats(code: str, db: Session = Depends(get_db)):
    return VilleService(db).get_departement_stats(code)


@router.get("/departement/{code}/plus-peuplee", response_model=schemas.VilleOut)
def most_populated_ville(code: str, db: Session = Depends(get_db)):
    ville = VilleService(db).find_most_populated(code)
    if ville is None:
        raise BusinessError.resource_not_found("Ville la plus peuplée du département", code)
    return VilleMapper.to_out(ville)


@router.get("/{ville_id}", response_model=schemas.VilleOut)
def get_ville(ville_id: int, db: Session = Depends(get_db)):
    return VilleMapper.to_out(VilleService(db).get_by_id(ville_id))


@router.put("/{ville_id}", response_model=schemas.VilleOut)
def update_ville(ville_id: int, update: schemas.VilleUpdate, db: Session = Depends(get_db)):
    return VilleMapper.to_out(VilleService(db).update_ville(ville_id, update))


@router.put("/{ville_id}/population", response_model=schemas.VilleOut)
def update_population(
    ville_id: int,
    nouveauNb: int = Query(..., description="Nueva población"),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out(VilleService(db).update_population(ville_id, nouveauNb))


@router.delete("/{ville_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ville(ville_id: int, db: Session = Depends(get_db)):
    VilleService(db).delete_ville(ville_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
