"""
API routes for French départements.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.common.pagination import Page
from app.database.database import get_db
from app.modules.villes.mapper import VilleMapper
from app.modules.villes.schemas import VilleOut
from app.modules.villes.service import VilleService
from . import schemas
from .mapper import DepartementMapper
from .service import DepartementService

router = APIRouter(prefix="/departements", tags=["Départements"])


@router.get(
    "",
    response_model=Page[schemas.DepartementOut],
    summary="List départements (paged)",
    description="""
    Listado paginado de departamentos.

    `sort` admite `nom`, `code`, `population` y `nombreVilles`; la población
    y el número de villes se calculan en la consulta.
    """
)
def list_departements(
    page: int = Query(0, ge=0, description="Página (0-based)"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort: str = Query("nom", description="nom, code, population, nombreVilles"),
    db: Session = Depends(get_db)
):
    departements, total = DepartementService(db).find_all_paged(page, size, sort)
    return Page.build(DepartementMapper.to_out_list(departements), page, size, total)


@router.post("", response_model=schemas.DepartementOut, status_code=status.HTTP_201_CREATED)
def create_departement(departement: schemas.DepartementCreate, db: Session = Depends(get_db)):
    created = DepartementService(db).create_departement(departement.code, departement.nom)
    return DepartementMapper.to_out(created)


@router.post("/creation-rapide", response_model=schemas.DepartementOut, summary="Quick create by query params")
def create_departement_rapide(
    code: str = Query(..., min_length=2, max_length=3),
    nom: Optional[str] = Query(None, min_length=2, max_length=100),
    db: Session = Depends(get_db)
):
    return DepartementMapper.to_out(DepartementService(db).create_departement(code, nom))


@router.put("/update-noms-manquants", response_model=schemas.NomsManquantsResult)
def update_noms_manquants(db: Session = Depends(get_db)):
    """Completa los nombres ausentes a partir de la tabla de referencia."""
    updated = DepartementService(db).update_noms_manquants()
    return schemas.NomsManquantsResult(
        message="Noms des départements mis à jour avec succès",
        updated=updated
    )


@router.get("/count", response_model=int)
def count_departements(db: Session = Depends(get_db)):
    return DepartementService(db).count()


@router.get("/search/nom", response_model=schemas.DepartementOut)
def find_by_nom(nom: str = Query(...), db: Session = Depends(get_db)):
    return DepartementMapper.to_out(DepartementService(db).get_by_nom(nom))


@router.get("/search", response_model=List[schemas.DepartementOut])
def search_departements(q: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """Búsqueda por subcadena en nom o code (sin distinción de mayúsculas)."""
    return DepartementMapper.to_out_list(DepartementService(db).search(q))


@router.get("/avec-nom", response_model=List[schemas.DepartementOut])
def departements_with_nom(db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_with_nom())


@router.get("/sans-nom", response_model=List[schemas.DepartementOut])
def departements_without_nom(db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_without_nom())


@router.get("/avec-villes", response_model=List[schemas.DepartementOut])
def departements_with_villes(db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_with_villes())


@router.get("/min-villes", response_model=List[schemas.DepartementOut])
def departements_with_min_villes(min: int = Query(..., ge=0), db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_with_min_villes(min))


@router.get("/min-population", response_model=List[schemas.DepartementOut])
def departements_with_min_population(min: int = Query(..., ge=0), db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_with_min_population(min))


@router.get("/metropolitains", response_model=List[schemas.DepartementOut])
def departements_metropolitains(db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_metropolitains())


@router.get("/outre-mer", response_model=List[schemas.DepartementOut])
def departements_outre_mer(db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_outre_mer())


@router.get("/corse", response_model=List[schemas.DepartementOut])
def departements_corse(db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_corse())


@router.get("/code-commence", response_model=List[schemas.DepartementOut])
def find_by_code_prefix(prefix: str = Query(..., min_length=1, max_length=3), db: Session = Depends(get_db)):
    return DepartementMapper.to_out_list(DepartementService(db).find_by_code_prefix(prefix))


@router.get("/exists/code/{code}", response_model=bool)
def exists_by_code(code: str, db: Session = Depends(get_db)):
    return DepartementService(db).exists_by_code(code)


@router.get(
    "/code/{code}",
    response_model=schemas.DepartementOut,
    summary="Get département by code",
    description="Departamento por código con sus villes ordenadas por población descendente."
)
def get_departement_by_code(code: str, db: Session = Depends(get_db)):
    return DepartementMapper.to_out(DepartementService(db).get_by_code(code))


@router.put("/code/{code}/nom", response_model=schemas.DepartementOut)
def update_nom_departement(
    code: str,
    nom: str = Query(..., min_length=2, max_length=100),
    db: Session = Depends(get_db)
):
    return DepartementMapper.to_out(DepartementService(db).update_nom(code, nom))


@router.get("/code/{code}/villes", response_model=List[VilleOut])
def villes_by_departement_code(code: str, db: Session = Depends(get_db)):
    return VilleMapper.to_out_list(VilleService(db).find_by_departement(code))


@router.get("/code/{code}/villes/top", response_model=List[VilleOut])
def top_villes_by_departement(
    code: str,
    n: int = Query(settings.DEFAULT_TOP_N, ge=1),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_top_n_by_departement(code, n))


@router.get("/code/{code}/villes/population", response_model=List[VilleOut])
def villes_by_departement_and_population(
    code: str,
    min: Optional[int] = Query(None, description="Sin mínimo: todas las villes"),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_by_departement_and_min_population(code, min))


@router.get("/code/{code}/villes/population-plage", response_model=List[VilleOut])
def villes_by_departement_and_population_range(
    code: str,
    min: int = Query(...),
    max: int = Query(...),
    db: Session = Depends(get_db)
):
    return VilleMapper.to_out_list(VilleService(db).find_by_departement_and_population_range(code, min, max))


@router.get("/code/{code}/stats", response_model=schemas.DepartementStats)
def stats_by_code(code: str, db: Session = Depends(get_db)):
    return DepartementService(db).get_stats_by_code(code)


@router.get("/code/{code}/population-totale", response_model=int)
def population_totale_by_code(code: str, db: Session = Depends(get_db)):
    return DepartementService(db).total_population_by_code(code)


@router.get("/code/{code}/nombre-villes", response_model=int)
def nombre_villes_by_code(code: str, db: Session = Depends(get_db)):
    return DepartementService(db).count_villes_by_code(code)


@router.get("/{departement_id}", response_model=schemas.DepartementOut)
def get_departement(departement_id: int, db: Session = Depends(get_db)):
    return DepartementMapper.to_out(DepartementService(db).get_by_id(departement_id))


@router.put("/{departement_id}", response_model=schemas.DepartementOut)
def update_departement(
    departement_id: int,
    update: schemas.DepartementUpdate,
    db: Session = Depends(get_db)
):
    updated = DepartementService(db).update_departement(departement_id, update.code, update.nom)
    return DepartementMapper.to_out(updated)


@router.delete("/{departement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_departement(departement_id: int, db: Session = Depends(get_db)):
    DepartementService(db).delete_departement(departement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{departement_id}/villes", response_model=List[VilleOut])
def villes_by_departement(departement_id: int, db: Session = Depends(get_db)):
    departement = DepartementService(db).get_by_id(departement_id)
    return VilleMapper.to_out_list(VilleService(db).find_by_departement(departement.code))
