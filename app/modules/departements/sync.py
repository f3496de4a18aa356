"""
Sincronización de departamentos con la API pública geo.api.gouv.fr.
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.common.validators import is_valid_departement_code, is_valid_nom, normalize_departement_code
from app.modules.departements.models import Departement
from app.modules.departements.schemas import SyncReport

logger = logging.getLogger(__name__)


def fetch_departements(url: Optional[str] = None, timeout: Optional[int] = None) -> List[Dict[str, str]]:
    """
    Descarga la lista de departamentos de la API externa.

    Returns:
        Lista de diccionarios {"code", "nom"}

    Raises:
        requests.RequestException: error de red o respuesta HTTP no exitosa
        ValueError: si el cuerpo no es una lista JSON
    """
    url = url or settings.GEO_API_URL
    timeout = timeout or settings.GEO_API_TIMEOUT

    logger.info(f"Fetching départements from {url}")
    response = requests.get(url, timeout=timeout, headers={"Accept": "application/json"})
    response.raise_for_status()

    payload = response.json()
    if not isinstance(payload, list):
        raise ValueError(f"Unexpected payload from {url}: expected a list")

    return [{"code": item.get("code"), "nom": item.get("nom")} for item in payload if isinstance(item, dict)]


def _deduplicate(incoming: Iterable[Mapping[str, Optional[str]]]) -> Dict[str, Optional[str]]:
    """code normalizado -> nom; ante códigos repetidos gana el último."""
    by_code: Dict[str, Optional[str]] = {}
    for item in incoming:
        code = normalize_departement_code(item.get("code"))
        if not code:
            continue
        nom = item.get("nom")
        nom = nom.strip() if isinstance(nom, str) and nom.strip() else None
        if code in by_code and by_code[code] != nom:
            logger.warning(f"Duplicate incoming code {code}: keeping {nom!r} over {by_code[code]!r}")
        by_code[code] = nom
    return by_code


def sync_departements(
    db: Session,
    incoming: Iterable[Mapping[str, Optional[str]]],
    dry_run: bool = False
) -> SyncReport:
    """
    Aplica la lista externa sobre la tabla de departamentos.

    - código no visto: se inserta
    - código existente con nombre distinto (no nulo): se actualiza el nombre
    - nombre entrante ausente: nunca sobrescribe, cuenta como ignorado
    - idéntico: ignorado

    Args:
        db: Sesión de base de datos
        incoming: Elementos {"code", "nom"}
        dry_run: Calcula el informe sin confirmar cambios

    Returns:
        SyncReport con los contadores
    """
    items = list(incoming)
    by_code = _deduplicate(items)
    report = SyncReport(total_incoming=len(items))

    existing = {
        departement.code: departement
        for departement in db.query(Departement).filter(Departement.code.in_(list(by_code))).all()
    } if by_code else {}

    for code, nom in by_code.items():
        if nom is not None and not is_valid_nom(nom):
            logger.warning(f"Skipping incoming département {code} with invalid name {nom!r}")
            report.ignored += 1
            continue
        departement = existing.get(code)
        if departement is None:
            if not is_valid_departement_code(code):
                logger.warning(f"Skipping incoming département with invalid code {code!r}")
                report.ignored += 1
                continue
            db.add(Departement(code=code, nom=nom))
            report.created += 1
        elif nom is not None and departement.nom != nom:
            departement.nom = nom
            report.updated += 1
        else:
            report.ignored += 1

    if dry_run:
        db.rollback()
        logger.info(f"Dry run, nothing written: {report.model_dump()}")
        return report

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Synchronisation failed, changes rolled back")
        raise

    logger.info(
        f"Synchronisation done: {report.created} created, {report.updated} updated, "
        f"{report.ignored} ignored ({report.total_incoming} incoming)"
    )
    return report
