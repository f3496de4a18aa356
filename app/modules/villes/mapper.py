"""
Conversión de entidades Ville a proyecciones de salida.
"""
from typing import Iterable, List, Optional

from .models import Ville
from .schemas import DepartementSimplifie, VilleOut


class VilleMapper:

    @staticmethod
    def to_departement_simplifie(departement) -> Optional[DepartementSimplifie]:
        if departement is None:
            return None
        return DepartementSimplifie(id=departement.id, code=departement.code, nom=departement.nom)

    @staticmethod
    def to_out(ville: Optional[Ville]) -> Optional[VilleOut]:
        """Ville con su departamento resumido {id, code, nom}."""
        if ville is None:
            return None
        return VilleOut(
            id=ville.id,
            nom=ville.nom,
            nb_habitants=ville.nb_habitants,
            departement=VilleMapper.to_departement_simplifie(ville.departement),
        )

    @staticmethod
    def to_out_list(villes: Optional[Iterable[Ville]]) -> List[VilleOut]:
        if not villes:
            return []
        return [VilleMapper.to_out(v) for v in villes]
