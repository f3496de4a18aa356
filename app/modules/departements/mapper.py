"""
Conversión de entidades Departement a proyecciones de salida.
"""
from typing import Iterable, List, Optional

from .models import Departement
from .schemas import DepartementOut, DepartementStats, VilleSimplifiee


class DepartementMapper:

    @staticmethod
    def to_out(departement: Optional[Departement]) -> Optional[DepartementOut]:
        """
        Proyección sin ciclo: las villes se reducen a {id, nom, nbHabitants}
        y nombreVilles/populationTotale se recalculan sobre esa misma lista.
        """
        if departement is None:
            return None

        villes = [
            VilleSimplifiee(id=ville.id, nom=ville.nom, nb_habitants=ville.nb_habitants)
            for ville in (departement.villes or [])
        ]
        return DepartementOut(
            id=departement.id,
            code=departement.code,
            nom=departement.nom,
            villes=villes,
            nombre_villes=len(villes),
            population_totale=sum(v.nb_habitants or 0 for v in villes),
        )

    @staticmethod
    def to_out_list(departements: Optional[Iterable[Departement]]) -> List[DepartementOut]:
        if not departements:
            return []
        return [DepartementMapper.to_out(d) for d in departements]

    @staticmethod
    def to_stats(departement: Departement, nombre_villes: int, population_totale: int) -> DepartementStats:
        return DepartementStats(
            code=departement.code,
            nom=departement.nom,
            nombre_villes=nombre_villes,
            population_totale=population_totale,
        )
