"""
Pydantic schemas for villes.
"""
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from app.common.validators import NB_HABITANTS_MAX, NB_HABITANTS_MIN


class DepartementRef(BaseModel):
    """Referencia al departamento propietario (por id o por código)."""
    id: Optional[int] = None
    code: Optional[str] = Field(None, min_length=2, max_length=3)
    nom: Optional[str] = None

    @model_validator(mode="after")
    def check_id_or_code(self):
        if self.id is None and not self.code:
            raise ValueError("Le département doit être identifié par son id ou son code")
        return self


class VilleBase(BaseModel):
    nom: str = Field(..., min_length=2, max_length=100, description="Nombre de la ville")
    nb_habitants: int = Field(
        ..., alias="nbHabitants", ge=NB_HABITANTS_MIN, le=NB_HABITANTS_MAX,
        description="Población (1 a 50 millones)"
    )
    departement: DepartementRef

    class Config:
        populate_by_name = True


class VilleCreate(VilleBase):
    """Schema de creación de villes."""


class VilleUpdate(VilleBase):
    """Reemplazo completo de una ville."""


class DepartementSimplifie(BaseModel):
    """Departamento resumido dentro de una ville (sin sus villes)."""
    id: int
    code: str
    nom: Optional[str] = None


class VilleOut(BaseModel):
    id: int
    nom: str
    nb_habitants: int = Field(..., alias="nbHabitants")
    departement: Optional[DepartementSimplifie] = None

    class Config:
        populate_by_name = True


class DepartementStatsDetail(BaseModel):
    """Estadísticas completas: conteo, población y ville más poblada."""
    departement: DepartementSimplifie
    nombre_villes: int = Field(..., alias="nombreVilles")
    population_totale: int = Field(..., alias="populationTotale")
    ville_la_plus_peuplee: Optional[VilleOut] = Field(None, alias="villeLaPlusPeuplee")

    class Config:
        populate_by_name = True
