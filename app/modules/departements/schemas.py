"""
Pydantic schemas for départements.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class VilleSimplifiee(BaseModel):
    """Ville resumida dentro de un departamento (sin referencia inversa)."""
    id: int
    nom: str = Field(..., description="Nombre de la ville")
    nb_habitants: int = Field(..., alias="nbHabitants", description="Población")

    class Config:
        populate_by_name = True


class DepartementBase(BaseModel):
    code: str = Field(..., min_length=2, max_length=3, description="Código del departamento (01..95, 2A, 2B, 971..978)")
    nom: Optional[str] = Field(None, min_length=2, max_length=100, description="Nombre del departamento")


class DepartementCreate(DepartementBase):
    """Schema de creación de departamentos."""


class DepartementUpdate(DepartementBase):
    """Reemplazo completo (código y nombre)."""


class DepartementOut(BaseModel):
    """Schema de salida con villes simplificadas y estadísticas derivadas."""
    id: int
    code: str
    nom: Optional[str] = None
    villes: List[VilleSimplifiee] = Field(default_factory=list)
    nombre_villes: int = Field(0, alias="nombreVilles")
    population_totale: int = Field(0, alias="populationTotale")

    class Config:
        populate_by_name = True


class DepartementStats(BaseModel):
    """Estadísticas simples de un departamento."""
    code: str
    nom: Optional[str] = None
    nombre_villes: int = Field(..., alias="nombreVilles")
    population_totale: int = Field(..., alias="populationTotale")

    class Config:
        populate_by_name = True


class NomsManquantsResult(BaseModel):
    message: str
    updated: int = Field(..., description="Departamentos actualizados")


class SyncReport(BaseModel):
    """Resultado de la sincronización con la API externa."""
    created: int = 0
    updated: int = 0
    ignored: int = 0
    total_incoming: int = 0
