"""
Paginación común para listados.
"""
import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Página de resultados (page empieza en 0)."""
    content: List[T] = Field(default_factory=list)
    page: int = Field(..., ge=0, description="Número de página (0-based)")
    size: int = Field(..., ge=1, description="Tamaño de página")
    total_elements: int = Field(..., alias="totalElements", description="Total de elementos")
    total_pages: int = Field(..., alias="totalPages", description="Total de páginas")

    class Config:
        populate_by_name = True

    @classmethod
    def build(cls, content: List[T], page: int, size: int, total: int) -> "Page[T]":
        return cls(
            content=content,
            page=page,
            size=size,
            total_elements=total,
            total_pages=math.ceil(total / size) if size else 0,
        )
