"""
Model for French départements.
"""
from sqlalchemy import Column, String, Integer
from sqlalchemy.orm import relationship
from app.database.database import Base
from app.modules.villes.models import Ville


class Departement(Base):
    """
    Modelo para departamentos de Francia.
    El código (01..95, 2A, 2B, 971..978) identifica al departamento.
    """
    __tablename__ = "departement"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(3), nullable=False, unique=True, index=True)
    nom = Column(String(100), nullable=True)

    # Villes are rebuilt from ville.id_dept; nothing is written through this side
    villes = relationship(
        Ville,
        viewonly=True,
        order_by=[Ville.nb_habitants.desc(), Ville.id],
    )

    @property
    def nombre_villes(self) -> int:
        return len(self.villes)

    @property
    def population_totale(self) -> int:
        return sum(ville.nb_habitants or 0 for ville in self.villes)

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, Departement):
            return NotImplemented
        return self.code is not None and self.code == other.code

    def __hash__(self):
        return hash(self.code) if self.code is not None else id(self)

    def __str__(self):
        return f"{self.nom} ({self.code})"
