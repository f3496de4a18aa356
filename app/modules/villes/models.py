"""
Model for French cities (villes).
"""
from sqlalchemy import Column, String, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.database.database import Base


class Ville(Base):
    """
    Modelo para villes (ciudades/municipios) de Francia.
    Toda ville pertenece a exactamente un departamento.
    """
    __tablename__ = "ville"

    id = Column(Integer, primary_key=True, index=True)
    nom = Column(String(100), nullable=False, unique=True, index=True)
    nb_habitants = Column("nb_habs", Integer, nullable=False)
    departement_id = Column("id_dept", Integer, ForeignKey("departement.id"), nullable=False, index=True)

    # Forward reference only; the département side is a read-only view
    departement = relationship("Departement")

    __table_args__ = (
        CheckConstraint("nb_habs >= 1 AND nb_habs <= 50000000", name="ck_ville_nb_habs_range"),
    )

    def __str__(self):
        code = self.departement.code if self.departement is not None else None
        return f"{self.nom} ({code})"
