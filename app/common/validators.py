"""
Validadores específicos para Francia
"""
import re
from typing import Optional


# 01-19, 21-95 (sin 20), Córcega 2A/2B y ultramar 971-978
DEPARTEMENT_CODE_PATTERN = re.compile(
    r'^(0[1-9]|1[0-9]|2[1-9]|[3-8][0-9]|9[0-5]|2A|2B|97[1-8])$'
)

CORSE_CODES = ("2A", "2B")
OUTRE_MER_PREFIX = "97"

VILLE_NOM_MIN_LENGTH = 2
VILLE_NOM_MAX_LENGTH = 100
NB_HABITANTS_MIN = 1
NB_HABITANTS_MAX = 50_000_000


def normalize_departement_code(code: Optional[str]) -> Optional[str]:
    """
    Normaliza un código de departamento: sin espacios y en mayúsculas.
    "2a " -> "2A"
    """
    if code is None:
        return None
    return code.strip().upper()


def is_valid_departement_code(code: Optional[str]) -> bool:
    """
    Valida un código de departamento francés.
    - 2 dígitos entre 01 y 95, excepto 20
    - 2A / 2B (Córcega)
    - 971 a 978 (ultramar)
    """
    normalized = normalize_departement_code(code)
    if not normalized:
        return False
    return DEPARTEMENT_CODE_PATTERN.match(normalized) is not None


def is_valid_nom(nom: Optional[str], required: bool = True) -> bool:
    """Nombre entre 2 y 100 caracteres (opcional si required=False)."""
    if nom is None:
        return not required
    return VILLE_NOM_MIN_LENGTH <= len(nom.strip()) <= VILLE_NOM_MAX_LENGTH


def is_valid_nb_habitants(nb_habitants: Optional[int]) -> bool:
    if nb_habitants is None:
        return False
    return NB_HABITANTS_MIN <= nb_habitants <= NB_HABITANTS_MAX
