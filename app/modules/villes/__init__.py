"""
Módulo de Villes - Géo France API

Gestión de las villes (ciudades) y de su población. Cada ville pertenece a
un único departamento y su nombre es único en todo el sistema.
"""
