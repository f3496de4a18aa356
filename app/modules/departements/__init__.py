"""
Módulo de Departamentos - Géo France API

Gestión de los departamentos franceses: consultas por código, nombre y
región (metropolitanos, ultramar, Córcega), estadísticas de población,
completado de nombres oficiales y sincronización con geo.api.gouv.fr.
"""
