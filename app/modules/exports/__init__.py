"""
Módulo de Exportaciones - Géo France API

Genera los ficheros descargables a partir de los datos ya materializados
por los servicios de departamentos y villes:
- CSV de villes filtradas por población mínima
- Informe PDF de un departamento (descarga o vista previa)

Ninguna exportación escribe en la base de datos.
"""
