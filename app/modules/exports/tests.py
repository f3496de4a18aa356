"""
Tests para el módulo de Exportaciones (CSV y PDF)
"""

import csv
import io

import pytest

from app.common.exceptions import BusinessError, RESOURCE_NOT_FOUND
from app.modules.exports.service import CSV_HEADERS, ExportService, format_population


class TestCsvExport:
    """Tests de la exportación CSV"""

    def test_csv_content(self, db_session, villes):
        content = ExportService(db_session).export_villes_csv(100_000)
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == CSV_HEADERS
        assert rows[1:] == [
            ["Paris", "2133111", "75", "Paris"],
            ["Marseille", "870018", "13", "Bouches-du-Rhône"],
            ["Aix-en-Provence", "147122", "13", "Bouches-du-Rhône"],
        ]

    def test_csv_min_is_exclusive(self, db_session, villes):
        content = ExportService(db_session).export_villes_csv(10_000)
        assert "Porto-Vecchio" not in content

    def test_csv_empty(self, db_session):
        content = ExportService(db_session).export_villes_csv()
        assert content.strip() == ",".join(CSV_HEADERS)

    def test_csv_endpoint(self, client, villes):
        response = client.get("/villes/export/csv", params={"min": 0})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"].startswith("attachment")
        lines = response.content.decode("utf-8").strip().splitlines()
        assert lines[0] == "Nom Ville,Population,Code Département,Nom Département"
        assert len(lines) == 7


class TestPdfExport:
    """Tests del informe PDF de departamento"""

    def test_pdf_bytes(self, db_session, villes):
        pdf = ExportService(db_session).export_departement_pdf("13")
        assert pdf.startswith(b"%PDF")

    def test_pdf_without_villes(self, db_session, departements):
        pdf = ExportService(db_session).export_departement_pdf("971")
        assert pdf.startswith(b"%PDF")

    def test_pdf_unknown_departement(self, db_session, departements):
        with pytest.raises(BusinessError) as exc:
            ExportService(db_session).export_departement_pdf("01")
        assert exc.value.code == RESOURCE_NOT_FOUND

    def test_pdf_endpoints(self, client, villes):
        export = client.get("/departements/2a/export/pdf")
        assert export.status_code == 200
        assert export.headers["content-type"] == "application/pdf"
        assert export.headers["content-disposition"] == "attachment; filename=departement_2A.pdf"

        preview = client.get("/departements/2A/preview/pdf")
        assert preview.status_code == 200
        assert preview.headers["content-disposition"].startswith("inline")

    def test_pdf_endpoint_unknown(self, client, departements):
        response = client.get("/departements/01/export/pdf")
        assert response.status_code == 404
        assert response.json()["code"] == RESOURCE_NOT_FOUND

    def test_format_population(self):
        assert format_population(2_133_111) == "2 133 111"
        assert format_population(500) == "500"
