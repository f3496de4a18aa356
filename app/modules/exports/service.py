"""
Generación de exportaciones CSV y PDF.

Las funciones reciben entidades ya cargadas por los servicios y devuelven
el contenido del fichero; la construcción de la respuesta HTTP queda en
el router.
"""
import csv
import io
import logging
from datetime import datetime
from typing import Iterable, List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from app.modules.departements.models import Departement
from app.modules.departements.service import DepartementService
from app.modules.villes.models import Ville
from app.modules.villes.service import VilleService

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Nom Ville", "Population", "Code Département", "Nom Département"]


def format_population(value: int) -> str:
    """12345678 -> '12 345 678'"""
    return f"{value:,}".replace(",", " ")


def villes_to_csv(villes: Iterable[Ville]) -> str:
    """
    Serializa villes a CSV con cabecera fija.

    Args:
        villes: Villes con su departamento cargado

    Returns:
        Contenido CSV (texto)
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADERS)
    for ville in villes:
        departement = ville.departement
        writer.writerow([
            ville.nom,
            ville.nb_habitants,
            departement.code if departement else "",
            (departement.nom or "") if departement else "",
        ])
    content = output.getvalue()
    output.close()
    return content


def departement_to_pdf(departement: Departement, villes: List[Ville]) -> bytes:
    """
    Informe A4 de un departamento: título, fecha de generación, información
    general, tabla de villes y estadísticas (total, media, máximo).
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=2 * cm, rightMargin=2 * cm, topMargin=2 * cm, bottomMargin=2 * cm,
        title=f"Rapport Département - {departement.nom or departement.code}",
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="TitreBleu", fontSize=18, leading=22, alignment=1, textColor=colors.darkblue))
    styles.add(ParagraphStyle(name="H2Bleu", fontSize=13, leading=16, spaceBefore=10, spaceAfter=6,
                              textColor=colors.HexColor("#0b5ed7")))
    styles.add(ParagraphStyle(name="NormalSmall", fontSize=8, leading=10, textColor=colors.grey))

    nom = departement.nom or "Sans nom"
    content = [
        Paragraph(f"Rapport Département - {nom}", styles["TitreBleu"]),
        Spacer(1, 4),
        Paragraph(f"Généré le {datetime.now().strftime('%d/%m/%Y à %H:%M')}", styles["NormalSmall"]),
        Spacer(1, 12),
        Paragraph("Informations générales", styles["H2Bleu"]),
    ]

    info = Table(
        [
            ["Code", departement.code],
            ["Nom", nom],
            ["Nombre de villes", str(len(villes))],
        ],
        colWidths=[5 * cm, 10 * cm],
    )
    info.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('BACKGROUND', (0, 0), (0, -1), colors.whitesmoke),
        ('GRID', (0, 0), (-1, -1), 0.35, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    content.extend([info, Spacer(1, 12)])

    content.append(Paragraph("Villes", styles["H2Bleu"]))
    if villes:
        rows = [["Nom", "Population"]]
        rows.extend([ville.nom, format_population(ville.nb_habitants)] for ville in villes)
        table = Table(rows, colWidths=[10 * cm, 5 * cm], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#0b5ed7")),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 0.35, colors.grey),
            ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
        ]))
        content.append(table)
    else:
        content.append(Paragraph("Aucune ville enregistrée pour ce département.", styles["Normal"]))

    content.extend([Spacer(1, 12), Paragraph("Statistiques", styles["H2Bleu"])])
    populations = [ville.nb_habitants for ville in villes]
    total = sum(populations)
    moyenne = total // len(populations) if populations else 0
    maximum = max(populations) if populations else 0
    stats = Table(
        [
            ["Population totale", format_population(total)],
            ["Population moyenne", format_population(moyenne)],
            ["Population maximum", format_population(maximum)],
        ],
        colWidths=[5 * cm, 10 * cm],
    )
    stats.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 0.35, colors.grey),
    ]))
    content.append(stats)

    doc.build(content)
    pdf = buffer.getvalue()
    buffer.close()
    return pdf


class ExportService:
    """Servicio de exportaciones (solo lectura)"""

    def __init__(self, db: Session):
        self.db = db

    def export_villes_csv(self, min_population: int = 0) -> str:
        """Villes con población estrictamente mayor que `min_population`, ordenadas de mayor a menor."""
        villes = VilleService(self.db).find_by_population_greater_than(min_population)
        logger.info(f"CSV export: {len(villes)} ville(s) with population > {min_population}")
        return villes_to_csv(villes)

    def export_departement_pdf(self, code: str) -> bytes:
        """
        Raises:
            BusinessError: RESOURCE_NOT_FOUND si el código no existe
        """
        departement = DepartementService(self.db).get_by_code(code)
        villes = VilleService(self.db).find_by_departement(departement.code)
        logger.info(f"PDF export for département {departement.code} ({len(villes)} ville(s))")
        return departement_to_pdf(departement, villes)
