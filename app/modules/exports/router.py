from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.common.validators import normalize_departement_code
from app.database.database import get_db
from .service import ExportService

router = APIRouter(tags=["Exports"])


@router.get(
    "/villes/export/csv",
    summary="Export villes as CSV",
    description="Villes con población estrictamente mayor que `min`, de mayor a menor población."
)
def export_villes_csv(
    min: int = Query(0, description="Población mínima (exclusiva)"),
    db: Session = Depends(get_db)
):
    content = ExportService(db).export_villes_csv(min)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv",
        headers={
            "Content-Disposition": "attachment; filename=villes.csv",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def _pdf_response(pdf: bytes, code: str, disposition: str) -> Response:
    filename = f"departement_{normalize_departement_code(code)}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"{disposition}; filename={filename}"}
    )


@router.get("/departements/{code}/export/pdf", summary="Download département report (PDF)")
def export_departement_pdf(code: str, db: Session = Depends(get_db)):
    return _pdf_response(ExportService(db).export_departement_pdf(code), code, "attachment")


@router.get("/departements/{code}/preview/pdf", summary="Preview département report (PDF)")
def preview_departement_pdf(code: str, db: Session = Depends(get_db)):
    return _pdf_response(ExportService(db).export_departement_pdf(code), code, "inline")
