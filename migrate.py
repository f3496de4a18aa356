#!/usr/bin/env python3
"""
Gestión del esquema con Alembic y carga de los departamentos de referencia.

Uso:
    python migrate.py upgrade [--seed]     # Aplicar migraciones (y sembrar departamentos)
    python migrate.py downgrade            # Deshacer la última migración
    python migrate.py create "mensaje"     # Nueva migración autogenerada
    python migrate.py history | current
    python migrate.py seed                 # Solo sembrar departamentos
"""
import argparse
import logging
import sys
from pathlib import Path

# Agregar el directorio raíz al path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from alembic.config import Config
from alembic import command
from app.core.config import settings

logger = logging.getLogger("migrate")


def get_alembic_config() -> Config:
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg


def seed():
    """Inserta los 101 departamentos oficiales que falten."""
    from app.database.database import SessionLocal
    from app.modules.departements.seed_data import seed_departements

    db = SessionLocal()
    try:
        created = seed_departements(db)
    finally:
        db.close()
    print(f"Departamentos creados: {created}")


def main():
    parser = argparse.ArgumentParser(description="Database migrations (Alembic)")
    subparsers = parser.add_subparsers(dest="action", required=True)

    create = subparsers.add_parser("create", help="Autogenerate a new revision")
    create.add_argument("message")

    upgrade = subparsers.add_parser("upgrade", help="Apply pending migrations")
    upgrade.add_argument("--revision", default="head")
    upgrade.add_argument("--seed", action="store_true", help="Seed départements afterwards")

    downgrade = subparsers.add_parser("downgrade", help="Revert migrations")
    downgrade.add_argument("--revision", default="-1")

    subparsers.add_parser("history", help="Show revision history")
    subparsers.add_parser("current", help="Show current revision")
    subparsers.add_parser("seed", help="Seed the official départements")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    alembic_cfg = get_alembic_config()

    if args.action == "create":
        command.revision(alembic_cfg, autogenerate=True, message=args.message)
        print(f"Migración creada: {args.message}")
    elif args.action == "upgrade":
        command.upgrade(alembic_cfg, args.revision)
        print("Migraciones ejecutadas exitosamente")
        if args.seed:
            seed()
    elif args.action == "downgrade":
        command.downgrade(alembic_cfg, args.revision)
        print("Rollback ejecutado exitosamente")
    elif args.action == "history":
        command.history(alembic_cfg)
    elif args.action == "current":
        command.current(alembic_cfg)
    elif args.action == "seed":
        seed()


if __name__ == "__main__":
    main()
