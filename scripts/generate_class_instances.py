#!/usr/bin/env python
"""
Script para generar las instancias de clase a partir de las plantillas activas

Uso:
    python scripts/generate_class_instances.py --months-ahead 2
    python scripts/generate_class_instances.py --months-ahead 1 --from-date 2026-11-01
"""

import sys
import os
import argparse
import asyncio
from datetime import date

# Agregar el directorio raíz al path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.session import SessionLocal
from app.services.schedule_generator import schedule_generator_service
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def generate_class_instances(months_ahead: int, from_date: date = None) -> bool:
    """
    Ejecuta la generación y muestra el informe.

    Returns:
        True si no hubo errores
    """
    db = SessionLocal()
    try:
        report = asyncio.run(
            schedule_generator_service.generate_instances(db, months_ahead=months_ahead, from_date=from_date)
        )
    finally:
        db.close()

    print("=" * 70)
    print("GENERACIÓN DE INSTANCIAS DE CLASE")
    print("=" * 70)
    print(f"   Creadas:  {report.created}")
    print(f"   Omitidas: {report.skipped}")
    print(f"   Errores:  {len(report.errors)}")
    for error in report.errors:
        print(f"     - {error}")
    return not report.errors


def main():
    parser = argparse.ArgumentParser(
        description="Generar instancias de clase desde las plantillas semanales"
    )
    parser.add_argument(
        "--months-ahead",
        type=int,
        default=2,
        help="Meses hacia adelante a generar (1-12, default: 2)"
    )
    parser.add_argument(
        "--from-date",
        type=date.fromisoformat,
        help="Primer día de la ventana (YYYY-MM-DD, default: hoy en la zona del gimnasio)"
    )

    args = parser.parse_args()
    if not 1 <= args.months_ahead <= 12:
        parser.error("--months-ahead debe estar entre 1 y 12")

    ok = generate_class_instances(months_ahead=args.months_ahead, from_date=args.from_date)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
