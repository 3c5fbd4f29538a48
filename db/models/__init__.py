"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.patient import Patient
from db.models.procedure_catalog import ProcedureCatalog
from db.models.procedure_production import ProcedureProduction

__all__ = [
    "Patient",
    "ProcedureCatalog",
    "ProcedureProduction",
]
