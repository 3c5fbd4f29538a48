"""
app/repositories package marker.
"""

from app.repositories.patient_repository import PatientRepository
from app.repositories.procedure_production_repository import ProcedureProductionRepository
from app.repositories.reference_repository import ReferenceRepository

__all__ = [
    "PatientRepository",
    "ProcedureProductionRepository",
    "ReferenceRepository",
]
