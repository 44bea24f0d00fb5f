from qmsflow.models.quality import Audit, CapaAction, Complaint, NonConformance, TrainingSession
from qmsflow.models.relationship import ModuleRelationship
from qmsflow.models.workflow import WorkflowTask

__all__ = [
    "Audit",
    "CapaAction",
    "Complaint",
    "ModuleRelationship",
    "NonConformance",
    "TrainingSession",
    "WorkflowTask",
]
"""SQLAlchemy ORM models for the QMSFlow automation API."""
