from .capa_sweep import sweep_overdue_capas_job

__all__ = [
    "sweep_overdue_capas_job",
]
"""Background job modules for RQ workers and schedulers."""
