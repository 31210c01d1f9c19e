"""Audit logging and round manifest subsystem for simratio.

Main Components
---------------
- RunContext: context manager for one disambiguation round
- AuditLogger: JSONL event logger
- ManifestWriter: round manifest builder
"""

from simratio.audit.context import RunContext
from simratio.audit.helpers import generate_run_id
from simratio.audit.logger import AuditLogger
from simratio.audit.manifest import ManifestWriter

__all__ = [
    "RunContext",
    "AuditLogger",
    "ManifestWriter",
    "generate_run_id",
]
