"""Asynchronous fetch job orchestration."""

from feedwise.ingest.errors import JobStateError, SourceResolutionFailure
from feedwise.ingest.metrics import IngestMetrics
from feedwise.ingest.orchestrator import FetchJobOrchestrator
from feedwise.ingest.state_machine import JobStateMachine
from feedwise.ingest.supervisor import JobHandle, JobSupervisor


__all__ = [
    "FetchJobOrchestrator",
    "IngestMetrics",
    "JobHandle",
    "JobStateError",
    "JobStateMachine",
    "JobSupervisor",
    "SourceResolutionFailure",
]
