"""Business transactions composed from Salesforce operations."""

from src.tat_api.workflows.graph import Step, TaskGraph
from src.tat_api.workflows.outreach_report import PostOutreachReportWorkflow
from src.tat_api.workflows.schemas import PostOutreachReportRequest, WorkflowContext

__all__ = [
    "PostOutreachReportRequest",
    "PostOutreachReportWorkflow",
    "Step",
    "TaskGraph",
    "WorkflowContext",
]
