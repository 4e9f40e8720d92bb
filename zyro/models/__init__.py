from .project import Project
from .message import Message, Fragment
from .credentials import UserAiProviderKey, UserAiSettings
from .workflow import WorkflowRun, WorkflowStepRecord

DOCUMENT_MODELS = [
    Project,
    Message,
    Fragment,
    UserAiProviderKey,
    UserAiSettings,
    WorkflowRun,
    WorkflowStepRecord,
]

__all__ = [
    "Project",
    "Message",
    "Fragment",
    "UserAiProviderKey",
    "UserAiSettings",
    "WorkflowRun",
    "WorkflowStepRecord",
    "DOCUMENT_MODELS",
]
