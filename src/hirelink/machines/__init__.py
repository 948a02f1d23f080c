"""The four approval and lifecycle state machines."""

from hirelink.machines.applications import APPLICATION_TRANSITIONS, ApplicationPipeline
from hirelink.machines.base import StateMachine
from hirelink.machines.business import BUSINESS_TRANSITIONS, BusinessVerificationMachine
from hirelink.machines.jobs import JOB_TRANSITIONS, JobApprovalMachine
from hirelink.machines.links import LINK_TRANSITIONS, RecruiterLinkMachine

__all__ = [
    "StateMachine",
    "BusinessVerificationMachine",
    "RecruiterLinkMachine",
    "JobApprovalMachine",
    "ApplicationPipeline",
    "BUSINESS_TRANSITIONS",
    "LINK_TRANSITIONS",
    "JOB_TRANSITIONS",
    "APPLICATION_TRANSITIONS",
]
