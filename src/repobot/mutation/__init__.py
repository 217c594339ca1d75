"""Repository mutation plans and their executor.

- MutationPlan: ordered, order-checked GitHub write operations
- RepositoryMutator: runs a plan, halting on the first failed step
"""

from src.repobot.mutation.executor import MutationResult, RepositoryMutator
from src.repobot.mutation.plan import (
    Comment,
    CreateBranch,
    DeleteFile,
    InvalidPlanError,
    MutationPlan,
    MutationStep,
    OpenPullRequest,
    React,
    ReactionTarget,
    WriteFile,
    branch_name,
)

__all__ = [
    "branch_name",
    "Comment",
    "CreateBranch",
    "DeleteFile",
    "InvalidPlanError",
    "MutationPlan",
    "MutationResult",
    "MutationStep",
    "OpenPullRequest",
    "React",
    "ReactionTarget",
    "RepositoryMutator",
    "WriteFile",
]
