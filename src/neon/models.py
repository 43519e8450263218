from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NeonModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OperationStatus(str, Enum):
    """Known operation states; anything not terminal counts as pending."""

    SCHEDULING = "scheduling"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


class NeonOperationRef(NeonModel):
    id: str
    action: str = ""


class NeonBranch(NeonModel):
    id: str
    name: str
    primary: bool = False
    parent_id: str | None = None
    operations: list[NeonOperationRef] = Field(default_factory=list)


class NeonOperation(NeonModel):
    id: str
    action: str = ""
    status: str


class NeonDatabase(NeonModel):
    name: str
    id: int | str | None = None


class NeonRole(NeonModel):
    name: str


class NeonConnection(NeonModel):
    uri: str | None = None


class BranchListResponse(NeonModel):
    branches: list[NeonBranch] = Field(default_factory=list)


class BranchCreateResponse(NeonModel):
    branch: NeonBranch
    operations: list[NeonOperationRef] = Field(default_factory=list)

    @property
    def pending_operations(self) -> list[NeonOperationRef]:
        """Operations to await, in the order the control plane listed them."""

        return self.branch.operations or self.operations


class OperationResponse(NeonModel):
    operation: NeonOperation


class DatabaseListResponse(NeonModel):
    databases: list[NeonDatabase] = Field(default_factory=list)


class RoleListResponse(NeonModel):
    roles: list[NeonRole] = Field(default_factory=list)


class BranchCheckResult(NeonModel):
    existing_branch: NeonBranch | None = None
    primary_branch_id: str
