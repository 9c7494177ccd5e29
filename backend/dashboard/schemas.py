from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from typing import Optional, List, Dict, Any, Union, Literal, Annotated
from datetime import datetime
from dashboard.models import Sender, OutputType, SalePlatform, TaskStatus


# ============= Message Metadata =============
class CodeBlock(BaseModel):
    language: str
    filename: str
    code: str


class Screenshot(BaseModel):
    url: str
    caption: str = ""


class CodeMetadata(BaseModel):
    type: Literal["code"] = "code"
    data: CodeBlock


class ScreenshotMetadata(BaseModel):
    type: Literal["screenshot"] = "screenshot"
    data: Screenshot


class TaskStatusMetadata(BaseModel):
    type: Literal["task_status"] = "task_status"
    data: Optional[str] = None


MessageMetadata = Annotated[
    Union[CodeMetadata, ScreenshotMetadata, TaskStatusMetadata],
    Field(discriminator="type"),
]


# ============= Project Schemas =============
class GoalPlan(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None


class MilestonePlan(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    goals: List[GoalPlan] = Field(default_factory=list)


class FeaturePlan(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    milestones: List[MilestonePlan] = Field(default_factory=list)


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=500, description="Project name")
    prompt: str = Field(..., min_length=1, description="What the project should accomplish")
    user_id: Optional[int] = None
    features: List[FeaturePlan] = Field(default_factory=list, description="Optional feature plan")


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    prompt: str
    user_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class GoalCreate(BaseModel):
    milestone_id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    milestone_id: int
    title: str
    description: Optional[str] = None
    completed: bool
    created_at: datetime


class MilestoneCreate(BaseModel):
    feature_id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class MilestoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    feature_id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: bool
    created_at: datetime
    goals: List[GoalResponse] = Field(default_factory=list)


class FeatureCreate(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None


class FeatureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    completed: bool
    created_at: datetime
    milestones: List[MilestoneResponse] = Field(default_factory=list)


class ProjectDetailResponse(ProjectResponse):
    features: List[FeatureResponse] = Field(default_factory=list)


# ============= Message & Log Schemas =============
class MessageCreate(BaseModel):
    project_id: int
    content: str = Field(..., min_length=1)
    sender: Sender
    metadata: Optional[MessageMetadata] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    content: str
    sender: Sender
    # ORM attribute is "meta"; clients send and receive "metadata"
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("meta", "metadata")
    )
    timestamp: datetime


class LogCreate(BaseModel):
    project_id: int
    type: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=500)
    details: Optional[str] = None


class LogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    type: str
    title: str
    details: Optional[str] = None
    timestamp: datetime


# ============= Output & Sale Schemas =============
class OutputCreate(BaseModel):
    project_id: int
    type: OutputType
    content: str = Field(..., min_length=1)


class OutputResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    type: OutputType
    content: str
    approved: Optional[bool] = None
    created_at: datetime


class SaleCreate(BaseModel):
    project_id: int
    amount: int = Field(..., ge=0, description="Amount in minor units")
    description: Optional[str] = None
    platform: Optional[SalePlatform] = None


class SaleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    amount: int
    description: Optional[str] = None
    platform: Optional[SalePlatform] = None
    timestamp: datetime


class PerformanceResponse(BaseModel):
    messages: int
    content: int
    income: int


# ============= Task Schemas =============
class TaskCreate(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


# ============= Credential Schemas =============
class CredentialSetUpdate(BaseModel):
    credentials: Dict[str, Dict[str, str]]


class CredentialSetResponse(BaseModel):
    project_id: int
    credentials: Dict[str, Dict[str, str]]
    updated_at: Optional[datetime] = None


class CredentialTestRequest(BaseModel):
    platform: str = Field(..., min_length=1)
    credentials: Dict[str, str] = Field(default_factory=dict)


class CredentialTestResult(BaseModel):
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None
