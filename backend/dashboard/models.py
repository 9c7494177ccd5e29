import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum, Text, Integer, JSON
from sqlalchemy.orm import relationship
from dashboard.db import Base
from dashboard.utils.clock import utcnow


class Sender(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class LogType(str, enum.Enum):
    EXECUTION = "execution"
    FEATURE_UPDATE = "feature_update"
    ROLLBACK = "rollback"
    PROJECT_PUSH = "project_push"


class OutputType(str, enum.Enum):
    AUDIO = "audio"
    VIDEO = "video"
    PDF = "pdf"
    DOCUMENT = "document"
    IMAGE = "image"
    CODE = "code"


class SalePlatform(str, enum.Enum):
    SHOPIFY = "shopify"
    FANSLY = "fansly"
    PATREON = "patreon"
    GUMROAD = "gumroad"
    OTHER = "other"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    projects = relationship("Project", back_populates="owner")


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(500), nullable=False)
    prompt = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="projects")
    features = relationship("Feature", back_populates="project", order_by="Feature.id")
    messages = relationship("Message", back_populates="project")
    logs = relationship("Log", back_populates="project")
    outputs = relationship("Output", back_populates="project")
    sales = relationship("Sale", back_populates="project")
    tasks = relationship("Task", back_populates="project")
    credential_set = relationship("CredentialSet", back_populates="project", uselist=False)


class Feature(Base):
    __tablename__ = "features"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="features")
    milestones = relationship("Milestone", back_populates="feature", order_by="Milestone.id")


class Milestone(Base):
    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    feature_id = Column(Integer, ForeignKey("features.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    feature = relationship("Feature", back_populates="milestones")
    goals = relationship("Goal", back_populates="milestone", order_by="Goal.id")


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    milestone_id = Column(Integer, ForeignKey("milestones.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    milestone = relationship("Milestone", back_populates="goals")


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    sender = Column(Enum(Sender), nullable=False)
    content = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)

    project = relationship("Project", back_populates="messages")


class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    type = Column(String(100), nullable=False)
    title = Column(String(500), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)

    project = relationship("Project", back_populates="logs")


class Output(Base):
    __tablename__ = "outputs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    type = Column(Enum(OutputType), nullable=False)
    content = Column(Text, nullable=False)
    approved = Column(Boolean, nullable=True)  # None until reviewed
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="outputs")


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # minor units
    description = Column(Text, nullable=True)
    platform = Column(Enum(SalePlatform), nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)

    project = relationship("Project", back_populates="sales")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(TaskStatus), default=TaskStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="tasks")


class CredentialSet(Base):
    __tablename__ = "credential_sets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, unique=True)
    encrypted_payload = Column(Text, nullable=False)  # Fernet token of the JSON mapping
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    project = relationship("Project", back_populates="credential_set")
