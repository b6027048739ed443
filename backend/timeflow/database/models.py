"""
SQLAlchemy database models for the TimeFlow time tracker.

Defines all database tables and relationships for users, teams, projects,
tasks, checklist items, time entries, and the single-instance integration
and notification settings rows.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text,
    ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()

DEFAULT_TASK_COLOR = "#3B82F6"
DEFAULT_TASK_SOURCE = "sistema"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """Global user roles."""
    ADMIN = "admin"
    USER = "user"


class ResponseMode(str, enum.Enum):
    """How the WhatsApp integration decides who may talk to it."""
    INDIVIDUAL = "individual"
    GROUP = "group"


class User(Base):
    """User account used for authentication and ownership."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    must_reset_password = Column(Boolean, nullable=False, default=False)
    reset_token = Column(String(255), nullable=True)
    reset_token_expiry = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    api_key = Column(String(255), nullable=True, unique=True)
    recovery_key_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    # Relationships
    tasks = relationship("Task", back_populates="user")
    time_entries = relationship("TimeEntry", back_populates="user")
    owned_projects = relationship("Project", back_populates="owner")

    __table_args__ = (
        Index('idx_user_active', 'is_active'),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class Team(Base):
    """Group of users that can share projects."""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    # Relationships
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    managers = relationship("TeamManager", back_populates="team", cascade="all, delete-orphan")
    project_links = relationship("ProjectTeam", back_populates="team", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"


class TeamMember(Base):
    """Membership of a user in a team."""
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    team = relationship("Team", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='uq_team_member'),
        Index('idx_team_member_user', 'user_id'),
    )

    def __repr__(self):
        return f"<TeamMember(team_id={self.team_id}, user_id={self.user_id})>"


class TeamManager(Base):
    """User allowed to change a team's membership and linked projects."""
    __tablename__ = "team_managers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    team = relationship("Team", back_populates="managers")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='uq_team_manager'),
        Index('idx_team_manager_user', 'user_id'),
    )

    def __repr__(self):
        return f"<TeamManager(team_id={self.team_id}, user_id={self.user_id})>"


class Project(Base):
    """Project grouping tasks. Either personal (single owner) or team-shared."""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_personal = Column(Boolean, nullable=False, default=False)
    estimated_hours = Column(Integer, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    # Relationships
    owner = relationship("User", back_populates="owned_projects")
    tasks = relationship("Task", back_populates="project")
    team_links = relationship("ProjectTeam", back_populates="project", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_project_owner_personal', 'owner_id', 'is_personal'),
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"


class ProjectTeam(Base):
    """Association table granting a team access to a project."""
    __tablename__ = "project_teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    project = relationship("Project", back_populates="team_links")
    team = relationship("Team", back_populates="project_links")

    __table_args__ = (
        UniqueConstraint('project_id', 'team_id', name='uq_project_team'),
    )

    def __repr__(self):
        return f"<ProjectTeam(project_id={self.project_id}, team_id={self.team_id})>"


class Task(Base):
    """Unit of work that time is tracked against."""
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=False, default=DEFAULT_TASK_COLOR)
    estimated_hours = Column(Integer, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    # "sistema" for tasks created here, otherwise the name of the external system
    source = Column(String(100), nullable=False, default=DEFAULT_TASK_SOURCE)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # Nullable only so legacy orphan rows can exist until repaired
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)

    # Relationships
    user = relationship("User", back_populates="tasks")
    project = relationship("Project", back_populates="tasks")
    items = relationship("TaskItem", back_populates="task", cascade="all, delete-orphan",
                         order_by="TaskItem.id")
    time_entries = relationship("TimeEntry", back_populates="task", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_task_project', 'project_id'),
        Index('idx_task_user_active', 'user_id', 'is_active'),
    )

    def __repr__(self):
        return f"<Task(id={self.id}, name='{self.name}', project_id={self.project_id})>"


class TaskItem(Base):
    """Checklist item inside a task."""
    __tablename__ = "task_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    title = Column(String(500), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    task = relationship("Task", back_populates="items")

    def __repr__(self):
        return f"<TaskItem(id={self.id}, task_id={self.task_id})>"


class TimeEntry(Base):
    """Time entry tracking a work session on a task."""
    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    is_running = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    task = relationship("Task", back_populates="time_entries")
    user = relationship("User", back_populates="time_entries")

    __table_args__ = (
        Index('idx_time_entry_user_start', 'user_id', 'start_time'),
        Index('idx_time_entry_task', 'task_id'),
        Index('idx_time_entry_running', 'is_running'),
    )

    def __repr__(self):
        return f"<TimeEntry(id={self.id}, task_id={self.task_id}, user_id={self.user_id})>"


class WhatsappIntegration(Base):
    """Evolution API connection settings. Single instance."""
    __tablename__ = "whatsapp_integrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instance_name = Column(String(255), nullable=False)
    api_url = Column(String(500), nullable=False)
    api_key = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    webhook_url = Column(String(500), nullable=True)
    authorized_numbers = Column(Text, nullable=True)  # JSON array, e.g. ["5531999999999@c.us"]
    restrict_to_numbers = Column(Boolean, nullable=False, default=True)
    allowed_group_jid = Column(String(255), nullable=True)
    response_mode = Column(String(20), nullable=False, default=ResponseMode.INDIVIDUAL.value)
    last_connection = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    logs = relationship("WhatsappLog", back_populates="integration", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<WhatsappIntegration(id={self.id}, instance_name='{self.instance_name}')>"


class WhatsappLog(Base):
    """Command and message log for the WhatsApp integration."""
    __tablename__ = "whatsapp_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    integration_id = Column(Integer, ForeignKey("whatsapp_integrations.id"), nullable=False)
    log_type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    log_metadata = Column("metadata", Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    integration = relationship("WhatsappIntegration", back_populates="logs")

    __table_args__ = (
        Index('idx_whatsapp_log_integration_timestamp', 'integration_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<WhatsappLog(id={self.id}, log_type='{self.log_type}')>"


class NotificationSettings(Base):
    """Automatic notification preferences. Single instance."""
    __tablename__ = "notification_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    enable_daily_report = Column(Boolean, nullable=False, default=False)
    daily_report_time = Column(String(5), nullable=True, default="18:00")
    enable_weekly_report = Column(Boolean, nullable=False, default=False)
    weekly_report_day = Column(Integer, nullable=True, default=5)  # 0=sunday
    enable_deadline_reminders = Column(Boolean, nullable=False, default=True)
    reminder_hours_before = Column(Integer, nullable=True, default=24)
    enable_timer_reminders = Column(Boolean, nullable=False, default=False)
    timer_reminder_interval = Column(Integer, nullable=True, default=120)  # minutes
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f"<NotificationSettings(id={self.id})>"
