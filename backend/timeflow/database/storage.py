"""
Storage layer for the TimeFlow time tracker.

Wraps a SQLAlchemy session with the queries used by the API routes:
user lookups, team membership, project access, task statistics, time
entries, analytics, and the single-instance integration settings. The
ownership and team-based authorization predicates live here as well, so
routes only decide which HTTP status to return.

Missing rows are reported as ``None`` (or ``False`` for deletes); mutating
methods commit before returning.
"""
import logging
import secrets
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from .models import (
    User, Team, TeamMember, TeamManager, Project, ProjectTeam,
    Task, TaskItem, TimeEntry, WhatsappIntegration, WhatsappLog,
    NotificationSettings, utc_now
)

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "pont_"
NEARING_LIMIT_RATIO = 0.8


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def entry_seconds(entry: TimeEntry, now: Optional[datetime] = None) -> int:
    """Tracked seconds for an entry; running entries count time elapsed so far."""
    if entry.is_running:
        now = now or utc_now()
        return max(0, int((now - as_utc(entry.start_time)).total_seconds()))
    return entry.duration or 0


def personal_project_name(user: User) -> str:
    parts = (user.full_name or "").split()
    first_name = parts[0] if parts else user.username
    return f"Personal Project - {first_name}"


class Storage:
    """Query and mutation surface over a single database session."""

    def __init__(self, db: Session):
        self.db = db

    def _apply(self, row, updates: Dict[str, Any]):
        for field, value in updates.items():
            setattr(row, field, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def _add(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_user_by_username_or_email(self, identifier: str) -> Optional[User]:
        lowered = identifier.lower()
        return self.db.query(User).filter(
            or_(func.lower(User.username) == lowered, func.lower(User.email) == lowered)
        ).first()

    def get_user_by_api_key(self, api_key: str) -> Optional[User]:
        return self.db.query(User).filter(
            User.api_key == api_key,
            User.is_active == True
        ).first()

    def get_user_by_reset_token(self, token: str) -> Optional[User]:
        return self.db.query(User).filter(User.reset_token == token).first()

    def get_all_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def count_users(self) -> int:
        return self.db.query(User).count()

    def list_users(
        self,
        is_active: Optional[bool] = None,
        role: Optional[str] = None,
        q: Optional[str] = None,
        page: int = 1,
        per_page: int = 10,
    ) -> Tuple[List[User], int]:
        """Filtered, paginated user listing. Returns the page and the total count."""
        query = self.db.query(User)

        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        if role:
            query = query.filter(User.role == role)
        if q:
            pattern = f"%{q}%"
            query = query.filter(
                User.username.ilike(pattern) |
                User.full_name.ilike(pattern) |
                User.email.ilike(pattern)
            )

        total = query.count()
        users = query.order_by(User.id).offset((page - 1) * per_page).limit(per_page).all()
        return users, total

    def search_users(self, q: str, limit: int = 20) -> List[User]:
        pattern = f"%{q}%"
        return self.db.query(User).filter(
            User.is_active == True,
            User.username.ilike(pattern) | User.full_name.ilike(pattern) | User.email.ilike(pattern)
        ).order_by(User.username).limit(limit).all()

    def create_user(self, **fields) -> User:
        return self._add(User(**fields))

    def update_user(self, user_id: int, updates: Dict[str, Any]) -> Optional[User]:
        user = self.get_user(user_id)
        if not user:
            return None
        return self._apply(user, updates)

    def user_has_tracked_work(self, user_id: int) -> bool:
        """Whether the user created tasks, checklist items, or time entries."""
        for model in (Task, TaskItem, TimeEntry):
            if self.db.query(model.id).filter(model.user_id == user_id).first():
                return True
        return False

    def delete_user(self, user_id: int) -> bool:
        """
        Delete a user without tracked work.

        Team links go with the user; empty personal projects are removed and
        shared projects they owned are left without an owner.
        """
        user = self.get_user(user_id)
        if not user:
            return False

        self.db.query(TeamMember).filter(TeamMember.user_id == user_id).delete(synchronize_session=False)
        self.db.query(TeamManager).filter(TeamManager.user_id == user_id).delete(synchronize_session=False)
        for project in self.db.query(Project).filter(Project.owner_id == user_id).all():
            if project.is_personal and not project.tasks:
                self.db.delete(project)
            else:
                project.owner_id = None
        self.db.delete(user)
        self.db.commit()
        return True

    def generate_api_key(self, user_id: int) -> Optional[str]:
        api_key = API_KEY_PREFIX + secrets.token_urlsafe(24)
        if not self.update_user(user_id, {"api_key": api_key}):
            return None
        return api_key

    def validate_user_access(self, user_id: int) -> bool:
        """Whether the user exists and is active."""
        user = self.get_user(user_id)
        return bool(user and user.is_active)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def create_team(self, **fields) -> Team:
        return self._add(Team(**fields))

    def get_team(self, team_id: int) -> Optional[Team]:
        return self.db.get(Team, team_id)

    def get_all_teams(self) -> List[Team]:
        return self.db.query(Team).order_by(Team.id).all()

    def update_team(self, team_id: int, updates: Dict[str, Any]) -> Optional[Team]:
        team = self.get_team(team_id)
        if not team:
            return None
        return self._apply(team, updates)

    def delete_team(self, team_id: int) -> bool:
        team = self.get_team(team_id)
        if not team:
            return False
        # members, managers and project links cascade with the team
        self.db.delete(team)
        self.db.commit()
        logger.info("Deleted team %s", team_id)
        return True

    def is_team_member(self, team_id: int, user_id: int) -> bool:
        return self.db.query(TeamMember.id).filter(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id
        ).first() is not None

    def is_team_manager(self, team_id: int, user_id: int) -> bool:
        return self.db.query(TeamManager.id).filter(
            TeamManager.team_id == team_id,
            TeamManager.user_id == user_id
        ).first() is not None

    def add_team_member(self, team_id: int, user_id: int) -> TeamMember:
        existing = self.db.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id
        ).first()
        if existing:
            return existing
        member = self._add(TeamMember(team_id=team_id, user_id=user_id))
        logger.info("Added user %s to team %s", user_id, team_id)
        return member

    def remove_team_member(self, team_id: int, user_id: int) -> bool:
        """Remove a member; their manager role in the team goes too."""
        removed = self.db.query(TeamMember).filter(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.query(TeamManager).filter(
            TeamManager.team_id == team_id,
            TeamManager.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.commit()
        if removed:
            logger.info("Removed user %s from team %s", user_id, team_id)
        return removed > 0

    def get_team_members(self, team_id: int) -> List[User]:
        return self.db.query(User).join(TeamMember, TeamMember.user_id == User.id).filter(
            TeamMember.team_id == team_id
        ).order_by(User.id).all()

    def add_team_manager(self, team_id: int, user_id: int) -> TeamManager:
        existing = self.db.query(TeamManager).filter(
            TeamManager.team_id == team_id,
            TeamManager.user_id == user_id
        ).first()
        if existing:
            return existing
        manager = self._add(TeamManager(team_id=team_id, user_id=user_id))
        logger.info("User %s is now a manager of team %s", user_id, team_id)
        return manager

    def remove_team_manager(self, team_id: int, user_id: int) -> bool:
        removed = self.db.query(TeamManager).filter(
            TeamManager.team_id == team_id,
            TeamManager.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return removed > 0

    def get_team_managers(self, team_id: int) -> List[User]:
        return self.db.query(User).join(TeamManager, TeamManager.user_id == User.id).filter(
            TeamManager.team_id == team_id
        ).order_by(User.id).all()

    def get_teams_for_user(self, user_id: int) -> List[Team]:
        return self.db.query(Team).join(TeamMember, TeamMember.team_id == Team.id).filter(
            TeamMember.user_id == user_id
        ).order_by(Team.id).all()

    def get_managed_teams(self, user_id: int) -> List[Team]:
        return self.db.query(Team).join(TeamManager, TeamManager.team_id == Team.id).filter(
            TeamManager.user_id == user_id
        ).order_by(Team.id).all()

    def update_user_managed_teams(self, user_id: int, team_ids: Iterable[int]) -> None:
        """Replace the set of teams a user manages. Managers also become members."""
        self.db.query(TeamManager).filter(TeamManager.user_id == user_id).delete(synchronize_session=False)

        for team_id in sorted(set(team_ids)):
            self.db.add(TeamManager(team_id=team_id, user_id=user_id))
            if not self.is_team_member(team_id, user_id):
                self.db.add(TeamMember(team_id=team_id, user_id=user_id))

        self.db.commit()
        logger.info("Managed teams for user %s set to %s", user_id, sorted(set(team_ids)))

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, **fields) -> Project:
        if fields.get("deadline") is not None:
            fields["deadline"] = as_utc(fields["deadline"])
        return self._add(Project(**fields))

    def get_project(self, project_id: int) -> Optional[Project]:
        return self.db.get(Project, project_id)

    def update_project(self, project_id: int, updates: Dict[str, Any]) -> Optional[Project]:
        project = self.get_project(project_id)
        if not project:
            return None
        if updates.get("deadline") is not None:
            updates = {**updates, "deadline": as_utc(updates["deadline"])}
        return self._apply(project, updates)

    def delete_project(self, project_id: int) -> bool:
        project = self.get_project(project_id)
        if not project:
            return False
        project.is_active = False
        self.db.commit()
        return True

    def project_has_active_tasks(self, project_id: int) -> bool:
        return self.db.query(Task.id).filter(
            Task.project_id == project_id,
            Task.is_active == True
        ).first() is not None

    def get_user_personal_project(self, user_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(
            Project.owner_id == user_id,
            Project.is_personal == True
        ).order_by(Project.id).first()

    def ensure_personal_project(self, user: User) -> Tuple[Project, bool]:
        """Return the user's personal project, creating it on first use."""
        project = self.get_user_personal_project(user.id)
        if project:
            return project, False

        project = self.create_project(
            name=personal_project_name(user),
            description="Your space for personal and private tasks",
            is_personal=True,
            owner_id=user.id,
            is_active=True,
        )
        logger.info("Created personal project %s for user %s", project.id, user.id)
        return project, True

    def _member_team_ids(self, user_id: int):
        return select(TeamMember.team_id).join(Team, Team.id == TeamMember.team_id).where(
            TeamMember.user_id == user_id,
            Team.is_active == True
        )

    def get_projects_for_user(self, user_id: int) -> List[Project]:
        """Active projects the user owns plus those shared with one of their teams."""
        shared_project_ids = select(ProjectTeam.project_id).where(
            ProjectTeam.team_id.in_(self._member_team_ids(user_id))
        )
        return self.db.query(Project).filter(
            Project.is_active == True,
            or_(Project.owner_id == user_id, Project.id.in_(shared_project_ids))
        ).order_by(Project.id).all()

    def get_all_projects(self) -> List[Project]:
        return self.db.query(Project).order_by(Project.id).all()

    def get_project_team_link(self, project_id: int, team_id: int) -> Optional[ProjectTeam]:
        return self.db.query(ProjectTeam).filter(
            ProjectTeam.project_id == project_id,
            ProjectTeam.team_id == team_id
        ).first()

    def bind_project_to_team(self, project_id: int, team_id: int) -> ProjectTeam:
        existing = self.get_project_team_link(project_id, team_id)
        if existing:
            return existing
        link = self._add(ProjectTeam(project_id=project_id, team_id=team_id))
        logger.info("Bound project %s to team %s", project_id, team_id)
        return link

    def unbind_project_from_team(self, team_id: int, project_id: int) -> bool:
        removed = self.db.query(ProjectTeam).filter(
            ProjectTeam.project_id == project_id,
            ProjectTeam.team_id == team_id
        ).delete(synchronize_session=False)
        self.db.commit()
        if removed:
            logger.info("Unbound project %s from team %s", project_id, team_id)
        return removed > 0

    def get_projects_for_team(self, team_id: int) -> List[Project]:
        return self.db.query(Project).join(ProjectTeam, ProjectTeam.project_id == Project.id).filter(
            ProjectTeam.team_id == team_id
        ).order_by(Project.id).all()

    def get_teams_for_project(self, project_id: int) -> List[Team]:
        return self.db.query(Team).join(ProjectTeam, ProjectTeam.team_id == Team.id).filter(
            ProjectTeam.project_id == project_id
        ).order_by(Team.id).all()

    # ------------------------------------------------------------------
    # Authorization predicates
    # ------------------------------------------------------------------

    def can_access_project(self, project: Project, user_id: int, is_admin: bool = False) -> bool:
        if is_admin or project.owner_id == user_id:
            return True
        return self.db.query(ProjectTeam.id).join(
            TeamMember, TeamMember.team_id == ProjectTeam.team_id
        ).join(Team, Team.id == ProjectTeam.team_id).filter(
            ProjectTeam.project_id == project.id,
            TeamMember.user_id == user_id,
            Team.is_active == True
        ).first() is not None

    def can_manage_project(self, project: Project, user_id: int, is_admin: bool = False) -> bool:
        if is_admin or project.owner_id == user_id:
            return True
        return self.db.query(ProjectTeam.id).join(
            TeamManager, TeamManager.team_id == ProjectTeam.team_id
        ).join(Team, Team.id == ProjectTeam.team_id).filter(
            ProjectTeam.project_id == project.id,
            TeamManager.user_id == user_id,
            Team.is_active == True
        ).first() is not None

    def can_access_task(self, task: Task, user_id: int, is_admin: bool = False) -> bool:
        if is_admin or task.user_id == user_id:
            return True
        return task.project is not None and self.can_access_project(task.project, user_id)

    def can_modify_task(self, task: Task, user_id: int, is_admin: bool = False) -> bool:
        if is_admin or task.user_id == user_id:
            return True
        return task.project is not None and self.can_manage_project(task.project, user_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _task_stats(self, tasks: List[Task]) -> List[Dict[str, Any]]:
        """Attach tracked time and running-entry counts to each task."""
        task_ids = [task.id for task in tasks]
        totals: Dict[int, int] = defaultdict(int)
        running: Dict[int, int] = defaultdict(int)

        if task_ids:
            now = utc_now()
            finished = self.db.query(
                TimeEntry.task_id, func.coalesce(func.sum(TimeEntry.duration), 0)
            ).filter(
                TimeEntry.task_id.in_(task_ids),
                TimeEntry.is_running == False
            ).group_by(TimeEntry.task_id).all()
            for task_id, seconds in finished:
                totals[task_id] += int(seconds)

            for entry in self.db.query(TimeEntry).filter(
                TimeEntry.task_id.in_(task_ids),
                TimeEntry.is_running == True
            ).all():
                totals[entry.task_id] += entry_seconds(entry, now)
                running[entry.task_id] += 1

        return [
            {"task": task, "total_time": totals[task.id], "active_entries": running[task.id]}
            for task in tasks
        ]

    def get_all_tasks(
        self,
        user_id: int,
        is_admin: bool = False,
        project_id: Optional[int] = None,
        include_completed: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Active tasks visible to the user, with statistics.

        Admins see every task. Everyone else sees tasks in projects they can
        access plus their own orphan tasks.
        """
        query = self.db.query(Task).options(joinedload(Task.items)).filter(Task.is_active == True)

        if not is_admin:
            project_ids = [project.id for project in self.get_projects_for_user(user_id)]
            query = query.filter(or_(
                Task.project_id.in_(project_ids),
                (Task.user_id == user_id) & Task.project_id.is_(None)
            ))
        if project_id is not None:
            query = query.filter(Task.project_id == project_id)
        if not include_completed:
            query = query.filter(Task.is_completed == False)

        tasks = query.order_by(Task.id).all()
        return self._task_stats(tasks)

    def get_task_with_stats(self, task_id: int) -> Optional[Dict[str, Any]]:
        task = self.get_task(task_id)
        if not task:
            return None
        return self._task_stats([task])[0]

    def get_task(self, task_id: int) -> Optional[Task]:
        return self.db.get(Task, task_id)

    def create_task(self, **fields) -> Task:
        if fields.get("deadline") is not None:
            fields["deadline"] = as_utc(fields["deadline"])
        return self._add(Task(**fields))

    def update_task(self, task_id: int, updates: Dict[str, Any]) -> Optional[Task]:
        task = self.get_task(task_id)
        if not task:
            return None
        if updates.get("deadline") is not None:
            updates = {**updates, "deadline": as_utc(updates["deadline"])}
        return self._apply(task, updates)

    def delete_task(self, task_id: int) -> bool:
        task = self.get_task(task_id)
        if not task:
            return False
        task.is_active = False
        self.db.commit()
        return True

    def complete_task(self, task_id: int) -> Optional[Task]:
        return self.update_task(task_id, {"is_completed": True, "completed_at": utc_now()})

    def reopen_task(self, task_id: int) -> Optional[Task]:
        return self.update_task(task_id, {"is_completed": False, "completed_at": None})

    # ------------------------------------------------------------------
    # Task items
    # ------------------------------------------------------------------

    def get_task_items(self, task_id: int) -> List[TaskItem]:
        return self.db.query(TaskItem).filter(TaskItem.task_id == task_id).order_by(TaskItem.id).all()

    def get_task_item(self, item_id: int) -> Optional[TaskItem]:
        return self.db.get(TaskItem, item_id)

    def create_task_item(self, **fields) -> TaskItem:
        return self._add(TaskItem(**fields))

    def update_task_item(self, item_id: int, updates: Dict[str, Any]) -> Optional[TaskItem]:
        item = self.get_task_item(item_id)
        if not item:
            return None
        return self._apply(item, updates)

    def delete_task_item(self, item_id: int) -> bool:
        item = self.get_task_item(item_id)
        if not item:
            return False
        self.db.delete(item)
        self.db.commit()
        return True

    def complete_all_task_items(self, task_id: int) -> int:
        updated = self.db.query(TaskItem).filter(
            TaskItem.task_id == task_id,
            TaskItem.completed == False
        ).update({TaskItem.completed: True}, synchronize_session=False)
        self.db.commit()
        return updated

    # ------------------------------------------------------------------
    # Time entries
    # ------------------------------------------------------------------

    def get_all_time_entries(self) -> List[TimeEntry]:
        return self.db.query(TimeEntry).options(joinedload(TimeEntry.task)).order_by(
            TimeEntry.created_at.desc(), TimeEntry.id.desc()
        ).all()

    def get_time_entry(self, entry_id: int) -> Optional[TimeEntry]:
        return self.db.get(TimeEntry, entry_id)

    def get_time_entries_by_task(self, task_id: int) -> List[TimeEntry]:
        return self.db.query(TimeEntry).filter(TimeEntry.task_id == task_id).order_by(
            TimeEntry.start_time.desc()
        ).all()

    def get_time_entries_by_user(
        self,
        user_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        task_id: Optional[int] = None,
    ) -> List[TimeEntry]:
        """The user's entries, running ones first, then newest start first."""
        query = self.db.query(TimeEntry).options(joinedload(TimeEntry.task)).filter(
            TimeEntry.user_id == user_id
        )
        if start_date:
            query = query.filter(TimeEntry.start_time >= as_utc(start_date))
        if end_date:
            query = query.filter(TimeEntry.start_time <= as_utc(end_date))
        if task_id is not None:
            query = query.filter(TimeEntry.task_id == task_id)
        return query.order_by(TimeEntry.is_running.desc(), TimeEntry.start_time.desc()).all()

    def get_running_time_entries(self, user_id: Optional[int] = None) -> List[TimeEntry]:
        query = self.db.query(TimeEntry).options(joinedload(TimeEntry.task)).filter(
            TimeEntry.is_running == True
        )
        if user_id is not None:
            query = query.filter(TimeEntry.user_id == user_id)
        return query.order_by(TimeEntry.start_time).all()

    def create_time_entry(
        self,
        task_id: int,
        user_id: int,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        """Create an entry. Without an end time the entry is a running timer."""
        start_time = as_utc(start_time)
        end_time = as_utc(end_time)
        duration = None
        if end_time is not None:
            duration = int((end_time - start_time).total_seconds())

        return self._add(TimeEntry(
            task_id=task_id,
            user_id=user_id,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
            is_running=end_time is None,
            notes=notes,
        ))

    def update_time_entry(self, entry_id: int, updates: Dict[str, Any]) -> Optional[TimeEntry]:
        """
        Update an entry, keeping duration and running state consistent.

        Setting an end time stops the entry; clearing it makes it run again.
        Duration is always recomputed from the times.
        """
        entry = self.get_time_entry(entry_id)
        if not entry:
            return None

        updates = dict(updates)
        for field in ("start_time", "end_time"):
            if updates.get(field) is not None:
                updates[field] = as_utc(updates[field])

        start_time = updates.get("start_time", as_utc(entry.start_time))
        end_time = updates["end_time"] if "end_time" in updates else as_utc(entry.end_time)

        if end_time is None:
            updates["is_running"] = True
            updates["duration"] = None
        else:
            updates["is_running"] = False
            updates["duration"] = int((end_time - start_time).total_seconds())

        return self._apply(entry, updates)

    def delete_time_entry(self, entry_id: int) -> bool:
        entry = self.get_time_entry(entry_id)
        if not entry:
            return False
        self.db.delete(entry)
        self.db.commit()
        return True

    def delete_all_time_entries(self) -> int:
        deleted = self.db.query(TimeEntry).delete(synchronize_session=False)
        self.db.commit()
        logger.info("Deleted all %s time entries", deleted)
        return deleted

    def start_timer(self, task_id: int, user_id: int, notes: Optional[str] = None) -> TimeEntry:
        return self.create_time_entry(task_id=task_id, user_id=user_id, start_time=utc_now(), notes=notes)

    def stop_timer(self, entry: TimeEntry, notes: Optional[str] = None) -> TimeEntry:
        end_time = utc_now()
        entry.end_time = end_time
        entry.duration = max(0, int((end_time - as_utc(entry.start_time)).total_seconds()))
        entry.is_running = False
        if notes:
            entry.notes = notes
        self.db.commit()
        self.db.refresh(entry)
        return entry

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def get_dashboard_stats(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, int]:
        """Time totals and deadline/estimate counters for the user's dashboard."""
        now = as_utc(now) if now else utc_now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        # weeks start on sunday
        start_of_week = start_of_day - timedelta(days=(start_of_day.weekday() + 1) % 7)
        start_of_month = start_of_day.replace(day=1)
        start_of_tomorrow = start_of_day + timedelta(days=1)
        start_of_day_after = start_of_tomorrow + timedelta(days=1)

        entries = self.db.query(TimeEntry).filter(
            TimeEntry.user_id == user_id,
            TimeEntry.start_time >= min(start_of_week, start_of_month)
        ).all()

        def time_since(boundary: datetime) -> int:
            return sum(entry_seconds(e, now) for e in entries if as_utc(e.start_time) >= boundary)

        tasks = self.db.query(Task).filter(Task.user_id == user_id, Task.is_active == True).all()
        stats = self._task_stats(tasks)

        open_tasks = [s for s in stats if not s["task"].is_completed]
        completed = [s for s in stats if s["task"].is_completed]

        overdue = due_today = due_tomorrow = over_time = nearing_limit = 0
        for row in open_tasks:
            task = row["task"]
            deadline = as_utc(task.deadline)
            if deadline is not None:
                if deadline < now:
                    overdue += 1
                elif deadline < start_of_tomorrow:
                    due_today += 1
                elif deadline < start_of_day_after:
                    due_tomorrow += 1
            if task.estimated_hours:
                estimate = task.estimated_hours * 3600
                if row["total_time"] > estimate:
                    over_time += 1
                elif row["total_time"] >= estimate * NEARING_LIMIT_RATIO:
                    nearing_limit += 1

        estimated = sum(r["task"].estimated_hours * 3600 for r in completed
                        if r["task"].estimated_hours and r["total_time"])
        spent = sum(r["total_time"] for r in completed if r["task"].estimated_hours and r["total_time"])
        efficiency = round(estimated / spent * 100) if spent else 0

        return {
            "today_time": time_since(start_of_day),
            "week_time": time_since(start_of_week),
            "month_time": time_since(start_of_month),
            "active_tasks": len(open_tasks),
            "completed_tasks": len(completed),
            "overdue_tasks": overdue,
            "over_time_tasks": over_time,
            "due_today_tasks": due_today,
            "due_tomorrow_tasks": due_tomorrow,
            "nearing_limit_tasks": nearing_limit,
            "efficiency": efficiency,
        }

    def get_time_by_task(
        self,
        user_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Tracked seconds per task for the user, largest first."""
        now = utc_now()
        totals: Dict[int, int] = defaultdict(int)
        tasks: Dict[int, Task] = {}
        for entry in self.get_time_entries_by_user(user_id, start_date, end_date):
            totals[entry.task_id] += entry_seconds(entry, now)
            tasks[entry.task_id] = entry.task

        rows = [{"task": tasks[task_id], "total_time": seconds} for task_id, seconds in totals.items()]
        return sorted(rows, key=lambda row: (-row["total_time"], row["task"].id))

    def get_daily_stats(self, user_id: int, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Tracked seconds per UTC calendar day in [start_date, end_date], zero-filled."""
        if end_date < start_date:
            return []

        range_start = datetime.combine(start_date, datetime.min.time(), tzinfo=timezone.utc)
        range_end = datetime.combine(end_date + timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)

        days: Dict[date, int] = {}
        current = start_date
        while current <= end_date:
            days[current] = 0
            current += timedelta(days=1)

        now = utc_now()
        entries = self.db.query(TimeEntry).filter(
            TimeEntry.user_id == user_id,
            TimeEntry.start_time >= range_start,
            TimeEntry.start_time < range_end
        ).all()
        for entry in entries:
            day = as_utc(entry.start_time).date()
            if day in days:
                days[day] += entry_seconds(entry, now)

        return [{"date": day.isoformat(), "total_time": seconds} for day, seconds in days.items()]

    # ------------------------------------------------------------------
    # WhatsApp integration
    # ------------------------------------------------------------------

    def get_whatsapp_integration(self) -> Optional[WhatsappIntegration]:
        return self.db.query(WhatsappIntegration).order_by(WhatsappIntegration.id).first()

    def create_whatsapp_integration(self, **fields) -> WhatsappIntegration:
        """Store the integration, replacing any previous one."""
        for existing in self.db.query(WhatsappIntegration).all():
            self.db.delete(existing)
        self.db.flush()
        return self._add(WhatsappIntegration(**fields))

    def update_whatsapp_integration(self, integration_id: int, updates: Dict[str, Any]) -> Optional[WhatsappIntegration]:
        integration = self.db.get(WhatsappIntegration, integration_id)
        if not integration:
            return None
        return self._apply(integration, updates)

    def delete_whatsapp_integration(self, integration_id: int) -> bool:
        integration = self.db.get(WhatsappIntegration, integration_id)
        if not integration:
            return False
        self.db.delete(integration)
        self.db.commit()
        return True

    def create_whatsapp_log(
        self,
        integration_id: int,
        log_type: str,
        message: str,
        metadata: Optional[str] = None,
    ) -> WhatsappLog:
        return self._add(WhatsappLog(
            integration_id=integration_id,
            log_type=log_type,
            message=message,
            log_metadata=metadata,
        ))

    def get_whatsapp_logs(self, integration_id: int, limit: Optional[int] = None) -> List[WhatsappLog]:
        query = self.db.query(WhatsappLog).filter(WhatsappLog.integration_id == integration_id).order_by(
            WhatsappLog.timestamp.desc(), WhatsappLog.id.desc()
        )
        if limit:
            query = query.limit(limit)
        return query.all()

    # ------------------------------------------------------------------
    # Notification settings
    # ------------------------------------------------------------------

    def get_notification_settings(self) -> Optional[NotificationSettings]:
        return self.db.query(NotificationSettings).order_by(NotificationSettings.id).first()

    def create_notification_settings(self, **fields) -> NotificationSettings:
        return self._add(NotificationSettings(**fields))

    def update_notification_settings(self, updates: Dict[str, Any]) -> Optional[NotificationSettings]:
        settings = self.get_notification_settings()
        if not settings:
            return None
        return self._apply(settings, updates)

    # ------------------------------------------------------------------
    # Migration
    # ------------------------------------------------------------------

    def get_orphan_task_count(self, user_id: Optional[int] = None) -> int:
        query = self.db.query(Task).filter(Task.project_id.is_(None))
        if user_id is not None:
            query = query.filter(Task.user_id == user_id)
        return query.count()

    def migrate_orphan_tasks(self, user_id: int, project_id: int) -> int:
        """Move the user's tasks without a project into ``project_id``."""
        migrated = self.db.query(Task).filter(
            Task.user_id == user_id,
            Task.project_id.is_(None)
        ).update({Task.project_id: project_id}, synchronize_session=False)
        self.db.commit()
        return migrated
