"""
Administrative repair routines.

Run with ``python -m timeflow.database.maintenance`` to give every user a
personal project and move their orphan tasks into it.
"""
import logging
from typing import Dict

from .storage import Storage

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def repair_projects(storage: Storage) -> Dict[str, int]:
    """
    Ensure each user has a personal project and adopt their orphan tasks.

    Args:
        storage: Storage bound to an open session

    Returns:
        Dict[str, int]: users_processed, projects_created and tasks_migrated
    """
    stats = {"users_processed": 0, "projects_created": 0, "tasks_migrated": 0}

    for user in storage.get_all_users():
        project, created = storage.ensure_personal_project(user)
        migrated = storage.migrate_orphan_tasks(user.id, project.id)

        stats["users_processed"] += 1
        if created:
            stats["projects_created"] += 1
        stats["tasks_migrated"] += migrated

        logger.info(
            "User %s (%s): personal project %s%s, %s orphan tasks migrated",
            user.id, user.username, project.id, " created" if created else "", migrated
        )

    logger.info("Project repair finished: %s", stats)
    return stats


def main():
    from .connection import DatabaseManager, SessionLocal

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    DatabaseManager.init_db()

    db = SessionLocal()
    try:
        repair_projects(Storage(db))
    finally:
        db.close()


if __name__ == "__main__":
    main()
