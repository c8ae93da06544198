"""Example: drive the service layer directly (no Flask).

Lists the tasks due for an admin and completes the first one.
"""

import importlib

from dotenv import load_dotenv

from config import get_settings_module
from practice_desk.container import build_container
from practice_desk.core.enums import Role
from practice_desk.identity.model import Principal
from practice_desk.tasks.model import TaskFilters


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    admin = Principal(subject_id="u-admin", email="admin@example.com", role=Role.ADMIN, name="Admin Demo")

    service = container.recurring_task_service
    due = service.list_visible_tasks(admin, TaskFilters(due_only=True))
    for task in due:
        print(task.next_occurrence, task.recurrence_pattern.value, task.title)

    if due:
        outcome = service.complete_cycle(admin, due[0].task_id)
        print("completed", outcome.period_key, "next:", outcome.task.next_occurrence)
        for failure in outcome.visit_failures:
            print("visit not recorded:", failure.to_dict())


if __name__ == "__main__":
    main()
