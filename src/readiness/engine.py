"""Dependency readiness: which pending tasks can be picked up now."""

import structlog

from entities import EntityStore
from observability import metrics
from shared_types import EntityKind, TaskStatus

logger = structlog.get_logger()


def _is_status(task: dict, status: TaskStatus) -> bool:
    return task.get("status") == status.value


class ReadinessEngine:
    """Derives readiness from each task's ``dependencies`` id list.

    Results are recomputed on every call; nothing is cached between calls.
    A dependency id that does not resolve counts as unmet unless
    ``missing_dependency_blocks`` is False.
    """

    def __init__(self, entity_store: EntityStore, missing_dependency_blocks: bool = True):
        self.entity_store = entity_store
        self.missing_dependency_blocks = missing_dependency_blocks

    def is_ready(self, task: dict) -> bool:
        """Pending and every dependency completed."""
        if not _is_status(task, TaskStatus.PENDING):
            return False
        return not self.blocking_dependencies(task)

    def blocking_dependencies(self, task: dict) -> list[str]:
        """Dependency ids that are not (known to be) completed."""
        blocking = []
        for dep_id in task.get("dependencies") or []:
            dep = self.entity_store.find_by_id(EntityKind.TASK, dep_id)
            if dep is None:
                if self.missing_dependency_blocks:
                    blocking.append(dep_id)
            elif not _is_status(dep, TaskStatus.COMPLETED):
                blocking.append(dep_id)
        return blocking

    def list_ready(self, story_id: str | None = None) -> list[dict]:
        """Pending tasks whose dependencies are all completed.

        Args:
            story_id: Only consider tasks of this story.
        """
        with metrics.timer("readiness.list_ready"):
            all_tasks = self.entity_store.find_all(EntityKind.TASK)
            # completed/known sets span every story: dependencies may cross stories
            completed = {t["id"] for t in all_tasks if _is_status(t, TaskStatus.COMPLETED)}
            known = {t["id"] for t in all_tasks}

            candidates = all_tasks
            if story_id is not None:
                candidates = [t for t in all_tasks if t.get("story_id") == story_id]

            ready = []
            for task in candidates:
                if not _is_status(task, TaskStatus.PENDING):
                    continue
                if all(self._dependency_met(d, completed, known) for d in task.get("dependencies") or []):
                    ready.append(task)

        logger.debug(
            "readiness.listed",
            story_id=story_id,
            candidates=len(candidates),
            ready=len(ready),
        )
        return ready

    def _dependency_met(self, dep_id: str, completed: set[str], known: set[str]) -> bool:
        if dep_id in completed:
            return True
        if dep_id not in known:
            return not self.missing_dependency_blocks
        return False
