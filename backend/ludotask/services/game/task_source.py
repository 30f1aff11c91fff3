from typing import Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ludotask.models import Task
from .domain import TaskCard
from .errors import UpstreamFailure


class TaskSource:
    """Read-only view over theme tasks."""

    def __init__(self, limit: int = 50):
        self.limit = limit

    def draw_candidate_tasks(self, theme_id: Optional[str], limit: Optional[int] = None) -> List[TaskCard]:
        if not theme_id:
            return []
        try:
            rows = (
                Task.query
                .filter_by(theme_id=theme_id)
                .order_by(Task.order_index.asc(), Task.id.asc())
                .limit(limit or self.limit)
                .all()
            )
        except SQLAlchemyError as exc:
            current_app.logger.error(f"[task-source-error] theme={theme_id} {exc.__class__.__name__}")
            raise UpstreamFailure('Could not load tasks for this theme, please try again') from exc
        return [TaskCard(id=t.id, description=t.description, type=t.type) for t in rows]

    def describe_tasks(self, task_ids: Iterable[str]) -> Dict[str, str]:
        ids = sorted({tid for tid in task_ids if tid})
        if not ids:
            return {}
        try:
            rows = Task.query.filter(Task.id.in_(ids)).all()
        except SQLAlchemyError as exc:
            current_app.logger.error(f"[task-source-error] describe count={len(ids)} {exc.__class__.__name__}")
            raise UpstreamFailure('Could not load task texts, please try again') from exc
        return {t.id: t.description for t in rows}
