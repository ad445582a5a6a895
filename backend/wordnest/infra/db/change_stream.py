"""Insert stream over the ``generation_jobs`` table.

New job rows are captured when their session flushes and handed to a sink
only once the surrounding transaction commits. A rolled back insert is
never delivered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

from wordnest.domain.models import JobChange, JobRecord
from wordnest.infra.db.models import GenerationJobRow

logger = logging.getLogger(__name__)

ChangeSink = Callable[[list[JobChange]], None]

_PENDING_KEY = "wordnest.pending_job_inserts"


def _iso(value: datetime | None) -> str:
    if value is None:
        return datetime.now(timezone.utc).isoformat()
    return value.isoformat()


def snapshot_job_row(row: GenerationJobRow) -> JobRecord:
    return JobRecord(
        job_id=row.public_id,
        user_id=row.user_id,
        job_type=row.job_type,  # type: ignore[arg-type]
        status=row.status,  # type: ignore[arg-type]
        input=dict(row.input_json or {}),
        result=None,
        error=None,
        started_at=_iso(row.started_at),
        completed_at=None,
    )


def attach_change_stream(session_factory: sessionmaker[Session], sink: ChangeSink) -> Callable[[], None]:
    """Register the listeners on ``session_factory``; returns a detach callable."""

    def _collect(session: Session, _flush_context) -> None:
        # session.new still reflects the pre-flush state here.
        inserted = [obj for obj in session.new if isinstance(obj, GenerationJobRow)]
        if inserted:
            pending = session.info.setdefault(_PENDING_KEY, [])
            pending.extend(snapshot_job_row(row) for row in inserted)

    def _emit(session: Session) -> None:
        records = session.info.pop(_PENDING_KEY, None)
        if not records:
            return
        changes = [JobChange(event_name="INSERT", job=record) for record in records]
        try:
            sink(changes)
        except Exception:
            logger.exception("Change stream sink failed for %d job insert(s)", len(changes))

    def _discard(session: Session, _previous_transaction) -> None:
        session.info.pop(_PENDING_KEY, None)

    event.listen(session_factory, "after_flush", _collect)
    event.listen(session_factory, "after_commit", _emit)
    event.listen(session_factory, "after_soft_rollback", _discard)

    def detach() -> None:
        event.remove(session_factory, "after_flush", _collect)
        event.remove(session_factory, "after_commit", _emit)
        event.remove(session_factory, "after_soft_rollback", _discard)

    return detach
