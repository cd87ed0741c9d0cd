import asyncio
import json
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from ..db import init_db
from .models import LiveClass


def _dictify(row: Any) -> Dict[str, Any]:
    if row is None:
        return {}
    if isinstance(row, dict):
        return dict(row)
    if hasattr(row, "_mapping"):
        return dict(row._mapping)
    return dict(row)


def _history_entry(row: Any) -> Dict[str, Any]:
    entry = _dictify(row)
    entry["participants"] = json.loads(entry.get("participants") or "[]")
    for key in ("start_time", "end_time"):
        value = entry.get(key)
        if value is not None and not isinstance(value, str):
            entry[key] = value.isoformat()
    return entry


class LiveClassArchive:
    """Keeps a record of classes after they leave the live registry."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def init_schema(self) -> None:
        with self._session_factory() as session:
            init_db(session.get_bind())

    async def record_ended(self, live_class: LiveClass) -> None:
        participants = [p.model_dump(mode="json", by_alias=True) for p in live_class.participants]
        params = {
            "id": live_class.id,
            "meeting_id": live_class.meeting_id,
            "subject": live_class.subject,
            "teacher": live_class.teacher,
            "teacher_id": live_class.teacher_id,
            "class_name": live_class.class_name,
            "room_name": live_class.room_name,
            "jitsi_url": live_class.jitsi_url,
            "start_time": live_class.start_time.isoformat(),
            "end_time": live_class.end_time.isoformat() if live_class.end_time else None,
            "participant_count": len(participants),
            "participants": json.dumps(participants),
        }

        def _insert() -> None:
            with self._session_factory() as session:
                session.execute(
                    text(
                        """
                        insert into ended_live_classes (
                          id, meeting_id, subject, teacher, teacher_id, class_name,
                          room_name, jitsi_url, start_time, end_time,
                          participant_count, participants
                        )
                        values (
                          :id, :meeting_id, :subject, :teacher, :teacher_id, :class_name,
                          :room_name, :jitsi_url, :start_time, :end_time,
                          :participant_count, :participants
                        )
                        """
                    ),
                    params,
                )
                session.commit()

        await asyncio.to_thread(_insert)

    async def recent(
        self, limit: int = 50, teacher_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        def _recent() -> List[Dict[str, Any]]:
            query = """
                select id, meeting_id, subject, teacher, teacher_id, class_name,
                       room_name, jitsi_url, start_time, end_time,
                       participant_count, participants
                from ended_live_classes
            """
            params: Dict[str, Any] = {"limit": limit}
            if teacher_id is not None:
                query += " where teacher_id = :teacher_id"
                params["teacher_id"] = teacher_id
            query += " order by end_time desc limit :limit"
            with self._session_factory() as session:
                result = session.execute(text(query), params)
                return [_history_entry(row) for row in result.mappings().all()]

        return await asyncio.to_thread(_recent)
