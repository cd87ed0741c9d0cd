from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

PARTICIPANT_ROLES = {"student", "teacher"}


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Participant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    name: Optional[str] = None
    role: str  # student|teacher
    joined_at: dt.datetime = Field(alias="joinTime")


class LiveClass(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    meeting_id: str = Field(alias="meetingId")
    subject: str
    teacher: str
    teacher_id: str = Field(alias="teacherId")
    class_name: str = Field(alias="class")
    room_name: str = Field(alias="roomName")
    jitsi_url: str = Field(alias="jitsiUrl")
    is_live: bool = Field(default=True, alias="isLive")
    start_time: dt.datetime = Field(alias="startTime")
    end_time: Optional[dt.datetime] = Field(default=None, alias="endTime")
    participants: List[Participant] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class LiveClassInput(BaseModel):
    """Request body for starting a class; required fields are checked by the store."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    subject: Optional[str] = None
    teacher: Optional[str] = None
    teacher_id: Optional[str] = Field(default=None, alias="teacherId")
    class_name: Optional[str] = Field(default=None, alias="class")
    room_name: Optional[str] = Field(default=None, alias="roomName")
    jitsi_url: Optional[str] = Field(default=None, alias="jitsiUrl")


class ConnectedUser(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    name: Optional[str] = None
    role: Optional[str] = None  # student|teacher|admin


class JoinResult(BaseModel):
    participant: Participant
    already_joined: bool = False
