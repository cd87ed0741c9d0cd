import os

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./live_classes.db")


def make_engine(url: str = DATABASE_URL) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, connect_args=connect_args)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

DDL = [
    """
    create table if not exists ended_live_classes (
      id varchar(36) primary key,
      meeting_id varchar(36) not null,
      subject text not null,
      teacher text not null,
      teacher_id text not null,
      class_name text not null,
      room_name text not null,
      jitsi_url text not null,
      start_time timestamp not null,
      end_time timestamp not null,
      participant_count int not null default 0,
      participants text not null default '[]'
    );
    """,
]


def init_db(bind: Engine = engine) -> None:
    with bind.begin() as conn:
        for stmt in DDL:
            conn.execute(text(stmt))
        conn.execute(
            text(
                "CREATE INDEX IF NOT EXISTS idx_ended_live_classes_end_time "
                "ON ended_live_classes (end_time)"
            )
        )
        conn.execute(
            text(
                "CREATE INDEX IF NOT EXISTS idx_ended_live_classes_teacher "
                "ON ended_live_classes (teacher_id)"
            )
        )
