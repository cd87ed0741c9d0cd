import datetime as dt
import unittest

from services.api.app.engine.errors import LiveClassNotFound, LiveClassValidationError
from services.api.app.engine.models import ConnectedUser, LiveClassInput, Participant
from services.api.app.engine.store import LiveClassStore


class FakeClock:
    def __init__(self, start: dt.datetime) -> None:
        self.now = start

    def __call__(self) -> dt.datetime:
        return self.now

    def tick(self, seconds: float = 1.0) -> None:
        self.now = self.now + dt.timedelta(seconds=seconds)


def math_10a(**overrides) -> LiveClassInput:
    data = {"subject": "Math", "teacher": "T1", "teacherId": "t1", "class": "10A"}
    data.update(overrides)
    return LiveClassInput.model_validate(data)


class LiveClassStoreCreateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(dt.datetime(2026, 1, 5, 9, 0, tzinfo=dt.timezone.utc))
        self.store = LiveClassStore(clock=self.clock, jitsi_base_url="https://meet.example.org")

    def test_create_returns_live_class_with_defaults(self) -> None:
        live_class = self.store.create(math_10a())

        self.assertTrue(live_class.is_live)
        self.assertEqual(live_class.class_name, "10A")
        self.assertEqual(live_class.participants, [])
        self.assertIsNone(live_class.end_time)
        self.assertEqual(live_class.start_time, self.clock.now)
        self.assertTrue(live_class.room_name.startswith("Math-10A-"))
        millis = int(self.clock.now.timestamp() * 1000)
        self.assertEqual(live_class.room_name, f"Math-10A-{millis}")
        self.assertEqual(live_class.jitsi_url, f"https://meet.example.org/Math-10A-{millis}")

    def test_supplied_room_and_url_are_kept(self) -> None:
        live_class = self.store.create(
            math_10a(roomName="algebra-room", jitsiUrl="https://meet.example.org/custom")
        )

        self.assertEqual(live_class.room_name, "algebra-room")
        self.assertEqual(live_class.jitsi_url, "https://meet.example.org/custom")

    def test_supplied_room_drives_default_url(self) -> None:
        live_class = self.store.create(math_10a(roomName="algebra-room"))

        self.assertEqual(live_class.jitsi_url, "https://meet.example.org/algebra-room")

    def test_ids_and_meeting_ids_are_unique(self) -> None:
        created = [self.store.create(math_10a()) for _ in range(25)]

        ids = {c.id for c in created}
        meeting_ids = {c.meeting_id for c in created}
        self.assertEqual(len(ids), 25)
        self.assertEqual(len(meeting_ids), 25)
        self.assertFalse(ids & meeting_ids)

    def test_missing_fields_are_rejected(self) -> None:
        with self.assertRaises(LiveClassValidationError) as ctx:
            self.store.create(LiveClassInput.model_validate({"subject": "Math", "class": "10A"}))

        self.assertIn("teacher", str(ctx.exception))
        self.assertIn("teacherId", str(ctx.exception))
        self.assertEqual(len(self.store), 0)

    def test_blank_fields_are_rejected(self) -> None:
        with self.assertRaises(LiveClassValidationError):
            self.store.create(math_10a(subject="   "))


class LiveClassStoreLifecycleTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(dt.datetime(2026, 1, 5, 9, 0, tzinfo=dt.timezone.utc))
        self.store = LiveClassStore(clock=self.clock)

    def test_terminate_removes_class(self) -> None:
        live_class = self.store.create(math_10a())
        self.clock.tick(60)

        ended = self.store.terminate(live_class.id)

        self.assertFalse(ended.is_live)
        self.assertEqual(ended.end_time, self.clock.now)
        with self.assertRaises(LiveClassNotFound):
            self.store.find(live_class.id)

    def test_terminate_twice_raises_on_second_call(self) -> None:
        live_class = self.store.create(math_10a())

        self.store.terminate(live_class.id)
        with self.assertRaises(LiveClassNotFound):
            self.store.terminate(live_class.id)

    def test_list_all_counts_creates_minus_terminates(self) -> None:
        created = [self.store.create(math_10a()) for _ in range(6)]
        for live_class in created[:4]:
            self.store.terminate(live_class.id)

        remaining = self.store.list_all()

        self.assertEqual(len(remaining), 2)
        self.assertEqual([c.id for c in remaining], [c.id for c in created[4:]])

    def test_list_all_is_a_snapshot(self) -> None:
        live_class = self.store.create(math_10a())

        snapshot = self.store.list_all()
        snapshot[0].subject = "Tampered"
        snapshot[0].participants.append(
            Participant(user_id="intruder", role="student", joined_at=self.clock.now)
        )
        snapshot.clear()

        current = self.store.find(live_class.id)
        self.assertEqual(current.subject, "Math")
        self.assertEqual(current.participants, [])
        self.assertEqual(len(self.store.list_all()), 1)

    def test_filter_by_class(self) -> None:
        a = self.store.create(math_10a())
        self.store.create(math_10a(**{"class": "10B"}))

        matches = self.store.filter_by_class("10A")

        self.assertEqual([c.id for c in matches], [a.id])

    def test_filter_by_teacher(self) -> None:
        self.store.create(math_10a())
        b = self.store.create(math_10a(teacherId="t2", teacher="T2"))

        matches = self.store.filter_by_teacher("t2")

        self.assertEqual([c.id for c in matches], [b.id])
        self.assertEqual(self.store.filter_by_teacher("nobody"), [])

    def test_created_class_visible_to_other_readers_immediately(self) -> None:
        live_class = self.store.create(math_10a())

        self.assertIn(live_class.id, [c.id for c in self.store.list_all()])


class LiveClassStoreJoinTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock(dt.datetime(2026, 1, 5, 9, 0, tzinfo=dt.timezone.utc))
        self.store = LiveClassStore(clock=self.clock)
        self.live_class = self.store.create(math_10a())

    def test_join_is_idempotent_per_user(self) -> None:
        student = ConnectedUser(id="s1", name="Sam", role="student")

        first = self.store.join(self.live_class.id, student)
        self.clock.tick(30)
        second = self.store.join(self.live_class.id, student)

        self.assertFalse(first.already_joined)
        self.assertTrue(second.already_joined)
        self.assertEqual(first.participant, second.participant)
        participants = self.store.find(self.live_class.id).participants
        self.assertEqual(len(participants), 1)
        self.assertEqual(participants[0].user_id, "s1")

    def test_join_unknown_class(self) -> None:
        with self.assertRaises(LiveClassNotFound):
            self.store.join("missing", ConnectedUser(id="s1", role="student"))

    def test_participants_cleared_with_class(self) -> None:
        self.store.join(self.live_class.id, ConnectedUser(id="s1", role="student"))

        ended = self.store.terminate(self.live_class.id)

        self.assertEqual(len(ended.participants), 1)
        with self.assertRaises(LiveClassNotFound):
            self.store.join(self.live_class.id, ConnectedUser(id="s2", role="student"))


if __name__ == "__main__":
    unittest.main()
