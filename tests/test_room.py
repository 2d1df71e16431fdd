"""
tests.test_room
~~~~~~~~~~~~~~~

WatchRoom 房间聚合单元测试：参与者名单、房主不变式、有界消息、播放状态。
"""
from __future__ import annotations

from app.schemas.room import Participant
from app.services.room import WatchRoom


def make_room(host_id: str = "alice", **kwargs) -> WatchRoom:
    return WatchRoom("R1", Participant(id=host_id, name=host_id.title()), **kwargs)


def hosts(room: WatchRoom) -> list[str]:
    return [p.id for p in room.list_participants() if p.is_host]


# ── 参与者 ────────────────────────────────────────────────────────────

class TestParticipants:
    """测试参与者的增删改。"""

    def test_host_is_sole_member_after_creation(self) -> None:
        room = make_room()

        assert room.participant_count == 1
        assert room.host_id == "alice"
        assert hosts(room) == ["alice"]

    def test_add_participant_sets_defaults(self) -> None:
        """新成员默认在线、音视频关闭、非房主。"""
        room = make_room()
        bob = room.add_participant(Participant(id="bob", name="Bob", is_host=True))

        assert bob.is_online is True
        assert bob.audio_enabled is False
        assert bob.video_enabled is False
        assert bob.is_host is False
        assert hosts(room) == ["alice"]

    def test_add_participant_overwrites_same_id(self) -> None:
        room = make_room()
        room.add_participant(Participant(id="bob", name="Bob"))
        room.add_participant(Participant(id="bob", name="Bobby"))

        assert room.participant_count == 2
        assert room.get_participant("bob").name == "Bobby"

    def test_remove_absent_participant_is_noop(self) -> None:
        room = make_room()

        assert room.remove_participant("ghost") is None
        assert room.participant_count == 1

    def test_update_participant_merges_fields(self) -> None:
        room = make_room()
        room.add_participant(Participant(id="bob", name="Bob"))

        room.update_participant("bob", audio_enabled=True)
        bob = room.get_participant("bob")

        assert bob.audio_enabled is True
        assert bob.video_enabled is False
        assert bob.name == "Bob"

    def test_update_never_creates_participant(self) -> None:
        room = make_room()

        assert room.update_participant("ghost", audio_enabled=True) is None
        assert room.get_participant("ghost") is None

    def test_update_cannot_grant_host(self) -> None:
        room = make_room()
        room.add_participant(Participant(id="bob", name="Bob"))

        room.update_participant("bob", is_host=True)

        assert hosts(room) == ["alice"]


# ── 房主转移 ──────────────────────────────────────────────────────────

class TestHostTransfer:
    """测试房主转移后仍恰好有一名房主。"""

    def test_transfer_to_first_remaining(self) -> None:
        room = make_room()
        room.add_participant(Participant(id="bob", name="Bob"))
        room.add_participant(Participant(id="carol", name="Carol"))

        room.remove_participant("alice")
        new_host = room.transfer_host()

        assert new_host.id == "bob"
        assert room.host_id == "bob"
        assert hosts(room) == ["bob"]

    def test_transfer_to_explicit_participant(self) -> None:
        room = make_room()
        room.add_participant(Participant(id="bob", name="Bob"))
        room.add_participant(Participant(id="carol", name="Carol"))

        room.transfer_host("carol")

        assert hosts(room) == ["carol"]
        assert room.is_host("carol")
        assert not room.is_host("alice")

    def test_transfer_on_empty_room_returns_none(self) -> None:
        room = make_room()
        room.remove_participant("alice")

        assert room.transfer_host() is None
        assert room.is_empty

    def test_transfer_to_unknown_participant_keeps_host(self) -> None:
        room = make_room()

        assert room.transfer_host("ghost") is None
        assert hosts(room) == ["alice"]


# ── 消息 ──────────────────────────────────────────────────────────────

class TestMessages:
    """测试有界聊天记录。"""

    def test_add_message_assigns_id_and_timestamp(self) -> None:
        room = make_room()
        first = room.add_message("alice", "Alice", "hi")
        second = room.add_message("alice", "Alice", "hi")

        assert first.id != second.id
        assert first.timestamp <= second.timestamp
        assert first.type == "user"

    def test_keeps_last_hundred_in_insertion_order(self) -> None:
        room = make_room()
        for i in range(150):
            room.add_message("alice", "Alice", f"msg-{i}")

        contents = [m.content for m in room.messages]

        assert len(contents) == 100
        assert contents == [f"msg-{i}" for i in range(50, 150)]

    def test_custom_message_cap(self) -> None:
        room = make_room(max_messages=3)
        for i in range(5):
            room.add_message("alice", "Alice", str(i))

        assert [m.content for m in room.messages] == ["2", "3", "4"]


# ── 播放状态 ──────────────────────────────────────────────────────────

class TestPlayback:
    """测试播放状态合并。"""

    def test_initial_state(self) -> None:
        playback = make_room().playback

        assert playback.url == ""
        assert playback.current_time == 0
        assert playback.is_playing is False
        assert playback.duration == 0

    def test_update_playback_merges(self) -> None:
        room = make_room()
        room.update_playback(url="x.mp4")
        room.update_playback(current_time=12.5, is_playing=True)

        assert room.playback.url == "x.mp4"
        assert room.playback.current_time == 12.5
        assert room.playback.is_playing is True

    def test_update_playback_does_not_clamp_time(self) -> None:
        room = make_room()
        room.update_playback(current_time=99999.0)

        assert room.playback.current_time == 99999.0


# ── 视图 ──────────────────────────────────────────────────────────────

class TestViews:
    """测试摘要 / 详情 / 快照的线上格式。"""

    def test_summary_exposes_only_public_fields(self) -> None:
        room = make_room()
        room.add_message("alice", "Alice", "secret")

        wire = room.summary().to_wire()

        assert set(wire) == {"id", "participantCount", "createdAt"}
        assert wire["participantCount"] == 1

    def test_detail_includes_current_video(self) -> None:
        room = make_room()
        room.update_playback(url="x.mp4")

        wire = room.detail().to_wire()

        assert wire["currentVideo"]["url"] == "x.mp4"
        assert wire["currentVideo"]["isPlaying"] is False

    def test_snapshot_contains_roster_playback_and_history(self) -> None:
        room = make_room()
        room.add_participant(Participant(id="bob", name="Bob"))
        room.add_message("alice", "Alice", "hello")

        wire = room.snapshot().to_wire()

        assert wire["hostId"] == "alice"
        assert {p["id"] for p in wire["participants"]} == {"alice", "bob"}
        assert wire["messages"][0]["content"] == "hello"
        assert wire["messages"][0]["userName"] == "Alice"
        assert "currentTime" in wire["currentVideo"]
