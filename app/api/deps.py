from fastapi import Request

from app.services.room_store import RoomStore
from app.services.storage import VideoStorage


def get_room_store(request: Request) -> RoomStore:
    return request.app.state.room_store


def get_video_storage(request: Request) -> VideoStorage:
    return request.app.state.video_storage
