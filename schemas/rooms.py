from pydantic import BaseModel
from typing import List


class RoomSummary(BaseModel):
    name: str
    member_count: int

class RoomDetailsResponse(BaseModel):
    name: str
    member_count: int
    members: List[str]
